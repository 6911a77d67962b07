import builtins
import sys
from typing import Iterable, List, Optional, TextIO
from bitlang.errors import BitRuntimeError


class ConsoleBitReader:
    """Reads one bit per call from the console."""
    def __init__(self, prompt: str = ''):
        self.prompt = prompt

    def __call__(self) -> int:
        try:
            text = builtins.input(self.prompt)
        except EOFError:
            raise BitRuntimeError('No more input to read.')
        text = text.strip()
        if text not in ('0', '1'):
            raise BitRuntimeError('Invalid value read.')
        return int(text)


class IterableBitReader:
    """Supplies READ bits from a pre-recorded sequence."""
    def __init__(self, bits: Iterable[int]):
        self.bits = iter(bits)

    @staticmethod
    def from_string(text: str) -> 'IterableBitReader':
        bits: List[int] = []
        for c in text:
            if c.isspace():
                continue
            if c not in '01':
                raise BitRuntimeError(f'Invalid input bit {c!r}.')
            bits.append(int(c))
        return IterableBitReader(bits)

    def __call__(self) -> int:
        try:
            return next(self.bits)
        except StopIteration:
            raise BitRuntimeError('No more input to read.')


class RawBitWriter:
    """Prints every bit as the character 0 or 1."""
    def __init__(self, stream: Optional[TextIO] = None):
        self.stream = stream

    def __call__(self, bit: int):
        stream = self.stream or sys.stdout
        stream.write(str(bit))
        stream.flush()


class AsciiBitWriter:
    """Packs every eight bits, most significant first, into one character.

    An incomplete trailing group is never printed.
    """
    def __init__(self, stream: Optional[TextIO] = None):
        self.stream = stream
        self.pending: List[int] = []

    def __call__(self, bit: int):
        self.pending.append(bit)
        if len(self.pending) == 8:
            code = 0
            for b in self.pending:
                code = (code << 1) | b
            self.pending.clear()
            stream = self.stream or sys.stdout
            stream.write(chr(code))
            stream.flush()
