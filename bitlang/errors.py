from typing import Optional


PREVIEW_LENGTH = 60
NESTED_TOO_DEEPLY = 'Expression nested too deeply'


class BitError(Exception):
    """Base class of every failure raised by the BIT toolchain."""
    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ParseError(BitError):
    """An expected keyword was not found, or the program graph is malformed."""
    def __init__(self, message: str, position: int = 0, source: Optional[str] = None):
        super().__init__(message)
        self.position = position
        self.source = source

    def excerpt(self) -> str:
        """Return a window of the source around the failing position with a caret below it."""
        if self.source is None:
            return ''
        start = max(self.position - PREVIEW_LENGTH // 2, 0)
        end = min(self.position + PREVIEW_LENGTH // 2, len(self.source))
        # keep the excerpt on one line so the caret stays aligned
        window = ''.join(' ' if c.isspace() else c for c in self.source[start:end])
        return f"  {window}\n  {' ' * (self.position - start)}^"

    def __str__(self) -> str:
        return f"{self.message}. Position {self.position}"


class BitRuntimeError(BitError):
    """An ill-typed operation, illegal address or dangling branch during execution."""
    pass
