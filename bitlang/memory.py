from typing import Dict
from bitlang.errors import BitRuntimeError
from bitlang.types import JUMP_REGISTER_ADDRESS, Value, ValueKind, is_legal_bit


class Memory:
    """Sparse bit-addressable memory plus the jump register.

    Ordinary cells live at addresses >= 0 and are created on first read.
    The jump register is addressed as -1 but kept outside the cell map.
    """
    def __init__(self):
        self.cells: Dict[int, Value] = {}
        self.jump_register: int = 0

    def __len__(self) -> int:
        return len(self.cells)

    def __contains__(self, address: int) -> bool:
        return address == JUMP_REGISTER_ADDRESS or address in self.cells

    def read(self, address: int) -> Value:
        if address == JUMP_REGISTER_ADDRESS:
            return Value.bit(self.jump_register)
        if address >= 0:
            if address not in self.cells:
                self.cells[address] = Value.undefined()
            return self.cells[address]
        raise BitRuntimeError(f'Invalid memory address: {address}.')

    def write(self, address: int, value: Value):
        if value.kind == ValueKind.BIT and not is_legal_bit(value.magnitude):
            raise BitRuntimeError(f'Illegal value: {value.magnitude}')
        if address == JUMP_REGISTER_ADDRESS:
            if value.kind == ValueKind.ADDRESS_OF_A_BIT:
                raise BitRuntimeError("The jump register can't store address-of-a-bit values.")
            if not is_legal_bit(value.magnitude):
                raise BitRuntimeError(f'Illegal value for the jump register: {value.magnitude}')
            self.jump_register = value.magnitude
            return
        if address >= 0:
            self.cells[address] = value
            return
        raise BitRuntimeError(f'Invalid memory address: {address}.')
