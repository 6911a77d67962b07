import pytest

from bitlang.errors import BitRuntimeError
from bitlang.memory import Memory
from bitlang.types import Value


def test_uninitialized_read_is_idempotent():
    memory = Memory()
    assert memory.read(7) == Value.undefined(0)
    assert memory.read(7) == Value.undefined(0)
    assert 7 in memory
    assert len(memory) == 1


def test_jump_register_reads_as_bit():
    memory = Memory()
    assert memory.read(-1) == Value.bit(0)
    memory.write(-1, Value.bit(1))
    assert memory.read(-1) == Value.bit(1)
    assert len(memory) == 0


@pytest.mark.parametrize('address', [-2, -100])
def test_illegal_addresses(address):
    memory = Memory()
    with pytest.raises(BitRuntimeError, match='Invalid memory address'):
        memory.read(address)
    with pytest.raises(BitRuntimeError, match='Invalid memory address'):
        memory.write(address, Value.bit(0))


@pytest.mark.parametrize('address', [-1, 0, 12])
@pytest.mark.parametrize('magnitude', [-1, -2, 2])
def test_bit_values_must_be_zero_or_one(address, magnitude):
    with pytest.raises(BitRuntimeError, match='Illegal value'):
        Memory().write(address, Value.bit(magnitude))


def test_jump_register_rejects_addresses():
    with pytest.raises(BitRuntimeError, match="can't store address-of-a-bit"):
        Memory().write(-1, Value.address(1))


# An undefined constant wider than one bit is refused by the jump register
# instead of being stored, so the register always holds 0 or 1.

@pytest.mark.parametrize('magnitude', [2, 3, 5])
def test_jump_register_refuses_undefined_values_wider_than_a_bit(magnitude):
    memory = Memory()
    with pytest.raises(BitRuntimeError, match='Illegal value for the jump register'):
        memory.write(-1, Value.undefined(magnitude))
    assert memory.jump_register == 0


def test_jump_register_accepts_undefined_zero_and_one():
    memory = Memory()
    memory.write(-1, Value.undefined(1))
    assert memory.jump_register == 1
    memory.write(-1, Value.undefined(0))
    assert memory.jump_register == 0


def test_ordinary_cells_keep_undefined_values_wider_than_a_bit():
    memory = Memory()
    memory.write(4, Value.undefined(3))
    assert memory.read(4) == Value.undefined(3)


def test_cells_are_overwritten_with_their_kind():
    memory = Memory()
    memory.write(3, Value.bit(1))
    memory.write(3, Value.address(9))
    assert memory.read(3) == Value.address(9)
    memory.write(3, Value.undefined(42))
    assert memory.read(3) == Value.undefined(42)
