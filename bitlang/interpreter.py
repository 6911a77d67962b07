"""Parser and interpreter for the BIT language.

This module implements the complete BIT toolchain: a lexical matcher for
the keyword alphabet, a recursive-descent parser producing a program
graph, and an interpreter that runs that graph line by line against a
sparse memory and the jump register.

Keywords may be written with arbitrary whitespace between their
characters ("LINE NUMBER", "LINENUMBER" and "L INENUMB ER" are the same
symbol), so there is no separate tokenizer pass: the parser asks the
matcher whether the upcoming characters spell a given keyword.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from .ast import (
    Program, Line, Node, PrintCommand, ReadCommand, Assignment, Target,
    UnconditionalBranch, ConditionalBranch, Nand, AddressOf, ValueBeyond,
    ValueAt, Variable, Constant,
)
from .bitio import ConsoleBitReader, RawBitWriter
from .errors import NESTED_TOO_DEEPLY, BitError, BitRuntimeError, ParseError
from .memory import Memory
from .types import JUMP_REGISTER_ADDRESS, Value, ValueKind, is_legal_bit, to_string

###############################################################################
# Lexical matcher
###############################################################################

LINE_NUMBER = 'LINENUMBER'
CODE = 'CODE'
GOTO = 'GOTO'
IF_THE_JUMP_REGISTER_IS = 'IFTHEJUMPREGISTERIS'
EQUAL_TO = 'EQUALTO'
PRINT = 'PRINT'
READ = 'READ'
EQUALS = 'EQUALS'
VARIABLE = 'VARIABLE'
THE_JUMP_REGISTER = 'THEJUMPREGISTER'
NAND = 'NAND'
THE_ADDRESS_OF = 'THEADDRESSOF'
THE_VALUE_BEYOND = 'THEVALUEBEYOND'
THE_VALUE_AT = 'THEVALUEAT'
OPEN_PARENTHESIS = 'OPENPARENTHESIS'
CLOSE_PARENTHESIS = 'CLOSEPARENTHESIS'
ZERO = 'ZERO'
ONE = 'ONE'


class Matcher:
    """Recognizes literal keywords in a character buffer.

    Whitespace is skipped before every character of a keyword, never
    required between keywords.
    """
    def __init__(self, source: str):
        self.source = source
        self.length = len(source)
        self.position = 0

    def skip_whitespace(self) -> int:
        while self.position < self.length and self.source[self.position].isspace():
            self.position += 1
        return self.position

    def at_end(self) -> bool:
        return self.skip_whitespace() >= self.length

    def match(self, symbol: str) -> bool:
        """Test whether `symbol` comes next without consuming anything."""
        i = self.position
        for character in symbol:
            while i < self.length and self.source[i].isspace():
                i += 1
            if i >= self.length or self.source[i] != character:
                return False
            i += 1
        return True

    def consume(self, symbol: str):
        for character in symbol:
            self.skip_whitespace()
            if self.position >= self.length or self.source[self.position] != character:
                raise self.error(f"Illegal symbol found. {symbol} was expected")
            self.position += 1

    def error(self, message: str, position: Optional[int] = None) -> ParseError:
        if position is None:
            position = self.skip_whitespace()
        return ParseError(message, position, self.source)


###############################################################################
# Parser implementation
###############################################################################


class Parser:
    def __init__(self, source: str):
        self.matcher = Matcher(source)

    def match(self, symbol: str) -> bool:
        return self.matcher.match(symbol)

    def consume(self, symbol: str):
        self.matcher.consume(symbol)

    def parse_program(self) -> Program:
        first = self.parse_line()
        lines: Dict[int, Line] = {first.number: first}
        while self.match(LINE_NUMBER):
            line = self.parse_line()
            if line.number in lines:
                raise self.matcher.error(f"Line number {line.number} is already defined", line.position)
            lines[line.number] = line
        if not self.matcher.at_end():
            raise self.matcher.error(f"Illegal symbol found. {LINE_NUMBER} was expected")
        return Program(lines, first.number)

    def parse_line(self) -> Line:
        position = self.matcher.skip_whitespace()
        self.consume(LINE_NUMBER)
        number = self.parse_bits()
        self.consume(CODE)
        instruction = self.parse_instruction()
        branch = None
        if self.match(GOTO):
            branch = self.parse_branch()
        return Line(number, instruction, branch, position)

    def parse_instruction(self) -> Node:
        if self.match(PRINT) or self.match(READ):
            return self.parse_command()
        return self.parse_assignment()

    def parse_command(self) -> Node:
        if self.match(PRINT):
            self.consume(PRINT)
            return PrintCommand(self.parse_bit())
        if self.match(READ):
            self.consume(READ)
            return ReadCommand()
        raise self.matcher.error("Illegal symbol found. Command was expected")

    def parse_assignment(self) -> Assignment:
        # a leading variable is a literal target, anything else is computed at run time
        if self.match(VARIABLE) or self.match(THE_JUMP_REGISTER):
            address = self.parse_variable().address
            address_expression = None
        else:
            address = None
            address_expression = self.parse_expression()
        self.consume(EQUALS)
        expression = self.parse_expression()
        return Assignment(address, address_expression, expression)

    def parse_branch(self) -> Node:
        self.consume(GOTO)
        target = self.parse_target()
        if not self.match(IF_THE_JUMP_REGISTER_IS):
            return UnconditionalBranch(target)
        arms: Dict[int, Target] = {self.parse_condition(): target}
        if self.match(GOTO):
            self.consume(GOTO)
            second_target = self.parse_target()
            position = self.matcher.skip_whitespace()
            bit = self.parse_condition()
            if bit in arms:
                raise self.matcher.error(
                    "Illegal symbol found. Conditional goto with different bit constant was expected",
                    position)
            arms[bit] = second_target
        return ConditionalBranch(arms.get(0), arms.get(1))

    def parse_target(self) -> Target:
        indirect = False
        if self.match(VARIABLE):
            self.consume(VARIABLE)
            indirect = True
        return Target(self.parse_bits(), indirect)

    def parse_condition(self) -> int:
        self.consume(IF_THE_JUMP_REGISTER_IS)
        if self.match(EQUAL_TO):
            self.consume(EQUAL_TO)
        return self.parse_bit()

    # Expressions, loosest binding first
    def parse_expression(self) -> Node:
        left = self.parse_address_of()
        if self.match(NAND):
            self.consume(NAND)
            right = self.parse_address_of()
            return Nand(left, right)
        return left

    def parse_address_of(self) -> Node:
        if self.match(THE_ADDRESS_OF):
            self.consume(THE_ADDRESS_OF)
            return AddressOf(self.parse_value_beyond())
        return self.parse_value_beyond()

    def parse_value_beyond(self) -> Node:
        if self.match(THE_VALUE_BEYOND):
            self.consume(THE_VALUE_BEYOND)
            return ValueBeyond(self.parse_value_at())
        return self.parse_value_at()

    def parse_value_at(self) -> Node:
        if self.match(THE_VALUE_AT):
            self.consume(THE_VALUE_AT)
            return ValueAt(self.parse_primary())
        return self.parse_primary()

    def parse_primary(self) -> Node:
        if self.match(VARIABLE) or self.match(THE_JUMP_REGISTER):
            return self.parse_variable()
        if self.match(ZERO) or self.match(ONE):
            return Constant(self.parse_bits())
        if self.match(OPEN_PARENTHESIS):
            self.consume(OPEN_PARENTHESIS)
            node = self.parse_expression()
            self.consume(CLOSE_PARENTHESIS)
            return node
        raise self.matcher.error("Illegal symbol found. Expression was expected")

    def parse_variable(self) -> Variable:
        if self.match(VARIABLE):
            self.consume(VARIABLE)
            return Variable(self.parse_bits())
        if self.match(THE_JUMP_REGISTER):
            self.consume(THE_JUMP_REGISTER)
            return Variable(JUMP_REGISTER_ADDRESS)
        raise self.matcher.error("Illegal symbol found. Variable was expected")

    def parse_bits(self) -> int:
        # big-endian: the first bit written is the most significant
        bits = self.parse_bit()
        while self.match(ZERO) or self.match(ONE):
            bits = (bits << 1) | self.parse_bit()
        return bits

    def parse_bit(self) -> int:
        if self.match(ZERO):
            self.consume(ZERO)
            return 0
        if self.match(ONE):
            self.consume(ONE)
            return 1
        raise self.matcher.error("Illegal symbol found. Bit constant was expected")


def parse_program(source: str) -> Program:
    """Parse the given source code into a program graph."""
    parser = Parser(source)
    try:
        return parser.parse_program()
    except RecursionError:
        raise parser.matcher.error(NESTED_TOO_DEEPLY, parser.matcher.position) from None


###############################################################################
# Interpreter implementation
###############################################################################


@dataclass
class ExecutionContext:
    """Mutable state of a single run."""
    memory: Memory = field(default_factory=Memory)
    steps: int = 0
    current_line: Optional[int] = None


@dataclass
class RunResult:
    output: List[int]
    error: Optional[BitError] = None
    context: Optional[ExecutionContext] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class Interpreter:
    """Executes a BIT program graph.

    `indirect_goto` makes the VARIABLE marker of a branch target
    dereference the target through memory; by default the marker is
    parsed and ignored. `legacy_guards` replaces the kind checks of the
    operators with the original comparisons of magnitudes against the
    numeric kind codes.
    """
    def __init__(self, read_bit: Optional[Callable[[], int]] = None,
                 write_bit: Optional[Callable[[int], None]] = None,
                 debug_level: int = 0, debug_file: str = 'debug.txt',
                 indirect_goto: bool = False, legacy_guards: bool = False,
                 max_steps: Optional[int] = None):
        self.read_bit = read_bit if read_bit is not None else ConsoleBitReader()
        self.write_bit = write_bit if write_bit is not None else RawBitWriter()
        self.indirect_goto = indirect_goto
        self.legacy_guards = legacy_guards
        self.max_steps = max_steps
        self.debug_level = debug_level
        self.debug_file = debug_file
        self.debug_fp = None
        # the first run truncates the trace file, later runs append to it
        self.debug_mode = 'w'

    def debug(self, msg: str):
        if self.debug_level > 0:
            if self.debug_fp:
                self.debug_fp.write(msg + '\n')
                self.debug_fp.flush()
            else:
                print(msg)

    # Public API
    def run(self, program: Program, ctx: Optional[ExecutionContext] = None) -> ExecutionContext:
        if ctx is None:
            ctx = ExecutionContext()
        if self.debug_level > 0:
            self.debug_fp = open(self.debug_file, self.debug_mode)
            self.debug_mode = 'a'
        try:
            line = program.entry
            while True:
                ctx.steps += 1
                if self.max_steps is not None and ctx.steps > self.max_steps:
                    raise BitRuntimeError(f'Step limit of {self.max_steps} lines exceeded.')
                ctx.current_line = line.number
                if self.debug_level >= 1:
                    self.debug(f"line {line.number}")
                self.execute(line.instruction, ctx)
                next_line_number = self.next_line_number(line, ctx)
                if next_line_number is None:
                    if self.debug_level >= 1:
                        self.debug(f"halt after line {line.number}")
                    return ctx
                if next_line_number not in program.lines:
                    raise BitRuntimeError(f'No line exists with number {next_line_number}.')
                if self.debug_level >= 1:
                    self.debug(f"goto {next_line_number}")
                line = program.lines[next_line_number]
        except RecursionError:
            raise BitRuntimeError(f'{NESTED_TOO_DEEPLY} in line {ctx.current_line}.') from None
        finally:
            if self.debug_fp:
                self.debug_fp.close()
                self.debug_fp = None

    def execute(self, node: Node, ctx: ExecutionContext):
        if isinstance(node, PrintCommand):
            if self.debug_level >= 2:
                self.debug(f"print {node.bit}")
            self.write_bit(node.bit)
            return
        if isinstance(node, ReadCommand):
            bit = self.read_bit()
            if not is_legal_bit(bit):
                raise BitRuntimeError('Invalid value read.')
            if self.debug_level >= 2:
                self.debug(f"read {bit}")
            self.store(JUMP_REGISTER_ADDRESS, Value.bit(bit), ctx)
            return
        if isinstance(node, Assignment):
            value = self.evaluate(node.expression, ctx)
            if node.address_expression is None:
                address = node.address
            else:
                address = self.target_address(node.address_expression, ctx)
            self.store(address, value, ctx)
            return
        raise BitRuntimeError(f'cannot execute {type(node).__name__}')

    def target_address(self, node: Node, ctx: ExecutionContext) -> int:
        target = self.evaluate(node, ctx)
        if not self.legacy_guards and not target.is_address:
            raise BitRuntimeError('The assignment target must be an address-of-a-bit value.')
        return target.magnitude

    def store(self, address: int, value: Value, ctx: ExecutionContext):
        if self.debug_level >= 2:
            self.debug(f"write {address} <- {to_string(value)}")
        ctx.memory.write(address, value)

    def evaluate(self, node: Node, ctx: ExecutionContext) -> Value:
        value = self.evaluate_node(node, ctx)
        if self.debug_level >= 3:
            self.debug(f"eval {type(node).__name__} -> {to_string(value)}")
        return value

    def evaluate_node(self, node: Node, ctx: ExecutionContext) -> Value:
        if isinstance(node, Constant):
            return Value.undefined(node.magnitude)
        if isinstance(node, Variable):
            if node.address >= JUMP_REGISTER_ADDRESS:
                return ctx.memory.read(node.address)
            raise BitRuntimeError(f'Illegal address: {node.address}.')
        if isinstance(node, Nand):
            left = self.evaluate(node.left, ctx)
            if node.right is None:
                return left
            right = self.evaluate(node.right, ctx)
            if self.is_address(left) or self.is_address(right):
                raise BitRuntimeError('The NAND operator requires bit values.')
            # full-width complement; only NAND of a NAND is guaranteed to be 0 or 1
            return Value.bit(~(left.magnitude & right.magnitude))
        if isinstance(node, AddressOf):
            return self.address_of(node, ctx)
        if isinstance(node, ValueBeyond):
            return self.dereference(node.child, 1, 'THE VALUE BEYOND', ctx)
        if isinstance(node, ValueAt):
            return self.dereference(node.child, 0, 'THE VALUE AT', ctx)
        raise BitRuntimeError(f'cannot evaluate {type(node).__name__}')

    def is_address(self, value: Value) -> bool:
        if self.legacy_guards:
            return value.magnitude == ValueKind.ADDRESS_OF_A_BIT
        return value.is_address

    def address_of(self, node: AddressOf, ctx: ExecutionContext) -> Value:
        child = node.child
        if not self.legacy_guards and isinstance(child, Variable) and child.address == JUMP_REGISTER_ADDRESS:
            raise BitRuntimeError("The THE ADDRESS OF operator can't be used with the jump register.")
        value = self.evaluate(child, ctx)
        if self.is_address(value):
            raise BitRuntimeError('The THE ADDRESS OF operator requires a bit value.')
        if value.magnitude == JUMP_REGISTER_ADDRESS and self.legacy_guards:
            raise BitRuntimeError("The THE ADDRESS OF operator can't be used with the jump register.")
        if value.magnitude < 0:
            raise BitRuntimeError(f'Invalid memory address: {value.magnitude}.')
        return Value.address(value.magnitude)

    def dereference(self, child: Node, offset: int, operator: str, ctx: ExecutionContext) -> Value:
        value = self.evaluate(child, ctx)
        if self.legacy_guards:
            not_an_address = value.magnitude == ValueKind.BIT
        else:
            not_an_address = not value.is_address
        if not_an_address:
            raise BitRuntimeError(f'The {operator} operator requires an address-of-a-bit value.')
        if value.magnitude < 0:
            raise BitRuntimeError(f'Invalid memory address: {value.magnitude}.')
        result = ctx.memory.read(value.magnitude + offset)
        if self.is_address(result):
            raise BitRuntimeError('Variable must contain a bit value.')
        return result

    def next_line_number(self, line: Line, ctx: ExecutionContext) -> Optional[int]:
        branch = line.branch
        if branch is None:
            return None
        if isinstance(branch, UnconditionalBranch):
            return self.resolve_target(branch.target, ctx)
        if isinstance(branch, ConditionalBranch):
            register = ctx.memory.jump_register
            if register == 0 and branch.if_zero is not None:
                return self.resolve_target(branch.if_zero, ctx)
            if register == 1 and branch.if_one is not None:
                return self.resolve_target(branch.if_one, ctx)
            # no arm for the current register value: normal termination
            return None
        raise BitRuntimeError(f'cannot branch with {type(branch).__name__}')

    def resolve_target(self, target: Target, ctx: ExecutionContext) -> int:
        if target.indirect and self.indirect_goto:
            return ctx.memory.read(target.line_number).magnitude
        return target.line_number


def run_program(source: str, read_bit: Optional[Callable[[], int]] = None,
                write_bit: Optional[Callable[[int], None]] = None,
                debug_level: int = 0, **options) -> RunResult:
    """Parse and run a BIT program, collecting its output bits.

    Parse and runtime failures are returned in the result rather than
    raised. Printed bits are also forwarded to `write_bit` when given.
    """
    output: List[int] = []

    def emit(bit: int):
        output.append(bit)
        if write_bit is not None:
            write_bit(bit)

    try:
        program = parse_program(source)
        interpreter = Interpreter(read_bit=read_bit, write_bit=emit, debug_level=debug_level, **options)
        ctx = interpreter.run(program)
    except BitError as e:
        return RunResult(output, e)
    return RunResult(output, None, ctx)
