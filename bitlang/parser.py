"""Grammar-driven parser for the BIT language.

This is an alternative front end to the recursive-descent parser in
`bitlang.interpreter`. It feeds the source to a Lark LALR parser whose
terminals are the language keywords, each compiled to a regular
expression that tolerates whitespace between its characters. The parse
tree is turned into the same program graph by `ProgramTransformer`, so
both front ends are interchangeable.

Lark failures and the graph-level checks (duplicate line numbers, two
conditional arms on the same bit) are reported as `ParseError`.
"""

from __future__ import annotations

from typing import Dict, List

from lark import Lark, Transformer, v_args
from lark.exceptions import UnexpectedEOF, UnexpectedInput, VisitError

from .ast import (
    Program, Line, PrintCommand, ReadCommand, Assignment, Target,
    UnconditionalBranch, ConditionalBranch, Nand, AddressOf, ValueBeyond,
    ValueAt, Variable, Constant,
)
from .errors import NESTED_TOO_DEEPLY, ParseError
from .types import JUMP_REGISTER_ADDRESS


KEYWORDS = {
    '_LINE_NUMBER': 'LINENUMBER',
    '_CODE': 'CODE',
    '_GOTO': 'GOTO',
    '_IF_THE_JUMP_REGISTER_IS': 'IFTHEJUMPREGISTERIS',
    '_EQUAL_TO': 'EQUALTO',
    '_PRINT': 'PRINT',
    '_READ': 'READ',
    '_EQUALS': 'EQUALS',
    '_VARIABLE': 'VARIABLE',
    '_THE_JUMP_REGISTER': 'THEJUMPREGISTER',
    '_NAND': 'NAND',
    '_THE_ADDRESS_OF': 'THEADDRESSOF',
    '_THE_VALUE_BEYOND': 'THEVALUEBEYOND',
    '_THE_VALUE_AT': 'THEVALUEAT',
    '_OPEN_PARENTHESIS': 'OPENPARENTHESIS',
    '_CLOSE_PARENTHESIS': 'CLOSEPARENTHESIS',
    '_ZERO': 'ZERO',
    '_ONE': 'ONE',
}


INNER_WHITESPACE = r'\s*'


def keyword_terminal(name: str, symbol: str) -> str:
    """Return a terminal definition matching `symbol` with whitespace between its characters."""
    return f"{name}: /{INNER_WHITESPACE.join(symbol)}/"


BIT_RULES = r"""
    start: line+

    line: _LINE_NUMBER bits _CODE instruction [branch]

    ?instruction: command
                | assignment

    command: _PRINT bit                 -> print_command
           | _READ                      -> read_command

    // a leading variable is a literal target; computed targets cannot start with one
    assignment: variable _EQUALS expression          -> variable_assignment
              | computed_target _EQUALS expression   -> expression_assignment

    branch: _GOTO goto_target                                                   -> unconditional_branch
          | _GOTO goto_target condition                                         -> conditional_branch
          | _GOTO goto_target condition _GOTO goto_target condition             -> conditional_branch

    goto_target: [indirect] bits
    indirect: _VARIABLE
    condition: _IF_THE_JUMP_REGISTER_IS _EQUAL_TO? bit

    // Expressions with precedence
    ?expression: operand
               | operand _NAND operand              -> nand
    ?operand: beyond_operand
            | _THE_ADDRESS_OF beyond_operand        -> address_of
    ?beyond_operand: at_operand
                   | _THE_VALUE_BEYOND at_operand   -> value_beyond
    ?at_operand: primary
               | _THE_VALUE_AT primary              -> value_at
    ?primary: variable
            | bits                                  -> constant
            | _OPEN_PARENTHESIS expression _CLOSE_PARENTHESIS

    ?computed_target: target_operand
                    | target_operand _NAND operand  -> nand
    ?target_operand: target_beyond
                   | _THE_ADDRESS_OF beyond_operand -> address_of
    ?target_beyond: target_at
                  | _THE_VALUE_BEYOND at_operand    -> value_beyond
    ?target_at: target_primary
              | _THE_VALUE_AT primary               -> value_at
    ?target_primary: bits                           -> constant
                   | _OPEN_PARENTHESIS expression _CLOSE_PARENTHESIS

    variable: _VARIABLE bits                        -> memory_variable
            | _THE_JUMP_REGISTER                    -> jump_register

    bits: bit+
    bit: _ZERO                                      -> zero
       | _ONE                                       -> one

    %import common.WS
    %ignore WS
"""

BIT_GRAMMAR = BIT_RULES + '\n'.join(
    '    ' + keyword_terminal(name, symbol) for name, symbol in KEYWORDS.items()
) + '\n'

BIT_PARSER = Lark(
    BIT_GRAMMAR,
    parser='lalr',
    propagate_positions=True,
    maybe_placeholders=False,
)


class ProgramTransformer(Transformer):
    """Transforms the raw parse tree into a program graph."""
    def __init__(self, source: str):
        super().__init__()
        self.source = source

    def start(self, items):
        first = items[0]
        lines: Dict[int, Line] = {first.number: first}
        for line in items[1:]:
            if line.number in lines:
                raise ParseError(f"Line number {line.number} is already defined", line.position, self.source)
            lines[line.number] = line
        return Program(lines, first.number)

    @v_args(meta=True)
    def line(self, meta, items):
        number, instruction = items[0], items[1]
        branch = items[2] if len(items) > 2 else None
        return Line(number, instruction, branch, getattr(meta, 'start_pos', 0))

    def print_command(self, items):
        return PrintCommand(items[0])

    def read_command(self, items):
        return ReadCommand()

    def variable_assignment(self, items):
        return Assignment(items[0].address, None, items[1])

    def expression_assignment(self, items):
        return Assignment(None, items[0], items[1])

    def unconditional_branch(self, items):
        return UnconditionalBranch(items[0])

    @v_args(meta=True)
    def conditional_branch(self, meta, items):
        arms: Dict[int, Target] = {items[1]: items[0]}
        if len(items) > 2:
            if items[3] in arms:
                raise ParseError(
                    "Illegal symbol found. Conditional goto with different bit constant was expected",
                    getattr(meta, 'start_pos', 0), self.source)
            arms[items[3]] = items[2]
        return ConditionalBranch(arms.get(0), arms.get(1))

    def goto_target(self, items):
        if len(items) == 2:
            return Target(items[1], indirect=True)
        return Target(items[0])

    def indirect(self, items):
        return True

    def condition(self, items):
        return items[0]

    # Expressions
    def nand(self, items):
        return Nand(items[0], items[1])

    def address_of(self, items):
        return AddressOf(items[0])

    def value_beyond(self, items):
        return ValueBeyond(items[0])

    def value_at(self, items):
        return ValueAt(items[0])

    def constant(self, items):
        return Constant(items[0])

    def memory_variable(self, items):
        return Variable(items[0])

    def jump_register(self, items):
        return Variable(JUMP_REGISTER_ADDRESS)

    def bits(self, items):
        value = 0
        for bit in items:
            value = (value << 1) | bit
        return value

    def zero(self, items):
        return 0

    def one(self, items):
        return 1


def describe_expected(names) -> str:
    symbols: List[str] = sorted(KEYWORDS.get(name, name) for name in names)
    if not symbols:
        return 'Illegal symbol found'
    if len(symbols) == 1:
        return f"Illegal symbol found. {symbols[0]} was expected"
    return f"Illegal symbol found. One of {', '.join(symbols)} was expected"


def parse_program(source: str) -> Program:
    """Parse the given source code into a program graph using the Lark grammar."""
    try:
        tree = BIT_PARSER.parse(source)
    except UnexpectedInput as e:
        expected = getattr(e, 'expected', None) or getattr(e, 'allowed', None) or ()
        position = e.pos_in_stream
        if isinstance(e, UnexpectedEOF) or position is None or position < 0:
            position = len(source)
        raise ParseError(describe_expected(expected), position, source) from None
    try:
        return ProgramTransformer(source).transform(tree)
    except RecursionError:
        raise ParseError(NESTED_TOO_DEEPLY, 0, source) from None
    except VisitError as e:
        if isinstance(e.orig_exc, ParseError):
            raise e.orig_exc from None
        if isinstance(e.orig_exc, RecursionError):
            raise ParseError(NESTED_TOO_DEEPLY, 0, source) from None
        raise
