"""Program graph definitions for the BIT language.

A parsed program is a `Program`: a mapping from line number to `Line`,
plus the number of the first line in the source, where execution starts.
Each line holds one instruction and an optional branch. Expressions form
a small tree of the node types at the bottom of this module.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional, Union


@dataclass
class Node:
    """Base class for all program graph nodes."""
    pass


###############################################################################
# Expressions
###############################################################################


@dataclass
class Nand(Node):
    left: Node
    right: Optional[Node] = None


@dataclass
class AddressOf(Node):
    child: Node


@dataclass
class ValueBeyond(Node):
    child: Node


@dataclass
class ValueAt(Node):
    child: Node


@dataclass
class Variable(Node):
    address: int  # -1 is the jump register


@dataclass
class Constant(Node):
    magnitude: int


###############################################################################
# Instructions and branches
###############################################################################


@dataclass
class PrintCommand(Node):
    bit: int


@dataclass
class ReadCommand(Node):
    pass


@dataclass
class Assignment(Node):
    # exactly one of address / address_expression is set
    address: Optional[int]
    address_expression: Optional[Node]
    expression: Node


@dataclass
class Target:
    line_number: int
    indirect: bool = False  # written as GOTO VARIABLE <bits>


@dataclass
class UnconditionalBranch(Node):
    target: Target


@dataclass
class ConditionalBranch(Node):
    if_zero: Optional[Target] = None
    if_one: Optional[Target] = None


Instruction = Union[PrintCommand, ReadCommand, Assignment]
Branch = Union[UnconditionalBranch, ConditionalBranch]


@dataclass
class Line(Node):
    number: int
    instruction: Node
    branch: Optional[Node] = None
    position: int = field(default=0, compare=False)


@dataclass
class Program(Node):
    lines: Dict[int, Line]
    first_line_number: int

    @property
    def entry(self) -> Line:
        return self.lines[self.first_line_number]
