"""JSON serialization/deserialization for BIT program graphs.

This module converts between the program graph dataclasses and plain
Python dict/list structures suitable for JSON encoding. It supports a
full round-trip for all node types and `Target`. JSON object keys are
always strings, so line numbers are stored inside each line object and
the `lines` mapping is written as a list.
"""

from __future__ import annotations

from typing import Any, Dict

from .ast import (
    Program,
    Line,
    PrintCommand,
    ReadCommand,
    Assignment,
    Target,
    UnconditionalBranch,
    ConditionalBranch,
    Nand,
    AddressOf,
    ValueBeyond,
    ValueAt,
    Variable,
    Constant,
)
from .errors import ParseError


def target_to_obj(t: Target) -> Dict[str, Any]:
    return {"line_number": t.line_number, "indirect": t.indirect}


def target_from_obj(o: Dict[str, Any]) -> Target:
    return Target(o["line_number"], o.get("indirect", False))


def ast_to_obj(node: Any) -> Any:
    if node is None:
        return None
    if isinstance(node, Target):
        return {"__type__": "Target", "value": target_to_obj(node)}

    if isinstance(node, Program):
        return {
            "type": "Program",
            "first_line_number": node.first_line_number,
            "lines": [ast_to_obj(line) for line in node.lines.values()],
        }
    if isinstance(node, Line):
        return {
            "type": "Line",
            "number": node.number,
            "instruction": ast_to_obj(node.instruction),
            "branch": ast_to_obj(node.branch),
            "position": node.position,
        }
    if isinstance(node, PrintCommand):
        return {"type": "PrintCommand", "bit": node.bit}
    if isinstance(node, ReadCommand):
        return {"type": "ReadCommand"}
    if isinstance(node, Assignment):
        return {
            "type": "Assignment",
            "address": node.address,
            "address_expression": ast_to_obj(node.address_expression),
            "expression": ast_to_obj(node.expression),
        }
    if isinstance(node, UnconditionalBranch):
        return {"type": "UnconditionalBranch", "target": ast_to_obj(node.target)}
    if isinstance(node, ConditionalBranch):
        return {
            "type": "ConditionalBranch",
            "if_zero": ast_to_obj(node.if_zero),
            "if_one": ast_to_obj(node.if_one),
        }
    if isinstance(node, Nand):
        return {"type": "Nand", "left": ast_to_obj(node.left), "right": ast_to_obj(node.right)}
    if isinstance(node, AddressOf):
        return {"type": "AddressOf", "child": ast_to_obj(node.child)}
    if isinstance(node, ValueBeyond):
        return {"type": "ValueBeyond", "child": ast_to_obj(node.child)}
    if isinstance(node, ValueAt):
        return {"type": "ValueAt", "child": ast_to_obj(node.child)}
    if isinstance(node, Variable):
        return {"type": "Variable", "address": node.address}
    if isinstance(node, Constant):
        return {"type": "Constant", "magnitude": node.magnitude}

    raise TypeError(f"Unsupported node for serialization: {type(node).__name__}")


def ast_from_obj(obj: Any) -> Any:
    if obj is None:
        return None
    if "__type__" in obj:
        if obj["__type__"] == "Target":
            return target_from_obj(obj["value"])
        raise TypeError(f"Unsupported special type: {obj['__type__']}")

    t = obj.get("type")
    if t == "Program":
        lines: Dict[int, Line] = {}
        for line_obj in obj["lines"]:
            line = ast_from_obj(line_obj)
            if line.number in lines:
                raise ParseError(f"Line number {line.number} is already defined", line.position)
            lines[line.number] = line
        if obj["first_line_number"] not in lines:
            raise ParseError(f"No line exists with number {obj['first_line_number']}")
        return Program(lines, obj["first_line_number"])
    if t == "Line":
        return Line(
            obj["number"],
            ast_from_obj(obj["instruction"]),
            ast_from_obj(obj.get("branch")),
            obj.get("position", 0),
        )
    if t == "PrintCommand":
        return PrintCommand(obj["bit"])
    if t == "ReadCommand":
        return ReadCommand()
    if t == "Assignment":
        return Assignment(
            obj.get("address"),
            ast_from_obj(obj.get("address_expression")),
            ast_from_obj(obj["expression"]),
        )
    if t == "UnconditionalBranch":
        return UnconditionalBranch(ast_from_obj(obj["target"]))
    if t == "ConditionalBranch":
        return ConditionalBranch(ast_from_obj(obj.get("if_zero")), ast_from_obj(obj.get("if_one")))
    if t == "Nand":
        return Nand(ast_from_obj(obj["left"]), ast_from_obj(obj.get("right")))
    if t == "AddressOf":
        return AddressOf(ast_from_obj(obj["child"]))
    if t == "ValueBeyond":
        return ValueBeyond(ast_from_obj(obj["child"]))
    if t == "ValueAt":
        return ValueAt(ast_from_obj(obj["child"]))
    if t == "Variable":
        return Variable(obj["address"])
    if t == "Constant":
        return Constant(obj["magnitude"])

    raise TypeError(f"Unsupported node type in JSON: {t}")
