# BIT language package
# This package provides a parser and interpreter for the BIT language.
from .interpreter import parse_program, run_program, Interpreter, RunResult
from .errors import BitError, ParseError, BitRuntimeError

__all__ = [
    'parse_program',
    'run_program',
    'Interpreter',
    'RunResult',
    'BitError',
    'ParseError',
    'BitRuntimeError',
]
