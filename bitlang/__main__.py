"""CLI entry point for the BIT interpreter.

Usage:
    python -m bitlang [-v|-vv|-vvv] [options] <program_file>
    python -m bitlang [-v...] --emit-ast <program_file>
    python -m bitlang [-v...] [options] --ast <ast_json_file>

Options:
  -v               Increase debug verbosity (can be repeated)
  --ascii          Print every eight bits as one character
  --input BITS     Take READ bits from BITS instead of prompting
  --indirect-goto  Make GOTO VARIABLE dereference its target through memory
  --legacy-guards  Use the original magnitude-based operator checks
  --max-steps N    Abort after executing N lines
  --lark           Parse with the grammar-driven front end
  --emit-ast       Parse the given program and emit a program graph JSON file
  --ast            Execute a previously emitted program graph JSON file

Debug information is written to `debug.txt` in the current directory when
verbosity is greater than zero. A program file of `-` is read from
standard input.
"""

import argparse
import json
import sys
from pathlib import Path
from .interpreter import parse_program, Interpreter
from .parser import parse_program as lark_parse_program
from .ast_json import ast_to_obj, ast_from_obj
from .bitio import AsciiBitWriter, ConsoleBitReader, IterableBitReader, RawBitWriter
from .errors import BitRuntimeError, ParseError


def read_source(path: str) -> str:
    if path == '-':
        return sys.stdin.read()
    program_file = Path(path)
    if not program_file.exists():
        print(f"Error: file {program_file} not found", file=sys.stderr)
        sys.exit(1)
    with open(program_file, 'r', encoding='utf-8') as f:
        return f.read()


def report(error: Exception):
    if isinstance(error, ParseError):
        print(f"ERROR: {error}", file=sys.stderr)
        excerpt = error.excerpt()
        if excerpt:
            print(excerpt, file=sys.stderr)
    else:
        print(f"RUNTIME ERROR: {error}", file=sys.stderr)
    sys.exit(1)


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="BIT language interpreter")
    parser.add_argument('-v', action='count', default=0, help='increase debug verbosity (can be repeated)')
    group = parser.add_mutually_exclusive_group()
    group.add_argument('--emit-ast', metavar='BIT_FILE', help='emit program graph JSON for the given .bit file')
    group.add_argument('--ast', metavar='AST_JSON_FILE', help='execute a program graph from a JSON file')
    parser.add_argument('--ascii', action='store_true', help='print every eight bits as one character')
    parser.add_argument('--input', metavar='BITS', help='bits consumed by READ, e.g. 0110')
    parser.add_argument('--indirect-goto', action='store_true', help='dereference GOTO VARIABLE targets through memory')
    parser.add_argument('--legacy-guards', action='store_true', help='use magnitude-based operator checks')
    parser.add_argument('--max-steps', type=int, metavar='N', help='abort after executing N lines')
    parser.add_argument('--lark', action='store_true', help='parse with the grammar-driven front end')
    parser.add_argument('program', nargs='?', help='BIT program file (.bit) to execute, or - for stdin')
    args = parser.parse_args(argv)
    parse = lark_parse_program if args.lark else parse_program

    # Emit AST mode
    if args.emit_ast:
        program_file = Path(args.emit_ast)
        source = read_source(args.emit_ast)
        try:
            program = parse(source)
        except ParseError as e:
            report(e)
        obj = ast_to_obj(program)
        out_path = program_file.with_suffix(program_file.suffix + '.ast.json') if program_file.suffix != '' else program_file.with_name(program_file.name + '.ast.json')
        with open(out_path, 'w', encoding='utf-8') as out:
            json.dump(obj, out, ensure_ascii=False, indent=2)
        print(str(out_path))
        return

    try:
        # Execute from AST JSON
        if args.ast:
            ast_path = Path(args.ast)
            if not ast_path.exists():
                print(f"Error: file {ast_path} not found", file=sys.stderr)
                sys.exit(1)
            with open(ast_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
            program = ast_from_obj(data)
        else:
            if not args.program:
                parser.error('missing program file; or use --emit-ast/--ast')
            program = parse(read_source(args.program))

        read_bit = IterableBitReader.from_string(args.input) if args.input is not None else ConsoleBitReader()
        write_bit = AsciiBitWriter() if args.ascii else RawBitWriter()
        interpreter = Interpreter(
            read_bit=read_bit,
            write_bit=write_bit,
            debug_level=args.v,
            indirect_goto=args.indirect_goto,
            legacy_guards=args.legacy_guards,
            max_steps=args.max_steps,
        )
        interpreter.run(program)
    except (ParseError, BitRuntimeError) as e:
        report(e)
    print()

if __name__ == '__main__':
    main()
