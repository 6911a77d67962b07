import builtins
from pathlib import Path

import pytest

from bitlang.interpreter import parse_program, Interpreter


@pytest.mark.parametrize('a, b, expected', [
    ('1', '1', '10'),
    ('1', '0', '1'),
    ('0', '1', '1'),
    ('0', '0', '0'),
])
def test_program_3_bit_addition(monkeypatch, capsys, a, b, expected):
    answers = iter([a, b])
    monkeypatch.setattr(builtins, 'input', lambda prompt='': next(answers))
    with open(Path(__file__).parent.parent / 'examples' / 'bit_addition.bit', 'r', encoding='utf-8') as f:
        source = f.read()
    program = parse_program(source)
    # execution starts at the first line written, which is line 1
    assert program.first_line_number == 1
    interp = Interpreter()
    interp.run(program)
    out = capsys.readouterr().out.strip()
    assert out == expected
