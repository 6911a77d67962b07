import pytest

from bitlang.ast import Program, Line, Assignment, Nand, Constant
from bitlang.errors import BitRuntimeError, ParseError
from bitlang.interpreter import Interpreter, parse_program, run_program
from bitlang.types import Value


def run(source, inputs=(), **options):
    output = []
    bits = iter(inputs)
    interp = Interpreter(read_bit=lambda: next(bits), write_bit=output.append, **options)
    ctx = interp.run(parse_program(source))
    return output, ctx


def test_print_one():
    output, ctx = run('LINE NUMBER ZERO CODE PRINT ONE')
    assert output == [1]
    assert ctx.steps == 1


def test_unconditional_goto_follows_line_numbers():
    output, _ = run(
        'LINE NUMBER ZERO CODE PRINT ZERO GOTO ONE ZERO\n'
        'LINE NUMBER ONE ONE CODE PRINT ONE\n'
        'LINE NUMBER ONE ZERO CODE PRINT ONE GOTO ONE ONE\n'
    )
    assert output == [0, 1, 1]


def test_line_without_matching_arm_halts():
    output, ctx = run('LINE NUMBER ZERO CODE PRINT ONE GOTO ONE IF THE JUMP REGISTER IS ONE')
    assert output == [1]
    assert ctx.steps == 1


@pytest.mark.parametrize('bit, expected', [(0, [0]), (1, [1])])
def test_conditional_arms_follow_the_jump_register(bit, expected):
    source = (
        'LINE NUMBER ZERO CODE READ '
        'GOTO ONE IF THE JUMP REGISTER IS EQUAL TO ONE '
        'GOTO ONE ZERO IF THE JUMP REGISTER IS ZERO\n'
        'LINE NUMBER ONE CODE PRINT ONE\n'
        'LINE NUMBER ONE ZERO CODE PRINT ZERO\n'
    )
    output, ctx = run(source, [bit])
    assert output == expected
    assert ctx.memory.jump_register == bit


def test_dangling_goto_fails():
    with pytest.raises(BitRuntimeError, match='No line exists with number 1'):
        run('LINE NUMBER ZERO CODE PRINT ONE GOTO ONE')


def test_step_limit():
    output = []
    interp = Interpreter(write_bit=output.append, max_steps=10)
    with pytest.raises(BitRuntimeError, match='Step limit of 10 lines exceeded'):
        interp.run(parse_program('LINE NUMBER ZERO CODE PRINT ZERO GOTO ZERO'))
    assert output == [0] * 10


def test_read_rejects_non_bits():
    with pytest.raises(BitRuntimeError, match='Invalid value read'):
        run('LINE NUMBER ZERO CODE READ', [2])


def test_jump_register_assignment():
    output, ctx = run(
        'LINE NUMBER ZERO CODE THE JUMP REGISTER EQUALS ONE GOTO ONE IF THE JUMP REGISTER IS ONE\n'
        'LINE NUMBER ONE CODE PRINT ONE\n'
    )
    assert output == [1]
    assert ctx.memory.jump_register == 1


def test_jump_register_refuses_addresses():
    with pytest.raises(BitRuntimeError, match="can't store address-of-a-bit values"):
        run('LINE NUMBER ZERO CODE THE JUMP REGISTER EQUALS THE ADDRESS OF ZERO')


def test_write_through_pointer():
    _, ctx = run(
        'LINE NUMBER ZERO CODE VARIABLE ONE EQUALS THE ADDRESS OF ONE ZERO GOTO ONE\n'
        'LINE NUMBER ONE CODE OPEN PARENTHESIS VARIABLE ONE CLOSE PARENTHESIS EQUALS ONE\n'
    )
    assert ctx.memory.cells[1] == Value.address(2)
    assert ctx.memory.cells[2] == Value.undefined(1)


def test_computed_target_must_be_an_address():
    with pytest.raises(BitRuntimeError, match='assignment target must be an address-of-a-bit value'):
        run('LINE NUMBER ZERO CODE ONE ZERO EQUALS ONE')


def test_source_is_evaluated_before_target():
    with pytest.raises(BitRuntimeError, match='NAND operator requires bit values'):
        run('LINE NUMBER ZERO CODE THE VALUE AT ONE EQUALS ONE NAND THE ADDRESS OF ZERO')


def test_single_nand_cannot_be_stored():
    with pytest.raises(BitRuntimeError, match='Illegal value: -2'):
        run('LINE NUMBER ZERO CODE VARIABLE ZERO EQUALS ONE NAND ONE')


def test_double_nand_can_be_stored():
    _, ctx = run('LINE NUMBER ZERO CODE VARIABLE ZERO EQUALS '
                 'OPEN PARENTHESIS ONE NAND ONE CLOSE PARENTHESIS NAND '
                 'OPEN PARENTHESIS ONE NAND ONE CLOSE PARENTHESIS')
    assert ctx.memory.cells[0] == Value.bit(1)


INDIRECT = (
    'LINE NUMBER ZERO CODE VARIABLE ONE EQUALS ONE ONE GOTO VARIABLE ONE\n'
    'LINE NUMBER ONE CODE PRINT ZERO\n'
    'LINE NUMBER ONE ONE CODE PRINT ONE\n'
)


def test_goto_variable_marker_is_inert_by_default():
    output, _ = run(INDIRECT)
    assert output == [0]


def test_goto_variable_dereferences_when_enabled():
    output, _ = run(INDIRECT, indirect_goto=True)
    assert output == [1]


def test_debug_trace(tmp_path):
    debug_file = tmp_path / 'debug.txt'
    output, _ = run('LINE NUMBER ZERO CODE VARIABLE ZERO EQUALS ONE GOTO ONE\n'
                    'LINE NUMBER ONE CODE PRINT ONE\n',
                    debug_level=3, debug_file=str(debug_file))
    assert output == [1]
    trace = debug_file.read_text().splitlines()
    assert trace[0] == 'line 0'
    assert 'eval Constant -> ?1' in trace
    assert 'write 0 <- ?1' in trace
    assert 'goto 1' in trace
    assert 'print 1' in trace
    assert trace[-1] == 'halt after line 1'


def test_run_program_collects_output():
    forwarded = []
    result = run_program('LINE NUMBER ZERO CODE PRINT ONE GOTO ONE\nLINE NUMBER ONE CODE PRINT ZERO',
                         write_bit=forwarded.append)
    assert result.ok
    assert result.output == [1, 0]
    assert forwarded == [1, 0]
    assert result.context.steps == 2


def test_run_program_reports_parse_errors():
    result = run_program('LINE NUMBER ZERO CODE PRINT')
    assert not result.ok
    assert isinstance(result.error, ParseError)
    assert result.output == []
    assert result.context is None


def test_run_program_keeps_output_before_runtime_error():
    result = run_program('LINE NUMBER ZERO CODE PRINT ONE GOTO ONE')
    assert isinstance(result.error, BitRuntimeError)
    assert result.output == [1]


def test_run_program_passes_options():
    result = run_program(INDIRECT, indirect_goto=True)
    assert result.output == [1]
    result = run_program('LINE NUMBER ZERO CODE PRINT ONE GOTO ZERO', max_steps=3)
    assert result.output == [1, 1, 1]
    assert 'Step limit' in str(result.error)


def test_deeply_nested_expression_is_a_runtime_error():
    expression = Constant(1)
    for _ in range(5000):
        expression = Nand(expression, Constant(1))
    program = Program({0: Line(0, Assignment(0, None, expression))}, 0)
    with pytest.raises(BitRuntimeError, match='Expression nested too deeply in line 0'):
        Interpreter(write_bit=[].append).run(program)


def test_repeated_runs_keep_the_trace_out_of_stdout(tmp_path, capsys):
    debug_file = tmp_path / 'debug.txt'
    output = []
    interp = Interpreter(write_bit=output.append, debug_level=1, debug_file=str(debug_file))
    program = parse_program('LINE NUMBER ZERO CODE PRINT ONE')
    interp.run(program)
    interp.run(program)
    assert output == [1, 1]
    assert capsys.readouterr().out == ''
    assert debug_file.read_text().splitlines() == ['line 0', 'halt after line 0'] * 2


def test_first_run_truncates_an_old_trace(tmp_path):
    debug_file = tmp_path / 'debug.txt'
    debug_file.write_text('stale\n')
    interp = Interpreter(write_bit=[].append, debug_level=1, debug_file=str(debug_file))
    interp.run(parse_program('LINE NUMBER ZERO CODE PRINT ZERO'))
    assert debug_file.read_text().splitlines() == ['line 0', 'halt after line 0']


def test_jump_register_refuses_wide_undefined_constants():
    with pytest.raises(BitRuntimeError, match='Illegal value for the jump register: 3'):
        run('LINE NUMBER ZERO CODE THE JUMP REGISTER EQUALS ONE ONE')
