import io

import pytest

from gust.common.ops import Op
from gust.common.vmconf import VMSettings
from gust.runtime.faults import IoFailure
import gust.runtime.vm as vm

import unit_utils


class BrokenSink:
    def __init__(self):
        self.attempts = 0

    def write(self, text: str):
        self.attempts += 1
        raise OSError('device gone')


PRINT_TWICE = [Op.PUSH, 1, Op.PRINT, Op.PUSH, 2, Op.PRINT, Op.HALT]


def test_stdout_by_default(capsys):
    machine = unit_utils.make_machine(PRINT_TWICE)
    machine.run()

    assert capsys.readouterr().out == '1\n2\nBYE!\n'


def test_halt_only():
    assert unit_utils.output_of([Op.HALT]) == 'BYE!\n'


def test_custom_sentinel():
    settings = VMSettings().update(sentinel='DONE')
    _, output = unit_utils.run_program(PRINT_TWICE, settings=settings)

    assert output == '1\n2\nDONE\n'


def test_write_failure_warns(caplog):
    sink = BrokenSink()
    machine = unit_utils.make_machine(PRINT_TWICE)

    machine.run(sink)

    # Every PRINT and the HALT line were attempted, the run completed
    assert sink.attempts == 3
    assert machine.sp == 0
    assert caplog.text.count('ERROR: Could not write to output device!') == 3


def test_write_failure_raises():
    sink = BrokenSink()
    settings = VMSettings().update(io_errors='raise')
    machine = unit_utils.make_machine(PRINT_TWICE, settings=settings)

    with pytest.raises(IoFailure) as e:
        machine.run(sink)

    assert isinstance(e.value.__cause__, OSError)
    assert sink.attempts == 1
    assert machine.ip == 3


def test_closed_stream():
    sink = io.StringIO()
    sink.close()
    settings = VMSettings().update(io_errors='raise')
    machine = unit_utils.make_machine([Op.HALT], settings=settings)

    with pytest.raises(IoFailure):
        machine.run(sink)


def test_independent_machines():
    first = unit_utils.make_machine([Op.PUSH, 1, Op.GSTORE, 0, Op.HALT])
    second = unit_utils.make_machine([Op.GLOAD, 0, Op.PRINT, Op.HALT])

    first.run(io.StringIO())
    output = io.StringIO()
    second.run(output)

    assert first.globals[0] == 1
    assert output.getvalue() == '0\nBYE!\n'


def test_single_step():
    machine = unit_utils.make_machine([Op.PUSH, 3, Op.PUSH, 4, Op.ADD, Op.HALT])
    machine.output = io.StringIO()

    machine.exec_next()
    machine.exec_next()
    assert machine.state().stack == (3, 4)

    machine.exec_next()
    assert machine.state().stack == (7,)
    assert machine.ip == 5

    with pytest.raises(vm.Halt):
        machine.exec_next()

    assert machine.output.getvalue() == 'BYE!\n'


def test_trace(caplog):
    settings = VMSettings().update(trace=True)

    with caplog.at_level('DEBUG'):
        unit_utils.run_program([Op.PUSH, 7, Op.POP, Op.HALT], settings=settings)

    assert '0000 PUSH 7' in caplog.text
    assert '0002 POP' in caplog.text
    assert '0003 HALT' in caplog.text
    assert 'Execution halted gracefully' in caplog.text
