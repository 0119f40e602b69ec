import logging as lg
from typing import Iterable, TextIO

from gust.common.vmconf import VMSettings
import gust.runtime.vm as vm


def execute(
    program: Iterable[int],
    entry: int = 0,
    output: TextIO | None = None,
    settings: VMSettings | None = None
) -> vm.VirtualMachine:
    """ Runs a program to HALT and returns the halted machine; faults propagate """

    lg.info('GUST VM')

    machine = vm.VirtualMachine(settings)
    machine.load(program, entry)
    machine.run(output)

    return machine
