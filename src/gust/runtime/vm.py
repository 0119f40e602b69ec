import sys
import logging as lg
from dataclasses import dataclass
from typing import Callable, Iterable, TextIO

import gust.common.vmconf as cf
from gust.common.ops import Op, ARITY, decode
from gust.runtime.faults import (
    Fault,
    StackUnderflow,
    StackOverflow,
    OutOfRangeAddress,
    DivisionByZero,
    IoFailure
)

# Stack-based virtual machine executing flat int32 programs.
#
# CALL pushes three control words before entering a function:
# - the frame pointer, to restore the caller's frame
# - the return address, to jump back on RET
# - the argument count, to drop the arguments on RET
# The new frame pointer sits right above them, so parameters are reached
# with negative offsets and callee temporaries with non-negative ones.


class Halt(Exception):
    pass


@dataclass(frozen=True)
class MachineState:
    ip: int
    sp: int
    fp: int
    stack: tuple[int, ...]      # Live part only, stack[:sp]
    globals: tuple[int, ...]


def wrap32(value: int) -> int:
    return (value - cf.INT32_MIN) % 0x100000000 + cf.INT32_MIN


def div32(a: int, b: int) -> int:
    if b == 0:
        raise DivisionByZero()

    # Truncate toward zero
    q = abs(a) // abs(b)
    return q if (a < 0) == (b < 0) else -q


class VirtualMachine():
    program: tuple[int, ...]
    ip: int  # Instruction pointer
    sp: int  # Stack pointer
    fp: int  # Frame pointer
    stack: list[int]
    globals: list[int]
    output: TextIO | None
    settings: cf.VMSettings
    loaded: bool

    def __init__(self, settings: cf.VMSettings | None = None):
        self.settings = settings if settings is not None else cf.VMSettings()

        self.program = ()
        self.loaded = False
        self.output = None

        self.reset(0)

    def reset(self, entry: int):
        self.ip = entry
        self.sp = 0
        self.fp = 0     # Global code has no frame

        self.stack = [0] * self.settings.stack_size
        self.globals = [0] * self.settings.globals_size

    def load(self, program: Iterable[int], entry: int = 0):
        code = tuple(program)

        for pos, word in enumerate(code):
            if isinstance(word, bool) or not isinstance(word, int):
                raise ValueError(f'Program word {pos} is not an integer: {word!r}')

            if not cf.INT32_MIN <= word <= cf.INT32_MAX:
                raise ValueError(f'Program word {pos} out of int32 range: {word}')

        self.program = tuple(int(word) for word in code)
        self.reset(entry)
        self.loaded = True

        lg.debug(f'Loaded {len(self.program)} words, entry at {entry}')

    # - Helpers - #

    def state(self) -> MachineState:
        return MachineState(
            ip=self.ip,
            sp=self.sp,
            fp=self.fp,
            stack=tuple(self.stack[:self.sp]),
            globals=tuple(self.globals)
        )

    def debug_dump(self):
        state = [f'{k}:{v}' for k, v in {
            'IP': self.ip,
            'SP': self.sp,
            'FP': self.fp
        }.items()]

        state.append(f'TOP:{self.stack[max(0, self.sp - 4):self.sp]}')

        lg.debug(' '.join(state))

    def next(self) -> int:
        if not 0 <= self.ip < len(self.program):
            raise OutOfRangeAddress('program', self.ip, len(self.program))

        word = self.program[self.ip]
        self.ip += 1
        return word

    def do_push(self, val: int):
        if self.sp >= len(self.stack):
            raise StackOverflow()

        self.stack[self.sp] = val
        self.sp += 1

    def do_pop(self) -> int:
        if self.sp <= 0:
            raise StackUnderflow()

        self.sp -= 1
        return self.stack[self.sp]

    def check_target(self, addr: int):
        if not 0 <= addr < len(self.program):
            raise OutOfRangeAddress('program', addr, len(self.program))

    def jump(self, addr: int):
        self.check_target(addr)
        self.ip = addr

    def global_index(self, addr: int) -> int:
        if not 0 <= addr < len(self.globals):
            raise OutOfRangeAddress('global', addr, len(self.globals))

        return addr

    def local_index(self, offset: int) -> int:
        inx = self.fp + offset

        if not 0 <= inx < len(self.stack):
            raise OutOfRangeAddress('local', inx, len(self.stack))

        return inx

    def arithm_pair(self, op: Callable[[int, int], int]):
        b = self.do_pop()
        a = self.do_pop()
        self.do_push(wrap32(op(a, b)))

    def compare_pair(self, op: Callable[[int, int], bool]):
        b = self.do_pop()
        a = self.do_pop()
        self.do_push(1 if op(a, b) else 0)

    def emit(self, line: str):
        sink = self.output if self.output is not None else sys.stdout

        try:
            sink.write(f'{line}\n')

        except (OSError, ValueError) as e:
            if self.settings.io_errors == cf.IO_RAISE:
                raise IoFailure(f'Could not write to output device: {e}') from e

            lg.error('ERROR: Could not write to output device!')

    # - Operations - #

    def push(self):
        self.do_push(self.next())

    def gload(self):
        inx = self.global_index(self.next())
        self.do_push(self.globals[inx])

    def gstore(self):
        inx = self.global_index(self.next())
        self.globals[inx] = self.do_pop()

    def lload(self):
        inx = self.local_index(self.next())
        self.do_push(self.stack[inx])

    def lstore(self):
        inx = self.local_index(self.next())
        self.stack[inx] = self.do_pop()

    def call(self):
        fn_addr = self.next()
        argc = self.next()
        ret_addr = self.ip

        self.check_target(fn_addr)

        self.do_push(self.fp)
        self.do_push(ret_addr)
        self.do_push(argc)

        self.fp = self.sp
        self.ip = fn_addr

    def ret(self):
        ret_val = self.do_pop()

        # Drop callee temporaries
        self.sp = self.fp

        argc = self.do_pop()
        ret_addr = self.do_pop()
        prev_fp = self.do_pop()

        if not 0 <= prev_fp <= len(self.stack):
            raise OutOfRangeAddress('frame', prev_fp, len(self.stack) + 1)

        self.check_target(ret_addr)

        # Drop arguments
        caller_sp = self.sp - argc

        if caller_sp < 0:
            raise StackUnderflow()

        if caller_sp > len(self.stack):
            raise StackOverflow()

        self.fp = prev_fp
        self.sp = caller_sp
        self.do_push(ret_val)
        self.ip = ret_addr

    def add(self):
        self.arithm_pair(lambda a, b: a + b)

    def sub(self):
        self.arithm_pair(lambda a, b: a - b)

    def mul(self):
        self.arithm_pair(lambda a, b: a * b)

    def div(self):
        self.arithm_pair(div32)

    def print(self):
        val = self.do_pop()
        self.emit(str(val))

    def hlt(self):
        self.emit(self.settings.sentinel)
        raise Halt()

    def pop(self):
        self.do_pop()

    def eq(self):
        self.compare_pair(lambda a, b: a == b)

    def ne(self):
        self.compare_pair(lambda a, b: a != b)

    def gt(self):
        self.compare_pair(lambda a, b: a > b)

    def lt(self):
        self.compare_pair(lambda a, b: a < b)

    def ge(self):
        self.compare_pair(lambda a, b: a >= b)

    def le(self):
        self.compare_pair(lambda a, b: a <= b)

    def jmp(self):
        self.jump(self.next())

    def jmp0(self):
        addr = self.next()
        val = self.do_pop()

        if val == 0:
            self.jump(addr)

    def jmp1(self):
        addr = self.next()
        val = self.do_pop()

        if val == 1:
            self.jump(addr)

    HANDLERS = {
        Op.PUSH: push,
        Op.GLOAD: gload,
        Op.GSTORE: gstore,
        Op.LLOAD: lload,
        Op.LSTORE: lstore,
        Op.CALL: call,
        Op.RET: ret,

        Op.ADD: add,
        Op.SUB: sub,
        Op.MUL: mul,
        Op.DIV: div,

        Op.PRINT: print,
        Op.HALT: hlt,
        Op.POP: pop,

        Op.EQ: eq,
        Op.NE: ne,
        Op.GT: gt,
        Op.LT: lt,
        Op.GE: ge,
        Op.LE: le,

        Op.JMP: jmp,
        Op.JMP0: jmp0,
        Op.JMP1: jmp1
    }

    # -- Implementation -- #

    def trace(self, at: int, op: Op):
        operands = self.program[at + 1:at + 1 + ARITY[op]]
        args = ' '.join(str(o) for o in operands)
        lg.debug(f'{at:04} {op.name} {args}'.rstrip())

    def exec_next(self):
        at = self.ip

        try:
            op = decode(self.next())

            if self.settings.trace:
                self.trace(at, op)

            handler = self.HANDLERS[op]
            handler(self)

        except Fault as e:
            if e.ip is None:
                e.ip = at

            raise

    def run(self, output: TextIO | None = None):
        if not self.loaded:
            raise RuntimeError('No program loaded')

        self.output = output

        try:
            while True:
                self.exec_next()

                if self.settings.trace:
                    self.debug_dump()

        except Halt:
            lg.info('Execution halted gracefully')

        except Fault as e:
            lg.debug(f'Execution halted on fault: {e}')
            self.debug_dump()
            raise
