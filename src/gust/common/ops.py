from enum import IntEnum

from gust.runtime.faults import DecodeFault


class Op(IntEnum):
    # Memory
    PUSH = 0x00    # V -> [SP++]
    GLOAD = 0x01   # G[A] -> [SP++]
    GSTORE = 0x02  # [--SP] -> G[A]
    LLOAD = 0x03   # S[FP + O] -> [SP++]
    LSTORE = 0x04  # [--SP] -> S[FP + O]

    # Calls
    CALL = 0x05    # push fp; push ret; push argc; sp -> fp; jmp F
    RET = 0x06     # pop val; fp -> sp; pop argc, ret, fp; sp -= argc; push val

    # Arithmetic
    ADD = 0x07     # a +  b
    SUB = 0x08     # a -  b
    MUL = 0x09     # a *  b
    DIV = 0x0A     # a /  b (truncating)

    # Basic
    PRINT = 0x0B   # [--SP] -> output
    HALT = 0x0C
    POP = 0x0D     # --SP

    # Comparison
    EQ = 0x0E
    NE = 0x0F
    GT = 0x10
    LT = 0x11
    GE = 0x12
    LE = 0x13

    # Jumps
    JMP = 0x14     # A -> IP
    JMP0 = 0x15    # if [--SP] .eq 0 jmp A
    JMP1 = 0x16    # if [--SP] .eq 1 jmp A


# Number of in-line operands following each opcode
ARITY: dict[Op, int] = {
    Op.PUSH: 1,
    Op.GLOAD: 1,
    Op.GSTORE: 1,
    Op.LLOAD: 1,
    Op.LSTORE: 1,
    Op.CALL: 2,
    Op.RET: 0,
    Op.ADD: 0,
    Op.SUB: 0,
    Op.MUL: 0,
    Op.DIV: 0,
    Op.PRINT: 0,
    Op.HALT: 0,
    Op.POP: 0,
    Op.EQ: 0,
    Op.NE: 0,
    Op.GT: 0,
    Op.LT: 0,
    Op.GE: 0,
    Op.LE: 0,
    Op.JMP: 1,
    Op.JMP0: 1,
    Op.JMP1: 1,
}

# Control words pushed by CALL: saved fp, return address, argc
FUNC_PARAM_OFFSET = 3


def decode(value: int) -> Op:
    try:
        return Op(value)
    except ValueError:
        raise DecodeFault(value) from None


def width(op: Op) -> int:
    return 1 + ARITY[op]


def param_offset(argc: int, k: int) -> int:
    """Frame-relative offset of parameter `k` in a function taking `argc` args.

    Arguments are pushed first to last, so the first one lies deepest below
    the control block.
    """

    if not 0 <= k < argc:
        raise ValueError(f'Parameter {k} out of range for {argc} arguments')

    return -(FUNC_PARAM_OFFSET + argc - k)
