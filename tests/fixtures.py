# type: ignore
import pytest

from gust.common.ops import Op, FUNC_PARAM_OFFSET


@pytest.fixture
def with_calc():
    # fn calc(a, b) -> (a + b) * 2
    program = [
        Op.LLOAD, -(FUNC_PARAM_OFFSET + 2),     # 000
        Op.LLOAD, -(FUNC_PARAM_OFFSET + 1),     # 002
        Op.ADD,                                 # 004
        Op.PUSH, 2,                             # 005
        Op.MUL,                                 # 007
        Op.RET,                                 # 008
        # main, entry point
        Op.PUSH, 19,                            # 009
        Op.GSTORE, 0,                           # 011
        Op.PUSH, 8,                             # 013
        Op.GSTORE, 1,                           # 015
        Op.GLOAD, 0,                            # 017
        Op.GLOAD, 1,                            # 019
        Op.CALL, 0, 2,                          # 021
        Op.PRINT,                               # 024
        Op.HALT,                                # 025
    ]

    yield program, 9


@pytest.fixture
def with_factorial():
    # fn fact(n) -> if n <= 1 then 1 else n * fact(n - 1)
    n = -(FUNC_PARAM_OFFSET + 1)
    program = [
        Op.LLOAD, n,                            # 000
        Op.PUSH, 1,                             # 002
        Op.LE,                                  # 004
        Op.JMP0, 10,                            # 005
        Op.PUSH, 1,                             # 007
        Op.RET,                                 # 009
        Op.LLOAD, n,                            # 010
        Op.LLOAD, n,                            # 012
        Op.PUSH, 1,                             # 014
        Op.SUB,                                 # 016
        Op.CALL, 0, 1,                          # 017
        Op.MUL,                                 # 020
        Op.RET,                                 # 021
        # main, entry point
        Op.PUSH, 5,                             # 022
        Op.CALL, 0, 1,                          # 024
        Op.PRINT,                               # 027
        Op.HALT,                                # 028
    ]

    yield program, 22
