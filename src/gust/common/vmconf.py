from pathlib import Path
import logging as lg
import tomllib


STACK_SIZE = 1024           # Operand stack slots
GLOBALS_SIZE = 1024         # Global store slots
HALT_SENTINEL = 'BYE!'      # Last line written on HALT

INT32_MIN = -0x80000000
INT32_MAX = 0x7FFFFFFF

IO_WARN = 'warn'            # Log failed writes and carry on
IO_RAISE = 'raise'          # Stop the run with IoFailure
IO_POLICIES = (IO_WARN, IO_RAISE)


def is_size(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


class VMSettings:
    stack_size: int
    globals_size: int
    sentinel: str
    io_errors: str
    trace: bool

    def __init__(self):
        self.stack_size = STACK_SIZE
        self.globals_size = GLOBALS_SIZE
        self.sentinel = HALT_SENTINEL
        self.io_errors = IO_WARN
        self.trace = False

    def update(
        self,
        stack_size: int | None = None,
        globals_size: int | None = None,
        sentinel: str | None = None,
        io_errors: str | None = None,
        trace: bool | None = None
    ):
        if stack_size is not None:
            if not is_size(stack_size):
                raise ValueError(f'Stack size must be a positive integer, got {stack_size!r}')

            self.stack_size = stack_size

        if globals_size is not None:
            if not is_size(globals_size):
                raise ValueError(f'Globals size must be a positive integer, got {globals_size!r}')

            self.globals_size = globals_size

        if sentinel is not None:
            if not isinstance(sentinel, str):
                raise ValueError(f'Sentinel must be a string, got {sentinel!r}')

            self.sentinel = sentinel

        if io_errors is not None:
            if io_errors not in IO_POLICIES:
                raise ValueError(f'Unknown I/O error policy {io_errors!r}')

            self.io_errors = io_errors

        if trace is not None:
            if not isinstance(trace, bool):
                raise ValueError(f'Trace must be a boolean, got {trace!r}')

            self.trace = trace

        return self


def load_settings(path: str | Path) -> VMSettings:
    if isinstance(path, str):
        path = Path(path)

    lg.debug(f'Loading settings from {path}')
    config = tomllib.loads(path.read_text())
    table = config.get('vm', {})

    known = set(VMSettings.__annotations__)
    unknown = set(table) - known

    if unknown:
        raise ValueError(f'Unknown settings {", ".join(sorted(unknown))}')

    return VMSettings().update(**table)
