class VMError(Exception):
    pass


class Fault(VMError):
    """ Fatal condition that stops the current run """

    ip: int | None

    def __init__(self, message: str, ip: int | None = None):
        super().__init__(message)
        self.ip = ip

    def __str__(self) -> str:
        message = super().__str__()

        if self.ip is None:
            return message

        return f'{message} (at {self.ip})'


class DecodeFault(Fault):
    value: int

    def __init__(self, value: int, ip: int | None = None):
        super().__init__(f'Unknown opcode {value}', ip)
        self.value = value


class StackUnderflow(Fault):
    def __init__(self, ip: int | None = None):
        super().__init__('Stack underflow', ip)


class StackOverflow(Fault):
    def __init__(self, ip: int | None = None):
        super().__init__('Stack overflow', ip)


class OutOfRangeAddress(Fault):
    kind: str
    address: int
    limit: int

    def __init__(self, kind: str, address: int, limit: int, ip: int | None = None):
        super().__init__(f'{kind.capitalize()} address {address} out of range [0, {limit})', ip)
        self.kind = kind
        self.address = address
        self.limit = limit


class DivisionByZero(Fault):
    def __init__(self, ip: int | None = None):
        super().__init__('Division by zero', ip)


class IoFailure(VMError):
    """ The output sink rejected a write; not a machine fault """
    pass
