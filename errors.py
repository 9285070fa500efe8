from __future__ import annotations


class MachineError(Exception):
    """Fatal condition raised while executing a program; never recovered by the machine itself."""

    def __init__(self, message: str, *, line: int | None = None) -> None:
        self.message = message
        self.line = line
        super().__init__(message)

    def report(self) -> str:
        return "{} at line {}".format(self.message, self.line)

    def __str__(self):
        if self.line is None:
            return self.message
        return self.report()


class MalformedInstruction(MachineError):
    pass


class StackUnderflow(MachineError):
    pass


class TypeMismatch(MachineError):
    pass


class InvalidArithmetic(MachineError):
    pass


class UndefinedVariable(MachineError):
    pass


class ConversionError(MachineError):
    pass
