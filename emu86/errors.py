class EmulatorError(Exception):
    """Base class for every error raised by the emulator"""


class EmulatorBusy(EmulatorError):
    """Raised when a control operation is not allowed while a program runs"""


class InstructionError(EmulatorError):
    """A single instruction failed; the run that executed it halts"""

    description = "Instruction error"

    def __init__(self, detail=None):
        self.detail = detail
        if detail is None:
            message = self.description
        else:
            message = f"{self.description}: {detail}"
        super().__init__(message)


class InvalidInstructionFormat(InstructionError):
    description = "Invalid instruction format"


class UnknownInstruction(InstructionError):
    description = "Unknown instruction"


class UnknownRegister(InstructionError):
    description = "Invalid register"


class InvalidOperand(InstructionError):
    description = "Invalid operand"


class InvalidAddress(InstructionError):
    description = "Invalid memory address"


class AddressOutOfRange(InstructionError):
    description = "Memory access out of bounds"


class DivideByZero(InstructionError):
    description = "Division by zero"


class DivisionOverflow(InstructionError):
    description = "Division overflow"


class MissingArguments(InstructionError):
    description = "Missing arguments"
