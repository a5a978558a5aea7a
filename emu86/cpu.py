import logging

from emu86.decoder import decode_line
from emu86.errors import (
    DivideByZero,
    DivisionOverflow,
    InvalidInstructionFormat,
    InvalidOperand,
    MissingArguments,
    UnknownInstruction,
)
from emu86.machine_state import MachineState
from emu86.operands import (
    Immediate,
    MemoryRef,
    Register,
    is_memory_token,
    resolve_operand,
    resolve_register,
)

logger = logging.getLogger('EMU86')


def check_overflow(op1, op2, result, is_add):
    """Signed 16-bit overflow test on masked operands and result"""
    sign1 = bool(op1 & 0x8000)
    sign2 = bool(op2 & 0x8000)
    sign_r = bool(result & 0x8000)
    if is_add:
        return sign1 == sign2 and sign1 != sign_r
    return sign1 != sign2 and sign2 == sign_r


class CPU:
    """Decodes and executes single source lines against a MachineState"""

    # Instruction set - maps mnemonics to (operand count, implementation)
    INSTRUCTION_SET = {
        "mov": (2, lambda cpu, args: cpu._mov(*args)),
        "push": (1, lambda cpu, args: cpu._push(*args)),
        "pop": (1, lambda cpu, args: cpu._pop(*args)),
        "add": (2, lambda cpu, args: cpu._add(*args)),
        "sub": (2, lambda cpu, args: cpu._sub(*args)),
        "mul": (1, lambda cpu, args: cpu._mul(*args)),
        "div": (1, lambda cpu, args: cpu._div(*args)),
    }

    def __init__(self, state=None):
        self.state = state if state is not None else MachineState()

    def execute_line(self, line):
        """Execute one source line. Returns the Instruction, or None for no-ops."""
        instruction = decode_line(line)
        if instruction is None:
            return None
        self.execute(instruction)
        return instruction

    def execute(self, instruction):
        if instruction.opcode not in self.INSTRUCTION_SET:
            raise UnknownInstruction(instruction.opcode)

        arity, handler = self.INSTRUCTION_SET[instruction.opcode]
        if len(instruction.args) < arity:
            raise MissingArguments(f"{instruction.opcode} expects {arity}")
        if len(instruction.args) > arity:
            raise InvalidInstructionFormat(str(instruction))

        logger.debug(f"Execute: {instruction}")
        handler(self, instruction.args)

    def _value(self, operand):
        """Value of a register or immediate operand"""
        if isinstance(operand, Register):
            return self.state.get_register(operand.name)
        if isinstance(operand, Immediate):
            return operand.value
        raise InvalidOperand(f"[{operand.address}]")

    def _value_of(self, token):
        return self._value(resolve_operand(token))

    # Instruction implementations
    def _mov(self, dest, src):
        """Move a word between registers, immediates and memory"""
        src_op = resolve_operand(src)

        if is_memory_token(dest):
            target = resolve_operand(dest)
            # _value rejects a memory source: no memory-to-memory moves
            self.state.memory.write_word(target.address, self._value(src_op))
            return

        register = resolve_register(dest)
        if isinstance(src_op, MemoryRef):
            self.state.set_register(register.name, self.state.memory.read_word(src_op.address))
        else:
            self.state.set_register(register.name, self._value(src_op))

    def _push(self, src):
        """Push a word onto the stack"""
        value = self._value_of(src)
        sp = self.state.get_register('sp')
        self.state.set_register('sp', sp - 2)
        self.state.memory.write_word(self.state.get_register('sp'), value)

    def _pop(self, dest):
        """Pop a word from the stack into a register"""
        register = resolve_register(dest)
        sp = self.state.get_register('sp')
        value = self.state.memory.read_word(sp)
        self.state.set_register('sp', sp + 2)
        self.state.set_register(register.name, value)

    def _add(self, dest, src):
        """Add src to dest"""
        value = self._value_of(src)
        register = resolve_register(dest)

        op1 = self.state.get_register(register.name)
        result = op1 + value
        self.state.set_register(register.name, result)

        # Update flags
        self.state.update_flags(
            result,
            carry=result > 0xFFFF,
            overflow=check_overflow(op1, value, result, True),
        )

    def _sub(self, dest, src):
        """Subtract src from dest"""
        value = self._value_of(src)
        register = resolve_register(dest)

        op1 = self.state.get_register(register.name)
        result = op1 - value
        self.state.set_register(register.name, result)

        # Update flags (carry is the unsigned borrow)
        self.state.update_flags(
            result,
            carry=op1 < value,
            overflow=check_overflow(op1, value, result, False),
        )

    def _mul(self, src):
        """Multiply AX by src, keeping the low word in AX"""
        value = self._value_of(src) & 0xFFFF
        result = self.state.get_register('ax') * value
        self.state.set_register('ax', result)

        has_upper_bits = result > 0xFFFF
        self.state.set_flag('CF', has_upper_bits)
        self.state.set_flag('OF', has_upper_bits)

    def _div(self, src):
        """Divide AX by src: quotient to AX, remainder to DX"""
        divisor = self._value_of(src) & 0xFFFF
        if divisor == 0:
            raise DivideByZero(src.strip())

        dividend = self.state.get_register('ax')
        quotient, remainder = divmod(dividend, divisor)
        if quotient > 0xFFFF:
            raise DivisionOverflow(f"{dividend} / {divisor}")

        self.state.set_register('ax', quotient)
        self.state.set_register('dx', remainder)
