from dataclasses import dataclass

from emu86.errors import UnknownRegister
from emu86.memory import Memory

REGISTER_NAMES = ('ax', 'bx', 'cx', 'dx', 'si', 'di', 'sp', 'bp', 'ip')
FLAG_NAMES = ('ZF', 'SF', 'CF', 'OF', 'PF', 'AF', 'DF')

# Stack pointer starts near the top of the 1 MiB space and grows downward
STACK_POINTER_INIT = 0xFFF0


@dataclass(frozen=True)
class StateSnapshot:
    """Point-in-time copy of registers and flags plus a read-only memory view"""
    registers: dict
    flags: dict
    memory: object


def _parity(value):
    bits = value & 0xFF
    bits ^= bits >> 4
    bits ^= bits >> 2
    bits ^= bits >> 1
    return ~bits & 1


class MachineState:
    """Registers, flags and memory of the simulated CPU"""

    def __init__(self, memory=None):
        self.memory = memory if memory is not None else Memory()
        self.registers = {}
        self.flags = {}
        self._reset_registers()

    def _reset_registers(self):
        self.registers = {name: 0 for name in REGISTER_NAMES}
        self.registers['sp'] = STACK_POINTER_INIT
        self.flags = {name: 0 for name in FLAG_NAMES}

    def reset(self):
        """Restore registers, flags and memory to their power-on values"""
        self._reset_registers()
        self.memory.clear()

    def set_register(self, name, value):
        if name not in self.registers:
            raise UnknownRegister(name)
        self.registers[name] = ((value % 65536) + 65536) % 65536

    def get_register(self, name):
        if name not in self.registers:
            raise UnknownRegister(name)
        return self.registers[name]

    def set_flag(self, name, value):
        self.flags[name] = 1 if value else 0

    def get_flag(self, name):
        return self.flags[name]

    def update_flags(self, result, carry=False, overflow=False):
        """Recompute the arithmetic flags from an (unmasked) result"""
        self.flags['ZF'] = 1 if (result & 0xFFFF) == 0 else 0
        self.flags['SF'] = 1 if result & 0x8000 else 0
        self.flags['CF'] = 1 if carry else 0
        self.flags['OF'] = 1 if overflow else 0
        self.flags['PF'] = _parity(result)
        # Auxiliary carry is not modelled
        self.flags['AF'] = 0

    def snapshot(self):
        return StateSnapshot(
            registers=dict(self.registers),
            flags=dict(self.flags),
            memory=self.memory.view(),
        )

    def dump_registers(self):
        """Dump all registers and flags for debugging"""
        result = [f'{reg.upper()}: {val:04X}' for reg, val in self.registers.items()]
        result.append(' '.join(f'{flag}={val}' for flag, val in self.flags.items()))
        return '\n'.join(result)
