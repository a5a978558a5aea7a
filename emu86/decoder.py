import re
from dataclasses import dataclass, field

from emu86.errors import InvalidInstructionFormat

INSTRUCTION_RE = re.compile(r'^(\w+)\s*(.*)$')


@dataclass
class Instruction:
    opcode: str
    args: list = field(default_factory=list)

    def __str__(self):
        if not self.args:
            return self.opcode
        return f"{self.opcode} {', '.join(self.args)}"


def strip_comment(line):
    """Drop everything from the first ';' and trim whitespace"""
    return line.split(';', 1)[0].strip()


def is_label(text):
    return text.endswith(':')


def decode_line(line):
    """Parse a source line into an Instruction.

    Returns None for blank lines, comment-only lines and labels.
    """
    text = strip_comment(line)
    if not text or is_label(text):
        return None

    match = INSTRUCTION_RE.match(text)
    if not match:
        raise InvalidInstructionFormat(text)

    opcode = match.group(1).lower()
    arg_str = match.group(2).strip()
    args = [arg.strip() for arg in arg_str.split(',')] if arg_str else []
    return Instruction(opcode, args)
