"""Operand tokens resolved into registers, immediates or memory references."""
import re
from dataclasses import dataclass

from emu86.errors import InvalidAddress, InvalidOperand, UnknownRegister
from emu86.machine_state import REGISTER_NAMES


@dataclass(frozen=True)
class Register:
    name: str


@dataclass(frozen=True)
class Immediate:
    value: int


@dataclass(frozen=True)
class MemoryRef:
    address: int


LITERAL_PATTERNS = (
    (re.compile(r'0x([0-9a-f]+)', re.ASCII), 16),
    (re.compile(r'0b([01]+)', re.ASCII), 2),
    (re.compile(r'0o([0-7]+)', re.ASCII), 8),
    (re.compile(r'([0-9]+)', re.ASCII), 10),
)


def parse_immediate(text):
    """Parse an integer literal, returning None when the text is not one.

    Accepts an optional sign, decimal, 0x/0b/0o prefixes and single character
    literals such as 'A'. Digits must be ASCII and valid for the base.
    """
    text = text.strip()
    if len(text) == 3 and text[0] == text[2] == "'":
        return ord(text[1])

    sign = 1
    if text[:1] in ('+', '-'):
        if text[0] == '-':
            sign = -1
        text = text[1:]

    lowered = text.lower()
    for pattern, base in LITERAL_PATTERNS:
        match = pattern.fullmatch(lowered)
        if match:
            return sign * int(match.group(1), base)
    return None


def is_memory_token(token):
    token = token.strip()
    return token.startswith('[') and token.endswith(']')


def resolve_operand(token):
    """Classify ``token`` as a MemoryRef, Register or Immediate (in that order)"""
    token = token.strip()

    if is_memory_token(token):
        address = parse_immediate(token[1:-1])
        if address is None:
            raise InvalidAddress(token)
        return MemoryRef(address)

    if token.lower() in REGISTER_NAMES:
        return Register(token.lower())

    value = parse_immediate(token)
    if value is None:
        raise InvalidOperand(token)
    return Immediate(value)


def resolve_register(token):
    """Resolve a token that must name a register"""
    name = token.strip().lower()
    if name not in REGISTER_NAMES:
        raise UnknownRegister(token.strip())
    return Register(name)
