"""
Operand resolution, line decoding and program loading.
"""
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest

from emu86.decoder import Instruction, decode_line, strip_comment
from emu86.errors import InvalidAddress, InvalidInstructionFormat, InvalidOperand, UnknownRegister
from emu86.loader import build_label_map, load_program
from emu86.operands import (
    Immediate,
    MemoryRef,
    Register,
    parse_immediate,
    resolve_operand,
    resolve_register,
)


class TestImmediates:

    @pytest.mark.parametrize("text,value", [
        ("10", 10),
        ("0", 0),
        ("-5", -5),
        ("+7", 7),
        ("0xFFFF", 0xFFFF),
        ("0XfF", 0xFF),
        ("0b101", 5),
        ("0o17", 15),
        ("-0x10", -16),
        ("'A'", 65),
        ("  42 ", 42),
    ])
    def test_literals(self, text, value):
        assert parse_immediate(text) == value

    @pytest.mark.parametrize("text", [
        "", "abc", "0x", "1.5", "12ab", "0xZZ", "-", "ax",
        "0x-5", "0x+5", "0x1_0", "1_000", "0b102", "0o8", "--5", "+-5",
        "\u0663", "1\u0662", "0x\uff11",
    ])
    def test_not_literals(self, text):
        assert parse_immediate(text) is None


class TestOperandResolver:

    def test_memory_reference(self):
        assert resolve_operand("[100]") == MemoryRef(100)
        assert resolve_operand(" [0x20] ") == MemoryRef(0x20)

    def test_register_is_case_insensitive(self):
        assert resolve_operand("AX") == Register('ax')
        assert resolve_operand("Sp") == Register('sp')
        assert resolve_operand("ip") == Register('ip')

    def test_immediate(self):
        assert resolve_operand("1234") == Immediate(1234)

    def test_brackets_win_over_everything(self):
        with pytest.raises(InvalidAddress):
            resolve_operand("[ax]")

    def test_invalid_address(self):
        with pytest.raises(InvalidAddress):
            resolve_operand("[foo]")

    def test_invalid_operand(self):
        with pytest.raises(InvalidOperand):
            resolve_operand("foo")
        with pytest.raises(InvalidOperand):
            resolve_operand("")
        with pytest.raises(InvalidOperand):
            resolve_operand("0x-5")

    def test_resolve_register(self):
        assert resolve_register(" BX ") == Register('bx')
        with pytest.raises(UnknownRegister):
            resolve_register("10")
        with pytest.raises(UnknownRegister):
            resolve_register("eax")


class TestDecoder:

    def test_strip_comment(self):
        assert strip_comment("  mov ax, 1 ; load ; more") == "mov ax, 1"

    def test_blank_comment_and_label_lines(self):
        assert decode_line("") is None
        assert decode_line("    ") is None
        assert decode_line("; only a comment") is None
        assert decode_line("start:") is None
        assert decode_line("  Loop:   ; label with comment") is None

    def test_opcode_and_operands(self):
        assert decode_line("MOV AX, 10") == Instruction('mov', ['AX', '10'])
        assert decode_line("push   bx ; save") == Instruction('push', ['bx'])
        assert decode_line("mul") == Instruction('mul', [])

    def test_empty_operand_is_kept(self):
        assert decode_line("mov ax,") == Instruction('mov', ['ax', ''])

    def test_invalid_format(self):
        with pytest.raises(InvalidInstructionFormat):
            decode_line("[100], ax")
        with pytest.raises(InvalidInstructionFormat):
            decode_line(", ax")

    def test_str(self):
        assert str(Instruction('add', ['ax', '1'])) == "add ax, 1"
        assert str(Instruction('mul', [])) == "mul"


class TestLoader:

    def test_label_map(self):
        program = load_program("start:\n  mov ax, 1\n\nLOOP: ; body\nadd ax, 1\n")
        assert program.labels == {'start': 0, 'loop': 3}
        assert len(program) == 5

    def test_commented_out_label_is_ignored(self):
        assert build_label_map(["; old:", "mov ax, 1 ; note:"]) == {}

    def test_redefined_label_keeps_last(self):
        assert build_label_map(["a:", "a:"]) == {'a': 1}

    def test_crlf_lines(self):
        program = load_program("mov ax, 1\r\nend:\r\n")
        assert program.lines == ["mov ax, 1", "end:"]
        assert program.labels == {'end': 1}
