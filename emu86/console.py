from colorama import Fore, Style

from emu86.memory import ROW_WIDTH


def format_registers(snapshot):
    """Register panel: one NAME: 0000h entry per register, four per row"""
    items = [
        f"{Fore.CYAN}{name.upper()}:{Style.RESET_ALL} {value:04x}h"
        for name, value in snapshot.registers.items()
    ]
    rows = [items[i:i + 4] for i in range(0, len(items), 4)]
    return '\n'.join('   '.join(row) for row in rows)


def format_flags(snapshot):
    parts = []
    for flag, value in snapshot.flags.items():
        color = Fore.GREEN + Style.BRIGHT if value else Style.DIM
        parts.append(f"{color}{flag}: {value}{Style.RESET_ALL}")
    return ' '.join(parts)


def format_memory(memory, start=0, rows=8):
    """Hex panel of ``rows`` x 16 bytes; the start address is clamped to memory"""
    start, data = memory.window(start, rows)
    header = 'Memory ' + ' '.join(f'{i:02X}' for i in range(ROW_WIDTH))
    lines = [f"{Fore.YELLOW}{header}{Style.RESET_ALL}"]
    for index, row in enumerate(data):
        address = start + index * ROW_WIDTH
        values = ' '.join(f'{b:02X}' for b in row)
        lines.append(f"{Fore.BLUE}{address:05X}{Style.RESET_ALL}  {values}")
    return '\n'.join(lines)


def format_progress(done, total):
    percent = int(done * 100 / total) if total else 100
    return f"{Fore.MAGENTA}Progress: {done}/{total} ({percent}%){Style.RESET_ALL}"


def format_error(line_number, message):
    return f"{Fore.RED}Line {line_number}: {message}{Style.RESET_ALL}"


def format_state(snapshot, memory, start=0, rows=8):
    return f"""
{Fore.YELLOW}Registers:{Style.RESET_ALL}
{format_registers(snapshot)}

{Fore.YELLOW}Flags:{Style.RESET_ALL}
{format_flags(snapshot)}

{format_memory(memory, start, rows)}
"""
