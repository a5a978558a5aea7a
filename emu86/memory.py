import numpy as np

from emu86.errors import AddressOutOfRange

MEMORY_SIZE = 1024 * 1024
ROW_WIDTH = 16


class Memory:
    """Flat byte-addressable memory with little-endian word helpers.

    Every byte write is reported to the registered listeners as
    ``callback(address, old_value, new_value)`` so a host can refresh its
    memory view. The memory itself never renders anything.
    """

    def __init__(self, size=MEMORY_SIZE):
        self.size = size
        self._cells = np.zeros(size, dtype=np.uint8)
        self._listeners = []

    def __len__(self):
        return self.size

    def _check(self, address, width=1):
        if address < 0 or address + width > self.size:
            raise AddressOutOfRange(f"0x{address:X}" if address >= 0 else str(address))

    # Byte access
    def read_byte(self, address):
        self._check(address)
        return int(self._cells[address])

    def write_byte(self, address, value):
        self._check(address)
        self._store(address, value & 0xFF)

    def _store(self, address, value):
        old = int(self._cells[address])
        self._cells[address] = value
        for callback in list(self._listeners):
            callback(address, old, value)

    # Word access (low byte first)
    def read_word(self, address):
        self._check(address, 2)
        return int(self._cells[address]) | (int(self._cells[address + 1]) << 8)

    def write_word(self, address, value):
        # Validate both cells up front so a failing write leaves memory untouched
        self._check(address, 2)
        self._store(address, value & 0xFF)
        self._store(address + 1, (value >> 8) & 0xFF)

    def clear(self):
        """Zero every cell. Listeners are not notified."""
        self._cells.fill(0)

    # Observers
    def add_listener(self, callback):
        """Register ``callback(address, old_value, new_value)`` for byte writes"""
        self._listeners.append(callback)

    def remove_listener(self, callback):
        if callback in self._listeners:
            self._listeners.remove(callback)

    # Host views
    def view(self):
        """Read-only view over the whole memory array (no copy)"""
        view = self._cells.view()
        view.flags.writeable = False
        return view

    def window(self, start=0, rows=8):
        """Return ``(start, rows)`` for a memory panel of ``rows`` x 16 bytes.

        The start address is clamped so the window never runs past either end
        of memory.
        """
        span = rows * ROW_WIDTH
        start = max(0, min(start, self.size - span))
        data = [
            [int(b) for b in self._cells[start + r * ROW_WIDTH:start + (r + 1) * ROW_WIDTH]]
            for r in range(rows)
        ]
        return start, data

    def dump(self, start=0, length=64):
        """Dump a section of memory for debugging"""
        result = []
        end = min(start + length, self.size)
        for i in range(start, end, ROW_WIDTH):
            row = [int(b) for b in self._cells[i:min(i + ROW_WIDTH, end)]]
            hex_vals = ' '.join(f'{b:02X}' for b in row)
            ascii_vals = ''.join(chr(b) if 32 <= b <= 126 else '.' for b in row)
            result.append(f'{i:05X}: {hex_vals.ljust(47)} | {ascii_vals}')
        return '\n'.join(result)
