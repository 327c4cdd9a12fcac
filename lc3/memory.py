"""Memory model for the LC-3 virtual machine."""

from typing import Optional, TYPE_CHECKING

from .cpu import WORD_MASK

if TYPE_CHECKING:
    from .instructions import IOBuffer

MEMORY_SIZE = 1 << 16

# Memory-mapped keyboard registers
MR_KBSR = 0xFE00
MR_KBDR = 0xFE02
KBSR_READY = 1 << 15


class Memory:
    """Flat 65536-word memory with a memory-mapped keyboard.

    Addresses and values are truncated to 16 bits, so address arithmetic
    wraps instead of failing. Reading MR_KBSR pulls the next character
    from the attached keyboard (if any) into MR_KBDR and advances the
    input cursor, whether or not the program goes on to read MR_KBDR.
    """

    def __init__(
        self,
        keyboard: Optional["IOBuffer"] = None,
        initial_values: Optional[dict[int, int]] = None,
    ):
        self.keyboard = keyboard
        self._data: list[int] = [0] * MEMORY_SIZE

        if initial_values:
            for addr, val in initial_values.items():
                self.write(addr, val)

    def read(self, addr: int) -> int:
        """Read value from memory address."""
        addr &= WORD_MASK
        if addr == MR_KBSR:
            self._poll_keyboard()
        return self._data[addr]

    def peek(self, addr: int) -> int:
        """Read without triggering device side effects."""
        return self._data[addr & WORD_MASK]

    def write(self, addr: int, value: int) -> None:
        """Write 16-bit value to memory address."""
        self._data[addr & WORD_MASK] = value & WORD_MASK

    def load(self, start_address: int, words: list[int]) -> None:
        """Copy words into memory starting at start_address."""
        addr = start_address
        for word in words:
            self.write(addr, word)
            addr += 1

    def _poll_keyboard(self) -> None:
        code = self.keyboard.poll_char() if self.keyboard is not None else None
        if code is None:
            self._data[MR_KBSR] = 0
        else:
            self._data[MR_KBSR] = KBSR_READY
            self._data[MR_KBDR] = code & WORD_MASK

    def get_watched(self, addresses: list[int]) -> dict[str, int]:
        """Get values at watched addresses as string-keyed dict."""
        return {str(addr): self.peek(addr) for addr in addresses}

    def snapshot(self) -> list[int]:
        """Return a copy of the entire memory."""
        return self._data.copy()
