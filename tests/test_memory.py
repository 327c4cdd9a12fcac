"""Tests for the Memory module."""

from lc3.memory import Memory, MEMORY_SIZE, MR_KBSR, MR_KBDR
from lc3.instructions import IOBuffer


class TestMemory:
    """Memory module tests."""

    def test_default_initialization(self):
        """Memory holds 65536 zeroed words."""
        mem = Memory()
        assert len(mem.snapshot()) == MEMORY_SIZE
        assert mem.read(0) == 0
        assert mem.read(0xFFFF) == 0

    def test_write_and_read(self):
        mem = Memory()
        mem.write(0x3000, 42)
        assert mem.read(0x3000) == 42

    def test_values_truncated(self):
        """Values are truncated to 16 bits."""
        mem = Memory()
        mem.write(0, 0x12345)
        assert mem.read(0) == 0x2345
        mem.write(1, -1)
        assert mem.read(1) == 0xFFFF

    def test_addresses_wrap(self):
        """Address arithmetic wraps instead of failing."""
        mem = Memory()
        mem.write(0x10000, 5)
        assert mem.read(0) == 5
        assert mem.read(0x10000) == 5

    def test_initial_values(self):
        mem = Memory(initial_values={0x4000: 10, 0x4001: 8})
        assert mem.read(0x4000) == 10
        assert mem.read(0x4001) == 8
        assert mem.read(0x3FFF) == 0

    def test_load(self):
        """Load copies words from the start address on."""
        mem = Memory()
        mem.load(0x3000, [1, 2, 3])
        assert [mem.read(a) for a in range(0x3000, 0x3004)] == [1, 2, 3, 0]

    def test_get_watched(self):
        mem = Memory(initial_values={80: 10, 81: 8})
        assert mem.get_watched([80, 81, 82]) == {"80": 10, "81": 8, "82": 0}

    def test_snapshot(self):
        """Snapshot returns copy of memory."""
        mem = Memory(initial_values={0: 1, 2: 3})
        snap = mem.snapshot()
        assert snap[:4] == [1, 0, 3, 0]
        snap[0] = 99
        assert mem.read(0) == 1


class TestKeyboard:
    """Memory-mapped keyboard status and data registers."""

    def test_status_without_keyboard(self):
        mem = Memory()
        assert mem.read(MR_KBSR) == 0

    def test_status_delivers_next_character(self):
        io = IOBuffer("ab")
        mem = Memory(keyboard=io)
        assert mem.read(MR_KBSR) == 0x8000
        assert mem.read(MR_KBDR) == ord("a")
        assert io.remaining == 1

    def test_exhausted_input_reports_not_ready(self):
        """Data register keeps its last value once input runs out."""
        mem = Memory(keyboard=IOBuffer("a"))
        assert mem.read(MR_KBSR) == 0x8000
        assert mem.read(MR_KBSR) == 0
        assert mem.read(MR_KBDR) == ord("a")

    def test_repeated_status_reads_advance_input(self):
        """Polling status twice skips the first character."""
        io = IOBuffer("ab")
        mem = Memory(keyboard=io)
        mem.read(MR_KBSR)
        mem.read(MR_KBSR)
        assert mem.read(MR_KBDR) == ord("b")
        assert io.remaining == 0

    def test_data_read_does_not_consume(self):
        io = IOBuffer("a")
        mem = Memory(keyboard=io)
        mem.read(MR_KBDR)
        assert io.remaining == 1

    def test_peek_has_no_side_effect(self):
        io = IOBuffer("a")
        mem = Memory(keyboard=io)
        assert mem.peek(MR_KBSR) == 0
        assert io.remaining == 1
