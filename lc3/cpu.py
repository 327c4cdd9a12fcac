"""CPU state model for the LC-3 virtual machine."""

from enum import Enum
from typing import Optional

WORD_MASK = 0xFFFF
PC_START = 0x3000

R_R7 = 7
REGISTER_COUNT = 8

# Condition flags
FL_POS = 1 << 0
FL_ZRO = 1 << 1
FL_NEG = 1 << 2

_FLAG_NAMES = {FL_POS: "P", FL_ZRO: "Z", FL_NEG: "N"}


class MachineState(Enum):
    RUNNING = "running"
    HALTED = "halted"
    FAULTED = "faulted"


def sign_extend(value: int, bit_count: int) -> int:
    """Extend a bit_count-wide two's complement field to 16 bits."""
    if (value >> (bit_count - 1)) & 1:
        value |= WORD_MASK << bit_count
        value &= WORD_MASK
    return value


class CPU:
    """Register file: R0-R7, PC and the condition register."""

    def __init__(self, start_address: int = PC_START):
        self.registers: list[int] = [0] * REGISTER_COUNT
        self.pc: int = start_address & WORD_MASK
        # Zero until the first flag-writing instruction
        self.cond: int = 0
        self.state = MachineState.RUNNING

    @property
    def halted(self) -> bool:
        return self.state is not MachineState.RUNNING

    def get_reg(self, index: int) -> int:
        return self.registers[index & 0x7]

    def set_reg(self, index: int, value: int) -> None:
        """Set a general register, truncated to 16 bits."""
        self.registers[index & 0x7] = value & WORD_MASK

    def set_pc(self, value: int) -> None:
        self.pc = value & WORD_MASK

    def update_flags(self, index: int) -> None:
        """Recompute COND from the value in register `index`."""
        value = self.get_reg(index)
        if value == 0:
            self.cond = FL_ZRO
        elif value >> 15:
            self.cond = FL_NEG
        else:
            self.cond = FL_POS

    def cond_name(self) -> Optional[str]:
        return _FLAG_NAMES.get(self.cond)

    def get_state(self) -> dict:
        """Get current register state as dictionary."""
        state = {f"r{i}": value for i, value in enumerate(self.registers)}
        state["pc"] = self.pc
        state["cond"] = self.cond_name()
        return state

    def reset(self, start_address: int = PC_START) -> None:
        """Reset CPU to initial state."""
        self.registers = [0] * REGISTER_COUNT
        self.pc = start_address & WORD_MASK
        self.cond = 0
        self.state = MachineState.RUNNING
