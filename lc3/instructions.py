"""Instruction execution for the LC-3 virtual machine."""

import logging
from typing import Callable, Optional
from .cpu import CPU, MachineState, R_R7, sign_extend
from .memory import Memory
from .errors import DecodeFault, InputExhausted

logger = logging.getLogger(__name__)

# Opcodes
OP_BR = 0
OP_ADD = 1
OP_LD = 2
OP_ST = 3
OP_JSR = 4
OP_AND = 5
OP_LDR = 6
OP_STR = 7
OP_RTI = 8
OP_NOT = 9
OP_LDI = 10
OP_STI = 11
OP_JMP = 12
OP_RES = 13
OP_LEA = 14
OP_TRAP = 15

OPCODE_NAMES = (
    "BR", "ADD", "LD", "ST", "JSR", "AND", "LDR", "STR",
    "RTI", "NOT", "LDI", "STI", "JMP", "RES", "LEA", "TRAP",
)

# Trap vectors
TRAP_GETC = 0x20
TRAP_OUT = 0x21
TRAP_PUTS = 0x22
TRAP_IN = 0x23
TRAP_PUTSP = 0x24
TRAP_HALT = 0x25

HALT_MESSAGE = "HALT\n"


class IOBuffer:
    """Input/Output buffer for traps and the keyboard registers."""

    def __init__(self, input_text: str = ""):
        self._input = list(input_text)
        self._input_pos = 0
        self._output: list[str] = []
        self.last_in_code: Optional[int] = None
        self.last_out_code: Optional[int] = None

    @property
    def remaining(self) -> int:
        return len(self._input) - self._input_pos

    def poll_char(self) -> Optional[int]:
        """Consume the next character if there is one, else return None."""
        if self._input_pos >= len(self._input):
            return None
        return self.read_char()

    def read_char(self) -> int:
        """Read next character from input buffer as a character code."""
        self.last_in_code = None
        if self._input_pos >= len(self._input):
            raise InputExhausted("Input buffer is empty")
        char = self._input[self._input_pos]
        self._input_pos += 1
        self.last_in_code = ord(char)
        return self.last_in_code

    def write_char(self, code: int) -> None:
        """Write character to output buffer."""
        self.last_out_code = code & 0xFF
        self._output.append(chr(self.last_out_code))

    def write_text(self, text: str) -> None:
        self._output.append(text)

    def get_output(self) -> str:
        """Get accumulated output as string."""
        return "".join(self._output)

    def reset_io_codes(self) -> None:
        """Reset last I/O codes for new instruction."""
        self.last_in_code = None
        self.last_out_code = None


def _dr(instr: int) -> int:
    return (instr >> 9) & 0x7


def _sr1(instr: int) -> int:
    return (instr >> 6) & 0x7


def _pc_offset9(instr: int) -> int:
    return sign_extend(instr & 0x1FF, 9)


def _second_operand(instr: int, cpu: CPU) -> int:
    """imm5 when bit 5 is set, else SR2."""
    if (instr >> 5) & 0x1:
        return sign_extend(instr & 0x1F, 5)
    return cpu.get_reg(instr & 0x7)


# Instruction executor type
InstructionExecutor = Callable[[int, CPU, Memory, IOBuffer], None]


def execute_br(instr: int, cpu: CPU, mem: Memory, io: IOBuffer) -> None:
    """BR[n][z][p] PCoffset9"""
    if _dr(instr) & cpu.cond:
        cpu.set_pc(cpu.pc + _pc_offset9(instr))


def execute_add(instr: int, cpu: CPU, mem: Memory, io: IOBuffer) -> None:
    """ADD DR, SR1, SR2|imm5"""
    dr = _dr(instr)
    cpu.set_reg(dr, cpu.get_reg(_sr1(instr)) + _second_operand(instr, cpu))
    cpu.update_flags(dr)


def execute_ld(instr: int, cpu: CPU, mem: Memory, io: IOBuffer) -> None:
    """LD DR, PCoffset9: DR := MEM[PC + offset]"""
    dr = _dr(instr)
    cpu.set_reg(dr, mem.read(cpu.pc + _pc_offset9(instr)))
    cpu.update_flags(dr)


def execute_st(instr: int, cpu: CPU, mem: Memory, io: IOBuffer) -> None:
    """ST SR, PCoffset9: MEM[PC + offset] := SR"""
    mem.write(cpu.pc + _pc_offset9(instr), cpu.get_reg(_dr(instr)))


def execute_jsr(instr: int, cpu: CPU, mem: Memory, io: IOBuffer) -> None:
    """JSR PCoffset11 / JSRR BaseR"""
    cpu.set_reg(R_R7, cpu.pc)
    if (instr >> 11) & 1:
        cpu.set_pc(cpu.pc + sign_extend(instr & 0x7FF, 11))
    else:
        # R7 is already overwritten: JSRR R7 lands on the next instruction
        cpu.set_pc(cpu.get_reg(_sr1(instr)))


def execute_and(instr: int, cpu: CPU, mem: Memory, io: IOBuffer) -> None:
    """AND DR, SR1, SR2|imm5"""
    dr = _dr(instr)
    cpu.set_reg(dr, cpu.get_reg(_sr1(instr)) & _second_operand(instr, cpu))
    cpu.update_flags(dr)


def execute_ldr(instr: int, cpu: CPU, mem: Memory, io: IOBuffer) -> None:
    """LDR DR, BaseR, offset6: DR := MEM[BaseR + offset]"""
    dr = _dr(instr)
    offset = sign_extend(instr & 0x3F, 6)
    cpu.set_reg(dr, mem.read(cpu.get_reg(_sr1(instr)) + offset))
    cpu.update_flags(dr)


def execute_str(instr: int, cpu: CPU, mem: Memory, io: IOBuffer) -> None:
    """STR SR, BaseR, offset6: MEM[BaseR + offset] := SR"""
    offset = sign_extend(instr & 0x3F, 6)
    mem.write(cpu.get_reg(_sr1(instr)) + offset, cpu.get_reg(_dr(instr)))


def execute_not(instr: int, cpu: CPU, mem: Memory, io: IOBuffer) -> None:
    """NOT DR, SR"""
    dr = _dr(instr)
    cpu.set_reg(dr, ~cpu.get_reg(_sr1(instr)))
    cpu.update_flags(dr)


def execute_ldi(instr: int, cpu: CPU, mem: Memory, io: IOBuffer) -> None:
    """LDI DR, PCoffset9: DR := MEM[MEM[PC + offset]]"""
    dr = _dr(instr)
    indirect_addr = mem.read(cpu.pc + _pc_offset9(instr))
    cpu.set_reg(dr, mem.read(indirect_addr))
    cpu.update_flags(dr)


def execute_sti(instr: int, cpu: CPU, mem: Memory, io: IOBuffer) -> None:
    """STI SR, PCoffset9: MEM[MEM[PC + offset]] := SR"""
    indirect_addr = mem.read(cpu.pc + _pc_offset9(instr))
    mem.write(indirect_addr, cpu.get_reg(_dr(instr)))


def execute_jmp(instr: int, cpu: CPU, mem: Memory, io: IOBuffer) -> None:
    """JMP BaseR (RET when BaseR is R7)"""
    cpu.set_pc(cpu.get_reg(_sr1(instr)))


def execute_lea(instr: int, cpu: CPU, mem: Memory, io: IOBuffer) -> None:
    """LEA DR, PCoffset9: DR := PC + offset"""
    dr = _dr(instr)
    cpu.set_reg(dr, cpu.pc + _pc_offset9(instr))
    cpu.update_flags(dr)


def trap_getc(cpu: CPU, mem: Memory, io: IOBuffer) -> None:
    """GETC: R0 := next input character code, no echo."""
    cpu.set_reg(0, io.read_char())


def trap_out(cpu: CPU, mem: Memory, io: IOBuffer) -> None:
    """OUT: write R0[7:0]."""
    io.write_char(cpu.get_reg(0))


def trap_puts(cpu: CPU, mem: Memory, io: IOBuffer) -> None:
    """PUTS: one character per word from MEM[R0] up to a zero word."""
    addr = cpu.get_reg(0)
    chars = []
    word = mem.read(addr)
    while word != 0:
        chars.append(chr(word & 0xFF))
        addr += 1
        word = mem.read(addr)
    io.write_text("".join(chars))


def trap_putsp(cpu: CPU, mem: Memory, io: IOBuffer) -> None:
    """PUTSP: two characters per word, low byte first."""
    addr = cpu.get_reg(0)
    chars = []
    word = mem.read(addr)
    while word != 0:
        chars.append(chr(word & 0xFF))
        high = word >> 8
        if high:
            chars.append(chr(high))
        addr += 1
        word = mem.read(addr)
    io.write_text("".join(chars))


def trap_halt(cpu: CPU, mem: Memory, io: IOBuffer) -> None:
    io.write_text(HALT_MESSAGE)
    cpu.state = MachineState.HALTED


TRAP_HANDLERS: dict[int, Callable[[CPU, Memory, IOBuffer], None]] = {
    TRAP_GETC: trap_getc,
    TRAP_OUT: trap_out,
    TRAP_PUTS: trap_puts,
    # IN behaves like GETC here; there is no prompt or echo.
    TRAP_IN: trap_getc,
    TRAP_PUTSP: trap_putsp,
    TRAP_HALT: trap_halt,
}


def execute_trap(instr: int, cpu: CPU, mem: Memory, io: IOBuffer) -> None:
    """TRAP trapvect8"""
    vector = instr & 0xFF
    handler = TRAP_HANDLERS.get(vector)
    if handler is None:
        logger.warning("Ignoring unknown trap vector 0x%02X", vector)
        return
    handler(cpu, mem, io)


# Instruction dispatch table, indexed by opcode. RTI and RES have no handler.
INSTRUCTION_EXECUTORS: tuple[Optional[InstructionExecutor], ...] = (
    execute_br,
    execute_add,
    execute_ld,
    execute_st,
    execute_jsr,
    execute_and,
    execute_ldr,
    execute_str,
    None,
    execute_not,
    execute_ldi,
    execute_sti,
    execute_jmp,
    None,
    execute_lea,
    execute_trap,
)


def decode_opcode(instr: int) -> int:
    return (instr >> 12) & 0xF


def execute_instruction(instr: int, cpu: CPU, mem: Memory, io: IOBuffer) -> None:
    """Execute a single instruction word.

    The PC must already point past the instruction. Raises DecodeFault
    for opcodes without a handler.
    """
    opcode = decode_opcode(instr)
    executor = INSTRUCTION_EXECUTORS[opcode]
    if executor is None:
        raise DecodeFault(
            f"Bad opcode {OPCODE_NAMES[opcode]} (0x{instr:04X})",
            opcode=opcode,
        )
    executor(instr, cpu, mem, io)
