"""Program runner with tracing for the LC-3 virtual machine."""

import logging
from dataclasses import dataclass, field
from typing import Callable, Optional
from .cpu import CPU, MachineState, PC_START
from .memory import Memory
from .image import Image, parse_image
from .instructions import IOBuffer, OPCODE_NAMES, decode_opcode, execute_instruction
from .errors import (
    LC3Error,
    LC3RuntimeError,
    StepLimitExceeded,
    ErrorInfo,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_STEPS = 10_000_000

# RunResult.state when the image never made it into a machine
UNLOADED = "unloaded"


@dataclass
class RunOptions:
    """Options for program execution."""
    start_address: int = PC_START
    max_steps: Optional[int] = DEFAULT_MAX_STEPS
    trace: bool = False
    trace_watch: list[int] = field(default_factory=list)
    trace_include_registers: bool = True
    trace_include_io: bool = True
    initial_memory: dict[int, int] = field(default_factory=dict)


@dataclass
class TraceRow:
    """Single row of execution trace."""
    step: int
    addr: int
    instr: int
    op: str
    pc: int
    cond: Optional[str]
    mem: dict[str, int]
    regs: Optional[list[int]] = None
    in_code: Optional[int] = None
    out_code: Optional[int] = None

    def to_dict(self, include_registers: bool, include_io: bool) -> dict:
        result = {
            "step": self.step,
            "addr": self.addr,
            "instr": self.instr,
            "op": self.op,
            "pc": self.pc,
            "cond": self.cond,
            "mem": self.mem,
        }
        if include_registers:
            result["regs"] = self.regs
        if include_io:
            result["in_code"] = self.in_code
            result["out_code"] = self.out_code
        return result


@dataclass
class RunResult:
    """Result of program execution."""
    status: str  # "ok" | "error"
    state: str  # MachineState value, or UNLOADED
    output_text: str
    steps_executed: int
    final_state: dict
    trace_watch: list[int]
    trace: list[dict]
    error: Optional[ErrorInfo] = None

    def to_dict(self) -> dict:
        result = {
            "status": self.status,
            "state": self.state,
            "output_text": self.output_text,
            "steps_executed": self.steps_executed,
            "final_state": self.final_state,
            "trace_watch": self.trace_watch,
            "trace": self.trace,
        }
        if self.error:
            result["error"] = self.error.to_dict()
        return result


StepCallback = Callable[["Machine", int, int], None]


class Machine:
    """One LC-3 machine: registers, memory and I/O owned together.

    Instances share nothing, so any number can run side by side.
    """

    def __init__(
        self,
        input_text: str = "",
        start_address: int = PC_START,
        initial_memory: Optional[dict[int, int]] = None,
    ):
        self.io = IOBuffer(input_text)
        self.cpu = CPU(start_address)
        self.memory = Memory(keyboard=self.io, initial_values=initial_memory)
        self.steps = 0

    @property
    def state(self) -> MachineState:
        return self.cpu.state

    def load(self, start_address: int, words: list[int]) -> None:
        """Preload words into memory starting at start_address."""
        self.memory.load(start_address, words)
        logger.debug("Loaded %d words at 0x%04X", len(words), start_address)

    def load_image(self, image: Image) -> None:
        self.load(image.origin, image.words)

    def step(self) -> tuple[int, int]:
        """Fetch, decode and execute one instruction.

        Returns the (address, word) of the executed instruction. On a
        runtime error the machine is left FAULTED and the error is
        re-raised with the step count and instruction address attached.
        """
        if self.cpu.halted:
            raise LC3RuntimeError(
                f"Machine is {self.cpu.state.value}",
                step=self.steps,
                addr=self.cpu.pc,
            )

        instr_addr = self.cpu.pc
        instr = self.memory.peek(instr_addr)
        self.cpu.set_pc(instr_addr + 1)
        self.io.reset_io_codes()

        try:
            execute_instruction(instr, self.cpu, self.memory, self.io)
        except LC3RuntimeError as e:
            self.cpu.state = MachineState.FAULTED
            e.step = self.steps
            e.addr = instr_addr
            logger.warning("Machine faulted at 0x%04X: %s", instr_addr, e.message)
            raise

        self.steps += 1
        return instr_addr, instr

    def run(
        self,
        max_steps: Optional[int] = None,
        on_step: Optional[StepCallback] = None,
    ) -> MachineState:
        """Run until HALTED or FAULTED.

        Raises StepLimitExceeded, leaving the machine RUNNING, once
        max_steps instructions have executed without halting.
        """
        while self.cpu.state is MachineState.RUNNING:
            if max_steps is not None and self.steps >= max_steps:
                logger.warning("Step limit of %d reached at 0x%04X", max_steps, self.cpu.pc)
                raise StepLimitExceeded(
                    f"Step limit exceeded: {max_steps}",
                    step=self.steps,
                    addr=self.cpu.pc,
                )
            instr_addr, instr = self.step()
            if on_step is not None:
                on_step(self, instr_addr, instr)

        if self.cpu.state is MachineState.HALTED:
            logger.info("Halted after %d steps", self.steps)
        return self.cpu.state


def _trace_recorder(options: RunOptions, rows: list[dict]) -> StepCallback:
    def _record(machine: Machine, instr_addr: int, instr: int) -> None:
        row = TraceRow(
            step=machine.steps,
            addr=instr_addr,
            instr=instr,
            op=OPCODE_NAMES[decode_opcode(instr)],
            pc=machine.cpu.pc,
            cond=machine.cpu.cond_name(),
            mem=machine.memory.get_watched(options.trace_watch),
            regs=list(machine.cpu.registers) if options.trace_include_registers else None,
            in_code=machine.io.last_in_code if options.trace_include_io else None,
            out_code=machine.io.last_out_code if options.trace_include_io else None,
        )
        rows.append(row.to_dict(
            include_registers=options.trace_include_registers,
            include_io=options.trace_include_io,
        ))

    return _record


def run_image(
    image: Image,
    input_text: str = "",
    options: Optional[RunOptions] = None,
) -> RunResult:
    """Run a loaded object image.

    Args:
        image: Origin and words to preload
        input_text: Characters for GETC/IN and the keyboard registers
        options: Execution options

    Returns:
        RunResult with execution status, output, and trace
    """
    if options is None:
        options = RunOptions()

    trace_rows: list[dict] = []
    error_info: Optional[ErrorInfo] = None
    trace_watch = sorted(set(options.trace_watch))

    machine = Machine(
        input_text=input_text,
        start_address=options.start_address,
        initial_memory=options.initial_memory,
    )
    machine.load_image(image)

    on_step = _trace_recorder(options, trace_rows) if options.trace else None

    try:
        machine.run(max_steps=options.max_steps, on_step=on_step)
    except LC3Error as e:
        error_info = e.to_error_info()

    return RunResult(
        status="ok" if machine.state is MachineState.HALTED else "error",
        state=machine.state.value,
        output_text=machine.io.get_output(),
        steps_executed=machine.steps,
        final_state=machine.cpu.get_state(),
        trace_watch=trace_watch,
        trace=trace_rows,
        error=error_info,
    )


def run_program(
    image_data: bytes,
    input_text: str = "",
    options: Optional[RunOptions] = None,
) -> RunResult:
    """Parse a raw object file and run it."""
    if options is None:
        options = RunOptions()

    try:
        image = parse_image(image_data)
    except LC3Error as e:
        return RunResult(
            status="error",
            state=UNLOADED,
            output_text="",
            steps_executed=0,
            final_state=CPU(options.start_address).get_state(),
            trace_watch=sorted(set(options.trace_watch)),
            trace=[],
            error=e.to_error_info(),
        )

    return run_image(image, input_text=input_text, options=options)
