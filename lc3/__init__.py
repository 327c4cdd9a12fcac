"""LC-3 Virtual Machine Core Package."""

from .runner import run_program, run_image, Machine, RunOptions, RunResult
from .image import Image, parse_image, read_image
from .cpu import MachineState, sign_extend
from .errors import (
    LC3Error,
    ImageError,
    LC3RuntimeError,
    DecodeFault,
    InputExhausted,
)

__all__ = [
    "run_program",
    "run_image",
    "Machine",
    "RunOptions",
    "RunResult",
    "Image",
    "parse_image",
    "read_image",
    "MachineState",
    "sign_extend",
    "LC3Error",
    "ImageError",
    "LC3RuntimeError",
    "DecodeFault",
    "InputExhausted",
]
