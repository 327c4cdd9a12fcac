"""Custom exceptions for the LC-3 virtual machine."""

from dataclasses import dataclass
from typing import Optional


@dataclass
class ErrorInfo:
    """Structured error information for API responses."""
    type: str
    message: str
    step: int
    addr: int

    def to_dict(self) -> dict:
        return {
            "type": self.type,
            "message": self.message,
            "step": self.step,
            "addr": self.addr,
        }


class LC3Error(Exception):
    """Base exception for all VM errors."""

    def __init__(self, message: str, step: int = 0, addr: int = 0):
        super().__init__(message)
        self.message = message
        self.step = step
        self.addr = addr

    def to_error_info(self) -> ErrorInfo:
        return ErrorInfo(
            type=self.__class__.__name__,
            message=self.message,
            step=self.step,
            addr=self.addr,
        )


class ImageError(LC3Error):
    """Malformed object image."""
    pass


class LC3RuntimeError(LC3Error):
    """Error during program execution."""
    pass


class DecodeFault(LC3RuntimeError):
    """Reserved or unhandled opcode fetched."""

    def __init__(self, message: str, opcode: Optional[int] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.opcode = opcode


class InputExhausted(LC3RuntimeError):
    """GETC/IN with nothing left in the input buffer."""
    pass


class StepLimitExceeded(LC3RuntimeError):
    """Maximum step count exceeded."""
    pass
