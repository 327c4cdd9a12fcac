"""Object image reading for the LC-3 virtual machine.

An image is a sequence of big-endian 16-bit words: the first is the load
origin, the rest are copied into memory starting there.
"""

import struct
from dataclasses import dataclass, field
from pathlib import Path
from typing import Union

from .errors import ImageError
from .memory import MEMORY_SIZE


@dataclass
class Image:
    origin: int
    words: list[int] = field(default_factory=list)

    def to_bytes(self) -> bytes:
        """Encode back to the on-disk format."""
        return struct.pack(f">{len(self.words) + 1}H", self.origin, *self.words)


def parse_image(data: bytes) -> Image:
    """Parse raw object file bytes into an Image."""
    if len(data) < 2:
        raise ImageError("Image too short: missing origin word")
    if len(data) % 2:
        raise ImageError(f"Image has odd length: {len(data)} bytes")

    count = len(data) // 2
    origin, *words = struct.unpack(f">{count}H", data)

    if origin + len(words) > MEMORY_SIZE:
        raise ImageError(
            f"Image of {len(words)} words does not fit at origin 0x{origin:04X}",
            addr=origin,
        )
    return Image(origin=origin, words=words)


def read_image(path: Union[str, Path]) -> Image:
    """Read and parse an object file from disk."""
    return parse_image(Path(path).read_bytes())
