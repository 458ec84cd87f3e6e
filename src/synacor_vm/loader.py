"""Program image loading.

Image format: a flat sequence of 16-bit little-endian words, copied
into memory starting at address 0. No header, no checksum. A trailing
odd byte is ignored.
"""

import logging
import struct
from array import array
from os import PathLike
from pathlib import Path
from typing import BinaryIO, Iterable, Union

from .errors import ProgramLoadError
from .state import MachineState, MEMORY_SIZE


logger = logging.getLogger(__name__)

MAX_IMAGE_BYTES = 2 * MEMORY_SIZE

ImageSource = Union[str, PathLike, bytes, bytearray, BinaryIO]


def read_image(source: ImageSource) -> bytes:
    """Read raw image bytes from a path, a bytes object or a binary stream.

    Raises:
        ProgramLoadError: On I/O failure or if the image exceeds 65536 bytes
    """
    if isinstance(source, (bytes, bytearray)):
        data = bytes(source)
    elif isinstance(source, (str, PathLike)):
        try:
            data = Path(source).read_bytes()
        except OSError as e:
            raise ProgramLoadError(f"Cannot read program image {source}: {e}") from e
    else:
        try:
            data = source.read()
        except OSError as e:
            raise ProgramLoadError(f"Cannot read program image: {e}") from e

    if len(data) > MAX_IMAGE_BYTES:
        raise ProgramLoadError(
            f"Program image is {len(data)} bytes, memory holds {MAX_IMAGE_BYTES}"
        )
    return data


def decode_words(data: bytes) -> array:
    """Split image bytes into little-endian words, dropping an odd last byte."""
    count = len(data) // 2
    return array("H", struct.unpack(f"<{count}H", data[:2 * count]))


def encode_words(words: Iterable[int]) -> bytes:
    """Pack words into an image.

    Args:
        words: Word values in 0..65535

    Returns:
        Little-endian image bytes
    """
    words = list(words)
    return struct.pack(f"<{len(words)}H", *words)


def load_image(state: MachineState, source: ImageSource) -> int:
    """Load a program image into memory from address 0.

    The whole image is read and validated before memory is touched, so a
    failed load leaves the machine unchanged.

    Args:
        state: Machine state to load into
        source: Path, bytes or binary stream

    Returns:
        Number of bytes read from the source

    Raises:
        ProgramLoadError: If the image cannot be read or is too large
    """
    data = read_image(source)
    words = decode_words(data)
    state.memory[0:len(words)] = words
    logger.debug("Loaded %d bytes (%d words)", len(data), len(words))
    return len(data)
