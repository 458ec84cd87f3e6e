"""Console: byte-level input and output for the IN and OUT instructions."""

import sys
from typing import BinaryIO, Optional

from .errors import InputExhaustedError


NEWLINE = 0x0A


class Console:
    """Binary input source and output sink.

    Output is written one byte at a time and flushed on newline, before
    blocking on input, and when the caller calls ``flush()``.

    Attributes:
        input_stream: Binary stream read by IN (defaults to stdin)
        output_stream: Binary stream written by OUT (defaults to stdout)
        bytes_written: Count of bytes emitted so far
        bytes_read: Count of bytes consumed so far
    """

    def __init__(
        self,
        input_stream: Optional[BinaryIO] = None,
        output_stream: Optional[BinaryIO] = None
    ):
        self.input_stream = input_stream if input_stream is not None else sys.stdin.buffer
        self.output_stream = output_stream if output_stream is not None else sys.stdout.buffer
        self.bytes_written = 0
        self.bytes_read = 0

    def write_byte(self, value: int) -> None:
        """Emit one byte. Values above 255 are written as their low byte."""
        byte = value & 0xFF
        self.output_stream.write(bytes((byte,)))
        self.bytes_written += 1
        if byte == NEWLINE:
            self.flush()

    def read_byte(self) -> int:
        """Block until one byte is available and return it.

        Raises:
            InputExhaustedError: If the input stream is at end of file
        """
        self.flush()
        data = self.input_stream.read(1)
        if not data:
            raise InputExhaustedError()
        self.bytes_read += 1
        return data[0]

    def flush(self) -> None:
        self.output_stream.flush()
