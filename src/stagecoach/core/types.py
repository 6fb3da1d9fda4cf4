"""Type definitions for Stagecoach.

This module defines the interfaces shared by the execution and locking
layers:
- Command: an opaque shell command string
- OutputSink: the append-only consumer that receives streamed output
- StreamSink: adapter turning a text stream into an OutputSink
"""

# Standard library imports
from typing import Protocol, TextIO, runtime_checkable

Command = str

# Line terminator produced by a pseudo-terminal with default (onlcr) settings
PTY_EOL = "\r\n"


@runtime_checkable
class OutputSink(Protocol):
    """Append-only consumer of output chunks.

    ``append`` is called once per chunk, in delivery order. There is no
    backpressure: an implementation that blocks stalls command execution.
    A plain ``list`` satisfies this protocol.
    """

    def append(self, chunk: str) -> None:
        ...


class StreamSink:
    """Write each chunk to a text stream and flush it immediately."""

    def __init__(self, stream: TextIO):
        self.stream = stream

    def append(self, chunk: str) -> None:
        self.stream.write(chunk)
        self.stream.flush()
