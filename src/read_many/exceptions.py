from dataclasses import dataclass


@dataclass(eq=False)
class ReadManyError(Exception):
    """Base exception for errors in the read_many module."""


@dataclass(eq=False)
class OperationAbortedError(ReadManyError):
    """Raised when the cancellation token fires before a file read starts."""

    processed: int = 0
    message: str = "Operation aborted"

    def __str__(self) -> str:
        return self.message


@dataclass(eq=False)
class InvalidRequestError(ReadManyError):
    """Raised when a read request cannot be built from user input."""

    message: str

    def __str__(self) -> str:
        return self.message


@dataclass(eq=False)
class MalformedBlockError(ReadManyError):
    """Raised when combined output does not follow the framed block layout."""

    line_number: int
    message: str

    def __str__(self) -> str:
        return f"line {self.line_number}: {self.message}"


@dataclass(eq=False)
class OffsetOutOfRangeError(ReadManyError):
    """Raised when a read offset points past the end of the file."""

    offset: int
    total_lines: int

    def __str__(self) -> str:
        return f"Offset {self.offset} is beyond end of file ({self.total_lines} lines total)"
