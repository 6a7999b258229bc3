"""Layered error chains for the NK2 parser.

Every failure is described by an ordered list of frames, root cause first.
A layer that catches a failure from a lower layer appends its own frame
instead of replacing the existing ones, so the rendered chain reads from the
byte level problem up to the call the user made.
"""
import logging
import struct
from dataclasses import dataclass, field
from enum import IntEnum
from typing import IO, List, Optional, Type

logger = logging.getLogger(__name__)


class ErrorDomain(IntEnum):
    """Error domains, valued by their single character tag."""
    ARGUMENTS = ord('a')
    CONVERSION = ord('c')
    COMPRESSION = ord('C')
    IO = ord('I')
    INPUT = ord('i')
    MEMORY = ord('m')
    OUTPUT = ord('o')
    RUNTIME = ord('r')


class ArgumentError(IntEnum):
    GENERIC = 0
    INVALID_VALUE = 1
    VALUE_LESS_THAN_ZERO = 2
    VALUE_ZERO_OR_LESS = 3
    VALUE_EXCEEDS_MAXIMUM = 4
    VALUE_TOO_SMALL = 5
    VALUE_TOO_LARGE = 6
    VALUE_OUT_OF_BOUNDS = 7
    UNSUPPORTED_VALUE = 8
    CONFLICTING_VALUE = 9


class ConversionError(IntEnum):
    GENERIC = 0
    INPUT_FAILED = 1
    OUTPUT_FAILED = 2


class CompressionError(IntEnum):
    GENERIC = 0
    COMPRESS_FAILED = 1
    DECOMPRESS_FAILED = 2


class IOErrorCode(IntEnum):
    GENERIC = 0
    OPEN_FAILED = 1
    CLOSE_FAILED = 2
    SEEK_FAILED = 3
    READ_FAILED = 4
    WRITE_FAILED = 5
    ACCESS_DENIED = 6
    INVALID_RESOURCE = 7
    IOCTL_FAILED = 8
    UNLINK_FAILED = 9


class InputError(IntEnum):
    GENERIC = 0
    INVALID_DATA = 1
    SIGNATURE_MISMATCH = 2
    CHECKSUM_MISMATCH = 3
    VALUE_MISMATCH = 4
    UNSUPPORTED_VALUE = 5


class MemoryErrorCode(IntEnum):
    GENERIC = 0
    INSUFFICIENT = 1
    COPY_FAILED = 2
    SET_FAILED = 3


class OutputError(IntEnum):
    GENERIC = 0
    INSUFFICIENT_SPACE = 1


class RuntimeErrorCode(IntEnum):
    GENERIC = 0
    VALUE_MISSING = 1
    VALUE_ALREADY_SET = 2
    INITIALIZE_FAILED = 3
    RESIZE_FAILED = 4
    FINALIZE_FAILED = 5
    GET_FAILED = 6
    SET_FAILED = 7
    APPEND_FAILED = 8
    COPY_FAILED = 9
    REMOVE_FAILED = 10
    PRINT_FAILED = 11
    VALUE_OUT_OF_BOUNDS = 12
    VALUE_EXCEEDS_MAXIMUM = 13
    UNSUPPORTED_VALUE = 14
    ABORT_REQUESTED = 15


# Code enumeration per domain
DOMAIN_CODES = {
    ErrorDomain.ARGUMENTS: ArgumentError,
    ErrorDomain.CONVERSION: ConversionError,
    ErrorDomain.COMPRESSION: CompressionError,
    ErrorDomain.IO: IOErrorCode,
    ErrorDomain.INPUT: InputError,
    ErrorDomain.MEMORY: MemoryErrorCode,
    ErrorDomain.OUTPUT: OutputError,
    ErrorDomain.RUNTIME: RuntimeErrorCode,
}


@dataclass(frozen=True)
class ErrorFrame:
    """A single failure description within an error chain."""
    domain: ErrorDomain
    code: int
    message: str

    @property
    def code_name(self) -> str:
        codes = DOMAIN_CODES.get(self.domain)
        try:
            return codes(self.code).name if codes else str(self.code)
        except ValueError:
            return str(self.code)

    def __str__(self) -> str:
        return self.message


@dataclass
class ErrorChain:
    """Ordered error frames, root cause first."""
    frames: List[ErrorFrame] = field(default_factory=list)

    def append(self, domain: ErrorDomain, code: int, message: str) -> None:
        self.frames.append(ErrorFrame(ErrorDomain(domain), int(code), message))

    @property
    def root(self) -> Optional[ErrorFrame]:
        return self.frames[0] if self.frames else None

    @property
    def top(self) -> Optional[ErrorFrame]:
        return self.frames[-1] if self.frames else None

    def matches(self, domain: ErrorDomain, code: int) -> bool:
        """Check whether any frame in the chain has the domain and code."""
        return any(
            frame.domain == domain and frame.code == code
            for frame in self.frames
        )

    def __len__(self) -> int:
        return len(self.frames)

    def __iter__(self):
        return iter(self.frames)


def error_set(
    chain: Optional[ErrorChain],
    domain: ErrorDomain,
    code: int,
    message: str
) -> ErrorChain:
    """Append a frame to a chain, creating the chain when needed.

    Args:
        chain: Existing chain or None
        domain: Error domain of the new frame
        code: Domain specific error code
        message: Human readable description

    Returns:
        The chain holding the new frame as its most recent entry
    """
    if chain is None:
        chain = ErrorChain()
    chain.append(domain, code, message)
    return chain


def error_free(chain: Optional[ErrorChain]) -> None:
    """Release the frames of a chain. None is accepted and ignored."""
    if chain is not None:
        chain.frames.clear()


def error_sprint(chain: Optional[ErrorChain]) -> str:
    """Render a chain as text, one line per frame."""
    if chain is None:
        return ""
    return "".join(f"{frame.message}\n" for frame in chain.frames)


def error_fprint(chain: Optional[ErrorChain], stream: IO[str]) -> int:
    """Write a chain to a text stream.

    Returns:
        Number of characters written
    """
    text = error_sprint(chain)
    if text:
        stream.write(text)
    return len(text)


def error_backtrace_sprint(chain: Optional[ErrorChain]) -> str:
    """Render a chain with the domain and code of every frame."""
    if chain is None:
        return ""
    lines = []
    for depth, frame in enumerate(chain.frames):
        lines.append(
            f"#{depth} {frame.domain.name.lower()}:{frame.code_name.lower()} "
            f"{frame.message}\n"
        )
    return "".join(lines)


def error_backtrace_fprint(chain: Optional[ErrorChain], stream: IO[str]) -> int:
    text = error_backtrace_sprint(chain)
    if text:
        stream.write(text)
    return len(text)


class NK2Error(Exception):
    """Base exception carrying an error chain."""

    domain: Optional[ErrorDomain] = None

    def __init__(self, chain: ErrorChain):
        self.chain = chain
        top = chain.top
        super().__init__(top.message if top else "unknown error")

    @property
    def code(self) -> Optional[int]:
        top = self.chain.top
        return top.code if top else None

    def matches(self, domain: ErrorDomain, code: int) -> bool:
        return self.chain.matches(domain, code)

    def __str__(self) -> str:
        return " <- ".join(
            frame.message for frame in reversed(self.chain.frames)
        )


class NK2ArgumentsError(NK2Error, ValueError):
    domain = ErrorDomain.ARGUMENTS


class NK2ConversionError(NK2Error):
    domain = ErrorDomain.CONVERSION


class NK2CompressionError(NK2Error):
    domain = ErrorDomain.COMPRESSION


class NK2IOError(NK2Error, OSError):
    domain = ErrorDomain.IO


class NK2InputError(NK2Error):
    domain = ErrorDomain.INPUT


class NK2MemoryError(NK2Error):
    domain = ErrorDomain.MEMORY


class NK2OutputError(NK2Error):
    domain = ErrorDomain.OUTPUT


class NK2RuntimeError(NK2Error):
    domain = ErrorDomain.RUNTIME


EXCEPTION_CLASSES = {
    ErrorDomain.ARGUMENTS: NK2ArgumentsError,
    ErrorDomain.CONVERSION: NK2ConversionError,
    ErrorDomain.COMPRESSION: NK2CompressionError,
    ErrorDomain.IO: NK2IOError,
    ErrorDomain.INPUT: NK2InputError,
    ErrorDomain.MEMORY: NK2MemoryError,
    ErrorDomain.OUTPUT: NK2OutputError,
    ErrorDomain.RUNTIME: NK2RuntimeError,
}


def _chain_from_cause(cause: BaseException) -> ErrorChain:
    """Start a new chain from a cause; an NK2 cause keeps its own chain intact."""
    if isinstance(cause, NK2Error):
        return ErrorChain(list(cause.chain.frames))
    if isinstance(cause, PermissionError):
        return error_set(None, ErrorDomain.IO, IOErrorCode.ACCESS_DENIED, str(cause))
    if isinstance(cause, FileNotFoundError):
        return error_set(None, ErrorDomain.IO, IOErrorCode.INVALID_RESOURCE, str(cause))
    if isinstance(cause, OSError):
        return error_set(None, ErrorDomain.IO, IOErrorCode.GENERIC, str(cause))
    if isinstance(cause, struct.error):
        return error_set(None, ErrorDomain.INPUT, InputError.INVALID_DATA, str(cause))
    if isinstance(cause, UnicodeDecodeError):
        return error_set(None, ErrorDomain.CONVERSION, ConversionError.INPUT_FAILED, str(cause))
    if isinstance(cause, UnicodeEncodeError):
        return error_set(None, ErrorDomain.CONVERSION, ConversionError.OUTPUT_FAILED, str(cause))
    return error_set(None, ErrorDomain.RUNTIME, RuntimeErrorCode.GENERIC, str(cause))


def make_error(
    domain: ErrorDomain,
    code: int,
    message: str,
    cause: Optional[BaseException] = None
) -> NK2Error:
    """Build the exception for a new frame, extending the chain of a cause."""
    chain = _chain_from_cause(cause) if cause is not None else None
    chain = error_set(chain, domain, code, message)
    exc_class: Type[NK2Error] = EXCEPTION_CLASSES[ErrorDomain(domain)]
    return exc_class(chain)


def raise_error(
    domain: ErrorDomain,
    code: int,
    message: str,
    cause: Optional[BaseException] = None
) -> None:
    """Raise an NK2Error with a new frame on top of an optional cause.

    Raises:
        NK2Error: The subclass matching the domain
    """
    error = make_error(domain, code, message, cause)
    if cause is not None:
        raise error from cause
    raise error
