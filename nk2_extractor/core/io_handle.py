"""
Byte stream access for NK2 files.
"""
import logging
import os
from abc import ABC, abstractmethod
from typing import BinaryIO, Optional, Union

from ..errors import (
    ArgumentError, ErrorDomain, IOErrorCode, RuntimeErrorCode, raise_error,
)

logger = logging.getLogger(__name__)

PathType = Union[str, bytes, os.PathLike]


class IOHandle(ABC):
    """Abstract base class for readable byte streams."""

    @abstractmethod
    def open(self) -> None:
        """Open the underlying stream.

        Raises:
            NK2IOError: The stream could not be opened
        """
        pass

    @abstractmethod
    def close(self) -> None:
        """Close the underlying stream."""
        pass

    @abstractmethod
    def is_open(self) -> bool:
        pass

    @abstractmethod
    def seek(self, offset: int) -> None:
        """Move to an absolute offset.

        Raises:
            NK2IOError: The offset could not be reached
        """
        pass

    @abstractmethod
    def read(self, size: int) -> bytes:
        """Read up to size bytes from the current offset."""
        pass

    @abstractmethod
    def get_size(self) -> int:
        """Get the total size of the stream in bytes."""
        pass

    @abstractmethod
    def exists(self) -> bool:
        pass

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    def read_at(self, offset: int, size: int) -> bytes:
        self.seek(offset)
        return self.read(size)

    def read_exact(self, offset: int, size: int) -> bytes:
        """Read exactly size bytes at offset.

        Raises:
            NK2IOError: Fewer bytes were available
        """
        data = self.read_at(offset, size)
        if len(data) != size:
            raise_error(
                ErrorDomain.IO, IOErrorCode.READ_FAILED,
                f"Unable to read {size} bytes at offset {offset} (0x{offset:08x}) "
                f"from {self.name}: got {len(data)}."
            )
        return data

    def __enter__(self) -> 'IOHandle':
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


class FileIOHandle(IOHandle):
    """Stream backed by a file on disk, opened read-only."""

    def __init__(self, path: PathType):
        if not isinstance(path, (str, bytes, os.PathLike)):
            raise_error(
                ErrorDomain.ARGUMENTS, ArgumentError.INVALID_VALUE,
                f"Invalid filename: {path!r}."
            )
        self.path = path
        self._file: Optional[BinaryIO] = None
        self._size: Optional[int] = None

    @property
    def name(self) -> str:
        return os.fsdecode(self.path)

    def exists(self) -> bool:
        return os.path.exists(self.path)

    def is_open(self) -> bool:
        return self._file is not None

    def open(self) -> None:
        if self._file is not None:
            raise_error(
                ErrorDomain.RUNTIME, RuntimeErrorCode.VALUE_ALREADY_SET,
                f"File {self.name} already open."
            )
        try:
            self._file = open(self.path, 'rb')
            self._size = os.fstat(self._file.fileno()).st_size
        except PermissionError as e:
            raise_error(
                ErrorDomain.IO, IOErrorCode.ACCESS_DENIED,
                f"Access denied to file: {self.name}.", e
            )
        except (FileNotFoundError, IsADirectoryError, NotADirectoryError) as e:
            raise_error(
                ErrorDomain.IO, IOErrorCode.INVALID_RESOURCE,
                f"No such file: {self.name}.", e
            )
        except OSError as e:
            raise_error(
                ErrorDomain.IO, IOErrorCode.OPEN_FAILED,
                f"Unable to open file: {self.name}.", e
            )
        logger.debug(f"Opened {self.name} ({self._size} bytes)")

    def close(self) -> None:
        if self._file is None:
            return
        try:
            self._file.close()
        except OSError as e:
            raise_error(
                ErrorDomain.IO, IOErrorCode.CLOSE_FAILED,
                f"Unable to close file: {self.name}.", e
            )
        finally:
            self._file = None

    def _require_open(self) -> BinaryIO:
        if self._file is None:
            raise_error(
                ErrorDomain.RUNTIME, RuntimeErrorCode.VALUE_MISSING,
                f"File {self.name} is not open."
            )
        return self._file

    def seek(self, offset: int) -> None:
        stream = self._require_open()
        if offset < 0:
            raise_error(
                ErrorDomain.IO, IOErrorCode.SEEK_FAILED,
                f"Unable to seek offset {offset} in {self.name}."
            )
        try:
            stream.seek(offset, os.SEEK_SET)
        except (OSError, ValueError, OverflowError) as e:
            raise_error(
                ErrorDomain.IO, IOErrorCode.SEEK_FAILED,
                f"Unable to seek offset {offset} in {self.name}.", e
            )

    def read(self, size: int) -> bytes:
        stream = self._require_open()
        try:
            return stream.read(size)
        except OSError as e:
            raise_error(
                ErrorDomain.IO, IOErrorCode.READ_FAILED,
                f"Unable to read {size} bytes from {self.name}.", e
            )

    def get_size(self) -> int:
        self._require_open()
        return self._size


class FileObjectIOHandle(IOHandle):
    """Stream backed by a caller supplied seekable binary file object.

    The file object is not closed when the handle is closed.
    """

    def __init__(self, file_object: BinaryIO):
        for method in ('read', 'seek', 'tell'):
            if not callable(getattr(file_object, method, None)):
                raise_error(
                    ErrorDomain.ARGUMENTS, ArgumentError.INVALID_VALUE,
                    f"Invalid file object: missing {method} method."
                )
        self.file_object = file_object
        self._is_open = False
        self._size: Optional[int] = None

    @property
    def name(self) -> str:
        return str(getattr(self.file_object, 'name', '<file object>'))

    def exists(self) -> bool:
        return not getattr(self.file_object, 'closed', False)

    def is_open(self) -> bool:
        return self._is_open

    def open(self) -> None:
        if self._is_open:
            raise_error(
                ErrorDomain.RUNTIME, RuntimeErrorCode.VALUE_ALREADY_SET,
                "File object already open."
            )
        try:
            self._size = self.file_object.seek(0, os.SEEK_END)
            self.file_object.seek(0, os.SEEK_SET)
        except (OSError, ValueError) as e:
            raise_error(
                ErrorDomain.IO, IOErrorCode.OPEN_FAILED,
                "Unable to determine size of file object.", e
            )
        self._is_open = True

    def close(self) -> None:
        self._is_open = False

    def seek(self, offset: int) -> None:
        if not self._is_open:
            raise_error(
                ErrorDomain.RUNTIME, RuntimeErrorCode.VALUE_MISSING,
                "File object is not open."
            )
        try:
            self.file_object.seek(offset, os.SEEK_SET)
        except (OSError, ValueError, OverflowError) as e:
            raise_error(
                ErrorDomain.IO, IOErrorCode.SEEK_FAILED,
                f"Unable to seek offset {offset} in file object.", e
            )

    def read(self, size: int) -> bytes:
        try:
            return self.file_object.read(size)
        except (OSError, ValueError) as e:
            raise_error(
                ErrorDomain.IO, IOErrorCode.READ_FAILED,
                f"Unable to read {size} bytes from file object.", e
            )

    def get_size(self) -> int:
        return self._size


def create_io_handle(source: Union[PathType, BinaryIO]) -> IOHandle:
    """Pick the handle for a path or a file object."""
    if isinstance(source, (str, bytes, os.PathLike)):
        return FileIOHandle(source)
    return FileObjectIOHandle(source)
