"""File footer of an NK2 file."""
import struct
from dataclasses import dataclass

from ..constants import FILE_FOOTER_SIZE
from ..errors import ErrorDomain, InputError, raise_error

_FOOTER_STRUCT = struct.Struct('<IQ')


@dataclass(frozen=True)
class FileFooter:
    reserved: int
    modification_time: int

    @classmethod
    def from_bytes(cls, data: bytes) -> 'FileFooter':
        if len(data) < FILE_FOOTER_SIZE:
            raise_error(
                ErrorDomain.INPUT, InputError.INVALID_DATA,
                "Invalid file footer data: too small."
            )
        reserved, modification_time = _FOOTER_STRUCT.unpack_from(data, 0)
        return cls(reserved=reserved, modification_time=modification_time)
