"""Wire-level primitives shared by record decoders.

A record decoder receives the stated RDLENGTH of its record and a
:class:`Cursor` positioned at the start of the record data. Decoders are
looked up by their numeric RR type through :func:`decode_record_body`.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Type, TypeVar

_U32_BE = struct.Struct(">I")


class WireError(Exception):
    """Base class for everything that can go wrong reading record data."""

    def __eq__(self, other: object) -> bool:
        if type(other) is not type(self):
            return NotImplemented
        return self.args == other.args  # type: ignore[attr-defined]

    def __hash__(self) -> int:
        return hash((type(self), self.args))


class WireIOError(WireError):
    """The buffer ran out before a required field could be read."""

    def __init__(self, wanted: int = 0, remaining: int = 0):
        super().__init__(wanted, remaining)
        self.wanted = wanted
        self.remaining = remaining

    def __eq__(self, other: object) -> bool:
        # Every exhausted read is the same failure to the caller.
        if not isinstance(other, WireIOError):
            return NotImplemented
        return True

    def __hash__(self) -> int:
        return hash(WireIOError)

    def __str__(self) -> str:
        return f"buffer exhausted: wanted {self.wanted} byte(s), {self.remaining} remaining"


class WrongVersion(WireError):
    def __init__(self, stated_version: int, maximum_supported_version: int):
        super().__init__(stated_version, maximum_supported_version)
        self.stated_version = stated_version
        self.maximum_supported_version = maximum_supported_version

    def __str__(self) -> str:
        return (
            f"record version {self.stated_version} is newer than the "
            f"maximum supported version {self.maximum_supported_version}"
        )


@dataclass(frozen=True)
class MandatedLength:
    """The record length a record type requires."""

    length: int

    @classmethod
    def exactly(cls, length: int) -> "MandatedLength":
        return cls(length)

    def accepts(self, stated_length: int) -> bool:
        return stated_length == self.length

    def __str__(self) -> str:
        return f"exactly {self.length}"


class WrongRecordLength(WireError):
    def __init__(self, stated_length: int, mandated_length: MandatedLength):
        super().__init__(stated_length, mandated_length)
        self.stated_length = stated_length
        self.mandated_length = mandated_length

    def __str__(self) -> str:
        return f"record length {self.stated_length} is invalid, must be {self.mandated_length}"


class UnknownRecordType(WireError):
    def __init__(self, rr_type: int):
        super().__init__(rr_type)
        self.rr_type = rr_type

    def __str__(self) -> str:
        return f"no decoder registered for record type {self.rr_type}"


class Cursor:
    """Read big-endian integers from a borrowed byte buffer."""

    def __init__(self, buffer: bytes, position: int = 0):
        self._buffer = memoryview(bytes(buffer))
        self.position = position

    def __len__(self) -> int:
        return len(self._buffer)

    @property
    def remaining(self) -> int:
        return max(len(self._buffer) - self.position, 0)

    def _take(self, count: int) -> memoryview:
        if self.remaining < count:
            raise WireIOError(count, self.remaining)
        chunk = self._buffer[self.position : self.position + count]
        self.position += count
        return chunk

    def read_u8(self) -> int:
        return self._take(1)[0]

    def read_u32_be(self) -> int:
        return _U32_BE.unpack(self._take(4))[0]


RecordT = TypeVar("RecordT")

_RECORD_TYPES: Dict[int, Type[Any]] = {}


def register_record(cls: Type[RecordT]) -> Type[RecordT]:
    """Class decorator adding a record type to the decoder registry.

    The class needs ``NAME``, ``RR_TYPE`` and a ``read(stated_length, cursor)``
    classmethod.
    """
    rr_type = int(getattr(cls, "RR_TYPE"))
    existing = _RECORD_TYPES.get(rr_type)
    if existing is not None and existing is not cls:
        raise ValueError(f"Record type {rr_type} is already registered to {existing.__name__}")
    _RECORD_TYPES[rr_type] = cls
    return cls


def record_class_for(rr_type: int) -> Optional[Type[Any]]:
    return _RECORD_TYPES.get(rr_type)


def registered_record_types() -> Dict[int, str]:
    return {rr_type: cls.NAME for rr_type, cls in sorted(_RECORD_TYPES.items())}


def decode_record_body(rr_type: int, stated_length: int, cursor: Cursor, **kwargs: Any) -> Any:
    record_cls = record_class_for(rr_type)
    if record_cls is None:
        raise UnknownRecordType(rr_type)
    reader: Callable[..., Any] = record_cls.read
    return reader(stated_length, cursor, **kwargs)


def as_cursor(data: bytes | Cursor) -> Cursor:
    if isinstance(data, Cursor):
        return data
    return Cursor(data)
