"""Decoding for DNS LOC (RFC 1876) resource records."""

from .loc import (
    EQUATOR,
    LOC_RECORD_LENGTH,
    LOC_RR_TYPE,
    LOC_SUPPORTED_VERSION,
    Direction,
    LocationRecord,
    Position,
    Size,
    decode_loc,
    decode_position,
    split_size_bits,
)
from .wire import (
    Cursor,
    MandatedLength,
    UnknownRecordType,
    WireError,
    WireIOError,
    WrongRecordLength,
    WrongVersion,
    decode_record_body,
    record_class_for,
    register_record,
    registered_record_types,
)

__all__ = [
    "EQUATOR",
    "LOC_RECORD_LENGTH",
    "LOC_RR_TYPE",
    "LOC_SUPPORTED_VERSION",
    "Direction",
    "LocationRecord",
    "Position",
    "Size",
    "decode_loc",
    "decode_position",
    "split_size_bits",
    "Cursor",
    "MandatedLength",
    "UnknownRecordType",
    "WireError",
    "WireIOError",
    "WrongRecordLength",
    "WrongVersion",
    "decode_record_body",
    "record_class_for",
    "register_record",
    "registered_record_types",
]
