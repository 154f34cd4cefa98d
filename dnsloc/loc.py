"""LOC (location) record decoding.

A LOC record points to a location on Earth using its latitude, longitude
and altitude, along with the size of the entity there and how precisely
it is known. The record data is a fixed 16-byte structure::

    version (1) | size (1) | horiz pre (1) | vert pre (1)
    latitude (4) | longitude (4) | altitude (4)

References: RFC 1876, "A Means for Expressing Location Information in the
Domain Name System" (January 1996).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from .wire import Cursor, MandatedLength, WrongRecordLength, WrongVersion, as_cursor, register_record

LOC_RR_TYPE = 29
LOC_RECORD_LENGTH = 16
LOC_SUPPORTED_VERSION = 0

# 2^31 milliarcseconds marks the equator (latitude) or prime meridian (longitude).
EQUATOR = 0x8000_0000
_U32_MAX = 0xFFFF_FFFF

_MS_PER_SECOND = 1000
_SECONDS_PER_MINUTE = 60
_MINUTES_PER_DEGREE = 60


class Direction(Enum):
    """Which side of the equator or prime meridian a position lies on."""

    NORTH = "N"
    EAST = "E"
    SOUTH = "S"
    WEST = "W"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Size:
    """A size in centimetres as a base and a power of ten.

    Both nibbles are kept exactly as they appeared on the wire.
    """

    base: int
    power_of_ten: int

    def __str__(self) -> str:
        return f"{self.base}e{self.power_of_ten}"


@dataclass(frozen=True)
class Position:
    """A position on one of the world's axes."""

    degrees: int
    arcminutes: int
    arcseconds: int
    milliarcseconds: int
    direction: Direction

    def __str__(self) -> str:
        text = f"{self.degrees}°{self.arcminutes}′{self.arcseconds}"
        if self.milliarcseconds != 0:
            text += f".{self.milliarcseconds:03d}"
        return f"{text}″ {self.direction}"


def decode_position(raw: int, vertical: bool) -> Position:
    """Convert a wire coordinate into the position it represents.

    ``raw`` counts milliarcseconds with 2^31 as the equator or prime
    meridian. ``vertical`` selects latitude (North/South) over longitude
    (East/West).
    """
    if not 0 <= raw <= _U32_MAX:
        raise ValueError(f"Coordinate {raw!r} does not fit in 32 unsigned bits")

    if raw >= EQUATOR:
        offset = raw - EQUATOR
        direction = Direction.NORTH if vertical else Direction.EAST
    else:
        offset = EQUATOR - raw
        direction = Direction.SOUTH if vertical else Direction.WEST

    milliarcseconds = offset % _MS_PER_SECOND
    total_arcseconds = offset // _MS_PER_SECOND

    arcseconds = total_arcseconds % _SECONDS_PER_MINUTE
    total_arcminutes = total_arcseconds // _SECONDS_PER_MINUTE

    arcminutes = total_arcminutes % _MINUTES_PER_DEGREE
    degrees = total_arcminutes // _MINUTES_PER_DEGREE

    return Position(
        degrees=degrees,
        arcminutes=arcminutes,
        arcseconds=arcseconds,
        milliarcseconds=milliarcseconds,
        direction=direction,
    )


def split_size_bits(size_bits: int) -> Size:
    if not 0 <= size_bits <= 0xFF:
        raise ValueError(f"Size byte {size_bits!r} does not fit in 8 bits")
    return Size(base=size_bits >> 4, power_of_ten=size_bits & 0b0000_1111)


@register_record
@dataclass(frozen=True)
class LocationRecord:
    """A decoded LOC record.

    ``horizontal_precision`` and ``vertical_precision`` are the raw
    precision bytes. ``altitude`` is in centimetres above a base of
    100,000 metres below the WGS84 reference spheroid; the base is not
    subtracted.
    """

    NAME = "LOC"
    RR_TYPE = LOC_RR_TYPE

    size: Size
    horizontal_precision: int
    vertical_precision: int
    latitude: Position
    longitude: Position
    altitude: int

    @classmethod
    def read(
        cls,
        stated_length: int,
        cursor: Cursor,
        logger: Optional[logging.Logger] = None,
    ) -> "LocationRecord":
        log = logger if logger is not None else logging.getLogger(__name__)

        version = cursor.read_u8()
        log.debug("Parsed version -> %r", version)

        if version != LOC_SUPPORTED_VERSION:
            raise WrongVersion(version, LOC_SUPPORTED_VERSION)

        mandated_length = MandatedLength.exactly(LOC_RECORD_LENGTH)
        if not mandated_length.accepts(stated_length):
            raise WrongRecordLength(stated_length, mandated_length)

        size_bits = cursor.read_u8()
        log.debug("Parsed size bits -> %s", f"{size_bits:#010b}")
        size = split_size_bits(size_bits)
        log.debug("Split size into base %r and power of ten %r", size.base, size.power_of_ten)

        horizontal_precision = cursor.read_u8()
        log.debug("Parsed horizontal precision -> %r", horizontal_precision)

        vertical_precision = cursor.read_u8()
        log.debug("Parsed vertical precision -> %r", vertical_precision)

        latitude_num = cursor.read_u32_be()
        latitude = decode_position(latitude_num, vertical=True)
        log.debug("Parsed latitude -> %r (%s)", latitude_num, latitude)

        longitude_num = cursor.read_u32_be()
        longitude = decode_position(longitude_num, vertical=False)
        log.debug("Parsed longitude -> %r (%s)", longitude_num, longitude)

        altitude = cursor.read_u32_be()
        log.debug("Parsed altitude -> %r", altitude)

        return cls(
            size=size,
            horizontal_precision=horizontal_precision,
            vertical_precision=vertical_precision,
            latitude=latitude,
            longitude=longitude,
            altitude=altitude,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "size": str(self.size),
            "size_base": self.size.base,
            "size_power_of_ten": self.size.power_of_ten,
            "horizontal_precision": self.horizontal_precision,
            "vertical_precision": self.vertical_precision,
            "latitude": str(self.latitude),
            "longitude": str(self.longitude),
            "altitude": self.altitude,
        }

    def __str__(self) -> str:
        return (
            f"{self.latitude} {self.longitude} {self.altitude} "
            f"({self.size}, {self.horizontal_precision}, {self.vertical_precision})"
        )


def decode_loc(
    stated_length: int,
    data: bytes | Cursor,
    logger: Optional[logging.Logger] = None,
) -> LocationRecord:
    """Decode LOC record data from bytes or an existing cursor."""
    return LocationRecord.read(stated_length, as_cursor(data), logger=logger)
