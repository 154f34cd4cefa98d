"""Pull LOC answers out of DNS traffic and tabulate them with pandas.

Scapy frames the DNS messages; each LOC resource record found in the
answer, authority or additional section is decoded with the record
registry and turned into one DataFrame row.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

import pandas as pd
from scapy.all import Packet, rdpcap
from scapy.layers.dns import DNS

from .loc import LOC_RR_TYPE, LocationRecord
from .wire import Cursor, WireError, decode_record_body

logger = logging.getLogger(__name__)
_module_logger = logger

DNS_SECTIONS = ("an", "ns", "ar")
SECTION_NAMES = {"an": "answer", "ns": "authority", "ar": "additional"}
CAPTURE_SUFFIXES = (".pcap", ".pcapng")


@dataclass
class LocRow:
    packet_index: int
    timestamp: Optional[pd.Timestamp]
    section: str
    rrname: str
    ttl: Optional[int]
    size: str
    size_base: int
    size_power_of_ten: int
    horizontal_precision: int
    vertical_precision: int
    latitude: str
    longitude: str
    altitude: int

    def to_dict(self) -> Dict[str, object]:
        return {
            "packet_index": self.packet_index,
            "timestamp": self.timestamp,
            "section": self.section,
            "rrname": self.rrname,
            "ttl": self.ttl,
            "size": self.size,
            "size_base": self.size_base,
            "size_power_of_ten": self.size_power_of_ten,
            "horizontal_precision": self.horizontal_precision,
            "vertical_precision": self.vertical_precision,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "altitude": self.altitude,
        }


LOC_COLUMNS = [field.name for field in fields(LocRow)]


def _rrname_text(value: object) -> str:
    if isinstance(value, bytes):
        return value.decode("ascii", errors="replace")
    return str(value)


def _rdata_bytes(rr: Packet) -> bytes:
    rdata = getattr(rr, "rdata", b"")
    if isinstance(rdata, bytes):
        return rdata
    if isinstance(rdata, str):
        return rdata.encode("latin-1")
    return bytes(rdata)


def iter_loc_answers(
    packet: Packet,
    *,
    skip_invalid: bool = True,
    logger: Optional[logging.Logger] = None,
) -> Iterator[Tuple[str, Packet, LocationRecord]]:
    """Yield ``(section, rr, record)`` for every LOC record in a DNS packet.

    Records that fail to decode are logged and skipped, or re-raised when
    ``skip_invalid`` is false.
    """
    log = logger if logger is not None else _module_logger
    if not packet.haslayer(DNS):
        return

    dns = packet[DNS]
    for section in DNS_SECTIONS:
        for rr in getattr(dns, section, None) or []:
            if getattr(rr, "type", None) != LOC_RR_TYPE:
                continue
            rdata = _rdata_bytes(rr)
            # Scapy 2.6+ leaves rdlen unset after dissection; rdata is then exactly
            # the RDLENGTH slice, so its size is the stated length.
            stated_length = getattr(rr, "rdlen", None)
            if stated_length is None:
                stated_length = len(rdata)
            try:
                record = decode_record_body(LOC_RR_TYPE, int(stated_length), Cursor(rdata), logger=log)
            except WireError as exc:
                if not skip_invalid:
                    raise
                log.warning("Skipping LOC record for %s: %s", _rrname_text(rr.rrname), exc)
                continue
            yield SECTION_NAMES[section], rr, record


class LocRecordDataFrameConverter:
    """Create a one-row-per-LOC-record DataFrame from a pcap or pcapng file."""

    def __init__(self, capture_path: str, *, skip_invalid: bool = True):
        self.capture_path = capture_path
        self.skip_invalid = skip_invalid

    def to_dataframe(self) -> pd.DataFrame:
        if not os.path.exists(self.capture_path):
            raise FileNotFoundError(f"capture file not found: {self.capture_path}")
        packets = rdpcap(self.capture_path)
        return self.rows_to_dataframe(self.rows_from_packets(packets))

    def rows_from_packets(self, packets: Iterable[Packet]) -> List[LocRow]:
        rows: List[LocRow] = []
        for packet_index, packet in enumerate(packets):
            for section, rr, record in iter_loc_answers(packet, skip_invalid=self.skip_invalid):
                rows.append(self._record_to_row(packet_index, packet, section, rr, record))
        logger.info("Decoded %d LOC record(s) from %s", len(rows), self.capture_path)
        return rows

    @staticmethod
    def rows_to_dataframe(rows: Iterable[LocRow]) -> pd.DataFrame:
        df = pd.DataFrame([row.to_dict() for row in rows], columns=LOC_COLUMNS)
        if not df.empty and "timestamp" in df.columns:
            df["timestamp"] = pd.to_datetime(df["timestamp"], utc=True, errors="coerce")
        return df

    def _record_to_row(
        self,
        packet_index: int,
        packet: Packet,
        section: str,
        rr: Packet,
        record: LocationRecord,
    ) -> LocRow:
        raw_time = getattr(packet, "time", None)
        ts: Optional[pd.Timestamp] = None
        if raw_time is not None:
            ts = pd.to_datetime(float(raw_time), unit="s", utc=True, errors="coerce")
            if ts is pd.NaT or pd.isna(ts):
                ts = None

        ttl = getattr(rr, "ttl", None)

        return LocRow(
            packet_index=packet_index,
            timestamp=ts,
            section=section,
            rrname=_rrname_text(rr.rrname),
            ttl=int(ttl) if ttl is not None else None,
            size=str(record.size),
            size_base=record.size.base,
            size_power_of_ten=record.size.power_of_ten,
            horizontal_precision=record.horizontal_precision,
            vertical_precision=record.vertical_precision,
            latitude=str(record.latitude),
            longitude=str(record.longitude),
            altitude=record.altitude,
        )


def parquet_path_for(capture_path: str) -> str:
    base, _ = os.path.splitext(capture_path)
    return f"{base}.loc.parquet"


def iter_capture_files(path: str, recursive: bool) -> Iterable[str]:
    if os.path.isfile(path):
        if path.lower().endswith(CAPTURE_SUFFIXES):
            yield path
        return

    if recursive:
        for root, _, files in os.walk(path):
            for name in sorted(files):
                if name.lower().endswith(CAPTURE_SUFFIXES):
                    yield os.path.join(root, name)
        return

    for name in sorted(os.listdir(path)):
        if name.lower().endswith(CAPTURE_SUFFIXES):
            yield os.path.join(path, name)


def convert_capture_to_parquet(capture_path: str, parquet_path: Optional[str] = None) -> str:
    output_path = parquet_path or parquet_path_for(capture_path)
    converter = LocRecordDataFrameConverter(capture_path)
    dataframe = converter.to_dataframe()
    dataframe.to_parquet(output_path, engine="pyarrow", index=False)
    return output_path
