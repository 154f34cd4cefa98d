import logging
import os
import tempfile
import unittest

import pandas as pd
from scapy.all import IP, UDP, Ether, wrpcap  # type: ignore
from scapy.layers.dns import DNS, DNSQR, DNSRR  # type: ignore

from dnsloc.capture import (
    LOC_COLUMNS,
    LocRecordDataFrameConverter,
    convert_capture_to_parquet,
    iter_capture_files,
    iter_loc_answers,
    parquet_path_for,
)
from dnsloc.wire import WrongRecordLength, WrongVersion

LOC_RDATA = bytes.fromhex("00320000" "8b0d2c8c" "7ff8fca5" "00989680")


def loc_response(*rdatas: bytes, name: str = "greenwich.example.") -> Ether:
    answers = [DNSRR(rrname=name, type=29, rclass=1, ttl=300, rdata=rdata) for rdata in rdatas]
    dns = DNS(id=7, qr=1, qd=[DNSQR(qname=name, qtype=29)], an=answers, qdcount=1, ancount=len(answers))
    packet = (
        Ether(src="00:00:5e:00:53:02", dst="00:00:5e:00:53:01")
        / IP(src="192.0.2.53", dst="192.0.2.10")
        / UDP(sport=53, dport=40000)
        / dns
    )
    # Re-dissect so the records look exactly as they would coming off a capture.
    parsed = Ether(bytes(packet))
    parsed.time = 1700000000.5
    return parsed


class TestIterLocAnswers(unittest.TestCase):
    def test_yields_decoded_answer(self):
        results = list(iter_loc_answers(loc_response(LOC_RDATA)))
        self.assertEqual(len(results), 1)
        section, rr, record = results[0]
        self.assertEqual(section, "answer")
        self.assertEqual(len(rr.rdata), 16)
        self.assertEqual(str(record.latitude), "51°30′12.748″ N")
        self.assertEqual(str(record.longitude), "0°7′39.611″ W")
        self.assertEqual(record.altitude, 10000000)

    def test_every_loc_answer_is_yielded(self):
        results = list(iter_loc_answers(loc_response(LOC_RDATA, LOC_RDATA)))
        self.assertEqual(len(results), 2)
        self.assertEqual([section for section, _, _ in results], ["answer", "answer"])

    def test_stated_length_comes_from_rdata(self):
        oversized = LOC_RDATA + bytes([0x12, 0x34, 0x56])
        with self.assertRaises(WrongRecordLength) as ctx:
            list(iter_loc_answers(loc_response(oversized), skip_invalid=False))
        self.assertEqual(ctx.exception.stated_length, 19)

    def test_injected_logger_receives_skip_warning(self):
        sink = logging.getLogger("dnsloc.tests.capture")
        bad = bytes([0x80]) + LOC_RDATA[1:]
        with self.assertLogs(sink, level="WARNING") as captured:
            results = list(iter_loc_answers(loc_response(bad), logger=sink))
        self.assertEqual(results, [])
        self.assertTrue(any("Skipping LOC record" in line for line in captured.output))

    def test_packet_without_dns_is_ignored(self):
        packet = Ether() / IP() / UDP(sport=1234, dport=4321)
        self.assertEqual(list(iter_loc_answers(packet)), [])

    def test_invalid_record_is_skipped_and_logged(self):
        bad = bytes([0x80]) + LOC_RDATA[1:]
        with self.assertLogs("dnsloc.capture", level="WARNING") as captured:
            results = list(iter_loc_answers(loc_response(bad, LOC_RDATA)))
        self.assertEqual(len(results), 1)
        self.assertTrue(any("Skipping LOC record" in line for line in captured.output))

    def test_invalid_record_raises_when_not_skipping(self):
        bad = bytes([0x80]) + LOC_RDATA[1:]
        with self.assertRaises(WrongVersion):
            list(iter_loc_answers(loc_response(bad), skip_invalid=False))


class TestLocRecordDataFrameConverter(unittest.TestCase):
    def test_rows_from_packets(self):
        converter = LocRecordDataFrameConverter("in-memory")
        other = Ether() / IP() / UDP(sport=1234, dport=4321)
        rows = converter.rows_from_packets([other, loc_response(LOC_RDATA)])
        self.assertEqual(len(rows), 1)

        row = rows[0].to_dict()
        self.assertEqual(row["packet_index"], 1)
        self.assertEqual(row["rrname"], "greenwich.example.")
        self.assertEqual(row["ttl"], 300)
        self.assertEqual(row["size"], "3e2")
        self.assertEqual(row["latitude"], "51°30′12.748″ N")

        ts = row["timestamp"]
        self.assertIsInstance(ts, pd.Timestamp)
        self.assertEqual(str(ts.tz), "UTC")
        self.assertEqual(ts.value, pd.Timestamp("2023-11-14T22:13:20.5Z").value)

    def test_empty_dataframe_keeps_columns(self):
        df = LocRecordDataFrameConverter.rows_to_dataframe([])
        self.assertTrue(df.empty)
        self.assertEqual(list(df.columns), LOC_COLUMNS)

    def test_missing_capture(self):
        with self.assertRaises(FileNotFoundError):
            LocRecordDataFrameConverter("/tmp/does_not_exist.pcap").to_dataframe()

    def test_convert_capture_to_parquet(self):
        with tempfile.TemporaryDirectory() as td:
            capture = os.path.join(td, "loc.pcap")
            wrpcap(capture, [loc_response(LOC_RDATA), loc_response(LOC_RDATA, name="other.example.")])

            output = convert_capture_to_parquet(capture)
            self.assertEqual(output, os.path.join(td, "loc.loc.parquet"))

            frame = pd.read_parquet(output)
            self.assertEqual(len(frame), 2)
            self.assertEqual(list(frame["rrname"]), ["greenwich.example.", "other.example."])
            self.assertEqual(list(frame["altitude"]), [10000000, 10000000])


class TestCaptureFiles(unittest.TestCase):
    def test_parquet_path_for(self):
        self.assertEqual(parquet_path_for("/data/run1.pcapng"), "/data/run1.loc.parquet")

    def test_iter_capture_files(self):
        with tempfile.TemporaryDirectory() as td:
            nested = os.path.join(td, "nested")
            os.makedirs(nested)
            for path in (os.path.join(td, "a.pcap"), os.path.join(td, "notes.txt"), os.path.join(nested, "b.PCAPNG")):
                with open(path, "wb"):
                    pass

            flat = list(iter_capture_files(td, recursive=False))
            self.assertEqual(flat, [os.path.join(td, "a.pcap")])

            deep = sorted(iter_capture_files(td, recursive=True))
            self.assertEqual(deep, sorted([os.path.join(td, "a.pcap"), os.path.join(nested, "b.PCAPNG")]))

            self.assertEqual(list(iter_capture_files(os.path.join(td, "notes.txt"), recursive=False)), [])


if __name__ == "__main__":
    unittest.main()
