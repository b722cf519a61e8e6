from __future__ import annotations

import pytest

from models.errors import DecodeError
from models.records import DecodedRecord, DeviceKind
from services.decoder import RecordDecoder, decode_line


def test_decode_thermal_line() -> None:
    record = decode_line("T TEMP-001 25.5")

    assert record == DecodedRecord(kind=DeviceKind.THERMAL, identifier="TEMP-001", value=25.5)
    assert isinstance(record.value, float)


def test_decode_barometric_line() -> None:
    record = decode_line("P PRES-100 101325")

    assert record.kind is DeviceKind.BAROMETRIC
    assert record.identifier == "PRES-100"
    assert record.value == 101325
    assert isinstance(record.value, int)


def test_decode_accepts_lowercase_tags_and_extra_whitespace() -> None:
    assert decode_line("t  temp-1\t19").kind is DeviceKind.THERMAL
    assert decode_line("  p PRES-1 7  ").kind is DeviceKind.BAROMETRIC


def test_identifier_is_case_sensitive() -> None:
    assert decode_line("T Temp-1 1.0").identifier == "Temp-1"


@pytest.mark.parametrize(
    ("line", "reason"),
    [
        ("T TEMP-1 abc", "invalid thermal value"),
        ("T TEMP-1 nan", "invalid thermal value"),
        ("T TEMP-1 inf", "invalid thermal value"),
        ("T TEMP-1 1_000.5", "invalid thermal value"),
        ("T TEMP-1 1e999", "invalid thermal value"),
        ("P PRES-1 101.5", "invalid barometric value"),
        ("P PRES-1 101_325", "invalid barometric value"),
        ("P PRES-1 0x10", "invalid barometric value"),
        ("P PRES-1 \u0661\u0662", "invalid barometric value"),
        ("X ID-1 5", "unknown kind tag"),
        ("TP ID-1 5", "unknown kind tag"),
        ("T TEMP-1", "missing value"),
        ("T", "missing identifier"),
        ("", "empty line"),
        ("   ", "empty line"),
        ("T TEMP-1 25.5 extra", "unexpected trailing tokens"),
    ],
)
def test_decode_failures(line: str, reason: str) -> None:
    with pytest.raises(DecodeError) as excinfo:
        decode_line(line)

    assert excinfo.value.reason == reason
    assert excinfo.value.line == line


def test_decoder_wrapper_delegates() -> None:
    assert RecordDecoder().decode("P B 2") == decode_line("P B 2")


def test_signed_and_exponent_values_are_plain_decimal() -> None:
    assert decode_line("P PRES-1 +5").value == 5
    assert decode_line("P PRES-1 -12").value == -12
    assert decode_line("T TEMP-1 -3.").value == -3.0
    assert decode_line("T TEMP-1 .5").value == 0.5
    assert decode_line("T TEMP-1 2.5e1").value == 25.0
