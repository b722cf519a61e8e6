"""Parsing of telemetry lines into typed records."""

from __future__ import annotations

import math
import re

from models.errors import DecodeError
from models.records import DecodedRecord, DeviceKind, SampleValue

_INTEGER_TOKEN = re.compile(r"[+-]?[0-9]+")
_DECIMAL_TOKEN = re.compile(r"[+-]?(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")


def _parse_value(kind: DeviceKind, token: str, line: str) -> SampleValue:
    if kind is DeviceKind.THERMAL:
        if not _DECIMAL_TOKEN.fullmatch(token):
            raise DecodeError("invalid thermal value", line)
        value = float(token)
        if not math.isfinite(value):
            raise DecodeError("invalid thermal value", line)
        return value

    if not _INTEGER_TOKEN.fullmatch(token):
        raise DecodeError("invalid barometric value", line)
    return int(token)


def decode_line(line: str) -> DecodedRecord:
    """Decode ``<KIND> <ID> <VALUE>`` into a :class:`DecodedRecord`.

    Raises :class:`DecodeError` for an empty line, a missing or extra token,
    an unknown kind tag or a value in the wrong numeric representation.
    """
    tokens = line.split()
    if not tokens:
        raise DecodeError("empty line", line)
    if len(tokens) == 1:
        raise DecodeError("missing identifier", line)
    if len(tokens) == 2:
        raise DecodeError("missing value", line)
    if len(tokens) > 3:
        raise DecodeError("unexpected trailing tokens", line)

    tag, identifier, raw_value = tokens
    kind = DeviceKind.from_tag(tag)
    if kind is None:
        raise DecodeError("unknown kind tag", line)

    return DecodedRecord(
        kind=kind, identifier=identifier, value=_parse_value(kind, raw_value, line)
    )


class RecordDecoder:
    """Injectable wrapper around :func:`decode_line`."""

    def decode(self, line: str) -> DecodedRecord:
        return decode_line(line)
