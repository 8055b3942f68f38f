"""
Mimic generator - shared test helpers
Field syntax checks and small wire parsers used across the test modules
"""
import re
import struct
from typing import Dict, List, Tuple

# Result field syntax
HEX_FIELD = re.compile(r"^$|^<b 0x([0-9a-fA-F]{2})+>$")
ITIME_FIELD = re.compile(r"^[0-9]+$")

SEEDS = range(25)


def field_syntax_ok(result) -> bool:
    return (
        all(HEX_FIELD.match(v) for v in result.slots().values())
        and bool(ITIME_FIELD.match(result.itime))
    )


def skip_name(wire: bytes, offset: int) -> int:
    """Offset just past an uncompressed DNS name"""
    while wire[offset]:
        offset += 1 + wire[offset]
    return offset + 1


def query_options(wire: bytes) -> List[Tuple[int, bytes]]:
    """EDNS options of a question-only DNS message (QD=1, AN=0, AR=1 OPT)"""
    offset = skip_name(wire, 12) + 4
    offset += 1 + 8  # root name, TYPE, CLASS, TTL
    (rdlen,) = struct.unpack("!H", wire[offset:offset + 2])
    offset += 2
    end = offset + rdlen
    options = []
    while offset < end:
        code, length = struct.unpack("!HH", wire[offset:offset + 4])
        options.append((code, wire[offset + 4:offset + 4 + length]))
        offset += 4 + length
    return options


def parse_sip(data: bytes) -> Tuple[str, Dict[str, List[str]], str]:
    """Split a SIP message into start line, headers (name -> values) and body"""
    head, body = data.split(b"\r\n\r\n", 1)
    lines = head.decode("utf-8").split("\r\n")
    headers: Dict[str, List[str]] = {}
    for line in lines[1:]:
        name, value = line.split(":", 1)
        headers.setdefault(name.strip(), []).append(value.strip())
    return lines[0], headers, body.decode("utf-8")


def header(headers: Dict[str, List[str]], name: str) -> str:
    values = headers[name]
    assert len(values) == 1, f"{name} repeated"
    return values[0]


def param(value: str, key: str) -> str:
    """``;key=value`` parameter from a header value"""
    match = re.search(rf";{key}=([^;>\s]+)", value)
    return match.group(1) if match else None
