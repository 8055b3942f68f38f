"""
Mimic generator - Settings model tests

Defaults, JSON codec (graceful decode), itime bounds and the result blob
encoding.
"""
import pytest
import json
from pathlib import Path
import sys

sys.path.insert(0, str(Path(__file__).parent.parent))

from mimic_settings import (
    MimicType, MimicSettings, MimicResult, hex_blob, decode_blob,
    ITIME_MIN_ALLOWED, ITIME_MAX_ALLOWED, REGENERATE_MIN, REGENERATE_MAX,
)


def test_defaults():
    s = MimicSettings()
    assert s.type is MimicType.DNS
    assert s.domain == "example.com"
    assert (s.sip_from_user, s.sip_to_user) == ("alice", "bob")
    assert (s.sip_from_domain, s.sip_to_domain) == ("atlanta.com", "biloxi.com")
    assert s.quic_version == "1"
    assert (s.itime_min, s.itime_max) == (120, 180)
    assert s.regenerate_interval_seconds == 20

    assert MimicSettings.default_quic().type is MimicType.QUIC
    assert MimicSettings.default_sip().type is MimicType.SIP
    assert MimicSettings.default_for(MimicType.SIP) == MimicSettings.default_sip()


def test_json_uses_camel_case_and_type_name():
    s = MimicSettings.default_sip().with_changes(itime_min=150)
    data = json.loads(s.to_json())
    assert data["type"] == "SIP"
    assert data["sipFromUser"] == "alice"
    assert data["itimeMin"] == 150
    assert data["regenerateIntervalSeconds"] == 20
    assert MimicSettings.from_json(s.to_json()) == s


def test_missing_keys_fall_back_to_defaults():
    s = MimicSettings.from_json('{"type": "QUIC", "quicVersion": "2"}')
    assert s == MimicSettings.default_quic().with_changes(quic_version="2")


@pytest.mark.parametrize("payload", [
    "not json",
    "",
    "[]",
    "42",
    '{"type": "FTP"}',
    '{"type": 1}',
    '{"itimeMin": "120"}',
    '{"itimeMin": true}',
    '{"domain": null}',
    '{"bogus": 1}',
    None,
])
def test_malformed_json_decodes_to_none(payload):
    """Graceful decode: never raises"""
    assert MimicSettings.from_json(payload) is None


def test_deeply_nested_json_decodes_to_none():
    """Nesting past the interpreter recursion limit is still just malformed input"""
    assert MimicSettings.from_json("[" * 100000 + "]" * 100000) is None
    assert MimicSettings.from_json('{"a":' * 100000 + "1" + "}" * 100000) is None


def test_itime_bounds_swaps_inverted_pair():
    assert MimicSettings(itime_min=120, itime_max=180).itime_bounds() == (120, 180)
    assert MimicSettings(itime_min=300, itime_max=150).itime_bounds() == (150, 300)
    assert MimicSettings(itime_min=200, itime_max=200).itime_bounds() == (200, 200)


def test_clamped():
    s = MimicSettings(itime_min=5, itime_max=9000, regenerate_interval_seconds=1).clamped()
    assert s.itime_min == ITIME_MIN_ALLOWED
    assert s.itime_max == ITIME_MAX_ALLOWED
    assert s.regenerate_interval_seconds == REGENERATE_MIN

    s = MimicSettings(regenerate_interval_seconds=600).clamped()
    assert s.regenerate_interval_seconds == REGENERATE_MAX


def test_hex_blob():
    assert hex_blob(b"") == ""
    assert hex_blob(b"\x01\xab\xff") == "<b 0x01abff>"
    assert decode_blob("<b 0x01abff>") == b"\x01\xab\xff"
    assert decode_blob("") == b""
    for bad in ("0x01", "<b 0x1>", "<b 0xzz>", "<b 0x>"):
        with pytest.raises(ValueError):
            decode_blob(bad)


def test_result_slots():
    r = MimicResult(i1="<b 0x0102>", itime="150")
    assert r.slot_bytes("i1") == b"\x01\x02"
    assert r.slot_bytes("j3") == b""
    assert list(r.slots()) == ["i1", "i2", "i3", "i4", "i5", "j1", "j2", "j3"]
    assert r.as_dict()["itime"] == "150"
    with pytest.raises(KeyError):
        r.slot_bytes("itime")


if __name__ == "__main__":
    pytest.main([__file__, "-v", "--tb=short"])
