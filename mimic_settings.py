"""
MIMIC_SETTINGS.PY - Mimic generator settings and result model

Settings are plain values: the config screen builds or loads them and passes
them into the generator on every call (initial apply, manual regenerate,
timer tick). Results are produced fresh each call and merged into the tunnel
interface fields by the caller.
"""
import json
import logging
import re
from dataclasses import dataclass, asdict, replace
from enum import Enum
from typing import Any, Dict, Optional, Tuple

logger = logging.getLogger("MIMIC")


class MimicType(Enum):
    """Protocols a mimic can imitate"""
    DNS = "DNS"
    QUIC = "QUIC"
    SIP = "SIP"


# Bounds enforced by the settings screen (the generator itself does not check them)
ITIME_MIN_ALLOWED = 100
ITIME_MAX_ALLOWED = 600
REGENERATE_MIN = 20
REGENERATE_MAX = 60
DEFAULT_REGENERATE_INTERVAL = 20

# JSON key -> attribute name
_JSON_FIELDS = {
    "type": "type",
    "domain": "domain",
    "sipFromUser": "sip_from_user",
    "sipToUser": "sip_to_user",
    "sipFromDomain": "sip_from_domain",
    "sipToDomain": "sip_to_domain",
    "quicVersion": "quic_version",
    "itimeMin": "itime_min",
    "itimeMax": "itime_max",
    "regenerateIntervalSeconds": "regenerate_interval_seconds",
}

_INT_FIELDS = {"itime_min", "itime_max", "regenerate_interval_seconds"}


@dataclass(frozen=True)
class MimicSettings:
    """Generator configuration for one mimic type"""
    type: MimicType = MimicType.DNS
    domain: str = "example.com"

    # SIP identities
    sip_from_user: str = "alice"
    sip_to_user: str = "bob"
    sip_from_domain: str = "atlanta.com"
    sip_to_domain: str = "biloxi.com"

    # "1", "2" or "draft"
    quic_version: str = "1"

    # Timing
    itime_min: int = 120
    itime_max: int = 180
    regenerate_interval_seconds: int = DEFAULT_REGENERATE_INTERVAL

    @classmethod
    def default_dns(cls) -> "MimicSettings":
        return cls(type=MimicType.DNS)

    @classmethod
    def default_quic(cls) -> "MimicSettings":
        return cls(type=MimicType.QUIC)

    @classmethod
    def default_sip(cls) -> "MimicSettings":
        return cls(type=MimicType.SIP)

    @classmethod
    def default_for(cls, mimic_type: MimicType) -> "MimicSettings":
        return cls(type=mimic_type)

    def with_changes(self, **changes) -> "MimicSettings":
        return replace(self, **changes)

    def itime_bounds(self) -> Tuple[int, int]:
        """
        Inclusive itime range for the random draw.

        An inverted pair (itime_min > itime_max) is swapped rather than
        rejected, so a draw is always defined.
        """
        lo, hi = self.itime_min, self.itime_max
        if lo > hi:
            lo, hi = hi, lo
        return lo, hi

    def clamped(self) -> "MimicSettings":
        """Copy with timing fields coerced into the ranges the settings screen allows"""
        return replace(
            self,
            itime_min=_coerce(self.itime_min, ITIME_MIN_ALLOWED, ITIME_MAX_ALLOWED),
            itime_max=_coerce(self.itime_max, ITIME_MIN_ALLOWED, ITIME_MAX_ALLOWED),
            regenerate_interval_seconds=_coerce(
                self.regenerate_interval_seconds, REGENERATE_MIN, REGENERATE_MAX
            ),
        )

    # ==================== JSON ====================

    def to_dict(self) -> Dict[str, Any]:
        out = {}
        for key, attr in _JSON_FIELDS.items():
            value = getattr(self, attr)
            out[key] = value.name if isinstance(value, MimicType) else value
        return out

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_dict(cls, data: Any) -> Optional["MimicSettings"]:
        """
        Build settings from a decoded JSON object.

        Returns None for anything that is not a well-formed settings object:
        unknown keys, wrong value types or an unknown type name. Missing keys
        fall back to their defaults.
        """
        if not isinstance(data, dict):
            return None

        kwargs = {}
        for key, value in data.items():
            attr = _JSON_FIELDS.get(key)
            if attr is None:
                return None

            if attr == "type":
                if not isinstance(value, str) or value not in MimicType.__members__:
                    return None
                kwargs[attr] = MimicType[value]
            elif attr in _INT_FIELDS:
                # bool is an int subclass; JSON true/false is not a number here
                if isinstance(value, bool) or not isinstance(value, int):
                    return None
                kwargs[attr] = value
            else:
                if not isinstance(value, str):
                    return None
                kwargs[attr] = value

        return cls(**kwargs)

    @classmethod
    def from_json(cls, text: Any) -> Optional["MimicSettings"]:
        """Decode settings JSON; malformed input yields None, never an exception"""
        try:
            data = json.loads(text)
        except (TypeError, ValueError, RecursionError) as e:
            logger.debug(f"[SETTINGS] Rejected settings payload: {e}")
            return None
        return cls.from_dict(data)


def _coerce(value: int, lo: int, hi: int) -> int:
    return max(lo, min(hi, value))


# ==================== RESULT ====================

RESULT_SLOTS = ("i1", "i2", "i3", "i4", "i5", "j1", "j2", "j3")

HEX_BLOB_PATTERN = re.compile(r"^<b 0x((?:[0-9a-fA-F]{2})+)>$")


@dataclass(frozen=True)
class MimicResult:
    """
    One generated mimic.

    Slot fields are either empty or ``<b 0xHEX>``; itime is a decimal string.
    """
    i1: str = ""
    i2: str = ""
    i3: str = ""
    i4: str = ""
    i5: str = ""
    j1: str = ""
    j2: str = ""
    j3: str = ""
    itime: str = ""

    def as_dict(self) -> Dict[str, str]:
        return asdict(self)

    def slots(self) -> Dict[str, str]:
        return {name: getattr(self, name) for name in RESULT_SLOTS}

    def slot_bytes(self, name: str) -> bytes:
        if name not in RESULT_SLOTS:
            raise KeyError(name)
        return decode_blob(getattr(self, name))


def hex_blob(data: bytes) -> str:
    """Wrap raw bytes as ``<b 0x...>`` (lowercase); no bytes -> empty field"""
    if not data:
        return ""
    return f"<b 0x{data.hex()}>"


def decode_blob(value: str) -> bytes:
    """Inverse of hex_blob; raises ValueError for anything off-syntax"""
    if value == "":
        return b""
    match = HEX_BLOB_PATTERN.match(value)
    if not match:
        raise ValueError(f"not a hex blob: {value[:32]!r}")
    return bytes.fromhex(match.group(1))
