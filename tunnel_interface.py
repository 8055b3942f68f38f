"""
TUNNEL_INTERFACE.PY - Obfuscation fields of a tunnel interface

The tunnel config carries the junk-packet fields as opaque strings. A mimic
result is merged into them wholesale; validation is purely syntactic.
"""
import re
from dataclasses import dataclass, replace
from typing import List

from mimic_settings import MimicResult, RESULT_SLOTS

BLOB_FIELD_PATTERN = re.compile(r"^<b 0x[0-9a-fA-F]+>$")
ITIME_PATTERN = re.compile(r"^[0-9]+$")


@dataclass(frozen=True)
class ObfuscationFields:
    i1: str = ""
    i2: str = ""
    i3: str = ""
    i4: str = ""
    i5: str = ""
    j1: str = ""
    j2: str = ""
    j3: str = ""
    itime: str = ""

    def apply_mimic_result(self, result: MimicResult) -> "ObfuscationFields":
        """Copy with every field taken from ``result``, empty ones included"""
        return replace(self, **result.as_dict())

    def validation_errors(self) -> List[str]:
        errors = []
        for name in RESULT_SLOTS:
            value = getattr(self, name)
            if value.strip() and not BLOB_FIELD_PATTERN.match(value):
                errors.append(f"{name.upper()}: expected <b 0xHEX>")
        if self.itime.strip() and not ITIME_PATTERN.match(self.itime):
            errors.append("Itime: expected a non-negative integer")
        return errors

    def is_valid(self) -> bool:
        return not self.validation_errors()

    def to_config_lines(self) -> List[str]:
        """``I1 = <b 0x...>`` lines for the non-blank fields, in config order"""
        lines = [f"{name.upper()} = {getattr(self, name)}"
                 for name in RESULT_SLOTS if getattr(self, name).strip()]
        if self.itime.strip():
            lines.append(f"Itime = {self.itime}")
        return lines
