"""
Mimic generator - Tunnel interface field tests
"""
import pytest
from pathlib import Path
import sys

sys.path.insert(0, str(Path(__file__).parent.parent))

from tunnel_interface import ObfuscationFields
from mimic_engine import generate
from mimic_settings import MimicSettings, MimicResult
from securerand import seeded


def test_apply_replaces_every_field():
    fields = ObfuscationFields(i1="<b 0xaa>", i3="<b 0xbb>", j3="<b 0xcc>", itime="999")
    quic = generate(MimicSettings.default_quic(), seeded(2))

    updated = fields.apply_mimic_result(quic)
    assert updated.i1 == quic.i1
    assert updated.i3 == ""
    assert updated.j3 == ""
    assert updated.itime == quic.itime
    assert fields.i3 == "<b 0xbb>"  # input untouched


def test_generated_fields_validate():
    for settings in (MimicSettings.default_dns(), MimicSettings.default_quic(), MimicSettings.default_sip()):
        fields = ObfuscationFields().apply_mimic_result(generate(settings, seeded(3)))
        assert fields.is_valid()
        assert fields.validation_errors() == []


@pytest.mark.parametrize("changes,expected", [
    ({"i1": "0x0102"}, "I1"),
    ({"j2": "<b 0xZZ>"}, "J2"),
    ({"i4": "<b 0x>"}, "I4"),
    ({"itime": "-5"}, "Itime"),
    ({"itime": "abc"}, "Itime"),
])
def test_validation_errors(changes, expected):
    fields = ObfuscationFields(**changes)
    errors = fields.validation_errors()
    assert len(errors) == 1
    assert errors[0].startswith(expected)
    assert not fields.is_valid()


def test_blank_fields_are_valid():
    assert ObfuscationFields().is_valid()
    assert ObfuscationFields(i2="  ", itime="").is_valid()


def test_config_lines():
    fields = ObfuscationFields().apply_mimic_result(MimicResult(i1="<b 0x01>", j1="<b 0x02>", itime="150"))
    assert fields.to_config_lines() == ["I1 = <b 0x01>", "J1 = <b 0x02>", "Itime = 150"]


if __name__ == "__main__":
    pytest.main([__file__, "-v", "--tb=short"])
