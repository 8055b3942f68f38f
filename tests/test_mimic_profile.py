"""
Mimic generator - Size/entropy profile tests
"""
import pytest
from pathlib import Path
import sys

import numpy as np

sys.path.insert(0, str(Path(__file__).parent.parent))

from mimic_profile import (
    sample_results, slot_sizes, itime_values, size_summary,
    byte_entropy, size_histogram, compare_profiles, profile,
)
from mimic_settings import MimicSettings
from securerand import seeded


def test_dns_slot_sizes():
    results = sample_results(MimicSettings.default_dns(), 50, seeded(1))
    sizes = slot_sizes(results)
    assert sizes["j1"].min() >= 8 and sizes["j1"].max() <= 23
    assert sizes["j2"].min() >= 4 and sizes["j2"].max() <= 15
    assert not sizes["j3"].any()
    assert (sizes["i1"] > 12).all()


def test_quic_sizes_are_fixed_where_expected():
    sizes = slot_sizes(sample_results(MimicSettings.default_quic(), 40, seeded(2)))
    assert (sizes["i2"] == 30).all()
    assert (sizes["j1"] == 8).all()
    assert sizes["i1"].min() >= 210


def test_itime_values_in_range():
    values = itime_values(sample_results(MimicSettings.default_sip(), 40, seeded(3)))
    assert values.min() >= 120 and values.max() <= 180


def test_size_summary():
    s = size_summary(np.array([2, 4, 6]))
    assert s == {"min": 2.0, "max": 6.0, "mean": 4.0, "std": pytest.approx(1.63299, rel=1e-4)}
    assert size_summary(np.array([], dtype=np.int64))["max"] == 0.0


def test_byte_entropy():
    assert byte_entropy(b"") == 0.0
    assert byte_entropy(b"\x00" * 100) == 0.0
    assert byte_entropy(bytes(range(256))) == pytest.approx(8.0)
    assert byte_entropy(b"\x00\x01" * 50) == pytest.approx(1.0)


def test_random_slots_look_random():
    results = sample_results(MimicSettings.default_quic(), 60, seeded(4))
    junk = b"".join(r.slot_bytes("j1") for r in results)
    assert byte_entropy(junk) > 6.5


def test_size_histogram():
    sizes = slot_sizes(sample_results(MimicSettings.default_quic(), 30, seeded(5)))["i1"]
    hist, edges = size_histogram(sizes, bins=8)
    assert sum(hist) == 30
    assert len(edges) == 9


def test_compare_profiles():
    sip = sample_results(MimicSettings.default_sip(), 40, seeded(6))
    quic = sample_results(MimicSettings.default_quic(), 40, seeded(7))

    same = compare_profiles(sip, sip)
    assert same["i1"]["statistic"] == 0.0
    assert same["i1"]["pvalue"] == pytest.approx(1.0)

    diff = compare_profiles(sip, quic)
    assert set(diff) == {"i1", "i2", "j1"}
    assert diff["i2"]["pvalue"] < 1e-6


def test_profile_summary():
    summary = profile(MimicSettings.default_dns(), n=30, rng=seeded(8))
    assert summary["j3"]["max"] == 0.0
    assert 120 <= summary["itime"]["min"] <= summary["itime"]["max"] <= 180


if __name__ == "__main__":
    pytest.main([__file__, "-v", "--tb=short"])
