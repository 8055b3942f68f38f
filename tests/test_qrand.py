"""
Mimic generator - Secure randomization tests

Range contracts, determinism of seeded streams and rough uniformity of the
rejection sampler and the Fisher-Yates shuffle.
"""
import pytest
import threading
from pathlib import Path
import sys

import numpy as np
from scipy import stats

sys.path.insert(0, str(Path(__file__).parent.parent))

from securerand import SecureRandom, HmacDRBG, system_random, seeded, qstream


def test_seeded_streams_are_reproducible():
    """Same seed, same bytes; different seed, different bytes"""
    assert seeded(42).token_bytes(64) == seeded(42).token_bytes(64)
    assert seeded("abc").token_hex(16) == seeded(b"abc").token_hex(16)
    assert seeded(42).token_bytes(32) != seeded(43).token_bytes(32)


def test_token_bytes_lengths():
    rng = seeded(1)
    assert rng.token_bytes(0) == b""
    assert len(rng.token_bytes(1)) == 1
    assert len(rng.token_bytes(100)) == 100
    assert len(rng.token_hex(8)) == 16


def test_randint_is_inclusive():
    rng = seeded(2)
    values = {rng.randint(1, 3) for _ in range(500)}
    assert values == {1, 2, 3}
    assert rng.randint(7, 7) == 7


def test_randrange_is_half_open():
    rng = seeded(3)
    values = {rng.randrange(10, 14) for _ in range(500)}
    assert values == {10, 11, 12, 13}


def test_empty_ranges_raise():
    rng = seeded(4)
    with pytest.raises(ValueError):
        rng.randbelow(0)
    with pytest.raises(ValueError):
        rng.randrange(5, 5)
    with pytest.raises(IndexError):
        rng.choice([])
    with pytest.raises(ValueError):
        rng.sample([1, 2], 3)


def test_randbelow_uniformity():
    """Chi-square on 10 buckets does not flag bias"""
    rng = seeded(5)
    draws = np.array([rng.randbelow(10) for _ in range(5000)])
    counts = np.bincount(draws, minlength=10)
    assert counts.sum() == 5000
    assert stats.chisquare(counts).pvalue > 0.001


def test_shuffle_is_permutation_and_uniform():
    rng = seeded(6)
    base = list(range(5))
    positions = np.zeros(5, dtype=np.int64)
    for _ in range(3000):
        x = list(base)
        rng.shuffle(x)
        assert sorted(x) == base
        positions[x.index(0)] += 1
    assert stats.chisquare(positions).pvalue > 0.001


def test_sample_distinct():
    rng = seeded(7)
    picked = rng.sample(range(20), 5)
    assert len(picked) == 5
    assert len(set(picked)) == 5
    assert all(0 <= p < 20 for p in picked)


def test_system_random_is_shared():
    assert system_random() is system_random()
    assert isinstance(qstream(b"test"), SecureRandom)


def test_drbg_shared_across_threads():
    """Concurrent draws from one DRBG all complete with the right sizes"""
    drbg = HmacDRBG(b"\x01" * 32)
    out = []

    def worker():
        for _ in range(200):
            out.append(drbg.bytes(48))

    threads = [threading.Thread(target=worker) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(out) == 800
    assert all(len(b) == 48 for b in out)
    assert len(set(out)) == 800


if __name__ == "__main__":
    pytest.main([__file__, "-v", "--tb=short"])
