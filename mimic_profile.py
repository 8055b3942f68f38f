# mimic_profile.py
"""
Size / entropy profile of generated mimics.

Samples many results for one settings value and summarises the byte length
of each slot, so two configurations (or two versions of a builder) can be
compared for detectable drift.
"""
from typing import Dict, List, Optional

import numpy as np
from scipy import stats

from mimic_engine import generate
from mimic_settings import MimicSettings, MimicResult, RESULT_SLOTS
from securerand import SecureRandom


def sample_results(settings: MimicSettings, n: int, rng: Optional[SecureRandom] = None) -> List[MimicResult]:
    return [generate(settings, rng) for _ in range(n)]


def slot_sizes(results: List[MimicResult]) -> Dict[str, np.ndarray]:
    """Byte length per slot across results (0 for empty slots)"""
    return {
        name: np.array([len(r.slot_bytes(name)) for r in results], dtype=np.int64)
        for name in RESULT_SLOTS
    }


def itime_values(results: List[MimicResult]) -> np.ndarray:
    return np.array([int(r.itime) for r in results], dtype=np.int64)


def size_summary(sizes: np.ndarray) -> Dict[str, float]:
    if sizes.size == 0:
        return {"min": 0.0, "max": 0.0, "mean": 0.0, "std": 0.0}
    return {
        "min": float(sizes.min()),
        "max": float(sizes.max()),
        "mean": float(sizes.mean()),
        "std": float(sizes.std()),
    }


def byte_entropy(data: bytes) -> float:
    """Shannon entropy in bits per byte (0..8)"""
    if not data:
        return 0.0
    counts = np.bincount(np.frombuffer(data, dtype=np.uint8), minlength=256)
    return float(stats.entropy(counts, base=2))


def size_histogram(sizes: np.ndarray, bins=16):
    hist, edges = np.histogram(sizes, bins=bins)
    return hist.tolist(), edges.tolist()


def compare_profiles(a: List[MimicResult], b: List[MimicResult]) -> Dict[str, Dict[str, float]]:
    """
    Two-sample Kolmogorov-Smirnov test on every slot that is non-empty in
    both samples. A small p-value means the size distributions differ.
    """
    sa, sb = slot_sizes(a), slot_sizes(b)
    out = {}
    for name in RESULT_SLOTS:
        x, y = sa[name], sb[name]
        if not x.any() or not y.any():
            continue
        res = stats.ks_2samp(x, y)
        out[name] = {"statistic": float(res.statistic), "pvalue": float(res.pvalue)}
    return out


def profile(settings: MimicSettings, n: int = 200, rng: Optional[SecureRandom] = None) -> Dict[str, Dict[str, float]]:
    results = sample_results(settings, n, rng)
    summary = {name: size_summary(sizes) for name, sizes in slot_sizes(results).items()}
    summary["itime"] = size_summary(itime_values(results))
    return summary


if __name__ == "__main__":
    from mimic_settings import MimicType

    for t in MimicType:
        print(f"=== {t.name} ===")
        for name, s in profile(MimicSettings.default_for(t), n=100).items():
            if s["max"]:
                print(f"  {name:6s} min={s['min']:.0f} max={s['max']:.0f} mean={s['mean']:.1f} std={s['std']:.1f}")
