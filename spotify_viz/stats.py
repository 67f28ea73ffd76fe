"""Descriptive statistics used by the distribution and scatter views.

Quantiles follow the linear-interpolation definition (position
``(n - 1) * p`` between adjacent order statistics), which is what
``pandas.Series.quantile`` computes by default.
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import pandas as pd

from .config import (
    DURATION_LEGEND_QUANTILES,
    FALLBACK_LEGEND_RANGE,
    SAMPLE_MAX_POINTS,
    WHISKER_FACTOR,
)

FNV_OFFSET: int = 2166136261
FNV_PRIME: int = 16777619


@dataclass(frozen=True)
class BoxSummary:
    album_type: str
    n: int
    q1: float
    median: float
    q3: float
    iqr: float
    low_fence: float
    high_fence: float
    low_whisker: float
    high_whisker: float
    sample: Tuple[float, ...]

    def to_dict(self) -> Dict[str, object]:
        data = asdict(self)
        data["sample"] = list(self.sample)
        return data


def _sorted_series(values: Iterable[float]) -> pd.Series:
    series = pd.Series(list(values), dtype="float64").dropna()
    return series.sort_values(ignore_index=True)


def quantile_sorted(values: Sequence[float], p: float) -> Optional[float]:
    """Linear-interpolation quantile; ``None`` for empty input."""
    series = _sorted_series(values)
    if series.empty:
        return None
    return float(series.quantile(p, interpolation="linear"))


def deterministic_sample(
    sorted_values: Sequence[float], max_points: int = SAMPLE_MAX_POINTS
) -> List[float]:
    """Keep every k-th value so that at most ``max_points`` remain.

    ``k = max(1, ceil(n / max_points))``; the first element is always kept
    and the result is identical across calls.
    """
    n = len(sorted_values)
    step = max(1, math.ceil(n / max_points)) if max_points > 0 else max(1, n)
    return [float(v) for v in list(sorted_values)[::step]]


def box_summary(
    album_type: str,
    values: Iterable[float],
    *,
    max_points: int = SAMPLE_MAX_POINTS,
) -> Optional[BoxSummary]:
    """Summarize popularity values for one album type.

    Values are clamped to ``[0, 100]`` and sorted.  Whisker endpoints are
    the most extreme observed values inside the Tukey fences
    ``Q1 - 1.5 * IQR`` and ``Q3 + 1.5 * IQR``, falling back to the group
    minimum/maximum.  Returns ``None`` when no values remain.
    """
    v = _sorted_series(values).clip(lower=0, upper=100)
    if v.empty:
        return None

    q1, median, q3 = (float(q) for q in v.quantile([0.25, 0.5, 0.75]))
    iqr = q3 - q1
    low_fence = q1 - WHISKER_FACTOR * iqr
    high_fence = q3 + WHISKER_FACTOR * iqr

    inside_low = v[v >= low_fence]
    inside_high = v[v <= high_fence]
    low_whisker = float(inside_low.min()) if not inside_low.empty else float(v.iloc[0])
    high_whisker = float(inside_high.max()) if not inside_high.empty else float(v.iloc[-1])

    return BoxSummary(
        album_type=album_type,
        n=int(len(v)),
        q1=q1,
        median=median,
        q3=q3,
        iqr=iqr,
        low_fence=low_fence,
        high_fence=high_fence,
        low_whisker=low_whisker,
        high_whisker=high_whisker,
        sample=tuple(deterministic_sample(v.tolist(), max_points)),
    )


def robust_range(
    values: Iterable[float],
    quantiles: Tuple[float, float] = DURATION_LEGEND_QUANTILES,
) -> Tuple[float, float]:
    """Outlier-resistant ``(low, high)`` range from two quantiles.

    Falls back to ``FALLBACK_LEGEND_RANGE`` for empty input; the result is
    always ordered so that ``low <= high``.
    """
    series = _sorted_series(values)
    series = series[series.abs() != float("inf")]
    if series.empty:
        return FALLBACK_LEGEND_RANGE
    lo = float(series.quantile(quantiles[0]))
    hi = float(series.quantile(quantiles[1]))
    return min(lo, hi), max(lo, hi)


def hash01(key: str) -> float:
    """Map a string to ``[0, 1)`` with a 32-bit FNV-1a hash.

    Used for reproducible jitter of overlay points.
    """
    h = FNV_OFFSET
    for ch in key:
        h ^= ord(ch)
        h = (h * FNV_PRIME) & 0xFFFFFFFF
    return (h % 1000000) / 1000000
