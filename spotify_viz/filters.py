"""Filter parameters threaded through the aggregation pipeline.

The dashboard's interactive state (year brush, duration filter, hovered or
locked album type, sample toggle) is captured in one immutable
:class:`FilterState`.  The helpers here apply each filter to a canonical
track frame and produce the short labels echoed back in the UI chips.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from typing import Optional, Tuple

import pandas as pd

from .config import (
    DEFAULT_DURATION_MODE,
    DEFAULT_DURATION_THRESHOLD,
    DEFAULT_SHOW_SAMPLE,
    YEAR_EXTENT,
    DurationMode,
)


@dataclass(frozen=True)
class FilterState:
    """Snapshot of every user-controlled filter.

    ``year_range`` of ``None`` means "all years"; ``album_type`` of
    ``None`` means no album type is hovered or locked.
    """

    year_range: Optional[Tuple[int, int]] = None
    duration_mode: DurationMode = DEFAULT_DURATION_MODE  # type: ignore[assignment]
    duration_threshold: float = DEFAULT_DURATION_THRESHOLD
    album_type: Optional[str] = None
    show_sample: bool = DEFAULT_SHOW_SAMPLE

    def __post_init__(self) -> None:
        if self.duration_mode not in ("all", "ge", "le"):
            raise ValueError(f"Unknown duration mode: {self.duration_mode!r}")

    def with_year_range(
        self, year_range: Optional[Tuple[int, int]], extent: Tuple[int, int] = YEAR_EXTENT
    ) -> "FilterState":
        if year_range is None:
            return replace(self, year_range=None)
        return replace(self, year_range=clamp_year_range(*year_range, extent=extent))

    def with_duration(self, mode: DurationMode, threshold: float) -> "FilterState":
        return replace(self, duration_mode=mode, duration_threshold=float(threshold))

    def with_album_type(self, album_type: Optional[str]) -> "FilterState":
        return replace(self, album_type=album_type or None)


def clamp_year_range(
    start: int, end: int, *, extent: Tuple[int, int] = YEAR_EXTENT
) -> Tuple[int, int]:
    """Order a year pair and clamp both ends into ``extent``."""
    if start > end:
        start, end = end, start
    lo, hi = extent
    start = max(lo, min(hi, int(start)))
    end = max(lo, min(hi, int(end)))
    return start, end


def clamp_threshold(threshold: float, extent: Tuple[float, float]) -> float:
    """Keep the duration threshold inside ``extent``.

    A degenerate or non-finite extent leaves the threshold unchanged.
    """
    lo, hi = extent
    if not (math.isfinite(lo) and math.isfinite(hi)) or lo == hi:
        return threshold
    return max(lo, min(hi, threshold))


# ---------------------------------------------------------------------------
# Row filters
# ---------------------------------------------------------------------------


def filter_years(
    df: pd.DataFrame, year_range: Optional[Tuple[int, int]], *, year_col: str = "year"
) -> pd.DataFrame:
    """Return the rows whose year lies in the inclusive ``year_range``."""
    if year_range is None:
        return df.copy()
    year_min, year_max = year_range
    mask = df[year_col].between(year_min, year_max, inclusive="both")
    return df.loc[mask].copy()


def filter_duration(
    df: pd.DataFrame, mode: DurationMode, threshold: float
) -> pd.DataFrame:
    if mode == "all" or not math.isfinite(threshold):
        return df
    if mode == "ge":
        return df.loc[df["track_duration_min"] >= threshold]
    return df.loc[df["track_duration_min"] <= threshold]


def filter_album_type(df: pd.DataFrame, album_type: Optional[str]) -> pd.DataFrame:
    if not album_type:
        return df
    return df.loc[df["album_type"] == album_type]


# ---------------------------------------------------------------------------
# Filter echo labels
# ---------------------------------------------------------------------------


def year_label(year_range: Optional[Tuple[int, int]]) -> str:
    if year_range is None:
        return "All years"
    return f"{year_range[0]}–{year_range[1]}"


def duration_label(mode: DurationMode, threshold: float) -> str:
    if mode == "all":
        return "All durations"
    symbol = "≥" if mode == "ge" else "≤"
    return f"{symbol} {threshold:.1f} min"


def album_type_label(album_type: Optional[str]) -> Optional[str]:
    return f"Type: {album_type}" if album_type else None
