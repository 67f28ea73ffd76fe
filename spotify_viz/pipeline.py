"""Core pipeline logic: derive the three dashboard views from track rows.

This module turns the canonical track frame (see :mod:`normalize`) and a
:class:`~spotify_viz.filters.FilterState` into the plain data structures
consumed by the charts:

* A complete year x genre matrix of weighted track counts for the top
  genres, plus the ranked genre list and its color map.
* The top-N tracks by popularity with a duration color per track and the
  robust duration range used by the color legend.
* Per-album-type popularity distributions (quartiles, whiskers and a
  deterministic sample of points).

Every function is a pure recomputation from its inputs; nothing is cached
or mutated between calls.  The primary entry point is
:func:`build_dashboard`.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

import pandas as pd
from plotly.colors import sample_colorscale

from .config import (
    ALBUM_TYPE_ORDER,
    DURATION_LEGEND_QUANTILES,
    DURATION_PALETTE,
    FALLBACK_GENRE_COLOR,
    FALLBACK_LEGEND_RANGE,
    FOLLOWER_DOMAIN,
    GENRE_PALETTE,
    HOVER_GENRE_LIMIT,
    SAMPLE_MAX_POINTS,
    TOP_GENRE_LIMIT,
    TOP_N_TRACKS,
    YEAR_EXTENT,
)
from .filters import (
    FilterState,
    album_type_label,
    clamp_threshold,
    duration_label,
    filter_album_type,
    filter_duration,
    filter_years,
    year_label,
)
from .stats import BoxSummary, box_summary, hash01, robust_range

# Module‑level logger
logger = logging.getLogger(__name__)

# Evenly spaced stops of the duration palette
DURATION_COLORSCALE: List[List[object]] = [
    [i / (len(DURATION_PALETTE) - 1), color] for i, color in enumerate(DURATION_PALETTE)
]


# ---------------------------------------------------------------------------
# Output containers
# ---------------------------------------------------------------------------


@dataclass(frozen=True, eq=False)
class GenreYearView:
    matrix: pd.DataFrame
    top_genres: List[str]
    color_map: Dict[str, str]
    year_range: Tuple[int, int]


@dataclass(frozen=True, eq=False)
class ScatterView:
    tracks: pd.DataFrame
    legend_min: float
    legend_max: float


@dataclass(frozen=True, eq=False)
class DashboardPayload:
    """Everything the rendering layer needs for one set of filters."""

    genre: GenreYearView
    scatter: ScatterView
    distributions: List[BoxSummary]
    duration_extent: Tuple[float, float]
    duration_threshold: float
    filters: FilterState
    labels: Dict[str, Optional[str]] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# (a) Genre weighting
# ---------------------------------------------------------------------------


def _explode_genres(tracks: pd.DataFrame) -> pd.DataFrame:
    """One row per (track, genre occurrence) with weight ``1 / k``.

    ``k`` is the number of valid genres of the track, so the weights of
    one track always sum to 1.  Tracks without genres are dropped.
    """
    if tracks.empty:
        return pd.DataFrame(columns=["year", "genre", "weight"])
    base = pd.DataFrame(
        {
            "year": tracks["year"],
            "genre": tracks["genres"],
            "k": tracks["genres"].map(len),
        }
    )
    base = base.loc[base["k"] > 0]
    exploded = base.explode("genre", ignore_index=True)
    exploded["weight"] = 1.0 / exploded["k"].astype(float)
    return exploded[["year", "genre", "weight"]]


def genre_weights(tracks: pd.DataFrame) -> pd.Series:
    """Total weighted frequency per genre, in first-seen order."""
    exploded = _explode_genres(tracks)
    if exploded.empty:
        return pd.Series(dtype="float64", name="weight")
    return exploded.groupby("genre", sort=False)["weight"].sum()


def select_top_genres(weights: pd.Series, limit: int = TOP_GENRE_LIMIT) -> List[str]:
    """Rank genres by weight (descending); ties keep first-seen order."""
    ranked = weights.sort_values(ascending=False, kind="stable")
    return [str(g) for g in ranked.head(limit).index]


def genre_color_map(top_genres: Sequence[str]) -> Dict[str, str]:
    return {g: GENRE_PALETTE[i % len(GENRE_PALETTE)] for i, g in enumerate(top_genres)}


def genre_year_matrix(
    tracks: pd.DataFrame,
    top_genres: Sequence[str],
    year_range: Tuple[int, int],
) -> pd.DataFrame:
    """Weighted counts for every (year, top genre) pair in ``year_range``.

    A track keeps its full-genre weight ``1 / k`` for each of its genres
    that is in ``top_genres``; its remaining share is not redistributed.
    Empty cells are zero-filled so the result is never sparse.

    Parameters
    ----------
    tracks : pd.DataFrame
        Canonical track frame with ``year`` and ``genres`` columns.
    top_genres : Sequence[str]
        Genres to report, in output order.
    year_range : Tuple[int, int]
        Inclusive year bounds.

    Returns
    -------
    pd.DataFrame
        Columns ``year``, ``genre``, ``count``; one row per year (ascending)
        and genre (in ``top_genres`` order).
    """
    year_min, year_max = year_range
    in_range = filter_years(tracks, year_range)
    exploded = _explode_genres(in_range)
    exploded = exploded.loc[exploded["genre"].isin(list(top_genres))]
    lookup = exploded.groupby(["year", "genre"])["weight"].sum().to_dict()

    records = [
        {"year": year, "genre": genre, "count": float(lookup.get((year, genre), 0.0))}
        for year in range(year_min, year_max + 1)
        for genre in top_genres
    ]
    return pd.DataFrame.from_records(records, columns=["year", "genre", "count"])


def build_genre_view(
    tracks: pd.DataFrame,
    year_range: Tuple[int, int] = YEAR_EXTENT,
    *,
    limit: int = TOP_GENRE_LIMIT,
) -> GenreYearView:
    in_range = filter_years(tracks, year_range)
    top_genres = select_top_genres(genre_weights(in_range), limit)
    matrix = genre_year_matrix(in_range, top_genres, year_range)
    logger.debug("Top genres for %s: %s", year_range, top_genres)
    return GenreYearView(
        matrix=matrix,
        top_genres=top_genres,
        color_map=genre_color_map(top_genres),
        year_range=year_range,
    )


def stack_matrix(view: GenreYearView) -> pd.DataFrame:
    """Wide year-indexed table (one column per top genre) for stacking."""
    if view.matrix.empty:
        return pd.DataFrame(index=pd.Index([], name="year"), columns=view.top_genres)
    wide = view.matrix.pivot(index="year", columns="genre", values="count")
    return wide.reindex(columns=view.top_genres)


def year_breakdown(
    view: GenreYearView, year: int, limit: int = HOVER_GENRE_LIMIT
) -> List[Tuple[str, float]]:
    """Largest genres of one year, descending, for hover details."""
    rows = view.matrix.loc[view.matrix["year"] == year]
    rows = rows.sort_values("count", ascending=False, kind="stable").head(limit)
    return [(str(g), float(c)) for g, c in zip(rows["genre"], rows["count"])]


def genre_color(view: GenreYearView, genre: str) -> str:
    return view.color_map.get(genre, FALLBACK_GENRE_COLOR)


# ---------------------------------------------------------------------------
# (b) Top-N popularity scatter
# ---------------------------------------------------------------------------


def scatter_candidates(tracks: pd.DataFrame) -> pd.DataFrame:
    """Rows eligible for the scatter: known followers, names and numbers."""
    if tracks.empty:
        return tracks
    mask = (
        (tracks["artist_followers"] >= 1)
        & tracks["track_popularity"].notna()
        & tracks["track_duration_min"].notna()
        & (tracks["track_name"].fillna("").astype(str).str.strip() != "")
        & (tracks["artist_name"].fillna("").astype(str).str.strip() != "")
    )
    return tracks.loc[mask]


def select_top_tracks(tracks: pd.DataFrame, n: int = TOP_N_TRACKS) -> pd.DataFrame:
    """The ``n`` most popular rows; equal popularity keeps input order."""
    ranked = tracks.sort_values("track_popularity", ascending=False, kind="stable")
    return ranked.head(n)


def duration_legend_range(durations: Sequence[float]) -> Tuple[float, float]:
    """3rd to 97th percentile of the durations, or ``(0, 1)`` when empty."""
    return robust_range(durations, DURATION_LEGEND_QUANTILES)


def duration_position(value: float, lo: float, hi: float) -> float:
    """Clamp ``value`` into ``[lo, hi]`` and map it onto ``[0, 1]``."""
    if value is None or not math.isfinite(value) or lo == hi:
        return 0.5
    clamped = max(lo, min(hi, value))
    return (clamped - lo) / (hi - lo)


def duration_colors(values: Sequence[float], lo: float, hi: float) -> List[str]:
    """Colors along the duration palette, interpolated in RGB space."""
    positions = [duration_position(float(v), lo, hi) for v in values]
    if not positions:
        return []
    return sample_colorscale(DURATION_COLORSCALE, positions, colortype="rgb")


def follower_axis_value(followers: pd.Series) -> pd.Series:
    """Clamp follower counts into the fixed log-axis domain."""
    lo, hi = FOLLOWER_DOMAIN
    return followers.astype(float).clip(lower=lo, upper=hi)


def build_scatter_view(tracks: pd.DataFrame, n: int = TOP_N_TRACKS) -> ScatterView:
    """Select the top ``n`` tracks and attach duration colors.

    The legend bounds are the 3rd and 97th duration percentiles of the
    selected tracks and fall back to ``(0, 1)`` when nothing is selected.
    """
    selected = select_top_tracks(scatter_candidates(tracks), n)
    if selected.empty:
        lo, hi = FALLBACK_LEGEND_RANGE
        return ScatterView(tracks=selected.copy(), legend_min=lo, legend_max=hi)

    lo, hi = duration_legend_range(selected["track_duration_min"])
    out = selected.reset_index(drop=True)
    out["duration_color"] = duration_colors(out["track_duration_min"].tolist(), lo, hi)
    out["followers_x"] = follower_axis_value(out["artist_followers"])
    return ScatterView(tracks=out, legend_min=lo, legend_max=hi)


def duration_extent(tracks: pd.DataFrame, n: int = TOP_N_TRACKS) -> Tuple[float, float]:
    """Robust duration range of the top-N candidates, before duration and
    album-type filtering.  Bounds the duration slider."""
    selected = select_top_tracks(scatter_candidates(tracks), n)
    if selected.empty:
        return FALLBACK_LEGEND_RANGE
    return duration_legend_range(selected["track_duration_min"])


# ---------------------------------------------------------------------------
# (c) Popularity by album type
# ---------------------------------------------------------------------------


def popularity_distributions(
    tracks: pd.DataFrame, *, max_points: int = SAMPLE_MAX_POINTS
) -> List[BoxSummary]:
    """One :class:`BoxSummary` per album type present, in display order.

    Album types without rows are omitted rather than zero-filled.
    """
    if tracks.empty:
        return []
    summaries: List[BoxSummary] = []
    grouped = dict(tuple(tracks.groupby("album_type")["track_popularity"]))
    for album_type in ALBUM_TYPE_ORDER:
        if album_type not in grouped:
            continue
        summary = box_summary(album_type, grouped[album_type], max_points=max_points)
        if summary is not None:
            summaries.append(summary)
    return summaries


def sample_points(summaries: Sequence[BoxSummary]) -> pd.DataFrame:
    """Flatten the distribution samples into overlay points.

    ``jitter`` lies in ``[-1, 1)`` and depends only on the album type and
    the point's position in the sample.
    """
    records = [
        {
            "album_type": s.album_type,
            "i": i,
            "value": value,
            "jitter": hash01(f"{s.album_type}:{i}") * 2 - 1,
        }
        for s in summaries
        for i, value in enumerate(s.sample)
    ]
    return pd.DataFrame.from_records(records, columns=["album_type", "i", "value", "jitter"])


# ---------------------------------------------------------------------------
# Driver
# ---------------------------------------------------------------------------


def build_dashboard(
    tracks: pd.DataFrame,
    filters: Optional[FilterState] = None,
    *,
    top_n: int = TOP_N_TRACKS,
) -> DashboardPayload:
    """Recompute every dashboard view from ``tracks`` and ``filters``.

    Parameters
    ----------
    tracks : pd.DataFrame
        Canonical track frame, as returned by
        :func:`spotify_viz.normalize.prepare_tracks`.
    filters : FilterState, optional
        Active filters.  Defaults to no filtering.
    top_n : int, optional
        Number of tracks kept for the scatter view.

    Returns
    -------
    DashboardPayload
        The genre view and distributions over the active year range; the
        scatter over the year range further narrowed by the duration
        filter and the selected album type.  An empty ``tracks`` frame
        yields empty views and ``(0, 1)`` legend bounds.
    """
    filters = filters or FilterState()
    year_range = filters.year_range or YEAR_EXTENT

    # 1. Genre composition over the active year range
    genre_view = build_genre_view(tracks, year_range)

    # 2. Rows shared by the scatter and the distributions
    in_range = filter_years(tracks, year_range)

    # 3. Scatter: duration threshold stays inside the current duration extent
    extent = duration_extent(in_range, top_n)
    threshold = clamp_threshold(filters.duration_threshold, extent)
    scatter_rows = filter_duration(in_range, filters.duration_mode, threshold)
    scatter_rows = filter_album_type(scatter_rows, filters.album_type)
    scatter = build_scatter_view(scatter_rows, top_n)

    # 4. Distributions by album type
    distributions = popularity_distributions(in_range)

    logger.debug(
        "Dashboard recomputed: %d rows in %s, %d scatter points, %d album types",
        len(in_range),
        year_range,
        len(scatter.tracks),
        len(distributions),
    )

    return DashboardPayload(
        genre=genre_view,
        scatter=scatter,
        distributions=distributions,
        duration_extent=extent,
        duration_threshold=threshold,
        filters=filters,
        labels={
            "year": year_label(filters.year_range),
            "duration": duration_label(filters.duration_mode, threshold),
            "album_type": album_type_label(filters.album_type),
        },
    )
