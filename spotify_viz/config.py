"""
Configuration constants for the Spotify track dashboard pipeline.
"""

import os
from typing import Dict, FrozenSet, List, Literal, Tuple

from plotly.colors import qualitative

# ======================================================
#  DATA SOURCES / CONSTANTS
# ======================================================
# Cleaned Spotify export; may be a local path or an HTTP(S) URL.
DATA_SOURCE: str = os.getenv("SPOTIFY_DATA_SOURCE", "data/spotify_dataclean.csv")

DEFAULT_SEP: str = ","

# Columns of the canonical (normalized) track frame, in output order
TRACK_COLUMNS: List[str] = [
    "track_id",
    "track_name",
    "track_popularity",
    "artist_name",
    "artist_popularity",
    "artist_followers",
    "artist_genres",
    "album_type",
    "year",
    "track_duration_min",
]

GENRE_PLACEHOLDERS: FrozenSet[str] = frozenset(
    {"n/a", "na", "none", "unknown", "null", "undefined", ""}
)

AlbumType = Literal["album", "single", "compilation", "other"]
ALBUM_TYPE_ORDER: List[str] = ["album", "single", "compilation", "other"]

# ======================================================
#  AGGREGATION PARAMETERS
# ======================================================
YEAR_EXTENT: Tuple[int, int] = (1998, 2025)

TOP_GENRE_LIMIT: int = 10
TOP_N_TRACKS: int = 500
SAMPLE_MAX_POINTS: int = 180
HOVER_GENRE_LIMIT: int = 5

# Robust duration range used for the scatter color legend
DURATION_LEGEND_QUANTILES: Tuple[float, float] = (0.03, 0.97)
FALLBACK_LEGEND_RANGE: Tuple[float, float] = (0.0, 1.0)

# Fixed log-scale domain for artist followers
FOLLOWER_DOMAIN: Tuple[float, float] = (1e5, 3e8)
FOLLOWER_TICKS: List[float] = [1e5, 3e5, 1e6, 3e6, 1e7, 3e7, 1e8, 3e8]

WHISKER_FACTOR: float = 1.5

# ======================================================
#  COLORS
# ======================================================
# Rank-indexed categorical palette for the top genres
GENRE_PALETTE: List[str] = list(qualitative.T10)
FALLBACK_GENRE_COLOR: str = "#999999"

# Five-stop sequential palette for track duration (interpolated in RGB)
DURATION_PALETTE: List[str] = [
    "#adb6c0",
    "#6ca9d1",
    "#445ca4",
    "#b56d96",
    "#a2414b",
]

ALBUM_TYPE_COLORS: Dict[str, str] = {
    "album": "#7E8A98",
    "single": "#A7B48E",
    "compilation": "#B79A8B",
    "other": "#9A9A9A",
}

# ======================================================
#  UI DEFAULTS
# ======================================================
DurationMode = Literal["all", "ge", "le"]

DURATION_MODE_OPTIONS: List[Tuple[str, str]] = [
    ("All durations", "all"),
    ("At least (≥)", "ge"),
    ("At most (≤)", "le"),
]

DEFAULT_DURATION_MODE: str = "all"
DEFAULT_DURATION_THRESHOLD: float = 3.0
DEFAULT_SHOW_SAMPLE: bool = True

ALBUM_TYPE_OPTIONS: List[Tuple[str, str]] = [
    ("All types", ""),
    ("Album", "album"),
    ("Single", "single"),
    ("Compilation", "compilation"),
    ("Other", "other"),
]

GLOBAL_YEAR_MIN: int = YEAR_EXTENT[0]
GLOBAL_YEAR_MAX: int = YEAR_EXTENT[1]
DEFAULT_YEAR_RANGE: Tuple[int, int] = (GLOBAL_YEAR_MIN, GLOBAL_YEAR_MAX)
