"""Row normalization: turn raw dataset records into canonical track rows.

The raw Spotify export is loosely typed: release years may only be
available as a date string, durations may be given in minutes or in
milliseconds, album types are free text and genres arrive as one
comma-separated string.  This module is the single boundary that knows
about those quirks.  Everything downstream works on the canonical
columns listed in :data:`config.TRACK_COLUMNS` plus a parsed ``genres``
list column.

Two entry points are provided:

* :func:`normalize_record` validates one record and returns a frozen
  :class:`Row`, raising :class:`RowRejected` when the record is unusable.
* :func:`prepare_tracks` applies the same rules column-wise to a raw
  DataFrame and silently drops unusable rows.
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import asdict, dataclass
from typing import Any, Iterable, List, Mapping, Optional

import pandas as pd

from .config import ALBUM_TYPE_ORDER, GENRE_PLACEHOLDERS, TRACK_COLUMNS

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")
MS_PER_MINUTE: float = 60000.0


class RowRejected(ValueError):
    """Raised when a raw record lacks a finite year, popularity, follower
    count or duration."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


@dataclass(frozen=True)
class Row:
    track_name: str
    track_popularity: float
    artist_name: str
    artist_popularity: float
    artist_followers: int
    artist_genres: str
    album_type: str
    year: int
    track_duration_min: float
    track_id: Optional[str] = None

    @property
    def genres(self) -> List[str]:
        return parse_genres(self.artist_genres)


# ---------------------------------------------------------------------------
# Scalar helpers
# ---------------------------------------------------------------------------


def _to_float(value: Any) -> Optional[float]:
    """Coerce to a finite float, or ``None``."""
    if value is None:
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _to_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and math.isnan(value):
        return ""
    return str(value)


def parse_year(date_str: Any) -> Optional[int]:
    """Parse the first four characters of a release-date string as a year."""
    text = _to_text(date_str)
    if not text:
        return None
    year = _to_float(text[:4])
    return int(year) if year is not None else None


def resolve_year(record: Mapping[str, Any]) -> Optional[int]:
    explicit = _to_float(record.get("album_release_year"))
    if explicit is not None:
        return int(explicit)
    return parse_year(record.get("album_release_date"))


def resolve_duration(record: Mapping[str, Any]) -> Optional[float]:
    minutes = _to_float(record.get("track_duration_min"))
    if minutes is not None:
        return minutes
    ms = _to_float(record.get("track_duration_ms"))
    # A zero millisecond count means the duration is missing
    if not ms:
        return None
    return ms / MS_PER_MINUTE


def normalize_album_type(value: Any) -> str:
    """Lower-case and trim; empty or unknown values become ``"other"``."""
    text = _to_text(value).strip().lower()
    return text if text in ALBUM_TYPE_ORDER else "other"


def normalize_genre(token: str) -> str:
    return _WHITESPACE.sub(" ", token.strip().lower())


def parse_genres(raw: Any) -> List[str]:
    """Split a comma-separated genre string into normalized genre labels.

    Placeholder tokens (``n/a``, ``none``, ``unknown`` ...) are dropped.
    Order and repeated tokens are kept, so a track's genre weight is
    ``1 / len(parse_genres(raw))`` per occurrence.
    """
    text = _to_text(raw).strip()
    if not text:
        return []
    genres = (normalize_genre(token) for token in text.split(","))
    return [g for g in genres if g not in GENRE_PLACEHOLDERS]


def normalize_record(record: Mapping[str, Any]) -> Row:
    """Validate one raw record and return a canonical :class:`Row`.

    Raises
    ------
    RowRejected
        If the year, track popularity, follower count or duration cannot
        be resolved to a finite number.
    """
    year = resolve_year(record)
    if year is None:
        raise RowRejected("missing release year")
    popularity = _to_float(record.get("track_popularity"))
    if popularity is None:
        raise RowRejected("missing track popularity")
    followers = _to_float(record.get("artist_followers"))
    if followers is None:
        raise RowRejected("missing artist followers")
    duration = resolve_duration(record)
    if duration is None:
        raise RowRejected("missing track duration")

    track_id = _to_text(record.get("track_id")) or None
    artist_popularity = _to_float(record.get("artist_popularity"))
    return Row(
        track_id=track_id,
        track_name=_to_text(record.get("track_name")),
        track_popularity=popularity,
        artist_name=_to_text(record.get("artist_name")),
        artist_popularity=artist_popularity if artist_popularity is not None else math.nan,
        artist_followers=int(round(followers)),
        artist_genres=_to_text(record.get("artist_genres")),
        album_type=normalize_album_type(record.get("album_type")),
        year=year,
        track_duration_min=duration,
    )


# ---------------------------------------------------------------------------
# Frame-level normalization
# ---------------------------------------------------------------------------


def ensure_columns(df: pd.DataFrame, required: List[str]) -> None:
    """Raise an error if the DataFrame lacks any of the required columns."""
    missing = [col for col in required if col not in df.columns]
    if missing:
        raise KeyError(f"Missing expected columns: {missing}")


def empty_tracks() -> pd.DataFrame:
    """Return an empty canonical track frame."""
    return pd.DataFrame(columns=[*TRACK_COLUMNS, "genres"])


def _numeric(df: pd.DataFrame, col: str) -> pd.Series:
    if col not in df.columns:
        return pd.Series(float("nan"), index=df.index, dtype="float64")
    values = pd.to_numeric(df[col], errors="coerce").astype("float64")
    return values.where(values.abs() != float("inf"))


def _text(df: pd.DataFrame, col: str) -> pd.Series:
    if col not in df.columns:
        return pd.Series("", index=df.index, dtype="object")
    return df[col].map(_to_text)


def prepare_tracks(raw: pd.DataFrame) -> pd.DataFrame:
    """Clean a raw dataset frame into the canonical track frame.

    This function performs several steps:

    * Resolve ``year`` from ``album_release_year``, falling back to the
      first four characters of ``album_release_date``.
    * Resolve ``track_duration_min``, falling back to
      ``track_duration_ms / 60000``.
    * Normalize ``album_type`` and parse ``artist_genres`` into a
      ``genres`` list column.
    * Drop rows whose year, popularity, follower count or duration is
      not finite.

    Parameters
    ----------
    raw : pd.DataFrame
        The dataset as read from CSV.

    Returns
    -------
    pd.DataFrame
        Canonical columns (``config.TRACK_COLUMNS``) plus ``genres``,
        with a fresh ``RangeIndex`` that preserves the input order.
    """
    if raw.empty:
        return empty_tracks()

    df = raw.drop(columns=["Unnamed: 0"], errors="ignore").copy()
    ensure_columns(df, ["track_popularity", "artist_followers"])

    year = _numeric(df, "album_release_year")
    if "album_release_date" in df.columns:
        from_date = pd.to_numeric(
            _text(df, "album_release_date").str.slice(0, 4), errors="coerce"
        )
        year = year.fillna(from_date)

    duration = _numeric(df, "track_duration_min")
    ms = _numeric(df, "track_duration_ms")
    duration = duration.fillna(ms.where(ms != 0) / MS_PER_MINUTE)

    out = pd.DataFrame(
        {
            "track_id": _text(df, "track_id").map(lambda v: v or None),
            "track_name": _text(df, "track_name"),
            "track_popularity": _numeric(df, "track_popularity"),
            "artist_name": _text(df, "artist_name"),
            "artist_popularity": _numeric(df, "artist_popularity"),
            "artist_followers": _numeric(df, "artist_followers"),
            "artist_genres": _text(df, "artist_genres"),
            "album_type": df["album_type"].map(normalize_album_type)
            if "album_type" in df.columns
            else "other",
            "year": year,
            "track_duration_min": duration,
        },
        index=df.index,
    )

    keep = out[["year", "track_popularity", "artist_followers", "track_duration_min"]]
    mask = keep.notna().all(axis=1)
    dropped = int((~mask).sum())
    if dropped:
        logger.info("Dropped %d of %d rows with incomplete fields", dropped, len(out))

    out = out.loc[mask].reset_index(drop=True)
    out["year"] = out["year"].astype(int)
    out["artist_followers"] = out["artist_followers"].round().astype("int64")
    out["genres"] = out["artist_genres"].map(parse_genres)
    return out


def rows_to_frame(rows: Iterable[Row]) -> pd.DataFrame:
    """Build the canonical track frame from already-validated rows."""
    records = [asdict(row) for row in rows]
    if not records:
        return empty_tracks()
    df = pd.DataFrame.from_records(records, columns=TRACK_COLUMNS)
    df["genres"] = df["artist_genres"].map(parse_genres)
    return df
