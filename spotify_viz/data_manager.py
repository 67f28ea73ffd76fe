"""Data manager for loading and caching the track dataset.

This module encapsulates the one-time dataset load that precedes every
aggregation.  The source may be a local CSV path or an HTTP(S) URL; it
is read once, normalized with :func:`normalize.prepare_tracks` and kept
in memory.  Load failures never propagate to the dashboard: they are
logged and an empty track frame is returned, so downstream views
degrade to empty outputs instead of raising.
"""

import logging
from functools import lru_cache
from io import BytesIO
from pathlib import Path
from typing import Union

import pandas as pd
import requests

from .config import DATA_SOURCE, DEFAULT_SEP
from .normalize import empty_tracks, prepare_tracks

logger = logging.getLogger(__name__)

# Repository root; relative sources are resolved against it
REPO_ROOT: Path = Path(__file__).resolve().parent.parent

REQUEST_TIMEOUT: int = 30


def _resolve_source(source: Union[str, Path]) -> Union[BytesIO, Path]:
    """
    Return a file-like object (for URLs) or Path (for local files).

    Relative local paths are looked up in the working directory first and
    then under the repository root.
    """
    source_str = str(source)
    if source_str.lower().startswith(("http://", "https://")):
        response = requests.get(source_str, timeout=REQUEST_TIMEOUT)
        response.raise_for_status()
        return BytesIO(response.content)

    path = Path(source).expanduser()
    if not path.is_absolute() and not path.exists():
        path = REPO_ROOT / path
    if not path.exists():
        raise FileNotFoundError(f"Dataset not found at {path}")
    return path


def load_raw(source: Union[str, Path] = DATA_SOURCE, sep: str = DEFAULT_SEP) -> pd.DataFrame:
    """Read the raw dataset CSV from a path or URL."""
    return pd.read_csv(_resolve_source(source), sep=sep)


@lru_cache(maxsize=4)
def _load_tracks_cached(source: str, sep: str) -> pd.DataFrame:
    try:
        raw = load_raw(source, sep=sep)
    except (
        OSError,
        UnicodeDecodeError,
        requests.RequestException,
        pd.errors.ParserError,
        pd.errors.EmptyDataError,
    ) as exc:
        logger.warning("Could not load dataset from %s: %s", source, exc)
        return empty_tracks()

    try:
        tracks = prepare_tracks(raw)
    except KeyError as exc:
        logger.warning("Dataset at %s is missing required columns: %s", source, exc)
        return empty_tracks()

    logger.info("Loaded %d usable tracks (of %d rows) from %s", len(tracks), len(raw), source)
    return tracks


def load_tracks(
    source: Union[str, Path] = DATA_SOURCE,
    sep: str = DEFAULT_SEP,
    *,
    force_reload: bool = False,
) -> pd.DataFrame:
    """
    Load and normalize the dataset, reusing the in-memory copy if present.

    Parameters
    ----------
    source : str or Path, optional
        Path or URL of the dataset CSV.  Defaults to ``config.DATA_SOURCE``.
    sep : str, optional
        Column delimiter; defaults to ``","``.
    force_reload : bool, optional
        If ``True``, drop the in-memory copy and read the source again.

    Returns
    -------
    pd.DataFrame
        The canonical track frame; empty if the source could not be read.
        Callers receive a copy and may modify it freely.
    """
    if force_reload:
        _load_tracks_cached.cache_clear()
    return _load_tracks_cached(str(source), sep).copy()
