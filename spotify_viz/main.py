"""
Command-line driver: load the dataset, recompute the dashboard views for a
set of filters and write them to disk.

Outputs (in ``--out-dir``):
- genre_year_matrix.csv   year x top-genre weighted counts
- top_tracks.csv          top-N tracks with duration colors
- album_type_stats.json   per-album-type box statistics and samples
- dashboard_meta.json     top genres, colors, legend bounds, filter echo
"""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import List, Optional

from .config import (
    DATA_SOURCE,
    DEFAULT_DURATION_MODE,
    DEFAULT_DURATION_THRESHOLD,
    DEFAULT_SEP,
    TOP_N_TRACKS,
    YEAR_EXTENT,
)
from .data_manager import load_tracks
from .filters import FilterState
from .pipeline import DashboardPayload, build_dashboard

logger = logging.getLogger(__name__)


def write_outputs(payload: DashboardPayload, out_dir: Path) -> List[Path]:
    """Persist the three views plus metadata; return the written paths."""
    out_dir.mkdir(parents=True, exist_ok=True)

    matrix_path = out_dir / "genre_year_matrix.csv"
    tracks_path = out_dir / "top_tracks.csv"
    stats_path = out_dir / "album_type_stats.json"
    meta_path = out_dir / "dashboard_meta.json"

    payload.genre.matrix.to_csv(matrix_path, index=False)
    payload.scatter.tracks.drop(columns=["genres"], errors="ignore").to_csv(
        tracks_path, index=False
    )
    stats_path.write_text(
        json.dumps([s.to_dict() for s in payload.distributions], indent=2),
        encoding="utf-8",
    )
    meta = {
        "year_range": list(payload.genre.year_range),
        "top_genres": payload.genre.top_genres,
        "genre_colors": payload.genre.color_map,
        "legend_min": payload.scatter.legend_min,
        "legend_max": payload.scatter.legend_max,
        "duration_extent": list(payload.duration_extent),
        "duration_threshold": payload.duration_threshold,
        "labels": payload.labels,
    }
    meta_path.write_text(json.dumps(meta, indent=2, ensure_ascii=False), encoding="utf-8")
    return [matrix_path, tracks_path, stats_path, meta_path]


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description=(
            "Compute the genre, top-track and album-type views of the Spotify "
            "dashboard for a given set of filters."
        )
    )
    parser.add_argument(
        "--source",
        default=DATA_SOURCE,
        help="Path or URL to the dataset CSV (default: config.DATA_SOURCE).",
    )
    parser.add_argument(
        "--sep",
        default=DEFAULT_SEP,
        help=f"Delimiter used in the dataset file (default: '{DEFAULT_SEP}').",
    )
    parser.add_argument(
        "--year-min",
        type=int,
        default=None,
        help=f"Lower bound year to keep (default: {YEAR_EXTENT[0]}).",
    )
    parser.add_argument(
        "--year-max",
        type=int,
        default=None,
        help=f"Upper bound year to keep (default: {YEAR_EXTENT[1]}).",
    )
    parser.add_argument(
        "--duration-mode",
        choices=["all", "ge", "le"],
        default=DEFAULT_DURATION_MODE,
        help="Duration filter applied to the top-track view.",
    )
    parser.add_argument(
        "--duration-threshold",
        type=float,
        default=DEFAULT_DURATION_THRESHOLD,
        help="Duration threshold in minutes for --duration-mode ge/le.",
    )
    parser.add_argument(
        "--album-type",
        default=None,
        help="Restrict the top-track view to one album type.",
    )
    parser.add_argument(
        "--top-n",
        type=int,
        default=TOP_N_TRACKS,
        help=f"Number of tracks in the top-track view (default: {TOP_N_TRACKS}).",
    )
    parser.add_argument(
        "--out-dir",
        type=Path,
        default=Path("data") / "views",
        help="Directory for the output files.",
    )
    return parser.parse_args(argv)


def filters_from_args(args: argparse.Namespace) -> FilterState:
    filters = (
        FilterState()
        .with_duration(args.duration_mode, args.duration_threshold)
        .with_album_type(args.album_type)
    )
    if args.year_min is None and args.year_max is None:
        return filters
    year_min = args.year_min if args.year_min is not None else YEAR_EXTENT[0]
    year_max = args.year_max if args.year_max is not None else YEAR_EXTENT[1]
    return filters.with_year_range((year_min, year_max))


def main(argv: Optional[List[str]] = None) -> None:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    args = parse_args(argv)

    tracks = load_tracks(args.source, sep=args.sep)
    if tracks.empty:
        logger.warning("No usable tracks loaded; outputs will be empty.")

    payload = build_dashboard(tracks, filters_from_args(args), top_n=args.top_n)
    written = write_outputs(payload, args.out_dir)

    print("\n--- DASHBOARD VIEWS COMPLETE ---")
    print(
        f"Years: {payload.labels['year']} | Tracks: {len(tracks)} | "
        f"Top genres: {len(payload.genre.top_genres)} | "
        f"Scatter points: {len(payload.scatter.tracks)} | "
        f"Album types: {len(payload.distributions)}"
    )
    print(
        f"Duration legend: {payload.scatter.legend_min:.1f}–"
        f"{payload.scatter.legend_max:.1f} min ({payload.labels['duration']})"
    )
    print(f"\nSaved outputs to {args.out_dir}/:")
    for path in written:
        print(f"  - {path.name}")
    print("\nGenre matrix head:")
    print(payload.genre.matrix.head(8))


if __name__ == "__main__":
    main()
