import pytest

from spotify_viz.config import GENRE_PALETTE, YEAR_EXTENT
from spotify_viz.filters import FilterState, filter_years
from spotify_viz.normalize import empty_tracks
from spotify_viz.pipeline import (
    build_dashboard,
    build_genre_view,
    build_scatter_view,
    duration_colors,
    duration_extent,
    duration_legend_range,
    duration_position,
    genre_weights,
    genre_year_matrix,
    popularity_distributions,
    sample_points,
    select_top_genres,
    stack_matrix,
    year_breakdown,
)


# ---------------------------------------------------------------------------
# Genre weighting
# ---------------------------------------------------------------------------


def test_scenario_genre_year_matrix(scenario_tracks):
    matrix = genre_year_matrix(scenario_tracks, ["pop", "rock", "jazz"], (2020, 2021))
    cells = dict(zip(zip(matrix["year"], matrix["genre"]), matrix["count"]))

    assert cells[(2020, "pop")] == pytest.approx(1.5)
    assert cells[(2020, "rock")] == pytest.approx(0.5)
    assert cells[(2020, "jazz")] == 0
    assert cells[(2021, "pop")] == 0
    assert cells[(2021, "rock")] == 0
    assert cells[(2021, "jazz")] == pytest.approx(1.0)


def test_matrix_is_complete_and_non_negative(scenario_tracks):
    top = ["pop", "rock", "jazz"]
    matrix = genre_year_matrix(scenario_tracks, top, (2018, 2022))

    assert len(matrix) == 5 * len(top)
    assert not matrix.duplicated(subset=["year", "genre"]).any()
    assert (matrix["count"] >= 0).all()
    assert matrix["year"].tolist()[:3] == [2018, 2018, 2018]
    assert matrix["genre"].tolist()[:3] == top


def test_track_weights_sum_to_one(tracks_from):
    tracks = tracks_from(
        {"artist_genres": "a, b, c"},
        {"artist_genres": "a, a"},
        {"artist_genres": "d, e, f, g, h, i, j"},
        {"artist_genres": "n/a"},
    )
    weights = genre_weights(tracks)
    # One unit per track that has at least one valid genre
    assert weights.sum() == pytest.approx(3.0)
    assert weights["a"] == pytest.approx(1 / 3 + 1.0)


def test_top_genres_descending_with_stable_ties(tracks_from):
    tracks = tracks_from(
        {"artist_genres": "b"},
        {"artist_genres": "a"},
        {"artist_genres": "c"},
        {"artist_genres": "c"},
    )
    assert select_top_genres(genre_weights(tracks)) == ["c", "b", "a"]


def test_top_genres_limited_to_ten(tracks_from):
    tracks = tracks_from(*({"artist_genres": f"g{i}"} for i in range(12)))
    view = build_genre_view(tracks, (2020, 2020))
    assert len(view.top_genres) == 10
    assert view.top_genres == [f"g{i}" for i in range(10)]
    assert [view.color_map[g] for g in view.top_genres] == GENRE_PALETTE[:10]


def test_genre_view_restricted_to_year_range(tracks_from):
    tracks = tracks_from(
        {"artist_genres": "old", "year": 1990},
        {"artist_genres": "new", "year": 2020},
    )
    view = build_genre_view(tracks, YEAR_EXTENT)
    assert view.top_genres == ["new"]
    assert view.matrix["year"].min() == YEAR_EXTENT[0]
    assert view.matrix["year"].max() == YEAR_EXTENT[1]


def test_out_of_top_genres_share_is_not_redistributed(tracks_from):
    tracks = tracks_from(
        {"artist_genres": "pop, obscure", "year": 2020},
        {"artist_genres": "pop", "year": 2020},
    )
    matrix = genre_year_matrix(tracks, ["pop"], (2020, 2020))
    assert matrix["count"].tolist() == pytest.approx([1.5])


def test_stack_matrix_and_year_breakdown(scenario_tracks):
    view = build_genre_view(scenario_tracks, (2020, 2021))
    wide = stack_matrix(view)

    assert list(wide.columns) == view.top_genres
    assert wide.loc[2020, "pop"] == pytest.approx(1.5)
    assert year_breakdown(view, 2020, limit=2) == [("pop", 1.5), ("rock", 0.5)]


# ---------------------------------------------------------------------------
# Top-N scatter
# ---------------------------------------------------------------------------


def test_scatter_selects_top_n_sorted_and_stable(tracks_from):
    tracks = tracks_from(
        {"track_id": "low", "track_popularity": 10},
        {"track_id": "tie-first", "track_popularity": 70},
        {"track_id": "top", "track_popularity": 90},
        {"track_id": "tie-second", "track_popularity": 70},
        {"track_id": "no-followers", "track_popularity": 99, "artist_followers": 0},
        {"track_id": "no-name", "track_popularity": 98, "track_name": "  "},
        {"track_id": "no-artist", "track_popularity": 97, "artist_name": ""},
    )
    view = build_scatter_view(tracks, n=3)

    assert view.tracks["track_id"].tolist() == ["top", "tie-first", "tie-second"]
    assert view.tracks["track_popularity"].is_monotonic_decreasing


def test_scatter_length_is_min_of_n_and_candidates(tracks_from):
    tracks = tracks_from(*({"track_popularity": p} for p in range(5)))
    assert len(build_scatter_view(tracks, n=500).tracks) == 5
    assert len(build_scatter_view(tracks, n=2).tracks) == 2


def test_scatter_legend_bounds(tracks_from):
    tracks = tracks_from(*({"track_duration_min": 1.0 + i / 10} for i in range(50)))
    view = build_scatter_view(tracks)
    assert view.legend_min < view.legend_max
    assert view.tracks["duration_color"].str.startswith("rgb").all()


def test_duration_legend_range_bounds_slider_and_legend(tracks_from):
    durations = [1.0 + i / 10 for i in range(50)]
    tracks = tracks_from(*({"track_duration_min": d} for d in durations))
    lo, hi = duration_legend_range(durations)

    assert lo == pytest.approx(1.0 + 0.03 * 49 / 10)
    assert hi == pytest.approx(1.0 + 0.97 * 49 / 10)
    view = build_scatter_view(tracks)
    assert (view.legend_min, view.legend_max) == (lo, hi)
    assert duration_legend_range([]) == (0.0, 1.0)


def test_scatter_identical_durations_share_midpoint_color(tracks_from):
    tracks = tracks_from(*({"track_duration_min": 3.0, "track_popularity": p} for p in range(4)))
    view = build_scatter_view(tracks)
    assert view.legend_min == view.legend_max == 3.0
    assert view.tracks["duration_color"].nunique() == 1


def test_scatter_followers_clamped_to_axis_domain(tracks_from):
    tracks = tracks_from({"artist_followers": 5}, {"artist_followers": 10**10})
    view = build_scatter_view(tracks)
    assert sorted(view.tracks["followers_x"].tolist()) == [1e5, 3e8]


def test_duration_position_clamps():
    assert duration_position(0.5, 1.0, 3.0) == 0.0
    assert duration_position(2.0, 1.0, 3.0) == pytest.approx(0.5)
    assert duration_position(9.0, 1.0, 3.0) == 1.0
    assert duration_position(2.0, 2.0, 2.0) == 0.5
    assert duration_position(float("nan"), 1.0, 3.0) == 0.5


def test_duration_colors_outside_range_match_endpoints():
    low, at_low, at_high, high = duration_colors([0.0, 1.0, 3.0, 10.0], 1.0, 3.0)
    assert low == at_low
    assert high == at_high
    assert at_low != at_high


# ---------------------------------------------------------------------------
# Album type distributions
# ---------------------------------------------------------------------------


def test_distributions_ordered_and_omit_empty_types(tracks_from):
    tracks = tracks_from(
        {"album_type": "single", "track_popularity": 20},
        {"album_type": "album", "track_popularity": 10},
        {"album_type": "album", "track_popularity": 40},
        {"album_type": "other", "track_popularity": 30},
    )
    summaries = popularity_distributions(tracks)
    assert [s.album_type for s in summaries] == ["album", "single", "other"]
    assert summaries[0].n == 2


def test_sample_points_are_deterministic(tracks_from):
    tracks = tracks_from(*({"track_popularity": p % 100} for p in range(400)))
    first = sample_points(popularity_distributions(tracks))
    second = sample_points(popularity_distributions(tracks))

    assert first.equals(second)
    assert len(first) <= 180
    assert first["jitter"].between(-1, 1).all()


# ---------------------------------------------------------------------------
# Driver
# ---------------------------------------------------------------------------


def test_build_dashboard_empty_input_degrades_gracefully():
    payload = build_dashboard(empty_tracks())

    assert payload.genre.top_genres == []
    assert payload.genre.matrix.empty
    assert payload.scatter.tracks.empty
    assert (payload.scatter.legend_min, payload.scatter.legend_max) == (0.0, 1.0)
    assert payload.distributions == []
    assert payload.labels["year"] == "All years"


def test_build_dashboard_applies_filters(tracks_from):
    tracks = tracks_from(
        {"track_id": "a", "album_type": "album", "track_duration_min": 2.0, "year": 2019},
        {"track_id": "b", "album_type": "single", "track_duration_min": 4.0, "year": 2020},
        {"track_id": "c", "album_type": "single", "track_duration_min": 5.0, "year": 2021},
        {"track_id": "d", "album_type": "single", "track_duration_min": 6.0, "year": 2010},
    )
    filters = FilterState(
        duration_mode="ge", duration_threshold=3.0, album_type="single"
    ).with_year_range((2019, 2021))
    payload = build_dashboard(tracks, filters)

    assert sorted(payload.scatter.tracks["track_id"]) == ["b", "c"]
    assert [s.album_type for s in payload.distributions] == ["album", "single"]
    assert payload.genre.year_range == (2019, 2021)
    assert payload.labels == {
        "year": "2019–2021",
        "duration": "≥ 3.0 min",
        "album_type": "Type: single",
    }


def test_build_dashboard_clamps_threshold_into_duration_extent(tracks_from):
    tracks = tracks_from(*({"track_duration_min": 2.0 + i / 100} for i in range(101)))
    payload = build_dashboard(tracks, FilterState(duration_mode="le", duration_threshold=10.0))

    lo, hi = payload.duration_extent
    assert payload.duration_threshold == pytest.approx(hi)
    assert lo < hi


def test_dashboard_duration_extent_ignores_duration_and_type_filters(tracks_from):
    tracks = tracks_from(
        *({"track_duration_min": 2.0 + i / 10, "album_type": "album", "year": 2010} for i in range(20)),
        *({"track_duration_min": 9.0, "album_type": "single", "year": 2024} for _ in range(5)),
    )
    filters = FilterState(duration_mode="ge", duration_threshold=3.0, album_type="single")
    payload = build_dashboard(tracks, filters.with_year_range((2000, 2015)))

    assert payload.duration_extent == duration_extent(filter_years(tracks, (2000, 2015)))
    assert payload.scatter.tracks.empty
