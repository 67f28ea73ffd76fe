import pandas as pd
import pytest

from spotify_viz import data_manager
from spotify_viz.normalize import Row, rows_to_frame


def make_row(**overrides) -> Row:
    fields = dict(
        track_id=None,
        track_name="Song",
        track_popularity=50.0,
        artist_name="Artist",
        artist_popularity=60.0,
        artist_followers=1_000_000,
        artist_genres="pop",
        album_type="album",
        year=2020,
        track_duration_min=3.5,
    )
    fields.update(overrides)
    return Row(**fields)


@pytest.fixture
def tracks_from():
    """Build a canonical track frame from keyword overrides per row."""

    def _build(*rows: dict) -> pd.DataFrame:
        return rows_to_frame([make_row(**row) for row in rows])

    return _build


@pytest.fixture
def scenario_tracks(tracks_from):
    return tracks_from(
        {"track_id": "t1", "artist_genres": "pop,rock", "year": 2020, "track_popularity": 80},
        {"track_id": "t2", "artist_genres": "pop", "year": 2020, "track_popularity": 60},
        {"track_id": "t3", "artist_genres": "jazz", "year": 2021, "track_popularity": 40},
    )


@pytest.fixture
def raw_frame() -> pd.DataFrame:
    return pd.DataFrame(
        [
            {
                "Unnamed: 0": 0,
                "track_id": "a1",
                "track_name": "First",
                "track_popularity": 71,
                "artist_name": "Band",
                "artist_popularity": 65,
                "artist_followers": 250000,
                "artist_genres": "Indie  Rock, pop, n/a",
                "album_type": "Album",
                "album_release_year": 2019,
                "album_release_date": "2019-04-02",
                "track_duration_min": 3.25,
                "track_duration_ms": None,
            },
            {
                "Unnamed: 0": 1,
                "track_id": None,
                "track_name": "Second",
                "track_popularity": 55,
                "artist_name": "Solo",
                "artist_popularity": 40,
                "artist_followers": 1200,
                "artist_genres": None,
                "album_type": "",
                "album_release_year": None,
                "album_release_date": "2021-11-19",
                "track_duration_min": None,
                "track_duration_ms": 210000,
            },
            {
                "Unnamed: 0": 2,
                "track_id": "a3",
                "track_name": "Broken",
                "track_popularity": "n/a",
                "artist_name": "Nobody",
                "artist_popularity": 10,
                "artist_followers": 10,
                "artist_genres": "jazz",
                "album_type": "single",
                "album_release_year": 2018,
                "album_release_date": "2018-01-01",
                "track_duration_min": 2.0,
                "track_duration_ms": None,
            },
            {
                "Unnamed: 0": 3,
                "track_id": "a4",
                "track_name": "Undated",
                "track_popularity": 30,
                "artist_name": "Ghost",
                "artist_popularity": 12,
                "artist_followers": 500,
                "artist_genres": "ambient",
                "album_type": "compilation",
                "album_release_year": None,
                "album_release_date": None,
                "track_duration_min": 4.0,
                "track_duration_ms": None,
            },
        ]
    )


@pytest.fixture(autouse=True)
def _clear_dataset_cache():
    data_manager._load_tracks_cached.cache_clear()
    yield
    data_manager._load_tracks_cached.cache_clear()
