from shiny import reactive, render
from shiny.express import input, ui
from shinywidgets import render_plotly

# Import organized modules
from spotify_viz.config import (
    ALBUM_TYPE_OPTIONS,
    DEFAULT_DURATION_MODE,
    DEFAULT_DURATION_THRESHOLD,
    DEFAULT_SHOW_SAMPLE,
    DEFAULT_YEAR_RANGE,
    DURATION_MODE_OPTIONS,
    GLOBAL_YEAR_MAX,
    GLOBAL_YEAR_MIN,
    TOP_N_TRACKS,
)
from spotify_viz.data_manager import load_tracks
from spotify_viz.filters import FilterState, clamp_threshold
from spotify_viz.pipeline import build_dashboard
from spotify_viz.plotting import (
    create_album_type_boxplot,
    create_genre_area_plot,
    create_popularity_scatter,
)

# Helpers for UI mapping
DURATION_MODE_MAPPING = {value: label for label, value in DURATION_MODE_OPTIONS}
ALBUM_TYPE_MAPPING = {value: label for label, value in ALBUM_TYPE_OPTIONS}

# ======================================================
#  REACTIVE STATE
# ======================================================
# ``None`` while the dataset is loading; every view is skipped until then.
tracks_store = reactive.Value(None)


@reactive.effect
def _load_dataset():
    tracks_store.set(load_tracks())


@reactive.calc
def active_year_range():
    year_range = tuple(int(y) for y in input.year_range())
    # The full slider span means "all years"
    return None if year_range == DEFAULT_YEAR_RANGE else year_range


@reactive.calc
def filter_state():
    return (
        FilterState(show_sample=bool(input.show_sample()))
        .with_year_range(active_year_range())
        .with_duration(input.duration_mode(), input.duration_threshold())
        .with_album_type(input.album_type())
    )


@reactive.calc
def dashboard():
    tracks = tracks_store.get()
    if tracks is None:
        return None
    return build_dashboard(tracks, filter_state())


@reactive.calc
def duration_bounds():
    payload = dashboard()
    if payload is None:
        return None
    return payload.duration_extent


@reactive.effect
@reactive.event(duration_bounds)
def _sync_duration_slider():
    # Keep the threshold slider inside the robust duration range.
    bounds = duration_bounds()
    if bounds is None:
        return
    lo, hi = bounds
    if lo == hi:
        return
    current = clamp_threshold(float(input.duration_threshold()), bounds)
    ui.update_slider(
        "duration_threshold", min=round(lo, 1), max=round(hi, 1), value=round(current, 1)
    )


# ======================================================
#  UI LAYOUT
# ======================================================
ui.page_opts(
    title="Spotify Global Music Dataset Dashboard",
    fillable=False,
    full_width=True,
    lang="en",
)

with ui.sidebar(open="always", position="right"):
    ui.input_slider(
        "year_range",
        "Release year range",
        min=GLOBAL_YEAR_MIN,
        max=GLOBAL_YEAR_MAX,
        value=DEFAULT_YEAR_RANGE,
        step=1,
        sep="",
    )
    ui.input_radio_buttons(
        "duration_mode",
        "Track duration filter",
        DURATION_MODE_MAPPING,
        selected=DEFAULT_DURATION_MODE,
    )
    ui.input_slider(
        "duration_threshold",
        "Duration threshold (min)",
        min=0.0,
        max=10.0,
        value=DEFAULT_DURATION_THRESHOLD,
        step=0.1,
    )
    ui.input_select(
        "album_type",
        "Lock album type",
        ALBUM_TYPE_MAPPING,
        selected="",
    )
    ui.input_switch("show_sample", "Show sample points", value=DEFAULT_SHOW_SAMPLE)
    ui.input_action_button(
        "reset_filters",
        "Reset filters",
        class_="btn-primary mt-3",
    )


@reactive.effect
@reactive.event(input.reset_filters)
def _reset_filters():
    ui.update_slider("year_range", value=DEFAULT_YEAR_RANGE)
    ui.update_radio_buttons("duration_mode", selected=DEFAULT_DURATION_MODE)
    ui.update_slider("duration_threshold", value=DEFAULT_DURATION_THRESHOLD)
    ui.update_select("album_type", selected="")
    ui.update_switch("show_sample", value=DEFAULT_SHOW_SAMPLE)


@render.text
def filter_chips():
    payload = dashboard()
    if payload is None:
        return "Loading dataset…"
    chips = [payload.labels["year"], payload.labels["duration"]]
    if payload.labels.get("album_type"):
        chips.append(payload.labels["album_type"])
    return " · ".join(chips)


with ui.card(full_screen=True):
    ui.card_header("Visualization 1: Top 10 genres throughout the years")
    ui.p("Stacked area of weighted track counts; multi-genre tracks are split evenly.")

    @render_plotly
    def genre_plot():
        payload = dashboard()
        if payload is None:
            return None
        return create_genre_area_plot(
            payload.genre, highlight_range=payload.filters.year_range
        )


with ui.layout_columns(col_widths=(7, 5)):
    with ui.card(full_screen=True):
        ui.card_header(f"Visualization 2: Popularity vs artist followers (top {TOP_N_TRACKS})")

        @render_plotly
        def popularity_scatter():
            payload = dashboard()
            if payload is None:
                return None
            return create_popularity_scatter(payload.scatter)

    with ui.card(full_screen=True):
        ui.card_header("Visualization 3: Popularity distribution by album type")

        @render_plotly
        def album_type_boxplot():
            payload = dashboard()
            if payload is None:
                return None
            return create_album_type_boxplot(
                payload.distributions,
                show_sample=payload.filters.show_sample,
                focus_type=payload.filters.album_type,
            )
