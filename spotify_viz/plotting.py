import math
from typing import Optional, Sequence, Tuple

import plotly.graph_objects as go
from plotly.colors import find_intermediate_color, hex_to_rgb, label_rgb

from .config import ALBUM_TYPE_COLORS, FOLLOWER_DOMAIN, FOLLOWER_TICKS
from .pipeline import (
    DURATION_COLORSCALE,
    GenreYearView,
    ScatterView,
    genre_color,
    sample_points,
    stack_matrix,
    year_breakdown,
)
from .stats import BoxSummary


# ============================================================
# Configuration / constants
# ============================================================

HOVER_TEMPLATE_GENRE = "<b>%{x}</b><br>%{customdata}<extra></extra>"

HOVER_TEMPLATE_TRACK = (
    "<b>%{customdata[0]}</b><br>"
    "Artist: %{customdata[1]}<br>"
    "Popularity: %{y}<br>"
    "Year: %{customdata[2]}<br>"
    "Followers: %{customdata[3]:.2s}<br>"
    "Duration: %{customdata[4]:.2f} min<extra></extra>"
)

FOCUS_OPACITY = 1.0
UNFOCUS_OPACITY = 0.28
BOX_WIDTH = 0.72
JITTER_WIDTH = 0.28

LAYOUT_DEFAULTS = dict(
    margin=dict(t=60, l=70, r=40, b=50),
    plot_bgcolor="#f5f7fb",
    font=dict(size=12),
)


# ============================================================
# Helper functions
# ============================================================


def _padded_range(
    lo: float, hi: float, *, frac: float, min_pad: float, bounds: Tuple[float, float] = (0, 100)
) -> Tuple[float, float]:
    """
    Pad a value range by ``frac`` of its span (at least ``min_pad``) and
    clip it into ``bounds``.
    """
    pad = max(min_pad, (hi - lo) * frac)
    return max(bounds[0], lo - pad), min(bounds[1], hi + pad)


def _darker(color: str, amount: float = 0.35) -> str:
    """Blend a hex color towards black."""
    return label_rgb(find_intermediate_color(hex_to_rgb(color), (0, 0, 0), amount))


def _year_hover_text(view: GenreYearView, year: int) -> str:
    """Top genres of one year, one per line."""
    lines = [f"{genre}: {count:.1f}" for genre, count in year_breakdown(view, year)]
    return "<br>".join(lines)


# ============================================================
# Visualization 1: stacked area of top genres
# ============================================================


def create_genre_area_plot(
    view: GenreYearView,
    *,
    highlight_range: Optional[Tuple[int, int]] = None,
) -> go.Figure:
    """
    Stacked area chart of weighted track counts per top genre and year.

    Parameters
    ----------
    view : GenreYearView
        Output of :func:`pipeline.build_genre_view`.
    highlight_range : tuple[int, int] | None, default None
        Optional year band to shade (the active year brush).

    Returns
    -------
    go.Figure
        One stacked trace per top genre, in rank order, plus a hover trace
        listing the year's five largest genres.
    """
    wide = stack_matrix(view)
    if wide.empty:
        # No valid data to plot
        return go.Figure()

    fig = go.Figure()
    years = wide.index.tolist()
    for genre in view.top_genres:
        color = genre_color(view, genre)
        fig.add_trace(
            go.Scatter(
                x=years,
                y=wide[genre].tolist(),
                mode="lines",
                stackgroup="genres",
                name=genre,
                line=dict(width=1, color=color),
                fillcolor=color,
                hoverinfo="skip",
            )
        )

    # Invisible trace along the stack top carries the per-year breakdown
    fig.add_trace(
        go.Scatter(
            x=years,
            y=wide.sum(axis=1).tolist(),
            mode="lines",
            line=dict(width=0),
            name="Top genres",
            customdata=[_year_hover_text(view, year) for year in years],
            hovertemplate=HOVER_TEMPLATE_GENRE,
            showlegend=False,
        )
    )

    if highlight_range is not None:
        fig.add_vrect(
            x0=highlight_range[0] - 0.5,
            x1=highlight_range[1] + 0.5,
            fillcolor="rgba(15,23,42,0.08)",
            line_width=0,
            layer="below",
        )

    fig.update_xaxes(title_text="Release year", tickmode="linear", dtick=2)
    fig.update_yaxes(title_text="Weighted track count", rangemode="tozero")
    fig.update_layout(
        **LAYOUT_DEFAULTS,
        hovermode="x",
        legend=dict(orientation="h", x=0.5, y=1.02, xanchor="center", yanchor="bottom"),
    )
    return fig


# ============================================================
# Visualization 2: top-N popularity vs followers
# ============================================================


def create_popularity_scatter(view: ScatterView) -> go.Figure:
    """
    Log-scale followers vs popularity for the selected top tracks.

    Marker colors come precomputed from the pipeline; a marker-less trace
    carries the colorbar so the legend spans exactly
    ``legend_min..legend_max``.
    """
    df = view.tracks
    if df.empty:
        return go.Figure()

    fig = go.Figure()
    fig.add_trace(
        go.Scatter(
            x=df["followers_x"],
            y=df["track_popularity"],
            mode="markers",
            marker=dict(
                size=7,
                color=df["duration_color"].tolist(),
                opacity=0.85,
                line=dict(width=0.5, color="rgba(255,255,255,0.8)"),
            ),
            customdata=list(
                zip(
                    df["track_name"],
                    df["artist_name"],
                    df["year"],
                    df["artist_followers"],
                    df["track_duration_min"],
                )
            ),
            hovertemplate=HOVER_TEMPLATE_TRACK,
            showlegend=False,
        )
    )

    cmax = view.legend_max if view.legend_max > view.legend_min else view.legend_min + 1
    fig.add_trace(
        go.Scatter(
            x=[None],
            y=[None],
            mode="markers",
            marker=dict(
                colorscale=DURATION_COLORSCALE,
                cmin=view.legend_min,
                cmax=cmax,
                color=[view.legend_min],
                showscale=True,
                colorbar=dict(title="Track duration (min)", thickness=12),
            ),
            hoverinfo="skip",
            showlegend=False,
        )
    )

    y_lo, y_hi = _padded_range(
        float(df["track_popularity"].min()),
        float(df["track_popularity"].max()),
        frac=0.08,
        min_pad=1,
    )
    fig.update_xaxes(
        title_text="Artist followers (log scale)",
        type="log",
        range=[math.log10(FOLLOWER_DOMAIN[0]), math.log10(FOLLOWER_DOMAIN[1])],
        tickvals=FOLLOWER_TICKS,
        tickformat="~s",
    )
    fig.update_yaxes(title_text="Track popularity", range=[y_lo, y_hi])
    fig.update_layout(**LAYOUT_DEFAULTS)
    return fig


# ============================================================
# Visualization 3: popularity by album type
# ============================================================


def create_album_type_boxplot(
    summaries: Sequence[BoxSummary],
    *,
    show_sample: bool = True,
    focus_type: Optional[str] = None,
) -> go.Figure:
    """
    Box plot drawn from precomputed summaries, with the sample overlay.

    Parameters
    ----------
    summaries : Sequence[BoxSummary]
        Output of :func:`pipeline.popularity_distributions`.
    show_sample : bool, default True
        Draw the deterministic sample points behind the boxes.
    focus_type : str | None, default None
        Hovered or locked album type; other types are dimmed.

    Returns
    -------
    go.Figure
        One box per album type on a numeric x axis labelled by type.
    """
    if not summaries:
        return go.Figure()

    fig = go.Figure()
    positions = {s.album_type: i for i, s in enumerate(summaries)}

    if show_sample:
        points = sample_points(summaries)
        for album_type, sub in points.groupby("album_type", sort=False):
            base = ALBUM_TYPE_COLORS.get(album_type, ALBUM_TYPE_COLORS["other"])
            fig.add_trace(
                go.Scatter(
                    x=positions[album_type] + sub["jitter"] * JITTER_WIDTH,
                    y=sub["value"],
                    mode="markers",
                    marker=dict(size=4, color=_darker(base)),
                    opacity=0.35,
                    hoverinfo="skip",
                    showlegend=False,
                )
            )

    for s in summaries:
        focused = focus_type is None or s.album_type == focus_type
        fig.add_trace(
            go.Box(
                x=[positions[s.album_type]],
                q1=[s.q1],
                median=[s.median],
                q3=[s.q3],
                lowerfence=[s.low_whisker],
                upperfence=[s.high_whisker],
                width=BOX_WIDTH,
                name=s.album_type,
                fillcolor=ALBUM_TYPE_COLORS.get(s.album_type, ALBUM_TYPE_COLORS["other"]),
                line=dict(
                    color="rgba(15,23,42,0.75)",
                    width=2.2 if s.album_type == focus_type else 1.2,
                ),
                opacity=FOCUS_OPACITY if focused else UNFOCUS_OPACITY,
                showlegend=False,
            )
        )
        fig.add_annotation(
            x=positions[s.album_type],
            y=s.q3,
            text=f"n={s.n:,}",
            showarrow=False,
            yshift=14,
            font=dict(size=11, color="rgba(15,23,42,0.55)"),
        )

    values = [v for s in summaries for v in (s.low_whisker, s.high_whisker, *s.sample)]
    y_lo, y_hi = _padded_range(min(values), max(values), frac=0.06, min_pad=2)
    fig.update_xaxes(
        tickmode="array",
        tickvals=list(positions.values()),
        ticktext=list(positions.keys()),
        range=[-0.6, len(summaries) - 0.4],
    )
    fig.update_yaxes(title_text="Track popularity (0–100)", range=[y_lo, y_hi])
    fig.update_layout(**LAYOUT_DEFAULTS)
    return fig
