"""Plotly world map for the Streamlit app.

Axes are in viewBox units with y pointing down, so selection events come
back as canvas coordinates. A transparent grid of markers covers the
canvas; clicking anywhere selects the nearest grid point, which the app
turns into a pointer click.
"""

import numpy as np
import plotly.graph_objects as go

from weatherlens.countries import CountryIndex
from weatherlens.models import Coordinate
from weatherlens.projection import Projection
from weatherlens.readout import format_coordinate
from weatherlens.renderers.paths import project_geometry, project_labels

_BG = "#cbc8c8"
_BORDER = "#1f3b5c"
_PIN = "#14b88a"
_REGION = "#14b88a"

PICK_GRID_STEP = 10.0  # Canvas px between pick points
PICK_TRACE_NAME = "pick"


def pick_grid(projection: Projection, step: float = PICK_GRID_STEP) -> tuple[np.ndarray, np.ndarray]:
    """Flattened x/y arrays of an evenly spaced grid over the canvas."""
    vb = projection.view_box
    xs = np.arange(step / 2, vb.width, step)
    ys = np.arange(step / 2, vb.height, step)
    gx, gy = np.meshgrid(xs, ys)
    return gx.ravel(), gy.ravel()


def render_plotly_map(
    projection: Projection,
    countries: CountryIndex | None,
    pan_y: float = 0.0,
    pin: Coordinate | None = None,
) -> go.Figure:
    """Render the map as a Plotly figure in canvas coordinates.

    Country outlines go into a single line trace with None separators.
    Pan is applied to the outline, region label and pin y values; the pick grid is not
    panned because it samples raw canvas positions.

    Args:
        projection: Rotation/zoom in effect for this frame.
        countries: Loaded country polygons, or None.
        pan_y: Vertical translation in canvas pixels.
        pin: The single pin, if any.

    Returns:
        Plotly Figure object.
    """
    vb = projection.view_box

    lx: list[float | None] = []
    ly: list[float | None] = []
    if countries is not None:
        for feature in countries.features:
            for line in project_geometry(projection, feature.geometry):
                for x, y in line:
                    lx.append(x)
                    ly.append(y + pan_y)
                lx.append(None)
                ly.append(None)

    outline_trace = go.Scatter(
        x=lx,
        y=ly,
        mode="lines",
        line=dict(color=_BORDER, width=0.8),
        hoverinfo="skip",
        name="countries",
    )

    gx, gy = pick_grid(projection)
    pick_trace = go.Scatter(
        x=gx,
        y=gy,
        mode="markers",
        marker=dict(size=PICK_GRID_STEP, color="rgba(0,0,0,0)", line=dict(width=0)),
        hoverinfo="none",
        name=PICK_TRACE_NAME,
    )

    labels = project_labels(projection, pan_y)
    region_trace = go.Scatter(
        x=[x for _, x, _ in labels],
        y=[y for _, _, y in labels],
        mode="text",
        text=[name for name, _, _ in labels],
        textfont=dict(color=_REGION, size=12),
        hoverinfo="skip",
        name="regions",
    )

    traces = [outline_trace, pick_trace, region_trace]
    if pin is not None:
        point = projection.forward(pin)
        if point is not None:
            traces.append(
                go.Scatter(
                    x=[point.x],
                    y=[point.y + pan_y],
                    mode="markers+text",
                    marker=dict(size=14, color=_PIN, symbol="circle", line=dict(color="white", width=2)),
                    text=[format_coordinate(pin)],
                    textposition="bottom center",
                    hoverinfo="skip",
                    name="pin",
                )
            )

    fig = go.Figure(data=traces)
    fig.update_layout(
        paper_bgcolor=_BG,
        plot_bgcolor=_BG,
        margin=dict(l=0, r=0, t=0, b=0),
        showlegend=False,
        dragmode=False,
        clickmode="event+select",
        xaxis=dict(range=[0, vb.width], visible=False, fixedrange=True),
        yaxis=dict(
            range=[vb.height, 0],
            visible=False,
            fixedrange=True,
            scaleanchor="x",
            scaleratio=1,
        ),
    )
    return fig
