"""WeatherLens Streamlit app: drop a pin on the world map and get a forecast."""

import asyncio
import datetime
import html
import logging
import time
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import streamlit as st
from streamlit_js_eval import streamlit_js_eval

from weatherlens.api import WeatherLensApi
from weatherlens.chat import ask
from weatherlens.config import VIEW_BOX, load_settings
from weatherlens.countries import CountryIndex, fetch_country_index, resolve_country
from weatherlens.export import CsvExporter
from weatherlens.forecast import ForecastService, ForecastSession
from weatherlens.interaction import InteractionController
from weatherlens.models import ApiError, ContainerRect, CountryDataError, ForecastState, PointerEvent
from weatherlens.readout import format_coordinate
from weatherlens.renderers.plotly_2d import PICK_TRACE_NAME, render_plotly_map
from weatherlens.renderers.svg_2d import render_map_svg

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger("weatherlens.app")

settings = load_settings()

st.set_page_config(
    page_title="WeatherLens",
    page_icon="📍",
    layout="wide",
    initial_sidebar_state="collapsed",
)

# The plotly chart is laid out in canvas units, so client == canvas.
_CANVAS_RECT = ContainerRect(left=0.0, top=0.0, width=VIEW_BOX.width, height=VIEW_BOX.height)
_NUDGE_PX = 120.0  # Canvas px per arrow-button drag
_NUDGE_DURATION_S = 0.5


@st.cache_resource(show_spinner=False)
def _load_countries(url: str) -> CountryIndex | None:
    try:
        return fetch_country_index(url, timeout=settings.request_timeout)
    except CountryDataError as e:
        logger.warning("Country data unavailable: %s", e)
        return None


countries = _load_countries(settings.countries_url)

# --- Browser timezone (streamlit-js-eval) ---
# First run returns None; the rerun triggered by the component fills it in.
if "tz" not in st.session_state:
    _browser_tz: str | None = streamlit_js_eval(
        js_expressions="Intl.DateTimeFormat().resolvedOptions().timeZone",
        key="_tz_detect",
        height=0,
    )
    if _browser_tz is not None:
        st.session_state.tz = _browser_tz

try:
    _tz = ZoneInfo(st.session_state.get("tz") or "UTC")
except (ZoneInfoNotFoundError, ValueError):
    _tz = ZoneInfo("UTC")

# --- Session state initialization ---
if "controller" not in st.session_state:
    st.session_state.controller = InteractionController(
        pan_policy=settings.pan_policy,
        country_lookup=lambda coord: resolve_country(coord, countries),
    )
if "api_error" not in st.session_state:
    st.session_state.api_error = None
if "forecast_session" not in st.session_state:
    _api = WeatherLensApi(settings.api_base_url, timeout=settings.request_timeout)
    st.session_state.api = _api
    st.session_state.forecast_session = ForecastSession(
        ForecastService(_api, on_advisory=lambda msg: st.session_state.update(api_error=msg)),
        fallback_delay=settings.fallback_delay,
    )
if "predict_open" not in st.session_state:
    st.session_state.predict_open = False
if "last_pick" not in st.session_state:
    st.session_state.last_pick = None
if "export" not in st.session_state:
    st.session_state.export = None
if "chat_log" not in st.session_state:
    st.session_state.chat_log = []
if "health" not in st.session_state:
    st.session_state.health = None

controller: InteractionController = st.session_state.controller
forecast_session: ForecastSession = st.session_state.forecast_session
api: WeatherLensApi = st.session_state.api

st.markdown(
    """
    <style>
    iframe[src*="streamlit_js_eval"] { display: none !important; }
    [data-testid="stHeader"], [data-testid="stToolbar"] { display: none !important; }
    [data-testid="stMainBlockContainer"] { padding-top: 1rem !important; }
    .readout {
        font-family: "Bitter", serif;
        font-weight: 700;
        font-size: 24px;
        letter-spacing: 0.08em;
    }
    .api-banner {
        text-align: center;
        color: #fca5a5;
        background: rgba(255, 0, 0, 0.06);
        padding: 0.25rem;
        font-size: 0.9rem;
    }
    </style>
    """,
    unsafe_allow_html=True,
)


def _click(x: float, y: float) -> None:
    now = time.monotonic()
    controller.pointer_down(PointerEvent(x, y, now), _CANVAS_RECT)
    controller.pointer_up(PointerEvent(x, y, now), _CANVAS_RECT)


def _nudge(dx: float, dy: float) -> None:
    """Replay a slow drag from the canvas centre by (dx, dy)."""
    st.session_state.last_pick = None
    cx, cy = VIEW_BOX.width / 2, VIEW_BOX.height / 2
    start = time.monotonic()
    controller.pointer_down(PointerEvent(cx, cy, start), _CANVAS_RECT)
    controller.pointer_move(PointerEvent(cx + dx, cy + dy, start + _NUDGE_DURATION_S / 2), _CANVAS_RECT)
    controller.pointer_up(PointerEvent(cx + dx, cy + dy, start + _NUDGE_DURATION_S), _CANVAS_RECT)


def _zoom(delta_y: float) -> None:
    st.session_state.last_pick = None
    controller.wheel(delta_y)


def _refresh_forecast(when: datetime.datetime) -> ForecastState:
    st.session_state.api_error = None
    st.session_state.export = None
    with st.spinner("Loading forecast…"):
        return asyncio.run(forecast_session.refresh(controller.pin, when))


# --- Header: date & time ---
st.markdown("## LOCATION")
hcol1, hcol2, _ = st.columns([2, 2, 6])
with hcol1:
    date_val = st.date_input("Date", value=datetime.date.today())
with hcol2:
    time_val = st.time_input("Time", value=datetime.time(12, 0), step=3600)
when = datetime.datetime.combine(date_val, time_val, tzinfo=_tz)

# --- Map ---
fig = render_plotly_map(controller.projection(), countries, controller.pan_y, controller.pin)
event = st.plotly_chart(
    fig,
    use_container_width=True,
    on_select="rerun",
    selection_mode="points",
    # A new view gets a fresh chart widget, so an old selection is not replayed onto it.
    key=f"map-{controller.view_key}",
    config={"displayModeBar": False, "scrollZoom": False},
)

_pick_curve = [trace.name for trace in fig.data].index(PICK_TRACE_NAME)
_points = [p for p in event["selection"]["points"] if p.get("curve_number") == _pick_curve] if event else []
if _points:
    _pick = (_points[0]["x"], _points[0]["y"])
    if (_pick, controller.view_key) != st.session_state.last_pick:
        st.session_state.last_pick = (_pick, controller.view_key)
        _click(*_pick)
        st.rerun()

ncols = st.columns(6)
_nav = [
    ("◀", -_NUDGE_PX, 0.0),
    ("▶", _NUDGE_PX, 0.0),
    ("▲", 0.0, -_NUDGE_PX),
    ("▼", 0.0, _NUDGE_PX),
]
for col, (label, dx, dy) in zip(ncols[:4], _nav):
    with col:
        if st.button(label, key=f"nav_{label}", use_container_width=True):
            _nudge(dx, dy)
            st.rerun()
with ncols[4]:
    if st.button("＋", key="zoom_in", use_container_width=True):
        _zoom(-1)
        st.rerun()
with ncols[5]:
    if st.button("－", key="zoom_out", use_container_width=True):
        _zoom(1)
        st.rerun()

# --- Footer: readout + country ---
fcol1, fcol2, fcol3 = st.columns([3, 2, 3])
with fcol1:
    st.markdown(f"<div class='readout'>{format_coordinate(controller.readout)}</div>", unsafe_allow_html=True)
with fcol2:
    if st.button("Predict", key="predict_btn", type="primary", use_container_width=True):
        st.session_state.predict_open = True
        _refresh_forecast(when)
        st.rerun()
with fcol3:
    st.markdown(
        f"<div class='readout' style='text-align:right'>{html.escape(controller.country or '--')}</div>",
        unsafe_allow_html=True,
    )

if st.session_state.api_error:
    st.markdown("<div class='api-banner'>API calling error</div>", unsafe_allow_html=True)

# --- Prediction panel ---
if st.session_state.predict_open:
    state = forecast_session.state
    outcome = state.outcome
    # Re-run when the pin or datetime moved on since the shown result.
    if controller.pin is not None and (outcome is None or outcome.pin != controller.pin or outcome.when != when):
        if not state.loading:
            state = _refresh_forecast(when)
            outcome = state.outcome

    with st.container(border=True):
        st.subheader("Weather Prediction")
        if state.error:
            st.error(state.error)
        elif outcome is not None:
            lcol, dcol = st.columns(2)
            lcol.caption(f"Location: {format_coordinate(outcome.pin)}")
            dcol.caption(f"Date & Time: {outcome.when.strftime('%b %d, %Y %H:%M')}")
            if outcome.is_fallback:
                st.caption("Showing simulated data: the forecast service is unreachable.")

            st.markdown("#### Summary")
            st.write(outcome.forecast.summary)

            mcols = st.columns(5)
            for col, (name, value, unit) in zip(mcols, outcome.model.metrics.items()):
                col.metric(name.replace("_", " ").upper(), f"{value:g} {unit}")

            st.markdown("#### Notable Extreme Weather Probabilities")
            if outcome.model.extremes:
                ecols = st.columns(len(outcome.model.extremes))
                for col, (key, value) in zip(ecols, outcome.model.extremes.items()):
                    label = key.removesuffix("_probability").replace("_", " ")
                    col.metric(label.upper(), f"{round(value * 100)} %")
            else:
                st.caption("No extremes reported.")

            st.markdown("#### Comfort Concerns")
            if outcome.model.comfort:
                ccols = st.columns(len(outcome.model.comfort))
                for col, (key, value) in zip(ccols, outcome.model.comfort.items()):
                    col.metric(key.replace("_", " ").upper(), f"{round(value * 100)} %")
            else:
                st.caption("No comfort data.")

            st.markdown("#### Hourly precipitation")
            st.bar_chart(
                {
                    "time": [h.timestamp.strftime("%H:%M") for h in outcome.forecast.hours],
                    "precip_mm": [h.precipitation for h in outcome.forecast.hours],
                },
                x="time",
                y="precip_mm",
            )

        bcol1, bcol2, bcol3 = st.columns([1, 1, 4])
        with bcol1:
            if st.button("Close", key="close_predict"):
                forecast_session.close()
                st.session_state.forecast_session = ForecastSession(
                    forecast_session.service, fallback_delay=settings.fallback_delay
                )
                st.session_state.predict_open = False
                st.rerun()
        with bcol2:
            if st.button("Export CSV", key="export_btn", disabled=controller.pin is None):
                exporter = CsvExporter(api)
                st.session_state.export = asyncio.run(exporter.export(controller.pin, outcome))
        with bcol3:
            artifact = st.session_state.export
            if artifact is not None:
                st.download_button(
                    "Download " + artifact.filename,
                    data=artifact.content,
                    file_name=artifact.filename,
                    mime=artifact.media_type,
                )

# --- Sidebar: connectivity check + chat ---
with st.sidebar:
    st.markdown("### Backend")
    if st.button("Test connection", key="health_btn"):
        st.session_state.health = asyncio.run(api.health())
    health = st.session_state.health
    if health is not None:
        st.code(f"{health.status_code or ''} {health.reason}\n{health.text}".strip())

    st.download_button(
        "Download map (SVG)",
        data=render_map_svg(controller.projection(), countries, controller.pan_y, controller.pin),
        file_name="weatherlens-map.svg",
        mime="image/svg+xml",
    )

    st.markdown("### Ask about the weather")
    for role, content in st.session_state.chat_log:
        with st.chat_message(role):
            st.markdown(content)
    prompt = st.chat_input("Ask something…")
    if prompt:
        st.session_state.chat_log.append(("user", prompt))
        try:
            reply = asyncio.run(ask(api, prompt))
        except ApiError as e:
            logger.warning("Chat request failed: %s", e)
            reply = f"Error: {e}"
        if reply is not None:
            st.session_state.chat_log.append(("assistant", reply))
        st.rerun()
