#file: frontend/app.py

import os
import sys

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

import asyncio
from datetime import date, timedelta

import pandas as pd
import streamlit as st

st.set_page_config(page_title="Air quality history", page_icon="🌍", layout="wide")
pd.options.display.float_format = "{:.2f}".format

from frontend.data_fetch import fetch_series, fetch_station_info
from frontend.station_api import fetch_stations
from frontend.ui_elements import STEP_LABELS, display_historical_chart, display_map, display_statistics
from frontend.utils import CUSTOM, format_last_seen, get_station_names_and_dict, process_historical_data, selected_time_range
from historical.config import load_config
from historical.controller import HistoricalViewController
from historical.models import PresetRange, TimeStep, ViewStatus

NO_STATION = "—"
PRESET_LABELS = {"3h" : "3 hours", "24h" : "24 hours", "7d" : "7 days", "30d" : "30 days", CUSTOM : "Custom"}


async def apply(action, *args) :
    """Run one controller operation and wait for the fetches it started."""
    await action(*args)
    await st.session_state.controller.settle()


def get_controller() :
    if "controller" not in st.session_state :
        st.session_state.controller = HistoricalViewController(fetch_series, load_config())
    return st.session_state.controller


@st.cache_data(ttl = 300)
def load_stations() :
    return fetch_stations()


def on_station_change() :
    controller = get_controller()
    station_id = station_dict.get(st.session_state.station_name)
    if station_id is None :
        asyncio.run(apply(controller.close))
        return
    station = asyncio.run(fetch_station_info(station_id)) or available_stations[station_id]
    asyncio.run(apply(controller.select, station))


def on_pollutant_toggle(code) :
    asyncio.run(apply(get_controller().toggle_pollutant, code))


def on_range_change(from_date_input = False) :
    time_range = selected_time_range(st.session_state.range_choice, st.session_state.get("custom_dates"),
                                     from_date_input)
    if time_range is None :
        return
    asyncio.run(apply(get_controller().set_time_range, time_range))


def on_step_change() :
    asyncio.run(apply(get_controller().set_time_step, TimeStep(st.session_state.step_choice)))


def on_refresh() :
    asyncio.run(apply(get_controller().refresh))


# Streamlit UI
st.title("Air quality history")
controller = get_controller()

available_stations = load_stations()
station_names, station_dict = get_station_names_and_dict(available_stations)
station_names.sort()  # Sort stations alphabetically

if not available_stations :
    st.warning("No stations available.")
    st.stop()

col1, col2 = st.columns([1, 2])
with col1 :
    st.selectbox("Select a station", [NO_STATION] + station_names, key = "station_name", on_change = on_station_change)

    station = controller.station
    if station is None :
        st.info("Select a station to display its history.")
        st.stop()

    st.subheader(station.name.replace("_", " "))
    last_seen = format_last_seen(station.last_seen_sec)
    st.caption(" · ".join(filter(None, [station.address or "ModuleAir", last_seen])))

    # Pollutant toggles mirror the controller's selection
    pollutants = controller.config.pollutants
    for code in controller.available_pollutants :
        st.session_state[f"pollutant_{code}"] = code in controller.controls.selected_pollutants
        st.checkbox(pollutants[code].name, key = f"pollutant_{code}", on_change = on_pollutant_toggle, args = (code,))

with col2 :
    display_map(pd.DataFrame([station.model_dump(include = {"id", "name", "lat", "lon"})]))

# Time range and time step
controls = controller.controls
col1, col2, col3 = st.columns([3, 3, 1])
with col1 :
    range_choice = controls.time_range.preset.value if isinstance(controls.time_range, PresetRange) else CUSTOM
    st.session_state.range_choice = range_choice
    st.radio("Period", list(PRESET_LABELS), format_func = PRESET_LABELS.get, key = "range_choice",
             horizontal = True, on_change = on_range_change)
    if range_choice == CUSTOM :
        st.session_state.custom_dates = (controls.time_range.start_date, controls.time_range.end_date)
    else :
        today = date.today()
        st.session_state.custom_dates = (today - timedelta(days = 1), today)
    st.date_input("Custom period", key = "custom_dates", max_value = date.today(),
                  on_change = on_range_change, args = (True,))

with col2 :
    options = [option.step.value for option in controller.step_options() if option.supported]
    st.session_state.step_choice = controls.time_step.value
    st.radio("Time step", options, key = "step_choice", horizontal = True, on_change = on_step_change,
             format_func = lambda step : STEP_LABELS[step],
             captions = ["" if option.valid_for_range else "period will be shortened"
                         for option in controller.step_options() if option.supported])

with col3 :
    st.button("Refresh", on_click = on_refresh)

notice = controller.notice
if notice and controller.notice_id != st.session_state.get("shown_notice_id") :
    st.toast(notice)
    st.session_state.shown_notice_id = controller.notice_id

# Data visualization
state = controller.state
if state.status == ViewStatus.LOADING :
    st.info("Loading historical data...")
elif state.status == ViewStatus.ERROR :
    st.error(state.message)
else :
    primary = controls.primary_pollutant
    if primary :
        display_statistics(controller.statistics, pollutants[primary].name)
    df = process_historical_data(controller.series, pollutants)
    display_historical_chart(df, controls.time_step.value)
