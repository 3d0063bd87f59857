#file: frontend/ui_elements.py

import streamlit as st
import plotly.express as px

STEP_LABELS = {"instant" : "Instant", "quarter_hour" : "15 min", "hour" : "Hour", "day" : "Day"}


def display_map(station_df) :
    """Display a map with station locations."""
    # if there is no column "size" in the DataFrame, add it with a default value
    if "size" not in station_df.columns :
        station_df["size"] = 10

    fig_map = px.scatter_mapbox(
        station_df,
        lat = "lat",
        lon = "lon",
        hover_name = "name",
        size = "size",
        color_discrete_sequence = ["red"],
        zoom = 10,
        height = 400,
        title = "Station Location"
    )
    fig_map.update_layout(
        mapbox_style = "open-street-map",
        margin = {
            "r" : 0,
            "t" : 30,
            "l" : 0,
            "b" : 0
        }
    )

    st.plotly_chart(fig_map)

def display_historical_chart(data_frame, time_step) :
    """Display one line per selected pollutant."""
    if data_frame.empty :
        st.info("No data for the selected period.")
        return

    fig = px.line(
        data_frame,
        x = "timestamp",
        y = "value",
        color = "pollutant_name",
        title = f"Time series ({STEP_LABELS.get(time_step, time_step)})",
        labels = {
            "pollutant_name" : "Pollutant",
            "timestamp" : "Time",
            "value" : "Value"
        }
    )
    fig.update_layout(
        legend=dict(
            orientation="h",
            yanchor="top",
            y=-0.2,
            xanchor="center",
            x=0.5
        )
    )
    st.plotly_chart(fig)

def display_statistics(statistics, pollutant_name) :
    """Display mean, max and min of the primary pollutant."""
    if statistics is None :
        return
    st.caption(pollutant_name)
    col1, col2, col3 = st.columns(3)
    col1.metric("Mean", f"{statistics.mean:.1f} {statistics.unit}")
    col2.metric("Max", f"{statistics.max:.1f} {statistics.unit}")
    col3.metric("Min", f"{statistics.min:.1f} {statistics.unit}")
