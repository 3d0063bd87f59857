# file: historical/controller.py

"""
Historical data view controller.

Every external call is turned into an event and appended to a FIFO queue.
The queue is drained to a fixed point by a single loop, so a handler that
needs a follow-up change (a toggle that invalidates the time step, a fetch
that settles) posts another event instead of calling into another handler.
Fetches run as asyncio tasks and report back through `FetchSettled`.
"""

import asyncio
import logging
from collections import deque
from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable, Deque, Dict, List, Mapping, NamedTuple, Optional, Sequence, Set, Tuple, Union

import pytz

from historical.config import ViewConfig
from historical.dedup import FetchDeduplicator
from historical.events import (
    ChangeTimeRange,
    ChangeTimeStep,
    Close,
    FetchKind,
    FetchRequest,
    FetchSettled,
    Refresh,
    SelectStation,
    TogglePollutant,
)
from historical.models import (
    ChartControls,
    FetchRequestKey,
    HistoricalSeries,
    Sample,
    Station,
    Statistics,
    TimeRange,
    TimeStep,
    ViewState,
    ViewStatus,
)
from historical.policy import (
    fetch_window,
    initial_step,
    is_step_valid_for_range,
    max_history_days,
    range_descriptor,
    reconcile,
    supported_steps,
)
from historical.statistics import compute_statistics
from historical.store import HistoricalSeriesStore

FetchSeries = Callable[[str, str, TimeStep, str, str], Awaitable[Sequence[Union[Sample, Mapping[str, Any]]]]]

LOAD_ERROR_MESSAGE = "Historical data could not be loaded."


class StepOption(NamedTuple):
    step: TimeStep
    supported: bool
    valid_for_range: bool


class HistoricalViewController:
    """Owns the chart controls and fetched series of one station panel."""

    def __init__(self,
                 fetch_series: FetchSeries,
                 config: Optional[ViewConfig] = None,
                 clock: Optional[Callable[[], datetime]] = None) -> None:
        self.config = config or ViewConfig()
        self._fetch_series = fetch_series
        self._clock = clock or (lambda: datetime.now(pytz.utc))

        self._queue: Deque[Any] = deque()
        self._draining = False
        self._handlers: Dict[type, Callable[[Any], None]] = {
            SelectStation: self._on_select_station,
            TogglePollutant: self._on_toggle_pollutant,
            ChangeTimeRange: self._on_change_time_range,
            ChangeTimeStep: self._on_change_time_step,
            Refresh: self._on_refresh,
            Close: self._on_close,
            FetchSettled: self._on_fetch_settled,
        }
        self._fetches: Set[asyncio.Task] = set()

        self._dedup = FetchDeduplicator()
        self._store = HistoricalSeriesStore()
        self._load_key: Optional[FetchRequestKey] = None
        self._session = 0
        self._notice_id = 0

        self.station: Optional[Station] = None
        self.controls = self._default_controls()
        self.state = ViewState()
        self.statistics: Optional[Statistics] = None
        self._notice: Optional[str] = None
        self._notice_expires_at: Optional[datetime] = None

    # Operations

    async def select(self, station: Optional[Station]) -> None:
        self._post(SelectStation(station))

    async def toggle_pollutant(self, code: str) -> None:
        self._post(TogglePollutant(code))

    async def set_time_range(self, time_range: TimeRange) -> None:
        self._post(ChangeTimeRange(time_range))

    async def set_time_step(self, time_step: TimeStep) -> None:
        self._post(ChangeTimeStep(TimeStep(time_step)))

    async def refresh(self) -> None:
        self._post(Refresh())

    async def close(self) -> None:
        self._post(Close())

    async def settle(self) -> None:
        """Wait until every fetch issued so far has settled and been processed."""
        while True:
            pending = [task for task in self._fetches if not task.done()]
            if not pending:
                return
            await asyncio.gather(*pending)

    # Read-only views for the renderer

    @property
    def series(self) -> Dict[str, HistoricalSeries]:
        return self._store.visible(self.controls.selected_pollutants)

    @property
    def supported_steps(self) -> Tuple[TimeStep, ...]:
        return supported_steps(self.controls.selected_pollutants, self.config.pollutants)

    @property
    def available_pollutants(self) -> List[str]:
        if self.station is None:
            return []
        return [code for code in self.config.pollutants if self.station.has_pollutant(code)]

    @property
    def fetch_in_flight(self) -> bool:
        return self._dedup.in_flight

    @property
    def notice(self) -> Optional[str]:
        """Range-correction message, gone once its display delay has passed on the clock."""
        if self._notice is None or self._clock() >= self._notice_expires_at:
            return None
        return self._notice

    @property
    def notice_id(self) -> int:
        return self._notice_id

    def step_options(self) -> List[StepOption]:
        supported = self.supported_steps
        return [
            StepOption(step, step in supported,
                       is_step_valid_for_range(step, self.controls.time_range, self.config.max_history_days))
            for step in TimeStep
        ]

    # Event loop

    def _post(self, event: Any) -> None:
        self._queue.append(event)
        if self._draining:
            return
        self._draining = True
        try:
            while self._queue:
                event = self._queue.popleft()
                self._handlers[type(event)](event)
        finally:
            self._draining = False
        self.statistics = compute_statistics(self.controls.selected_pollutants, self.series, self.config.pollutants)

    # Handlers

    def _on_select_station(self, event: SelectStation) -> None:
        station = event.station
        if station is None:
            self._on_close(Close())
            return
        if self.station is not None and self.station.id == station.id:
            self.station = station
            return

        logging.info(f"Opening historical view for station {station.id}")
        self.station = station
        self._session += 1
        self._dedup.reset()
        self._clear_notice()
        self.controls = self._initial_controls()
        self._reload()

    def _on_toggle_pollutant(self, event: TogglePollutant) -> None:
        if self.station is None:
            return
        code = event.code
        if code not in self.config.pollutants or not self.station.has_pollutant(code):
            logging.warning(f"Pollutant {code} is not available at station {self.station.id}")
            return

        selected = self.controls.selected_pollutants
        if code in selected:
            selected.remove(code)
            return
        selected.append(code)

        supported = self.supported_steps
        if self.controls.time_step not in supported:
            self._queue.append(ChangeTimeStep(supported[0]))
            return
        if code in self._store:
            return
        if self.state.status == ViewStatus.ERROR:
            self._reload()
        else:
            self._augment(code)

    def _on_change_time_range(self, event: ChangeTimeRange) -> None:
        if self.station is None:
            return
        step = self.controls.time_step
        time_range, was_corrected = reconcile(event.time_range, step, self._clock().date(),
                                              self.config.max_history_days)
        self.controls.time_range = time_range
        if was_corrected:
            self._show_notice(step)
        self._reload()

    def _on_change_time_step(self, event: ChangeTimeStep) -> None:
        if self.station is None:
            return
        step = event.time_step
        if step not in self.supported_steps:
            logging.warning(f"Time step {step.value} is not supported by {self.controls.selected_pollutants}")
            return
        if step == self.controls.time_step:
            return

        time_range, was_corrected = reconcile(self.controls.time_range, step, self._clock().date(),
                                              self.config.max_history_days)
        self.controls.time_step = step
        self.controls.time_range = time_range
        if was_corrected:
            self._show_notice(step)
        self._reload()

    def _on_refresh(self, event: Refresh) -> None:
        if self.station is not None:
            self._reload()

    def _on_close(self, event: Close) -> None:
        if self.station is not None:
            logging.info(f"Closing historical view for station {self.station.id}")
        self.station = None
        self._session += 1
        self._dedup.reset()
        self._store.clear()
        self._load_key = None
        self.controls = self._default_controls()
        self._clear_notice()
        self._set_state(ViewStatus.CLOSED)

    def _on_fetch_settled(self, event: FetchSettled) -> None:
        request = event.request
        if not self._is_current(request):
            logging.debug(f"Discarded stale {request.kind.value} result for {request.key}")
            return

        if request.key == self._load_key and self.state.status == ViewStatus.LOADING:
            if event.error is not None:
                self._store.clear()
                self._set_state(ViewStatus.ERROR, LOAD_ERROR_MESSAGE)
                return
            merged = self._store.as_dict()
            merged.update(event.series)
            self._store.replace_all(merged)
            self._set_state(ViewStatus.READY)
            return

        # Same station, range and step: still valid data for this view
        if event.error is None:
            for pollutant, samples in event.series.items():
                self._store.merge_one(pollutant, samples)

    # Helpers

    def _default_controls(self) -> ChartControls:
        return ChartControls(
            selected_pollutants=[],
            time_range=self.config.default_time_range,
            time_step=self.config.default_time_step,
        )

    def _initial_controls(self) -> ChartControls:
        available = self.available_pollutants
        if self.config.default_pollutant in available:
            selected = [self.config.default_pollutant]
        elif available:
            selected = [available[0]]
        else:
            selected = []

        step = initial_step(selected, self.config.pollutants, self.config.default_time_step)
        time_range, _ = reconcile(self.config.default_time_range, step, self._clock().date(),
                                  self.config.max_history_days)
        return ChartControls(selected_pollutants=selected, time_range=time_range, time_step=step)

    def _current_context(self) -> Optional[Tuple[str, str, TimeStep]]:
        if self.station is None:
            return None
        return self.station.id, range_descriptor(self.controls.time_range), self.controls.time_step

    def _is_current(self, request: FetchRequest) -> bool:
        return (request.session == self._session
                and self.state.status != ViewStatus.CLOSED
                and request.context == self._current_context())

    def _make_key(self, pollutants: Sequence[str]) -> FetchRequestKey:
        return FetchRequestKey(
            station_id=self.station.id,
            pollutants=tuple(sorted(pollutants)),
            time_range=range_descriptor(self.controls.time_range),
            time_step=self.controls.time_step,
        )

    def _reload(self) -> None:
        """Fetch every selected pollutant again and show the loading state."""
        self._store.clear()
        if not self.controls.selected_pollutants:
            self._load_key = None
            self._set_state(ViewStatus.READY)
            return

        key = self._make_key(self.controls.selected_pollutants)
        self._load_key = key
        self._set_state(ViewStatus.LOADING)
        self._dispatch(FetchKind.LOAD, key)

    def _augment(self, pollutant: str) -> None:
        """Fetch a single pollutant in the background, keeping the others on screen."""
        self._dispatch(FetchKind.AUGMENT, self._make_key([pollutant]))

    def _dispatch(self, kind: FetchKind, key: FetchRequestKey) -> None:
        if not self._dedup.admit(key):
            return
        start, end = fetch_window(self.controls.time_range, self._clock())
        request = FetchRequest(kind=kind, key=key, session=self._session, start=start, end=end)
        logging.debug(f"Dispatching {kind.value} fetch {key} from {start} to {end}")
        task = asyncio.get_running_loop().create_task(self._run_fetch(request))
        self._fetches.add(task)
        task.add_done_callback(self._fetches.discard)

    async def _run_fetch(self, request: FetchRequest) -> None:
        series: Dict[str, HistoricalSeries] = {}
        error: Optional[Exception] = None
        try:
            results = await asyncio.gather(*(self._fetch_pollutant(request, pollutant)
                                             for pollutant in request.pollutants))
            series = dict(zip(request.pollutants, results))
        except Exception as e:
            error = e
            logging.error(f"Error fetching historical data for station {request.station_id} "
                          f"({', '.join(request.pollutants)}): {e}")
        finally:
            # a previous session's fetch must not release a key of the current one
            if request.session == self._session:
                self._dedup.settle(request.key)
        self._post(FetchSettled(request=request, series=series, error=error))

    async def _fetch_pollutant(self, request: FetchRequest, pollutant: str) -> HistoricalSeries:
        samples = await self._fetch_series(request.station_id, pollutant, request.key.time_step,
                                           request.start, request.end)
        return [sample if isinstance(sample, Sample) else Sample.model_validate(sample) for sample in samples]

    def _set_state(self, status: ViewStatus, message: Optional[str] = None) -> None:
        station_id = self.station.id if self.station is not None else None
        self.state = ViewState(status=status, station_id=station_id, message=message)

    def _show_notice(self, step: TimeStep) -> None:
        max_days = max_history_days(step, self.config.max_history_days)
        self._notice_id += 1
        self._notice = f"The period was automatically shortened to {max_days} days for the selected time step."
        self._notice_expires_at = self._clock() + timedelta(seconds=self.config.notice_delay)

    def _clear_notice(self) -> None:
        self._notice = None
        self._notice_expires_at = None
        self._notice_id += 1
