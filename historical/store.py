# file: historical/store.py

from typing import Dict, Iterable, List, Mapping, Optional

from historical.models import HistoricalSeries


class HistoricalSeriesStore:
    """Per-pollutant cache of the series fetched for the selected station.

    Entries of deselected pollutants are kept so toggling them back on is
    free; only `visible` should be handed to the chart.
    """

    def __init__(self) -> None:
        self._series: Dict[str, HistoricalSeries] = {}

    def __contains__(self, pollutant: str) -> bool:
        return pollutant in self._series

    def __len__(self) -> int:
        return len(self._series)

    def get(self, pollutant: str) -> Optional[HistoricalSeries]:
        return self._series.get(pollutant)

    def pollutants(self) -> List[str]:
        return list(self._series)

    def as_dict(self) -> Dict[str, HistoricalSeries]:
        return dict(self._series)

    def replace_all(self, series: Mapping[str, HistoricalSeries]) -> None:
        self._series = {pollutant: list(samples) for pollutant, samples in series.items()}

    def merge_one(self, pollutant: str, series: HistoricalSeries) -> None:
        self._series[pollutant] = list(series)

    def remove(self, pollutant: str) -> None:
        self._series.pop(pollutant, None)

    def clear(self) -> None:
        self._series = {}

    def visible(self, selection: Iterable[str]) -> Dict[str, HistoricalSeries]:
        """Series of the selected pollutants, in selection order."""
        return {pollutant: self._series[pollutant] for pollutant in selection if pollutant in self._series}
