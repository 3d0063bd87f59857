# file: historical/dedup.py

import logging
from typing import Optional, Set

from historical.models import FetchRequestKey


class FetchDeduplicator:
    """Admit each logical fetch once while it is in flight.

    A key equal to one still in flight is refused. Once that fetch settles the
    same key can be admitted again, which is what a manual refresh or a retry
    after an error needs.
    """

    def __init__(self) -> None:
        self._in_flight: Set[FetchRequestKey] = set()
        self.last_admitted_key: Optional[FetchRequestKey] = None

    @property
    def in_flight(self) -> bool:
        return bool(self._in_flight)

    def is_in_flight(self, key: FetchRequestKey) -> bool:
        return key in self._in_flight

    def admit(self, key: FetchRequestKey) -> bool:
        if key in self._in_flight:
            logging.debug(f"Suppressed duplicate fetch {key}")
            return False
        self._in_flight.add(key)
        self.last_admitted_key = key
        return True

    def settle(self, key: FetchRequestKey) -> None:
        self._in_flight.discard(key)

    def reset(self) -> None:
        self._in_flight.clear()
        self.last_admitted_key = None
