# kmh_project_root/analytics/alert_feed.py
# SME PLATINUM STANDARD - FETCH-AND-GENERATE ALERT CYCLE

"""
Runs one alert generation cycle: fetch the patient, case and district
snapshots concurrently, join them, then evaluate the rule engine.

A cycle is all-or-nothing. If any of the three reads fails the cycle raises
(or, through `AlertFeed`, records an error state) and no alerts are published.

`AlertFeed` keeps the observable state for a view. Each refresh takes a new
generation number; a result is only applied if no newer refresh has started
in the meantime, so a slow, superseded cycle can never overwrite fresher data.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, List, Optional, Union

import pandas as pd

from data_processing.errors import RecordStoreError
from data_processing.helpers import to_utc_timestamp
from data_processing.record_store import RecordStore
from .alerting import Alert, generate_health_alerts

logger = logging.getLogger(__name__)

StoreSource = Union[RecordStore, Callable[[], RecordStore]]


@dataclass(frozen=True)
class AlertSnapshot:
    patients: pd.DataFrame
    cases: pd.DataFrame
    districts: pd.DataFrame


class FeedStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    ERROR = "error"


@dataclass(frozen=True)
class AlertFeedState:
    status: FeedStatus = FeedStatus.IDLE
    alerts: List[Alert] = field(default_factory=list)
    error: Optional[str] = None
    generated_at: Optional[pd.Timestamp] = None
    generation: int = 0

    @property
    def is_all_clear(self) -> bool:
        """True only for a successful cycle that produced no alerts."""
        return self.status == FeedStatus.READY and not self.alerts


async def fetch_alert_snapshot(store: RecordStore, scope: Optional[str] = None) -> AlertSnapshot:
    """
    Reads the three source collections concurrently. `scope` restricts patients
    and cases to one district; districts are always read in full.
    """
    patients, cases, districts = await asyncio.gather(
        store.list_patients(scope),
        store.list_disease_cases(scope),
        store.list_districts(),
    )
    logger.debug(f"Fetched alert snapshot (scope={scope or 'all'}): {len(patients)} patients, {len(cases)} cases, {len(districts)} districts.")
    return AlertSnapshot(patients=patients, cases=cases, districts=districts)


async def run_alert_cycle(store: RecordStore, now: Any, scope: Optional[str] = None) -> List[Alert]:
    snapshot = await fetch_alert_snapshot(store, scope)
    return generate_health_alerts(snapshot.patients, snapshot.cases, snapshot.districts, now)


class AlertFeed:
    def __init__(self):
        self._state = AlertFeedState()
        self._generation = 0

    @property
    def state(self) -> AlertFeedState:
        return self._state

    def _begin(self) -> int:
        # Alerts from an earlier generation are never shown while a new one runs.
        self._generation += 1
        self._state = AlertFeedState(status=FeedStatus.LOADING, generation=self._generation)
        return self._generation

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation

    def _fail(self, generation: int, message: str) -> AlertFeedState:
        self._state = AlertFeedState(status=FeedStatus.ERROR, error=message, generation=generation)
        return self._state

    async def refresh(self, store: StoreSource, now: Any, scope: Optional[str] = None) -> AlertFeedState:
        """
        Starts a new generation and applies its outcome if it is still the
        latest when it finishes. Returns the feed state after the attempt.

        `store` may be a record store or a zero-argument callable that builds
        one; building it is part of the cycle, so a misconfigured store ends
        in the error state like any failed read. Unexpected exceptions also
        leave the feed in the error state and are then re-raised.
        """
        generation = self._begin()
        evaluated_at = to_utc_timestamp(now)
        try:
            resolved = store() if callable(store) else store
            alerts = await run_alert_cycle(resolved, evaluated_at, scope)
        except RecordStoreError as e:
            if not self._is_current(generation):
                logger.info(f"Discarding failure of superseded alert generation {generation}.")
                return self._state
            logger.error(f"Alert generation {generation} failed: {e}", exc_info=True)
            return self._fail(generation, str(e))
        except Exception as e:
            logger.error(f"Alert generation {generation} failed unexpectedly: {e}", exc_info=True)
            if self._is_current(generation):
                self._fail(generation, f"Unexpected error while generating alerts: {e}")
            raise

        if not self._is_current(generation):
            logger.info(f"Discarding result of superseded alert generation {generation} (latest is {self._generation}).")
            return self._state
        self._state = AlertFeedState(status=FeedStatus.READY, alerts=alerts, generated_at=evaluated_at, generation=generation)
        return self._state
