"""
Visit store - client-side state container

State only changes through ``dispatch`` with one of the ``ActionType``
transitions. Every transition returns a new ``VisitsState`` snapshot, and
any transition that touches the visit collection recomputes the per-day
groups from scratch.

The collection is restored from local storage by ``load()`` and written back
after each mutation. Writes are suppressed while loading so the defaults can
never overwrite data that has not been read yet.
"""

import asyncio
import logging
from enum import Enum
from typing import Any, Callable, Iterable, NamedTuple, Optional

from ..shared.capacity import can_accommodate
from .models import DailyGroup, LoadingState, Visit, VisitFilter, VisitsState
from .storage import LocalStorage

logger = logging.getLogger(__name__)

Listener = Callable[[VisitsState], None]


class ActionType(str, Enum):
    SET_LOADING = "SET_LOADING"
    SET_ERROR = "SET_ERROR"
    SET_VISITS = "SET_VISITS"
    ADD_VISIT = "ADD_VISIT"
    UPDATE_VISIT = "UPDATE_VISIT"
    DELETE_VISIT = "DELETE_VISIT"
    COMPLETE_VISIT = "COMPLETE_VISIT"
    SET_FILTER = "SET_FILTER"


class Action(NamedTuple):
    type: ActionType
    payload: Any = None


VISIT_MUTATIONS = {
    ActionType.SET_VISITS,
    ActionType.ADD_VISIT,
    ActionType.UPDATE_VISIT,
    ActionType.DELETE_VISIT,
    ActionType.COMPLETE_VISIT,
}


def group_visits_by_date(visits: Iterable[Visit]) -> dict[str, DailyGroup]:
    buckets: dict[str, list[Visit]] = {}
    for visit in visits:
        buckets.setdefault(visit.date, []).append(visit)

    grouped = {}
    for day, day_visits in buckets.items():
        completed = sum(1 for v in day_visits if v.completed)
        grouped[day] = DailyGroup(
            visits=tuple(day_visits),
            total_duration=sum(v.duration for v in day_visits),
            total_count=len(day_visits),
            completed_count=completed,
            completion_rate=round(completed / len(day_visits) * 100),
        )
    return grouped


def _with_visits(state: VisitsState, visits: Iterable[Visit]) -> VisitsState:
    visits = tuple(visits)
    return state.model_copy(update={"visits": visits, "grouped": group_visits_by_date(visits)})


def visits_reducer(state: VisitsState, action: Action) -> VisitsState:
    """Pure transition function: (snapshot, action) -> new snapshot"""
    kind, payload = action

    if kind == ActionType.SET_LOADING:
        return state.model_copy(update={"loading": state.loading.model_copy(update={"is_loading": bool(payload)})})
    if kind == ActionType.SET_ERROR:
        return state.model_copy(update={"loading": state.loading.model_copy(update={"error": payload})})
    if kind == ActionType.SET_VISITS:
        return _with_visits(state, payload)
    if kind == ActionType.ADD_VISIT:
        return _with_visits(state, (*state.visits, payload))
    if kind == ActionType.UPDATE_VISIT:
        return _with_visits(state, (payload if v.id == payload.id else v for v in state.visits))
    if kind == ActionType.DELETE_VISIT:
        return _with_visits(state, (v for v in state.visits if v.id != payload))
    if kind == ActionType.COMPLETE_VISIT:
        return _with_visits(
            state,
            (v.model_copy(update={"completed": True}) if v.id == payload else v for v in state.visits),
        )
    if kind == ActionType.SET_FILTER:
        return state.model_copy(update={"filter": VisitFilter(payload)})
    return state


class VisitStore:
    """Owns the current visit snapshot and the local persistence of it"""

    def __init__(self, storage: Optional[LocalStorage] = None):
        self.storage = storage or LocalStorage()
        self._state = VisitsState(loading=LoadingState(is_loading=True))
        self._listeners: list[Listener] = []

    @property
    def state(self) -> VisitsState:
        return self._state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call ``listener`` with every new snapshot; returns an unsubscribe function"""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def dispatch(self, action: Action) -> VisitsState:
        previous = self._state
        self._state = visits_reducer(previous, action)

        if action.type in VISIT_MUTATIONS and not self._state.loading.is_loading:
            self._persist()

        for listener in list(self._listeners):
            listener(self._state)
        return self._state

    def _persist(self) -> None:
        try:
            self.storage.save_visits(self._state.visits)
        except OSError as e:
            logger.error(f"❌ Failed to save visits to local storage: {e}")

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    async def load(self) -> None:
        """Restore the collection from local storage"""
        self.dispatch(Action(ActionType.SET_LOADING, True))
        self.dispatch(Action(ActionType.SET_ERROR, None))
        loaded = False
        try:
            visits = await asyncio.to_thread(self.storage.load_visits)
            self.dispatch(Action(ActionType.SET_VISITS, visits))
            loaded = True
            logger.info(f"📦 Restored {len(visits)} visits from local storage")
        except Exception as e:
            logger.error(f"❌ Failed to load visits: {e}")
            self.dispatch(Action(ActionType.SET_ERROR, "Failed to load visits"))
        finally:
            self.dispatch(Action(ActionType.SET_LOADING, False))

        # Once loading is over the restored collection becomes the saved one
        if loaded:
            self._persist()

    def add_visit(self, visit: Visit) -> VisitsState:
        return self.dispatch(Action(ActionType.ADD_VISIT, visit))

    def update_visit(self, visit: Visit) -> VisitsState:
        return self.dispatch(Action(ActionType.UPDATE_VISIT, visit))

    def delete_visit(self, visit_id: int) -> VisitsState:
        return self.dispatch(Action(ActionType.DELETE_VISIT, visit_id))

    def complete_visit(self, visit_id: int) -> VisitsState:
        return self.dispatch(Action(ActionType.COMPLETE_VISIT, visit_id))

    def set_visits(self, visits: Iterable[Visit]) -> VisitsState:
        return self.dispatch(Action(ActionType.SET_VISITS, tuple(visits)))

    def set_filter(self, visit_filter) -> VisitsState:
        return self.dispatch(Action(ActionType.SET_FILTER, visit_filter))

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def get_visit(self, visit_id: int) -> Optional[Visit]:
        return next((v for v in self._state.visits if v.id == visit_id), None)

    def daily_group(self, day: str) -> Optional[DailyGroup]:
        return self._state.grouped.get(day)

    def visits_by_date(self, day: str) -> tuple[Visit, ...]:
        group = self._state.grouped.get(day)
        return group.visits if group else ()

    def filtered_visits(self) -> tuple[Visit, ...]:
        visits = self._state.visits
        if self._state.filter == VisitFilter.COMPLETED:
            return tuple(v for v in visits if v.completed)
        if self._state.filter == VisitFilter.PENDING:
            return tuple(v for v in visits if not v.completed)
        return visits

    def total_duration_for_date(self, day: str) -> int:
        group = self._state.grouped.get(day)
        return group.total_duration if group else 0

    def can_add_visit_to_date(self, day: str, duration: int, exclude_id: Optional[int] = None) -> bool:
        return can_accommodate(self.visits_by_date(day), duration, exclude_id=exclude_id)
