"""Timeframe controller: the state machine behind the chart's granularity buttons."""

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from datetime import tzinfo

from stockchart.models.chart_data import (
    FetchStatus,
    Granularity,
    SummaryStatistics,
    Window,
)
from stockchart.models.errors import ChartDataError
from stockchart.services.candle_source import CandleSourceAdapter
from stockchart.services.normalizer import normalize
from stockchart.services.statistics import summarize
from stockchart.utils.config import config
from stockchart.utils.event_store import EventStore, EventType
from stockchart.utils.logger import StructuredLogger


# States
#
# ``generation`` counts selections. Every SelectGranularity or retry bumps it,
# and a fetch result is only applied when it carries the current generation.


@dataclass(frozen=True)
class Idle:
    """Nothing selected yet; the controller has not been started."""

    generation: int = 0


@dataclass(frozen=True)
class Loading:
    granularity: Granularity
    generation: int = 0


@dataclass(frozen=True)
class Loaded:
    granularity: Granularity
    window: Window
    statistics: SummaryStatistics | None = None
    generation: int = 0


@dataclass(frozen=True)
class Failed:
    granularity: Granularity
    message: str
    generation: int = 0


ControllerState = Idle | Loading | Loaded | Failed


# Events


@dataclass(frozen=True)
class SelectGranularity:
    granularity: Granularity


@dataclass(frozen=True)
class FetchSucceeded:
    granularity: Granularity
    window: Window
    generation: int = 0


@dataclass(frozen=True)
class FetchFailed:
    granularity: Granularity
    message: str
    generation: int = 0


@dataclass(frozen=True)
class RetryCurrent:
    pass


ControllerEvent = SelectGranularity | FetchSucceeded | FetchFailed | RetryCurrent


def active_granularity(state: ControllerState) -> Granularity | None:
    """Granularity the state is parameterized by, None when idle."""
    return getattr(state, "granularity", None)


def fetch_status(state: ControllerState) -> FetchStatus:
    """Map a controller state onto the render-facing fetch status."""
    if isinstance(state, Loading):
        return FetchStatus.LOADING
    if isinstance(state, Loaded):
        return FetchStatus.SUCCESS
    if isinstance(state, Failed):
        return FetchStatus.ERROR
    return FetchStatus.IDLE


def is_stale(state: ControllerState, event: ControllerEvent) -> bool:
    """
    True for a fetch result that no longer belongs to the pending selection.

    A result is current only while the state is Loading, for the same
    granularity and the same generation. Anything else was superseded by a
    later selection, even one for the same granularity.
    """
    if not isinstance(event, (FetchSucceeded, FetchFailed)):
        return False
    if not isinstance(state, Loading):
        return True
    return event.granularity != state.granularity or event.generation != state.generation


def transition(state: ControllerState, event: ControllerEvent) -> ControllerState:
    """
    Apply one event to a state and return the resulting state.

    Stale fetch results are discarded and the state is returned unchanged.
    RetryCurrent only acts on a failed state.
    """
    if isinstance(event, SelectGranularity):
        return Loading(Granularity(event.granularity), state.generation + 1)

    if isinstance(event, RetryCurrent):
        if isinstance(state, Failed):
            return Loading(state.granularity, state.generation + 1)
        return state

    if is_stale(state, event):
        return state

    if isinstance(event, FetchSucceeded):
        return Loaded(event.granularity, event.window, summarize(event.window), event.generation)

    if isinstance(event, FetchFailed):
        return Failed(event.granularity, event.message, event.generation)

    raise TypeError(f"Unknown controller event: {event!r}")


def describe_failure(error: Exception) -> str:
    """Human-readable message for a failed fetch."""
    reason = str(error) or type(error).__name__
    return f"Failed to fetch data: {reason}"


StateListener = Callable[[ControllerState], None]


class TimeframeController:
    """
    Owns the active granularity and the fetch lifecycle for the chart.

    Every fetch runs in its own asyncio task tagged with the granularity and
    generation it was issued for. Results are fed back through ``dispatch`` so
    a response for a superseded selection never replaces the current window.
    """

    def __init__(
        self,
        source: CandleSourceAdapter | None = None,
        instrument: str | None = None,
        default_granularity: Granularity | None = None,
        window_size: int | None = None,
        display_timezone: tzinfo | None = None,
        cancel_superseded: bool | None = None,
        event_store: EventStore | None = None,
    ):
        self.event_store = event_store
        self.source = source or CandleSourceAdapter(event_store=event_store)
        self.instrument = instrument or config.source.instrument
        self.default_granularity = Granularity(default_granularity or config.default_granularity)
        self.window_size = window_size if window_size is not None else config.chart.window_size
        self.display_timezone = display_timezone or config.display_zone
        self.cancel_superseded = (
            config.chart.cancel_superseded if cancel_superseded is None else cancel_superseded
        )
        self.logger = StructuredLogger("TimeframeController", config.logging.log_file)

        self._state: ControllerState = Idle()
        self._listeners: list[StateListener] = []
        self._tasks: dict[asyncio.Task, int] = {}

    @property
    def state(self) -> ControllerState:
        return self._state

    @property
    def status(self) -> FetchStatus:
        return fetch_status(self._state)

    @property
    def active_granularity(self) -> Granularity | None:
        return active_granularity(self._state)

    @property
    def pending_fetches(self) -> int:
        return len(self._tasks)

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """
        Register a callback invoked with every new state.

        Returns:
            A function that removes the listener again
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def start(self) -> asyncio.Task:
        """Begin loading the default granularity. Needs a running event loop."""
        return self.select_granularity(self.default_granularity)

    def select_granularity(self, granularity: Granularity | str) -> asyncio.Task:
        """Make ``granularity`` active and start fetching it."""
        state = self.dispatch(SelectGranularity(Granularity(granularity)))
        return self._launch(state.granularity, state.generation)

    def retry_current(self) -> asyncio.Task | None:
        """Re-issue the fetch for a failed granularity; no-op in any other state."""
        if not isinstance(self._state, Failed):
            return None
        state = self.dispatch(RetryCurrent())
        return self._launch(state.granularity, state.generation)

    def dispatch(self, event: ControllerEvent) -> ControllerState:
        """Apply an event to the current state and notify listeners on change."""
        previous = self._state

        if is_stale(previous, event):
            self.logger.info(
                "Discarding stale fetch result",
                context={
                    "result_granularity": event.granularity.value,
                    "result_generation": event.generation,
                    "active_granularity": getattr(active_granularity(previous), "value", None),
                    "active_generation": previous.generation,
                    "state": type(previous).__name__,
                    "outcome": "success" if isinstance(event, FetchSucceeded) else "failed",
                },
            )
            self._record(
                EventType.STALE_DISCARDED,
                "Stale fetch result discarded",
                {"granularity": event.granularity.value, "generation": event.generation},
            )
            return previous

        state = transition(previous, event)
        if state is previous:
            return previous

        self._state = state
        self.logger.info(
            "State transition",
            context={
                "event": type(event).__name__,
                "from": type(previous).__name__,
                "to": type(state).__name__,
                "granularity": active_granularity(state).value,
            },
        )
        self._record(
            EventType.STATE_TRANSITION,
            f"{type(previous).__name__} -> {type(state).__name__}",
            {"event": type(event).__name__, "granularity": active_granularity(state).value},
        )

        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception as e:
                self.logger.error(
                    "State listener raised", context={"listener": repr(listener)}, exception=e
                )
        return state

    async def load(self, granularity: Granularity) -> Window:
        """Fetch and normalize the window for one granularity."""
        observations = await self.source.fetch_observations(self.instrument, granularity)
        return normalize(
            observations,
            granularity,
            window_size=self.window_size,
            tz=self.display_timezone,
        )

    async def wait_idle(self) -> None:
        """Wait until every outstanding fetch has resolved."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def shutdown(self) -> None:
        """Cancel outstanding fetches and wait for them to unwind."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    def _launch(self, granularity: Granularity, generation: int) -> asyncio.Task:
        if self.cancel_superseded:
            for task, issued_for in list(self._tasks.items()):
                if issued_for != generation:
                    task.cancel()

        task = asyncio.get_running_loop().create_task(self._run_fetch(granularity, generation))
        self._tasks[task] = generation
        task.add_done_callback(lambda done: self._tasks.pop(done, None))
        return task

    async def _run_fetch(self, granularity: Granularity, generation: int) -> None:
        try:
            window = await self.load(granularity)
        except asyncio.CancelledError:
            self.logger.debug(
                "Fetch cancelled", context={"granularity": granularity.value}
            )
            raise
        except ChartDataError as e:
            self.dispatch(FetchFailed(granularity, describe_failure(e), generation))
        except Exception as e:
            self.logger.error(
                "Unexpected error while loading candles",
                context={"granularity": granularity.value},
                exception=e,
            )
            self.dispatch(FetchFailed(granularity, describe_failure(e), generation))
        else:
            self.dispatch(FetchSucceeded(granularity, window, generation))

    def _record(self, event_type: str, message: str, context: dict) -> None:
        if self.event_store:
            self.event_store.add_event(
                event_type=event_type,
                component="timeframe_controller",
                message=message,
                context=context,
            )
