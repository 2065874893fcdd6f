"""Panel session state.

``transition`` is a pure function over immutable states; ``DesignPanel``
drives the generation and application pipelines around it. Submitting or
applying is refused while either pipeline is in flight.
"""

import logging
import threading
import time
import uuid
from collections import OrderedDict
from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple, Union

from canvas_designer.schemas import DesignSuggestion
from canvas_designer.services.applier import Applied, ApplicationEngine, ApplyOutcome
from canvas_designer.services.llm import describe_generation_error
from canvas_designer.services.normalizer import normalize
from canvas_designer.services.prompt_builder import build_design_prompt

logger = logging.getLogger(__name__)


class PanelPhase(str, Enum):
    IDLE = "idle"
    GENERATING = "generating"
    SUGGESTIONS = "suggestions"
    APPLYING = "applying"


BUSY_PHASES = (PanelPhase.GENERATING, PanelPhase.APPLYING)


class InvalidTransition(Exception):
    pass


class EmptyPromptError(ValueError):
    pass


class UnknownSuggestion(LookupError):
    pass


class UnknownSession(LookupError):
    pass


@dataclass(frozen=True)
class PanelState:
    phase: PanelPhase = PanelPhase.IDLE
    prompt: Optional[str] = None
    suggestions: Tuple[DesignSuggestion, ...] = ()
    error: Optional[str] = None
    applying_index: Optional[int] = None

    @property
    def busy(self) -> bool:
        return self.phase in BUSY_PHASES


@dataclass(frozen=True)
class Submit:
    prompt: str


@dataclass(frozen=True)
class Generated:
    suggestions: Tuple[DesignSuggestion, ...]


@dataclass(frozen=True)
class GenerationFailed:
    error: str


@dataclass(frozen=True)
class ApplyRequested:
    index: int


@dataclass(frozen=True)
class ApplyFinished:
    error: Optional[str] = None


@dataclass(frozen=True)
class Dismissed:
    pass


PanelEvent = Union[Submit, Generated, GenerationFailed, ApplyRequested, ApplyFinished, Dismissed]


def _require(state: PanelState, phase: PanelPhase, event: PanelEvent) -> None:
    if state.phase is not phase:
        raise InvalidTransition(f"{type(event).__name__} not allowed while {state.phase.value}")


def transition(state: PanelState, event: PanelEvent) -> PanelState:
    if isinstance(event, Submit):
        if state.busy:
            raise InvalidTransition(f"Cannot submit while {state.phase.value}")
        if not event.prompt.strip():
            raise EmptyPromptError("Prompt must not be empty")
        # Previous suggestions are dropped, not carried over.
        return PanelState(phase=PanelPhase.GENERATING, prompt=event.prompt)

    if isinstance(event, Generated):
        _require(state, PanelPhase.GENERATING, event)
        return replace(state, phase=PanelPhase.SUGGESTIONS, suggestions=tuple(event.suggestions), error=None)

    if isinstance(event, GenerationFailed):
        _require(state, PanelPhase.GENERATING, event)
        return replace(state, phase=PanelPhase.IDLE, error=event.error)

    if isinstance(event, ApplyRequested):
        if state.busy:
            raise InvalidTransition(f"Cannot apply while {state.phase.value}")
        if not 0 <= event.index < len(state.suggestions):
            raise UnknownSuggestion(f"No design suggestion at index {event.index}")
        return replace(state, phase=PanelPhase.APPLYING, applying_index=event.index, error=None)

    if isinstance(event, ApplyFinished):
        _require(state, PanelPhase.APPLYING, event)
        return replace(state, phase=PanelPhase.SUGGESTIONS, applying_index=None, error=event.error)

    if isinstance(event, Dismissed):
        if state.busy:
            raise InvalidTransition(f"Cannot dismiss while {state.phase.value}")
        return PanelState()

    raise InvalidTransition(f"Unknown event {event!r}")


class DesignPanel:
    def __init__(self, client, prompt_builder: Callable[[str], str] = build_design_prompt) -> None:
        self.client = client
        self.prompt_builder = prompt_builder
        self.state = PanelState()
        self._lock = threading.Lock()

    def _dispatch(self, event: PanelEvent) -> PanelState:
        with self._lock:
            self.state = transition(self.state, event)
            return self.state

    def generate(self, prompt: str) -> List[DesignSuggestion]:
        self._dispatch(Submit(prompt))
        try:
            raw_text = self.client.generate(self.prompt_builder(prompt))
        except Exception as e:
            logger.error("Error generating design: %s", e)
            self._dispatch(GenerationFailed(describe_generation_error(e)))
            raise

        suggestions = normalize(raw_text, prompt)
        self._dispatch(Generated(tuple(suggestions)))
        return suggestions

    def apply(self, index: int, engine: ApplicationEngine) -> ApplyOutcome:
        state = self._dispatch(ApplyRequested(index))
        design = state.suggestions[index]
        try:
            outcome = engine.apply(design)
        except Exception as e:
            self._dispatch(ApplyFinished(error=str(e)))
            raise

        error = None if isinstance(outcome, Applied) else outcome.error_message
        self._dispatch(ApplyFinished(error=error))
        return outcome

    def dismiss(self) -> None:
        self._dispatch(Dismissed())


DEFAULT_MAX_SESSIONS = 256
DEFAULT_IDLE_SECONDS = 1800


class PanelStore:
    """In-memory panel sessions keyed by session id.

    Sessions idle for longer than ``idle_seconds`` are dropped, and once
    ``max_sessions`` is reached the least recently used one goes first.
    Panels with a pipeline in flight are never evicted.
    """

    def __init__(
        self,
        client_factory: Callable[[], object],
        max_sessions: int = DEFAULT_MAX_SESSIONS,
        idle_seconds: float = DEFAULT_IDLE_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.client_factory = client_factory
        self.max_sessions = max_sessions
        self.idle_seconds = idle_seconds
        self.clock = clock
        self._panels: "OrderedDict[str, DesignPanel]" = OrderedDict()
        self._last_used: Dict[str, float] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._panels)

    def _touch(self, session_id: str) -> None:
        self._panels.move_to_end(session_id)
        self._last_used[session_id] = self.clock()

    def _drop(self, session_id: str) -> None:
        self._panels.pop(session_id, None)
        self._last_used.pop(session_id, None)
        logger.debug("Evicted panel session %s", session_id)

    def _expired(self, session_id: str, now: float) -> bool:
        panel = self._panels[session_id]
        return not panel.state.busy and now - self._last_used[session_id] > self.idle_seconds

    def _evict(self) -> None:
        now = self.clock()
        for session_id in [sid for sid in self._panels if self._expired(sid, now)]:
            self._drop(session_id)

        # Oldest first
        for session_id, panel in list(self._panels.items()):
            if len(self._panels) < self.max_sessions:
                break
            if not panel.state.busy:
                self._drop(session_id)

    def get_or_create(self, session_id: Optional[str] = None) -> Tuple[str, DesignPanel]:
        """Return the live session, or open a new one under a fresh id."""
        with self._lock:
            if session_id in self._panels and not self._expired(session_id, self.clock()):
                self._touch(session_id)
                return session_id, self._panels[session_id]

            self._evict()
            panel = DesignPanel(self.client_factory())
            session_id = uuid.uuid4().hex
            self._panels[session_id] = panel
            self._touch(session_id)
            return session_id, panel

    def get(self, session_id: str) -> DesignPanel:
        with self._lock:
            if session_id not in self._panels:
                raise UnknownSession(f"Unknown session {session_id}")
            if self._expired(session_id, self.clock()):
                self._drop(session_id)
                raise UnknownSession(f"Session {session_id} expired")
            self._touch(session_id)
            return self._panels[session_id]

    def discard(self, session_id: str) -> None:
        panel = self.get(session_id)
        panel.dismiss()
        with self._lock:
            self._drop(session_id)
