from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from gm_os.dice import DiceRoll, DiceRoller
from gm_os.history import History, HistoryEntry, export_filename, utc_now
from gm_os.intents import (
    CACHE_REGISTRY,
    GM_TOOL_QUERIES,
    CacheKind,
    GmTool,
    Intent,
    ViewMode,
    step_intro_query,
)
from gm_os.resolver import (
    GenerationClient,
    Resolution,
    apply_outcome,
    build_request,
    classify_input,
    request_generation,
)
from gm_os.state import Clock, GameState
from llm.schemas import ComputerMessage, PlayerFacing
from scenario.documents import DocumentStore
from scenario.steps import Step, describe_step, select_step_document, step_names

logger = logging.getLogger(__name__)


class SessionError(ValueError):
    pass


class ScenarioNotLoadedError(SessionError):
    pass


class DocumentsAlreadyLoadedError(SessionError):
    pass


class UnknownDocumentError(SessionError):
    pass


@dataclass(frozen=True)
class SessionSnapshot:
    state: GameState
    view: ViewMode
    pending: bool
    pending_fills: list[str]
    documents: list[str]
    history_size: int


class BoardSession:
    """Owns one run's GameState and exposes the legal transitions on it.

    Generation calls run outside the lock; at most one is in flight and
    requests made while it is pending are dropped, not queued.
    """

    def __init__(
        self,
        llm_client: GenerationClient,
        *,
        state: GameState | None = None,
        seed: int | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._client = llm_client
        self._state = state or GameState()
        self._history = History(clock=clock)
        self._clock = clock
        self._documents = DocumentStore()
        self._view = ViewMode.TERMINAL
        self._dice = DiceRoller(seed)
        self._lock = threading.Lock()
        self._in_flight = False
        self._pending_fills: set[CacheKind] = set()
        self._step_epoch = 0

    @property
    def run_id(self) -> str:
        return self._state.run_id

    @property
    def loaded(self) -> bool:
        return bool(self._documents)

    @property
    def documents(self) -> DocumentStore:
        return self._documents

    def load_documents(self, store: DocumentStore) -> list[str]:
        with self._lock:
            if self._documents:
                raise DocumentsAlreadyLoadedError("Scenario documents are already loaded.")
            if not store:
                raise SessionError("No markdown documents were supplied.")
            self._documents = store
            steps = step_names(store)
            if steps:
                self._state.active_step = steps[0]
            logger.info(
                "Run %s loaded %d document(s), %d step(s)", self.run_id, len(store), len(steps)
            )
            return steps

    def steps(self) -> list[str]:
        return step_names(self._documents)

    def step(self, name: str) -> Step | None:
        document = select_step_document(self._documents)
        if document is None:
            return None
        return describe_step(document.content, name)

    def snapshot(self) -> SessionSnapshot:
        with self._lock:
            return SessionSnapshot(
                state=self._state.snapshot(),
                view=self._view,
                pending=self._in_flight,
                pending_fills=sorted(kind.value for kind in self._pending_fills),
                documents=self._documents.names,
                history_size=len(self._history),
            )

    def state(self) -> GameState:
        with self._lock:
            return self._state.snapshot()

    def history(self) -> tuple[HistoryEntry, ...]:
        with self._lock:
            return self._history.entries

    def select_step(self, name: str) -> Resolution | None:
        with self._lock:
            self._require_documents()
            self._state.active_step = name
            self._state.caches.clues = None
            self._step_epoch += 1
            self._history.append(
                ComputerMessage(
                    bullets=[f"STEP INITIALIZED: {name}", "LOADING BRIEF..."],
                    sources=["SYSTEM"],
                )
            )
            logger.info("Run %s entered step %s", self.run_id, name)
        return self._run(Intent.PLAYER_FACING, step_intro_query(name))

    def select_document(self, name: str) -> HistoryEntry:
        with self._lock:
            self._require_documents()
            document = self._documents.get(name)
            if document is None:
                raise UnknownDocumentError(f"Document not found: {name}")
            self._state.active_step = document.name
            bullets = [line.strip() for line in document.content.splitlines() if line.strip()]
            return self._history.append(
                PlayerFacing(title=document.name, bullets=bullets, sources=[document.name])
            )

    def switch_view(self, kind: CacheKind) -> ViewMode:
        with self._lock:
            self._require_documents()
            target = CACHE_REGISTRY[kind].view
            self._view = ViewMode.TERMINAL if self._view == target else target
            return self._view

    def close_view(self) -> ViewMode:
        with self._lock:
            self._view = ViewMode.TERMINAL
            return self._view

    def ensure_cache(self, kind: CacheKind) -> Resolution | None:
        entry = CACHE_REGISTRY[kind]
        return self._run(entry.intent, entry.fill_query, cache_kind=kind, only_if_empty=True)

    def toggle_cache_view(self, kind: CacheKind) -> Resolution | None:
        view = self.switch_view(kind)
        if view != CACHE_REGISTRY[kind].view:
            return None
        return self.ensure_cache(kind)

    def force_refresh(self, kind: CacheKind) -> Resolution | None:
        entry = CACHE_REGISTRY[kind]
        return self._run(entry.intent, entry.refresh_query, cache_kind=kind)

    def submit_input(self, text: str) -> Resolution | None:
        with self._lock:
            self._require_documents()
            turn = classify_input(text, self._state.options_list)
            if turn is None:
                return None
            self._view = ViewMode.TERMINAL
        logger.info("Run %s %s input: %s", self.run_id, turn.kind, turn.text)
        return self._run(Intent.TURN_RESULT, turn.query)

    def run_gm_tool(self, tool: GmTool) -> Resolution | None:
        return self._run(Intent(tool.value), GM_TOOL_QUERIES[tool])

    def apply_clock_delta(self, clock_id: str, delta: int) -> Clock | None:
        with self._lock:
            self._require_documents()
            clock = self._state.find_clock(clock_id)
            if clock is None:
                logger.debug("Unknown clock %s ignored", clock_id)
                return None
            clock.apply_delta(delta)
            return clock.model_copy()

    def roll_dice(self, formula: str = "1d6") -> DiceRoll:
        with self._lock:
            self._require_documents()
            return self._dice.roll(formula)

    def export(self, exported_at: datetime | None = None) -> str | None:
        with self._lock:
            return self._history.export(self.run_id, exported_at)

    def export_filename(self) -> str:
        return export_filename(self._clock().date())

    def _require_documents(self) -> None:
        if not self._documents:
            raise ScenarioNotLoadedError("Load scenario documents first.")

    def _run(
        self,
        intent: Intent,
        query: str,
        *,
        cache_kind: CacheKind | None = None,
        only_if_empty: bool = False,
    ) -> Resolution | None:
        hidden = cache_kind is not None
        with self._lock:
            self._require_documents()
            if only_if_empty and self._cache_filled(cache_kind):
                return None
            if cache_kind in self._pending_fills:
                logger.debug("Fill for %s already pending", cache_kind.value)
                return None
            if self._in_flight:
                logger.debug("Request %s ignored while another is pending", intent.value)
                return None
            self._in_flight = True
            if cache_kind is not None:
                self._pending_fills.add(cache_kind)
            epoch = self._step_epoch
            request = build_request(self._documents, self._state, query, intent)

        try:
            outcome = request_generation(self._client, request)
            with self._lock:
                if cache_kind is CacheKind.CLUES and epoch != self._step_epoch:
                    logger.info("Discarding clue fill from a previous step")
                    return None
                return apply_outcome(
                    self._state,
                    self._history,
                    outcome,
                    intent=intent,
                    query=query,
                    hidden=hidden,
                    cache_kind=cache_kind,
                )
        finally:
            with self._lock:
                self._in_flight = False
                if cache_kind is not None:
                    self._pending_fills.discard(cache_kind)

    def _cache_filled(self, kind: CacheKind | None) -> bool:
        if kind is None:
            return False
        return getattr(self._state.caches, CACHE_REGISTRY[kind].slot) is not None
