from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Iterable, Literal, Protocol

from typing_extensions import assert_never

from gm_os.history import History, HistoryEntry
from gm_os.intents import CacheKind, Intent, choice_query, free_action_query
from gm_os.state import GameState
from llm.schemas import (
    CharactersList,
    ClueDrops,
    ComputerMessage,
    Consequences,
    GenerationRequest,
    GenerationResponse,
    GmBrief,
    Options,
    PlayerFacing,
    PlayersList,
    RailBridges,
    TurnResult,
    system_error_response,
)
from scenario.documents import Document

logger = logging.getLogger(__name__)

MAX_CHOICE_NUMBER = 10

CACHE_RESPONSE_TYPES: dict[CacheKind, type] = {
    CacheKind.CLUES: ClueDrops,
    CacheKind.NPCS: CharactersList,
    CacheKind.PLAYERS: PlayersList,
}


class GenerationClient(Protocol):
    def generate_response(self, request: GenerationRequest) -> GenerationResponse: ...


@dataclass(frozen=True)
class TurnInput:
    kind: Literal["choice", "free"]
    text: str
    query: str
    choice_number: int | None = None


@dataclass(frozen=True)
class GenerationOutcome:
    response: GenerationResponse
    failed: bool


@dataclass(frozen=True)
class Resolution:
    intent: Intent
    query: str
    response: GenerationResponse
    failed: bool
    hidden: bool
    applied: bool
    entry: HistoryEntry | None = None


def document_char_limit() -> int:
    return int(os.getenv("DOCUMENT_CHAR_LIMIT", "20000"))


def classify_input(text: str, options: list[str]) -> TurnInput | None:
    value = text.strip()
    if not value:
        return None
    try:
        number = int(value)
    except ValueError:
        number = None
    if number is not None and 1 <= number <= MAX_CHOICE_NUMBER and number <= len(options):
        option = options[number - 1]
        return TurnInput(
            kind="choice",
            text=value,
            query=choice_query(number, option),
            choice_number=number,
        )
    return TurnInput(kind="free", text=value, query=free_action_query(value))


def build_request(
    documents: Iterable[Document],
    state: GameState,
    query: str,
    intent: Intent,
    *,
    char_limit: int | None = None,
) -> GenerationRequest:
    limit = document_char_limit() if char_limit is None else char_limit
    capped = [
        Document(name=document.name, content=document.content[:limit]) for document in documents
    ]
    return GenerationRequest(
        documents=capped,
        state=state.model_dump(mode="json"),
        query=query,
        intent=intent.value,
    )


def request_generation(client: GenerationClient, request: GenerationRequest) -> GenerationOutcome:
    try:
        response = client.generate_response(request)
    except Exception:
        logger.exception("Generation failed for intent %s", request.intent)
        return GenerationOutcome(response=system_error_response(), failed=True)
    return GenerationOutcome(response=response, failed=False)


def apply_outcome(
    state: GameState,
    history: History,
    outcome: GenerationOutcome,
    *,
    intent: Intent,
    query: str,
    hidden: bool,
    cache_kind: CacheKind | None = None,
) -> Resolution:
    if hidden:
        applied = False
        if outcome.failed:
            logger.warning("Hidden %s request failed; cache left unchanged", intent.value)
        else:
            applied = fill_cache(state, outcome.response, cache_kind)
        return Resolution(
            intent=intent,
            query=query,
            response=outcome.response,
            failed=outcome.failed,
            hidden=True,
            applied=applied,
        )

    entry = history.append(outcome.response)
    if not outcome.failed:
        apply_response(state, outcome.response)
    state.log_action(intent.value, query)
    return Resolution(
        intent=intent,
        query=query,
        response=outcome.response,
        failed=outcome.failed,
        hidden=False,
        applied=not outcome.failed,
        entry=entry,
    )


def apply_response(state: GameState, response: GenerationResponse) -> None:
    if isinstance(response, (GmBrief, PlayerFacing, Consequences, ComputerMessage, RailBridges)):
        return
    if isinstance(response, Options):
        state.options_list = list(response.choices)
    elif isinstance(response, TurnResult):
        state.options_list = list(response.new_options)
    elif isinstance(response, ClueDrops):
        state.caches.clues = response
    elif isinstance(response, CharactersList):
        state.caches.npc_roster = response
    elif isinstance(response, PlayersList):
        state.caches.player_roster = response
    else:
        assert_never(response)


def fill_cache(state: GameState, response: GenerationResponse, kind: CacheKind | None) -> bool:
    if kind is None:
        raise ValueError("Hidden requests need a cache kind.")
    expected = CACHE_RESPONSE_TYPES[kind]
    if not isinstance(response, expected):
        logger.warning(
            "Discarding %s response for %s cache fill", response.type, kind.value
        )
        return False
    apply_response(state, response)
    return True
