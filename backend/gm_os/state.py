from __future__ import annotations

import uuid

from pydantic import BaseModel, ConfigDict, Field, model_validator

from llm.schemas import CharactersList, ClueDrops, PlayersList

ACTION_LOG_CAPACITY = 16
ACTION_SUMMARY_LIMIT = 20
SYSTEM_ACTOR = "SYSTEM"


def clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, value))


class Clock(BaseModel):
    model_config = ConfigDict(extra="forbid", strict=True)

    id: str
    name: str
    current: int = Field(ge=0)
    max: int = Field(ge=0)

    @model_validator(mode="after")
    def _current_within_max(self) -> "Clock":
        if self.current > self.max:
            raise ValueError(f"Clock {self.id} current {self.current} exceeds max {self.max}")
        return self

    def apply_delta(self, delta: int) -> int:
        self.current = clamp(self.current + delta, 0, self.max)
        return self.current


def default_clocks() -> list[Clock]:
    return [
        Clock(id="alert", name="ALERT", current=0, max=4),
        Clock(id="suspicion", name="SUSPICION", current=0, max=6),
        Clock(id="resources", name="RESOURCES", current=5, max=5),
    ]


class ActionLogEntry(BaseModel):
    model_config = ConfigDict(extra="forbid", strict=True)

    actor: str = SYSTEM_ACTOR
    action: str
    summary: str


def summarize_query(query: str) -> str:
    if len(query) <= ACTION_SUMMARY_LIMIT:
        return query
    return query[:ACTION_SUMMARY_LIMIT] + ".."


class CacheSlots(BaseModel):
    model_config = ConfigDict(extra="forbid", strict=True)

    clues: ClueDrops | None = None
    npc_roster: CharactersList | None = None
    player_roster: PlayersList | None = None


class GameState(BaseModel):
    model_config = ConfigDict(extra="forbid", strict=True)

    run_id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    active_step: str | None = None
    clocks: list[Clock] = Field(default_factory=default_clocks)
    options_list: list[str] = Field(default_factory=list)
    caches: CacheSlots = Field(default_factory=CacheSlots)
    action_log: list[ActionLogEntry] = Field(default_factory=list)

    @model_validator(mode="after")
    def _unique_clock_ids(self) -> "GameState":
        ids = [clock.id for clock in self.clocks]
        if len(ids) != len(set(ids)):
            raise ValueError("Clock ids must be unique.")
        return self

    def find_clock(self, clock_id: str) -> Clock | None:
        for clock in self.clocks:
            if clock.id == clock_id:
                return clock
        return None

    def log_action(self, action: str, query: str) -> ActionLogEntry:
        entry = ActionLogEntry(action=action, summary=summarize_query(query))
        self.action_log = [entry, *self.action_log][:ACTION_LOG_CAPACITY]
        return entry

    def snapshot(self) -> "GameState":
        return self.model_copy(deep=True)
