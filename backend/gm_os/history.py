from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Callable, Iterator

from llm.schemas import (
    CharactersList,
    ClueDrops,
    ComputerMessage,
    Consequences,
    GenerationResponse,
    GmBrief,
    Options,
    PlayerFacing,
    PlayersList,
    RailBridges,
    TurnResult,
)

EXPORT_TITLE = "SCENARIO BOARD - SESSION LOG"
SEPARATOR = "-" * 40
CONTINUATION_INDENT = "   "
ENTRY_HEADER_PATTERN = re.compile(r"^\[(?P<timestamp>[^\]]+)\] TYPE: (?P<type>[A-Z_]+)$")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class HistoryEntry:
    response: GenerationResponse
    timestamp: datetime

    @property
    def type(self) -> str:
        return self.response.type


class History:
    """Append-only log of applied responses, oldest first."""

    def __init__(self, clock: Callable[[], datetime] = utc_now) -> None:
        self._clock = clock
        self._entries: list[HistoryEntry] = []

    def append(self, response: GenerationResponse) -> HistoryEntry:
        entry = HistoryEntry(response=response.model_copy(deep=True), timestamp=self._clock())
        self._entries.append(entry)
        return entry

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[HistoryEntry]:
        return iter(list(self._entries))

    @property
    def entries(self) -> tuple[HistoryEntry, ...]:
        return tuple(self._entries)

    def export(self, run_id: str, exported_at: datetime | None = None) -> str | None:
        if not self._entries:
            return None
        return render_export(self._entries, run_id, exported_at or self._clock())


def export_filename(day: date) -> str:
    return f"scenario_session_{day.isoformat()}.txt"


def render_export(entries: list[HistoryEntry], run_id: str, exported_at: datetime) -> str:
    lines = [
        EXPORT_TITLE,
        f"RUN ID: {run_id}",
        f"DATE: {exported_at.isoformat()}",
        SEPARATOR,
        "",
    ]
    for entry in entries:
        lines.append(f"[{entry.timestamp.isoformat()}] TYPE: {entry.type}")
        body = _render_body(entry.response)
        if entry.response.sources:
            body.append(f"SOURCES: {', '.join(entry.response.sources)}")
        lines.extend(_fold(line) for line in body)
        lines.extend(["", SEPARATOR, ""])
    return "\n".join(lines) + "\n"


def _render_body(response: GenerationResponse) -> list[str]:
    if isinstance(response, GmBrief):
        return [f"SCENE: {response.scene}", "CONTENT:", *_bullets(response.bullets)]
    if isinstance(response, PlayerFacing):
        return [f"TITLE: {response.title}", "CONTENT:", *_bullets(response.bullets)]
    if isinstance(response, Consequences):
        return [f"TRIGGER: {response.trigger}", "CONTENT:", *_bullets(response.bullets)]
    if isinstance(response, (ComputerMessage, ClueDrops)):
        return ["CONTENT:", *_bullets(response.bullets)]
    if isinstance(response, Options):
        return [f"PROMPT: {response.prompt}", "CONTENT:", *_numbered(response.choices, " ")]
    if isinstance(response, TurnResult):
        return [
            f"TRIGGER: {response.trigger}",
            "CONTENT:",
            " > CONSEQUENCES:",
            *[f"   * {item}" for item in response.consequences],
            " > NEW OPTIONS:",
            *_numbered(response.new_options, "   "),
        ]
    if isinstance(response, RailBridges):
        return [
            "CONTENT:",
            f" > FROM: {response.from_} TO {response.to}",
            *_bullets(response.bridges),
        ]
    if isinstance(response, CharactersList):
        return [
            "CONTENT:",
            *[f" - {member.name} ({member.role}) - {member.trait}" for member in response.characters],
        ]
    if isinstance(response, PlayersList):
        lines = ["CONTENT:"]
        for player in response.players:
            lines.append(f" - {player.name} [{player.society}]")
            lines.append(f"   mutation: {player.mutation}")
            lines.append(f"   society goal: {player.society_goal}")
            lines.append(f"   personal goal: {player.personal_goal}")
            lines.append(f"   description: {player.description_short}")
        return lines
    raise TypeError(f"Unsupported response type: {type(response).__name__}")


def _fold(line: str) -> str:
    # Model text may contain newlines; continuation lines must never look like an entry header.
    return "\n".join(
        part if index == 0 else CONTINUATION_INDENT + part
        for index, part in enumerate(line.splitlines() or [""])
    )


def _bullets(items: list[str]) -> list[str]:
    return [f" - {item}" for item in items]


def _numbered(items: list[str], indent: str) -> list[str]:
    return [f"{indent}{index}. {item}" for index, item in enumerate(items, start=1)]


def parse_export_headers(text: str) -> list[tuple[str, datetime]]:
    headers: list[tuple[str, datetime]] = []
    for line in text.splitlines():
        match = ENTRY_HEADER_PATTERN.match(line)
        if match:
            headers.append(
                (match.group("type"), datetime.fromisoformat(match.group("timestamp")))
            )
    return headers
