from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Intent(str, Enum):
    GM_BRIEF = "GM_BRIEF"
    PLAYER_FACING = "PLAYER_FACING"
    OPTIONS = "OPTIONS"
    TURN_RESULT = "TURN_RESULT"
    CLUE_DROPS = "CLUE_DROPS"
    CHARACTERS_LIST = "CHARACTERS_LIST"
    PLAYERS_LIST = "PLAYERS_LIST"
    RAIL_BRIDGES = "RAIL_BRIDGES"


class CacheKind(str, Enum):
    CLUES = "clues"
    NPCS = "npcs"
    PLAYERS = "players"


class ViewMode(str, Enum):
    TERMINAL = "terminal"
    CLUES = "clues"
    NPCS = "npcs"
    PLAYERS = "players"


class GmTool(str, Enum):
    GM_BRIEF = "GM_BRIEF"
    RAIL_BRIDGES = "RAIL_BRIDGES"
    OPTIONS = "OPTIONS"


@dataclass(frozen=True)
class CacheEntry:
    intent: Intent
    slot: str
    view: ViewMode
    fill_query: str
    refresh_query: str


CACHE_REGISTRY: dict[CacheKind, CacheEntry] = {
    CacheKind.CLUES: CacheEntry(
        intent=Intent.CLUE_DROPS,
        slot="clues",
        view=ViewMode.CLUES,
        fill_query=(
            "List the clues for this step. Include the clues vital to the scenario, "
            "clues that raise suspicion on the player characters (secret societies, "
            "missions) and red herrings."
        ),
        refresh_query="Force refresh clues.",
    ),
    CacheKind.NPCS: CacheEntry(
        intent=Intent.CHARACTERS_LIST,
        slot="npc_roster",
        view=ViewMode.NPCS,
        fill_query="List the important non-player characters of the story, excluding the players.",
        refresh_query="Force refresh NPCs.",
    ),
    CacheKind.PLAYERS: CacheEntry(
        intent=Intent.PLAYERS_LIST,
        slot="player_roster",
        view=ViewMode.PLAYERS,
        fill_query=(
            "Read the player character files and list every player character with "
            "mutation, secret society and goals."
        ),
        refresh_query="Force refresh player characters.",
    ),
}


GM_TOOL_QUERIES: dict[GmTool, str] = {
    GmTool.GM_BRIEF: "Quick brief of the current situation.",
    GmTool.RAIL_BRIDGES: "3 ways to bring the players back onto the scenario.",
    GmTool.OPTIONS: "What can the players do now?",
}


def step_intro_query(step: str) -> str:
    return (
        f'We are starting the step: "{step}". Generate an immersive introduction '
        "(PLAYER_FACING) to read to the players, setting the scene and the initial "
        "situation of this step."
    )


def choice_query(number: int, option: str) -> str:
    return (
        f'Action: the players choose option {number}: "{option}". '
        "Analyse the consequences and propose 10 new options."
    )


def free_action_query(text: str) -> str:
    return (
        f'Free player action: "{text}". '
        "Analyse the consequences and propose 10 new options."
    )
