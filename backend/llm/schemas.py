from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, JsonValue, TypeAdapter

from scenario.documents import Document

ResponseType = Literal[
    "GM_BRIEF",
    "PLAYER_FACING",
    "OPTIONS",
    "CONSEQUENCES",
    "COMPUTER_MESSAGE",
    "CLUE_DROPS",
    "RAIL_BRIDGES",
    "TURN_RESULT",
    "CHARACTERS_LIST",
    "PLAYERS_LIST",
]


class GmBrief(BaseModel):
    model_config = ConfigDict(extra="forbid", strict=True)

    type: Literal["GM_BRIEF"] = "GM_BRIEF"
    scene: str
    bullets: list[str]
    sources: list[str]


class PlayerFacing(BaseModel):
    model_config = ConfigDict(extra="forbid", strict=True)

    type: Literal["PLAYER_FACING"] = "PLAYER_FACING"
    title: str
    bullets: list[str]
    sources: list[str]


class Options(BaseModel):
    model_config = ConfigDict(extra="forbid", strict=True)

    type: Literal["OPTIONS"] = "OPTIONS"
    prompt: str
    choices: list[str]
    sources: list[str]


class Consequences(BaseModel):
    model_config = ConfigDict(extra="forbid", strict=True)

    type: Literal["CONSEQUENCES"] = "CONSEQUENCES"
    trigger: str
    bullets: list[str]
    sources: list[str]


class ComputerMessage(BaseModel):
    model_config = ConfigDict(extra="forbid", strict=True)

    type: Literal["COMPUTER_MESSAGE"] = "COMPUTER_MESSAGE"
    bullets: list[str]
    sources: list[str]


class ClueDrops(BaseModel):
    model_config = ConfigDict(extra="forbid", strict=True)

    type: Literal["CLUE_DROPS"] = "CLUE_DROPS"
    bullets: list[str]
    sources: list[str]


class RailBridges(BaseModel):
    model_config = ConfigDict(extra="forbid", strict=True, populate_by_name=True)

    type: Literal["RAIL_BRIDGES"] = "RAIL_BRIDGES"
    from_: str = Field(alias="from")
    to: str
    bridges: list[str]
    sources: list[str]


class TurnResult(BaseModel):
    model_config = ConfigDict(extra="forbid", strict=True)

    type: Literal["TURN_RESULT"] = "TURN_RESULT"
    trigger: str
    consequences: list[str]
    new_options: list[str]
    sources: list[str]


class CharacterEntry(BaseModel):
    model_config = ConfigDict(extra="forbid", strict=True)

    name: str
    role: str
    trait: str


class CharactersList(BaseModel):
    model_config = ConfigDict(extra="forbid", strict=True)

    type: Literal["CHARACTERS_LIST"] = "CHARACTERS_LIST"
    characters: list[CharacterEntry]
    sources: list[str]


class PlayerEntry(BaseModel):
    model_config = ConfigDict(extra="forbid", strict=True)

    name: str
    mutation: str
    society: str
    society_goal: str
    personal_goal: str
    description_short: str


class PlayersList(BaseModel):
    model_config = ConfigDict(extra="forbid", strict=True)

    type: Literal["PLAYERS_LIST"] = "PLAYERS_LIST"
    players: list[PlayerEntry]
    sources: list[str]


GenerationResponse = Annotated[
    Union[
        GmBrief,
        PlayerFacing,
        Options,
        Consequences,
        ComputerMessage,
        ClueDrops,
        RailBridges,
        TurnResult,
        CharactersList,
        PlayersList,
    ],
    Field(discriminator="type"),
]

RESPONSE_ADAPTER: TypeAdapter[GenerationResponse] = TypeAdapter(GenerationResponse)


class GenerationRequest(BaseModel):
    model_config = ConfigDict(extra="forbid", strict=True)

    documents: list[Document]
    state: dict[str, JsonValue]
    query: str
    intent: ResponseType


def parse_response(payload: Any) -> GenerationResponse:
    return RESPONSE_ADAPTER.validate_python(payload)


def dump_response(response: GenerationResponse) -> dict[str, Any]:
    return response.model_dump(by_alias=True)


def system_error_response() -> ComputerMessage:
    return ComputerMessage(
        bullets=[
            "CRITICAL AI SYSTEM ERROR",
            "Check model endpoint",
            "Check JSON format",
        ],
        sources=["SYSTEM_ERROR"],
    )
