from gm_os.history import History
from gm_os.intents import CacheKind, Intent
from gm_os.resolver import (
    GenerationOutcome,
    apply_outcome,
    apply_response,
    build_request,
    classify_input,
    request_generation,
)
from gm_os.state import GameState
from llm.client import LLMClientError
from llm.schemas import (
    CharactersList,
    ClueDrops,
    ComputerMessage,
    Consequences,
    GmBrief,
    Options,
    PlayerFacing,
    PlayersList,
    RailBridges,
    TurnResult,
)
from scenario.documents import Document


def _npc_roster() -> CharactersList:
    return CharactersList(
        characters=[{"name": "Friend Computer", "role": "Overseer", "trait": "Paranoid"}],
        sources=["02_pnj.md#computer"],
    )


def _player_roster() -> PlayersList:
    return PlayersList(
        players=[
            {
                "name": "Kim-R-LUX",
                "mutation": "Empathy",
                "society": "Anti-Mutant",
                "society_goal": "Expose a mutant",
                "personal_goal": "Get promoted",
                "description_short": "Nervous smile, polished boots",
            }
        ],
        sources=["03_personnages_joueurs.md"],
    )


def test_numeric_input_resolves_choice_only_within_range() -> None:
    for length in range(0, 13):
        options = [f"option {index}" for index in range(1, length + 1)]
        for number in range(-2, 14):
            turn = classify_input(str(number), options)
            if 1 <= number <= 10 and number <= length:
                assert turn.kind == "choice"
                assert turn.choice_number == number
                assert f"option {number}" in turn.query
            else:
                assert turn.kind == "free"
                assert turn.text == str(number)
                assert f'"{number}"' in turn.query


def test_free_text_and_blank_input() -> None:
    assert classify_input("   ", ["a"]) is None
    turn = classify_input("  open the airlock ", ["a"])
    assert turn.kind == "free"
    assert turn.text == "open the airlock"
    assert classify_input("1abc", ["a"]).kind == "free"
    assert classify_input(" 1 ", ["a"]).kind == "choice"


def test_build_request_caps_documents_and_serializes_state() -> None:
    state = GameState(active_step="STEP Intro")
    request = build_request(
        [Document(name="a.md", content="0123456789")],
        state,
        "Quick brief.",
        Intent.GM_BRIEF,
        char_limit=4,
    )
    assert request.documents[0].content == "0123"
    assert request.state["active_step"] == "STEP Intro"
    assert request.intent == "GM_BRIEF"


def test_dispatch_covers_every_category() -> None:
    state = GameState()
    for response in [
        GmBrief(scene="Intro", bullets=["b"], sources=["s"]),
        PlayerFacing(title="Intro", bullets=["b"], sources=["s"]),
        Consequences(trigger="t", bullets=["b"], sources=["s"]),
        ComputerMessage(bullets=["b"], sources=["s"]),
        RailBridges.model_validate({"from": "a", "to": "b", "bridges": ["x"], "sources": ["s"]}),
    ]:
        apply_response(state, response)
    assert state.options_list == []
    assert state.caches.clues is None

    apply_response(state, Options(prompt="p", choices=["a", "b"], sources=["s"]))
    assert state.options_list == ["a", "b"]

    apply_response(
        state,
        TurnResult(trigger="t", consequences=["c"], new_options=["x", "y", "z"], sources=["s"]),
    )
    assert state.options_list == ["x", "y", "z"]

    clues = ClueDrops(bullets=["[SCENARIO] password"], sources=["s"])
    apply_response(state, clues)
    apply_response(state, _npc_roster())
    apply_response(state, _player_roster())
    assert state.caches.clues == clues
    assert state.caches.npc_roster.characters[0].name == "Friend Computer"
    assert state.caches.player_roster.players[0].society == "Anti-Mutant"


def test_visible_failure_appends_error_and_keeps_options() -> None:
    class FailingClient:
        def generate_response(self, request):
            raise LLMClientError("connection refused")

    state = GameState(options_list=["stay", "run"])
    history = History()
    request = build_request([], state, "Free action", Intent.TURN_RESULT)
    outcome = request_generation(FailingClient(), request)
    assert outcome.failed is True

    resolution = apply_outcome(
        state, history, outcome, intent=Intent.TURN_RESULT, query="Free action", hidden=False
    )
    assert resolution.failed is True
    assert state.options_list == ["stay", "run"]
    assert len(history) == 1
    assert history.entries[0].type == "COMPUTER_MESSAGE"
    assert history.entries[0].response.sources == ["SYSTEM_ERROR"]
    assert len(state.action_log) == 1
    assert state.action_log[0].action == "TURN_RESULT"


def test_hidden_fill_updates_only_its_slot() -> None:
    state = GameState()
    history = History()
    outcome = GenerationOutcome(response=_npc_roster(), failed=False)
    resolution = apply_outcome(
        state,
        history,
        outcome,
        intent=Intent.CHARACTERS_LIST,
        query="List NPCs",
        hidden=True,
        cache_kind=CacheKind.NPCS,
    )
    assert resolution.applied is True
    assert state.caches.npc_roster is not None
    assert len(history) == 0
    assert state.action_log == []


def test_hidden_fill_discards_wrong_category() -> None:
    state = GameState(options_list=["keep"])
    history = History()
    outcome = GenerationOutcome(
        response=Options(prompt="p", choices=["new"], sources=["s"]), failed=False
    )
    resolution = apply_outcome(
        state,
        history,
        outcome,
        intent=Intent.CLUE_DROPS,
        query="List clues",
        hidden=True,
        cache_kind=CacheKind.CLUES,
    )
    assert resolution.applied is False
    assert state.options_list == ["keep"]
    assert state.caches.clues is None
    assert len(history) == 0


def test_hidden_failure_leaves_cache_untouched() -> None:
    existing = ClueDrops(bullets=["old"], sources=["s"])
    state = GameState()
    state.caches.clues = existing
    history = History()
    outcome = GenerationOutcome(response=ComputerMessage(bullets=["x"], sources=["SYSTEM_ERROR"]), failed=True)
    apply_outcome(
        state,
        history,
        outcome,
        intent=Intent.CLUE_DROPS,
        query="Force refresh clues.",
        hidden=True,
        cache_kind=CacheKind.CLUES,
    )
    assert state.caches.clues == existing
    assert len(history) == 0
