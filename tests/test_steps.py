from scenario.documents import Document, DocumentStore
from scenario.steps import (
    DEFAULT_STEPS,
    bounds,
    clean_header,
    describe_step,
    is_step_header,
    list_steps,
    parse_table,
    select_step_document,
    step_names,
)

SCENARIO = "\n".join(
    [
        "# Operation Blue",
        "Read this before the session.",
        "",
        "## STEP Intro",
        "You wake up in a briefing room.",
        "",
        "| Clue | Where |",
        "|---|---|",
        "| Badge | Desk |",
        "",
        "## STEP Finale",
        "The reactor hums.",
    ]
)


def test_header_detection_is_strict() -> None:
    assert is_step_header("## STEP Intro")
    assert is_step_header("   ## step lowercase  ")
    assert not is_step_header("### STEP Deep")
    assert not is_step_header("# STEP Top")
    assert not is_step_header("## Chapter One")
    assert not is_step_header("| ## STEP in a table |")
    assert clean_header("  ## STEP Intro  ") == "STEP Intro"


def test_two_step_scenario_bounds_and_table() -> None:
    lines = SCENARIO.splitlines()
    assert list_steps(SCENARIO) == ["STEP Intro", "STEP Finale"]

    start, end = bounds(SCENARIO, "STEP Intro")
    assert lines[start] == "## STEP Intro"
    assert lines[end] == "## STEP Finale"

    step = describe_step(SCENARIO, "STEP Intro")
    assert step is not None
    assert step.table == ["| Clue | Where |", "|---|---|", "| Badge | Desk |"]
    assert step.description_lines[0] == "You wake up in a briefing room."

    finale = describe_step(SCENARIO, "STEP Finale")
    assert finale is not None
    assert finale.end_line == len(lines)
    assert finale.table is None
    assert finale.description_lines == ["The reactor hums."]


def test_bounds_hold_for_every_listed_step() -> None:
    content = "\n".join(
        [
            "## STEP One",
            "a",
            "### Sub heading",
            "b",
            "## STEP Two",
            "## STEP Three",
            "c",
        ]
    )
    lines = content.splitlines()
    for name in list_steps(content):
        start, end = bounds(content, name)
        assert start < end <= len(lines)
        assert clean_header(lines[start]) == name
        assert end == len(lines) or is_step_header(lines[end])
        assert not any(is_step_header(line) for line in lines[start + 1 : end])


def test_duplicate_step_names_resolve_to_first_occurrence() -> None:
    content = "## STEP A\nfirst\n## STEP B\nsecond\n## STEP A\nthird"
    assert list_steps(content) == ["STEP A", "STEP B", "STEP A"]
    assert bounds(content, "STEP A") == (0, 2)


def test_unknown_step_has_no_bounds() -> None:
    assert bounds(SCENARIO, "STEP Missing") is None
    assert describe_step(SCENARIO, "STEP Missing") is None


def test_description_stops_at_deeper_header() -> None:
    content = "\n".join(
        [
            "## STEP Heist",
            "Guards rotate every hour.",
            "",
            "The vault is below.",
            "### GM only",
            "The vault is empty.",
            "## STEP Escape",
        ]
    )
    step = describe_step(content, "STEP Heist")
    assert step is not None
    assert step.description_lines == ["Guards rotate every hour.", "The vault is below."]


def test_last_table_run_wins() -> None:
    content = "\n".join(
        [
            "## STEP Briefing",
            "| Old | Table |",
            "| a | b |",
            "Some explanation.",
            "| Recap | Value |",
            "| alert | 2 |",
        ]
    )
    step = describe_step(content, "STEP Briefing")
    assert step is not None
    assert step.table == ["| Recap | Value |", "| alert | 2 |"]


def test_parse_table_drops_separator_rows() -> None:
    rows = ["| Clue | Where |", "|:---|---:|", "| Badge | Desk |"]
    assert parse_table(rows) == [["Clue", "Where"], ["Badge", "Desk"]]
    assert parse_table(None) == []


def test_no_headers_falls_back_to_default_catalog() -> None:
    assert list_steps("# Title\n## Chapter\ntext") == DEFAULT_STEPS
    assert list_steps("") == DEFAULT_STEPS


def test_empty_store_yields_no_steps() -> None:
    assert step_names(DocumentStore()) == []


def test_step_document_selection_prefers_markers() -> None:
    store = DocumentStore(
        [
            Document(name="01_intro.md", content="## STEP Wrong"),
            Document(name="05_etapes_scenario.md", content="## STEP Right"),
        ]
    )
    assert select_step_document(store).name == "05_etapes_scenario.md"
    assert step_names(store) == ["STEP Right"]

    store = DocumentStore(
        [
            Document(name="npcs.md", content=""),
            Document(name="campaign_steps.md", content="## STEP Keyword"),
        ]
    )
    assert select_step_document(store).name == "campaign_steps.md"

    store = DocumentStore([Document(name="a.md", content=""), Document(name="b.md", content="")])
    assert select_step_document(store).name == "a.md"


def test_store_without_headers_lists_default_catalog() -> None:
    store = DocumentStore([Document(name="05_etapes_scenario.md", content="# Title\nno steps")])
    assert step_names(store) == ["INTRO", "DEVELOPMENT", "CLIMAX", "CONCLUSION"]
    assert describe_step(store.documents[0].content, "INTRO") is None
