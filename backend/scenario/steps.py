from __future__ import annotations

import re
from dataclasses import dataclass

from scenario.documents import Document, DocumentStore

STEP_HEADER_PREFIX = "## step"
DEEP_HEADER_PREFIX = "###"
TABLE_ROW_PREFIX = "|"
HEADER_MARKER_PATTERN = re.compile(r"^#+\s*")
TABLE_SEPARATOR_PATTERN = re.compile(r"^:?-{3,}:?$")

PRIMARY_STEP_DOCUMENT = "05_etapes_scenario"
STEP_DOCUMENT_KEYWORDS = ("etapes", "steps")
DEFAULT_STEPS = ["INTRO", "DEVELOPMENT", "CLIMAX", "CONCLUSION"]


@dataclass(frozen=True)
class Step:
    name: str
    start_line: int
    end_line: int
    description_lines: list[str]
    table: list[str] | None = None


def select_step_document(store: DocumentStore) -> Document | None:
    documents = list(store)
    if not documents:
        return None
    for document in documents:
        if PRIMARY_STEP_DOCUMENT in document.name.lower():
            return document
    for document in documents:
        lowered = document.name.lower()
        if any(keyword in lowered for keyword in STEP_DOCUMENT_KEYWORDS):
            return document
    return documents[0]


def is_step_header(line: str) -> bool:
    return line.strip().lower().startswith(STEP_HEADER_PREFIX)


def clean_header(line: str) -> str:
    return HEADER_MARKER_PATTERN.sub("", line.strip()).strip()


def list_steps(content: str | None) -> list[str]:
    if content is None:
        return []
    names = [clean_header(line) for line in content.splitlines() if is_step_header(line)]
    return names or list(DEFAULT_STEPS)


def step_names(store: DocumentStore) -> list[str]:
    document = select_step_document(store)
    if document is None:
        return []
    return list_steps(document.content)


def bounds(content: str, name: str) -> tuple[int, int] | None:
    """Return ``(start, end)`` line indexes for the step called *name*.

    ``start`` is the first header line whose cleaned text equals *name*;
    ``end`` is the next step header after it, or the line count. Headers that
    share a name resolve to the earliest one.
    """
    lines = content.splitlines()
    start = None
    for index, line in enumerate(lines):
        if is_step_header(line) and clean_header(line) == name:
            start = index
            break
    if start is None:
        return None
    end = len(lines)
    for index in range(start + 1, len(lines)):
        if is_step_header(lines[index]):
            end = index
            break
    return start, end


def description_lines(lines: list[str], start: int, end: int) -> list[str]:
    collected: list[str] = []
    for line in lines[start + 1 : end]:
        stripped = line.strip()
        if stripped.startswith(DEEP_HEADER_PREFIX):
            break
        if stripped:
            collected.append(stripped)
    return collected


def extract_table(lines: list[str], start: int, end: int) -> list[str] | None:
    runs: list[list[str]] = []
    current: list[str] = []
    for line in lines[start + 1 : end]:
        stripped = line.strip()
        if stripped.startswith(TABLE_ROW_PREFIX):
            current.append(stripped)
            continue
        if current:
            runs.append(current)
            current = []
    if current:
        runs.append(current)
    # Authors may put explanatory tables first; the closing table is the recap.
    return runs[-1] if runs else None


def parse_table(rows: list[str] | None) -> list[list[str]]:
    parsed: list[list[str]] = []
    for row in rows or []:
        body = row.strip()
        if body.startswith(TABLE_ROW_PREFIX):
            body = body[1:]
        if body.endswith(TABLE_ROW_PREFIX):
            body = body[:-1]
        cells = [cell.strip() for cell in body.split(TABLE_ROW_PREFIX)]
        if cells and all(TABLE_SEPARATOR_PATTERN.match(cell) for cell in cells if cell):
            continue
        parsed.append(cells)
    return parsed


def describe_step(content: str, name: str) -> Step | None:
    region = bounds(content, name)
    if region is None:
        return None
    start, end = region
    lines = content.splitlines()
    return Step(
        name=name,
        start_line=start,
        end_line=end,
        description_lines=description_lines(lines, start, end),
        table=extract_table(lines, start, end),
    )
