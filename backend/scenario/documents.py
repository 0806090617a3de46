from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable

from pydantic import BaseModel, ConfigDict

logger = logging.getLogger(__name__)

DOCUMENT_EXTENSION = ".md"


class Document(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    name: str
    content: str


class DocumentStore:
    """Immutable, name-keyed set of scenario documents for one session."""

    def __init__(self, documents: Iterable[Document] = ()) -> None:
        ordered: dict[str, Document] = {}
        for document in documents:
            if document.name in ordered:
                logger.warning("Duplicate document %s dropped", document.name)
                continue
            ordered[document.name] = document
        self._documents = tuple(ordered.values())

    def __len__(self) -> int:
        return len(self._documents)

    def __iter__(self):
        return iter(self._documents)

    def __bool__(self) -> bool:
        return bool(self._documents)

    @property
    def documents(self) -> tuple[Document, ...]:
        return self._documents

    @property
    def names(self) -> list[str]:
        return [document.name for document in self._documents]

    def get(self, name: str) -> Document | None:
        for document in self._documents:
            if document.name == name:
                return document
        return None


def is_scenario_file(name: str) -> bool:
    return name.lower().endswith(DOCUMENT_EXTENSION)


def ingest_documents(files: Iterable[tuple[str, str]]) -> DocumentStore:
    accepted: list[Document] = []
    dropped = 0
    for name, content in files:
        if not is_scenario_file(name):
            dropped += 1
            continue
        accepted.append(Document(name=name, content=content))
    if dropped:
        logger.info("Ignored %d non-markdown file(s)", dropped)
    return DocumentStore(accepted)


def read_documents(paths: Iterable[str | Path]) -> DocumentStore:
    # Every accepted file is read before the store exists; a failed read aborts the load.
    loaded: list[tuple[str, str]] = []
    for raw_path in paths:
        path = Path(raw_path)
        if not is_scenario_file(path.name):
            continue
        loaded.append((path.name, path.read_text(encoding="utf-8")))
    return ingest_documents(loaded)
