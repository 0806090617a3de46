from __future__ import annotations

import json
import logging
import os
from typing import Any

import requests

from llm.prompts import SYSTEM_INSTRUCTION
from llm.schemas import GenerationRequest, GenerationResponse, parse_response

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 3


class LLMClientError(RuntimeError):
    pass


class OllamaClient:
    def __init__(
        self,
        *,
        base_url: str | None = None,
        model: str | None = None,
        timeout: int | None = None,
        temperature: float | None = None,
    ) -> None:
        self.base_url = (base_url or os.getenv("OLLAMA_URL") or "http://localhost:11434").rstrip(
            "/"
        )
        self.model = model or os.getenv("OLLAMA_MODEL") or "gpt-oss:20b"
        if timeout is None:
            timeout = int(os.getenv("OLLAMA_TIMEOUT", "60"))
        self.timeout = timeout
        if temperature is None:
            temperature = float(os.getenv("OLLAMA_TEMPERATURE", "0.4"))
        self.temperature = temperature

    def generate_response(self, request: GenerationRequest) -> GenerationResponse:
        attempts = 0
        last_error: str | None = None
        while attempts < MAX_ATTEMPTS:
            attempts += 1
            try:
                content = self._chat(
                    messages=_generation_messages(request, attempts, last_error),
                    temperature=self.temperature,
                    format="json",
                )
                return _parse_generation(content)
            except Exception as exc:
                last_error = str(exc)
                logger.warning(
                    "Generation attempt %d/%d for %s failed: %s",
                    attempts,
                    MAX_ATTEMPTS,
                    request.intent,
                    last_error,
                )
        raise LLMClientError(f"Failed to build {request.intent} JSON: {last_error}")

    def _chat(
        self,
        *,
        messages: list[dict[str, str]],
        temperature: float,
        format: str | None = None,
    ) -> str:
        url = f"{self.base_url}/api/chat"
        payload = {
            "model": self.model,
            "messages": messages,
            "stream": False,
            "options": {"temperature": temperature},
        }
        if format:
            payload["format"] = format
        response = requests.post(url, json=payload, timeout=self.timeout)
        response.raise_for_status()
        data = response.json()
        message = data.get("message", {})
        content = message.get("content")
        if not isinstance(content, str) or not content.strip():
            raise LLMClientError("Invalid response from Ollama.")
        return content


def _generation_messages(
    request: GenerationRequest,
    attempt: int,
    last_error: str | None,
) -> list[dict[str, str]]:
    system = SYSTEM_INSTRUCTION
    if attempt > 1 and last_error:
        system += f"\nPrevious output invalid: {last_error}. Return JSON only."

    return [
        {"role": "system", "content": system},
        {"role": "user", "content": _user_prompt(request)},
    ]


def _user_prompt(request: GenerationRequest) -> str:
    sections = ["### SCENARIO DOCUMENTATION (CANONICAL REFERENCE):"]
    for document in request.documents:
        sections.append(f"--- FILE: {document.name} ---\n{document.content}")
    sections.append(f"### GAME STATE:\n{json.dumps(request.state, indent=2)}")
    sections.append(f"### USER REQUEST:\n{request.query}")
    sections.append(f"### INTENT:\n{request.intent}")
    return "\n\n".join(sections)


def _parse_generation(content: str) -> GenerationResponse:
    payload = _extract_json(_strip_fences(content))
    return parse_response(payload)


def _strip_fences(content: str) -> str:
    clean = content.strip()
    if clean.startswith("```"):
        clean = clean[3:]
        if clean.lower().startswith("json"):
            clean = clean[4:]
        if clean.endswith("```"):
            clean = clean[:-3]
    return clean.strip()


def _extract_json(content: str) -> dict[str, Any]:
    try:
        data = json.loads(content)
        if isinstance(data, dict):
            return data
    except json.JSONDecodeError:
        pass

    start = content.find("{")
    end = content.rfind("}")
    if start >= 0 and end > start:
        data = json.loads(content[start : end + 1])
        if isinstance(data, dict):
            return data
    raise LLMClientError("Failed to parse generation JSON.")
