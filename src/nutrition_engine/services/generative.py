"""Bounded calls to the generative completion service."""

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Protocol

from nutrition_engine.errors import ContractViolationError, GenerationError

_logger = logging.getLogger(__name__)


class CompletionClient(Protocol):
    """Interface for a text completion backend."""

    async def complete(
        self,
        *,
        system: str,
        messages: list[dict[str, str]],
        schema: dict[str, object] | None = None,
        schema_name: str = "response",
    ) -> str | None:
        """Return the raw completion text, or None when empty."""


@dataclass
class GenerativeService:
    """Adds a timeout and a short retry around a completion client."""

    client: CompletionClient
    timeout_seconds: float = 20.0
    retry_attempts: int = 1
    retry_delay_seconds: float = 0.5

    async def complete(
        self,
        *,
        system: str,
        messages: list[dict[str, str]],
        schema: dict[str, object] | None = None,
        schema_name: str = "response",
    ) -> str | None:
        """Call the client, raising GenerationError once retries run out."""
        attempt = 0
        while True:
            try:
                return await asyncio.wait_for(
                    self.client.complete(
                        system=system,
                        messages=messages,
                        schema=schema,
                        schema_name=schema_name,
                    ),
                    timeout=self.timeout_seconds,
                )
            except Exception as exc:
                attempt += 1
                _logger.warning(
                    "Generation %s failed (attempt %s/%s, status=%s): %r",
                    schema_name,
                    attempt,
                    self.retry_attempts + 1,
                    status_code_from_exception(exc),
                    exc,
                )
                if attempt > self.retry_attempts:
                    raise GenerationError(
                        f"Generation {schema_name} failed after {attempt} attempts"
                    ) from exc
                await asyncio.sleep(self.retry_delay_seconds)

    async def complete_json(
        self,
        *,
        system: str,
        messages: list[dict[str, str]],
        schema: dict[str, object] | None = None,
        schema_name: str = "response",
    ) -> dict[str, object] | None:
        """Call the client and decode a JSON object.

        Returns None for an empty completion or a literal ``null``. Raises
        ContractViolationError when the text is not a JSON object.
        """
        text = await self.complete(
            system=system, messages=messages, schema=schema, schema_name=schema_name
        )
        if text is None or not text.strip():
            return None
        try:
            payload = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ContractViolationError(
                f"{schema_name} returned invalid JSON", raw=text
            ) from exc
        if payload is None:
            return None
        if not isinstance(payload, dict):
            raise ContractViolationError(
                f"{schema_name} returned a non-object payload", raw=text
            )
        return payload


def status_code_from_exception(exc: Exception) -> str:
    """Extract an HTTP status code from an exception, if available."""
    status_code = getattr(exc, "status_code", None)
    if not isinstance(status_code, int):
        response = getattr(exc, "response", None)
        status_code = getattr(response, "status_code", None)
    if isinstance(status_code, int):
        return str(status_code)
    return "n/a"
