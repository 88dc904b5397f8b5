"""OpenAI Responses API client for text and structured completions."""

from dataclasses import dataclass

from openai import AsyncOpenAI

from nutrition_engine.services.generative import CompletionClient


@dataclass
class OpenAICompletionClient(CompletionClient):
    """Completion client backed by the OpenAI Responses API."""

    client: AsyncOpenAI
    model: str
    reasoning_effort: str | None = None
    store: bool = False

    @classmethod
    def create(
        cls,
        api_key: str,
        model: str,
        reasoning_effort: str | None = None,
        store: bool = False,
    ) -> "OpenAICompletionClient":
        """Create a client with its own AsyncOpenAI session."""
        return cls(
            client=AsyncOpenAI(api_key=api_key),
            model=model,
            reasoning_effort=reasoning_effort,
            store=store,
        )

    async def complete(
        self,
        *,
        system: str,
        messages: list[dict[str, str]],
        schema: dict[str, object] | None = None,
        schema_name: str = "response",
    ) -> str | None:
        """Call the Responses API, requesting JSON when a schema is given."""
        request_payload: dict[str, object] = {
            "model": self.model,
            "instructions": system,
            "input": [
                {"role": message["role"], "content": message["content"]}
                for message in messages
            ],
            "store": self.store,
        }
        if schema is not None:
            request_payload["text"] = {
                "format": {
                    "type": "json_schema",
                    "name": schema_name,
                    "strict": False,
                    "schema": schema,
                }
            }
        if self.reasoning_effort:
            request_payload["reasoning"] = {"effort": self.reasoning_effort}

        response = await self.client.responses.create(**request_payload)
        return response.output_text or None

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.client.close()
