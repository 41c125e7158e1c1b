"""OpenAI Responses API client for document field extraction."""

import json
from dataclasses import dataclass

import openai
from openai import AsyncOpenAI

from id_scanner.errors import ExtractionFailure, ExtractionFailureKind
from id_scanner.services.extraction import VisionClient


@dataclass
class OpenAIVisionClient(VisionClient):
    """Vision client backed by OpenAI Responses API."""

    client: AsyncOpenAI

    @classmethod
    def create(cls, api_key: str, timeout: float) -> "OpenAIVisionClient":
        """Create an OpenAI vision client without SDK-level retries."""
        return cls(
            client=AsyncOpenAI(api_key=api_key, timeout=timeout, max_retries=0)
        )

    async def extract(  # noqa: PLR0913
        self,
        *,
        model: str,
        reasoning_effort: str | None,
        store: bool,
        image_data_url: str,
        schema: dict[str, object],
        prompt: str,
    ) -> dict[str, object]:
        """Call OpenAI Responses API with structured outputs."""
        request_payload: dict[str, object] = {
            "model": model,
            "input": [
                {
                    "role": "user",
                    "content": [
                        {"type": "input_text", "text": prompt},
                        {"type": "input_image", "image_url": image_data_url},
                    ],
                }
            ],
            "text": {
                "format": {
                    "type": "json_schema",
                    "name": "id_document_fields",
                    "strict": True,
                    "schema": schema,
                }
            },
            "store": store,
        }
        if reasoning_effort:
            request_payload["reasoning"] = {"effort": reasoning_effort}

        try:
            response = await self.client.responses.create(**request_payload)
        except openai.APITimeoutError as exc:
            raise ExtractionFailure(ExtractionFailureKind.TIMEOUT) from exc
        except openai.APIError as exc:
            raise ExtractionFailure(
                ExtractionFailureKind.UNAVAILABLE, f"OpenAI request failed: {exc}"
            ) from exc
        output_text = response.output_text
        if not output_text:
            raise ExtractionFailure(
                ExtractionFailureKind.UNRECOGNIZED, "OpenAI returned an empty response"
            )
        try:
            return json.loads(output_text)
        except json.JSONDecodeError as exc:
            raise ExtractionFailure(
                ExtractionFailureKind.UNRECOGNIZED, "OpenAI returned invalid JSON"
            ) from exc
