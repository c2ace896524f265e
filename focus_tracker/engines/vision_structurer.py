"""
Vision Structurer

Schema-enforced extraction of the final interview output. Sends the
interviewer's closing reply to Mistral with a JSON schema response format and
validates the result, so tiles do not depend on the agent's exact labels.
Marker parsing (vision_extractor) remains the fallback.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from mistralai import Mistral

from focus_tracker.config.runtime import get_runtime_config
from focus_tracker.models.schemas import RawVisionOutput, VisionOutput, VisionTile

from .ai_gateway import normalize_content

_structurer_runtime = get_runtime_config().vision_structurer

# ---------------------------------------------------------------------------
# JSON schema for the final vision (Mistral enforcement)
# ---------------------------------------------------------------------------

VISION_OUTPUT_RESPONSE_FORMAT = {
    "type": "json_schema",
    "json_schema": {
        "name": "vision_output",
        "strict": True,
        "schema": {
            "type": "object",
            "properties": {
                "narrative": {"type": "string"},
                "tiles": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "properties": {
                            "name": {"type": "string"},
                            "snapshot": {"type": "string"},
                            "actions": {"type": "array", "items": {"type": "string"}},
                            "routine": {"type": "string"},
                        },
                        "required": ["name", "snapshot", "actions", "routine"],
                        "additionalProperties": False,
                    },
                },
            },
            "required": ["narrative", "tiles"],
            "additionalProperties": False,
        },
    },
}


class VisionStructuringError(ValueError):
    """Raised when the structured call fails or returns an invalid payload."""


@dataclass(frozen=True)
class VisionStructurerConfig:
    model: str = _structurer_runtime.model
    max_input_chars: int = _structurer_runtime.max_input_chars
    temperature: float = 0.0


class VisionStructurer:
    def __init__(
        self,
        mistral_client: Any | None = None,
        api_key: str | None = None,
        config: VisionStructurerConfig | None = None,
    ) -> None:
        self.config = config or VisionStructurerConfig()
        if mistral_client is None:
            if not api_key:
                raise ValueError("api_key is required when no Mistral client is supplied")
            mistral_client = Mistral(api_key=api_key)
        self.client = mistral_client

    async def structure(self, final_reply: str) -> VisionOutput:
        """
        Convert the interviewer's closing reply into narrative + tiles.

        Raises:
            VisionStructuringError: on request failure, empty content or schema violation
        """
        if not final_reply.strip():
            raise VisionStructuringError("Nothing to structure")

        try:
            response = await self.client.chat.complete_async(
                model=self.config.model,
                messages=[{"role": "user", "content": self._build_prompt(final_reply)}],
                response_format=VISION_OUTPUT_RESPONSE_FORMAT,  # pyright: ignore
                temperature=self.config.temperature,
            )
        except Exception as exc:
            raise VisionStructuringError(f"Structured vision request failed: {exc}") from exc

        raw_json = self._response_text(response)
        if not raw_json:
            raise VisionStructuringError("Mistral returned an empty structured vision")

        try:
            raw = RawVisionOutput.model_validate_json(raw_json)
        except Exception as exc:
            raise VisionStructuringError(
                f"Structured vision schema validation failed: {exc}\n"
                f"Raw output: {raw_json[:500]}"
            ) from exc

        return VisionOutput(
            narrative=raw.narrative.strip(),
            tiles=[
                VisionTile(
                    name=tile.name.strip(),
                    snapshot=tile.snapshot.strip(),
                    actions=[action.strip() for action in tile.actions if action.strip()],
                    routine=tile.routine.strip(),
                )
                for tile in raw.tiles
                if tile.name.strip()
            ],
        )

    def _build_prompt(self, final_reply: str) -> str:
        clipped = final_reply[: self.config.max_input_chars]
        return f"""\
You receive the closing message of a Hebrew vision interview. It contains a personal narrative
(Part 1) and an operational vision board made of tiles (Part 2).

CLOSING MESSAGE:
{clipped}

Guidelines:
1. Copy the narrative text of Part 1 verbatim into "narrative" (empty string if absent)
2. One entry in "tiles" per tile of Part 2, in the original order
3. "snapshot" is the one-sentence present-tense picture of the tile
4. "actions" lists the concrete actions, without their numbering labels
5. "routine" is the fixed habit that supports the tile
6. Keep the original Hebrew wording; do not translate, summarize or invent content

Return JSON only.
"""

    def _response_text(self, response: Any) -> str:
        choices = getattr(response, "choices", None)
        if not choices:
            return ""
        message = getattr(choices[0], "message", None)
        return normalize_content(getattr(message, "content", None), strip=True)
