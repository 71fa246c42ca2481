"""Prompt template and generateContent payload construction."""

from __future__ import annotations

import base64
from typing import Any

from src.models.requests import GenerationRequest


# Keep the three instructions: toy-box figurine, the name on the packaging,
# and a recognisable likeness.
FIGURINE_PROMPT_TEMPLATE = (
    "Take this photo and turn the person into a collectible figurine inside a toy box. "
    'The box should include a clear plastic window, bold graphics, and the name "{name}" '
    "on the packaging. "
    "Style the figurine in a fun, toy-like way but keep the person's likeness recognizable."
)

RESPONSE_MODALITIES = ["TEXT", "IMAGE"]


def build_prompt(subject_name: str) -> str:
    return FIGURINE_PROMPT_TEMPLATE.format(name=subject_name)


def build_payload(request: GenerationRequest) -> dict[str, Any]:
    """Build a single-turn multi-part request: prompt text, then the photo inline."""
    return {
        "contents": [
            {
                "role": "user",
                "parts": [
                    {"text": build_prompt(request.subject_name)},
                    {
                        "inlineData": {
                            "data": base64.b64encode(request.image_bytes).decode("ascii"),
                            "mimeType": request.mime_type,
                        }
                    },
                ],
            }
        ],
        "generationConfig": {"responseModalities": list(RESPONSE_MODALITIES)},
    }
