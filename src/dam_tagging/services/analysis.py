"""Image analysis producing a description and candidate tag names."""

import base64
import re
from dataclasses import dataclass
from typing import Protocol

from dam_tagging.domain.analysis import ImageAnalysis

ANALYSIS_SCHEMA: dict[str, object] = {
    "type": "object",
    "properties": {
        "description": {"type": "string"},
        "tags": {"type": "array", "items": {"type": "string"}},
    },
    "required": ["description", "tags"],
    "additionalProperties": False,
}

_KEYWORD_SPLIT = re.compile(r"[\s,.;:]+")


class ImageAnalysisClient(Protocol):
    """Interface for the image-analysis engine."""

    async def analyze(
        self,
        *,
        model: str,
        image_data_url: str,
        schema: dict[str, object],
        prompt: str,
    ) -> dict[str, object]:
        """Return structured analysis data for an image."""


@dataclass
class ImageAnalysisService:
    """Prepares analysis prompts and normalizes the returned tags."""

    client: ImageAnalysisClient
    model: str
    max_tags: int = 20

    async def analyze(self, image_bytes: bytes) -> ImageAnalysis:
        """Describe an image and return at most `max_tags` tag names."""
        prompt = (
            "Describe this image in one or two sentences. "
            f"Then list up to {self.max_tags} short, lowercase keywords "
            "suitable as catalogue tags."
        )
        raw = await self.client.analyze(
            model=self.model,
            image_data_url=_to_data_url(image_bytes),
            schema=ANALYSIS_SCHEMA,
            prompt=prompt,
        )
        analysis = ImageAnalysis.model_validate(raw)
        tags = _unique(analysis.tags)
        if not tags:
            tags = extract_keywords(analysis.description, self.max_tags)
        return ImageAnalysis(
            description=analysis.description, tags=tags[: self.max_tags]
        )


def extract_keywords(description: str, limit: int = 20) -> list[str]:
    """Fallback keyword extraction from a free-text description."""
    words = [
        word.strip().lower()
        for word in _KEYWORD_SPLIT.split(description)
        if len(word.strip()) > 3
    ]
    return _unique(words)[:limit]


def _unique(names: list[str]) -> list[str]:
    seen: set[str] = set()
    result: list[str] = []
    for name in names:
        cleaned = name.strip()
        if not cleaned or cleaned.lower() in seen:
            continue
        seen.add(cleaned.lower())
        result.append(cleaned)
    return result


def _to_data_url(image_bytes: bytes) -> str:
    """Convert bytes to a base64 data URL for image input."""
    mime_type = _detect_mime_type(image_bytes)
    encoded = base64.b64encode(image_bytes).decode("utf-8")
    return f"data:{mime_type};base64,{encoded}"


def _detect_mime_type(image_bytes: bytes) -> str:
    """Infer a basic image MIME type from file signatures."""
    if image_bytes.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if image_bytes.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if image_bytes.startswith((b"GIF87a", b"GIF89a")):
        return "image/gif"
    if image_bytes[:4] == b"RIFF" and image_bytes[8:12] == b"WEBP":
        return "image/webp"
    return "image/jpeg"
