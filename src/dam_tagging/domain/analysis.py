"""Models for image analysis results."""

from pydantic import BaseModel, Field


class ImageAnalysis(BaseModel):
    """Structured output of the image-analysis collaborator."""

    description: str
    tags: list[str] = Field(default_factory=list)
