"""Request models for the tagging API."""

from pydantic import BaseModel, Field


class TagRequestModel(BaseModel):
    """A tag name/value pair to assign."""

    name: str = Field(min_length=1)
    value: str = Field(min_length=1)


class AssignTagsRequest(BaseModel):
    """Body of a tag assignment request."""

    tags: list[TagRequestModel] = Field(default_factory=list)


class AnalyzeImageRequest(BaseModel):
    """Body of an image analysis request."""

    image_base64: str
    assign: bool = True
