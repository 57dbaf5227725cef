"""Pydantic schemas for story API responses."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from storysync.client.store import CachedItem


class StorySchema(BaseModel):
    """Story data in responses."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    description: str
    photo_url: str | None = Field(default=None, alias="photoUrl")
    created_at: datetime = Field(alias="createdAt")
    lat: float | None = None
    lon: float | None = None

    def to_item(self) -> CachedItem:
        """Convert to a content-cache record."""
        return CachedItem(
            id=self.id,
            name=self.name,
            description=self.description,
            photo_url=self.photo_url,
            created_at=self.created_at,
            lat=self.lat,
            lon=self.lon,
        )


class ApiMessage(BaseModel):
    """Envelope shared by every response."""

    error: bool = False
    message: str = ""


class StoryListResponse(ApiMessage):
    """Response for story listing (also the shape of the offline stand-in)."""

    list_story: list[StorySchema] = Field(default_factory=list, alias="listStory")


class StoryDetailResponse(ApiMessage):
    """Response for story detail and story creation."""

    story: StorySchema | None = None
