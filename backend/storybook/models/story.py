"""Story, page and request data models."""
from typing import Optional

from pydantic import BaseModel, Field

from storybook.models.image import GeneratedImageResult

MAX_DISPLAYED_COUNT = 2


class StorySettings(BaseModel):
    """Snapshot of the options a story was created with."""

    words_to_include: int = Field(18, ge=0)
    translation_locale: str = "none"
    guidance_text: Optional[str] = None
    style_image_locator: Optional[str] = None


class VocabularyTarget(BaseModel):
    """A vocabulary lemma and how often it appears (display capped at 2)."""

    lemma: str
    occurrence_count: int = Field(..., ge=0, le=MAX_DISPLAYED_COUNT)


class StoryPage(BaseModel):
    """One page of an assembled story."""

    page_number: int = Field(..., ge=1)
    text: str
    generated_image: GeneratedImageResult


class Story(BaseModel):
    """A fully assembled, illustrated story."""

    story_id: str
    title: str
    pages: list[StoryPage]
    targets: list[VocabularyTarget] = Field(default_factory=list)
    settings: StorySettings


class StoryCreateRequest(BaseModel):
    """Request model for assembling a new story."""

    character_image_locator: str = Field(..., min_length=1, max_length=2048)
    story_text: str = Field(..., min_length=1)
    page_count: int = Field(10, ge=1, le=50)
    settings: StorySettings = Field(default_factory=StorySettings)
    vocabulary: Optional[list[str]] = None
    title: Optional[str] = Field(None, max_length=200)
