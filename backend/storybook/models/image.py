"""Image generation data models."""
from enum import Enum

from pydantic import BaseModel, Field

from storybook.models.character import CharacterProfile
from storybook.models.scene import SceneDescriptor


class SourceTier(str, Enum):
    """Which stage of the generation chain produced an image."""

    real = "real"
    simulated = "simulated"
    fallback = "fallback"


class ImageGenerationRequest(BaseModel):
    """Request passed down the generation tier chain."""

    prompt: str
    profile: CharacterProfile
    scene: SceneDescriptor
    page_number: int = Field(..., ge=1)


class TierOutput(BaseModel):
    """What a single tier returns when it manages to produce an image."""

    image_locator: str = Field(..., min_length=1)
    consistency_score: float = Field(..., ge=0.0, le=1.0)


class GeneratedImageResult(BaseModel):
    """Illustration attached to a story page.

    `source_tier` tells consumers which tier produced the image; a present
    locator does not imply the real tier succeeded.
    """

    prompt: str
    image_locator: str
    consistency_score: float = Field(..., ge=0.0, le=1.0)
    generation_time_ms: int = Field(..., ge=0)
    source_tier: SourceTier
