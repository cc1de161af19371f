"""Character profile data models."""
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

EMBEDDING_DIMENSIONS = 512


class ArtStyle(str, Enum):
    """Illustration styles a character can be drawn in."""

    realistic = "realistic"
    anime = "anime"
    cartoon = "cartoon"
    manga = "manga"


class AnalysisSource(str, Enum):
    """Where the descriptive attributes of a profile came from."""

    deterministic = "deterministic"
    vision = "vision"


class FacialFeatures(BaseModel):
    """Enumerated facial/appearance attributes of the reference character."""

    model_config = ConfigDict(frozen=True)

    eye_color: str
    hair_color: str
    skin_tone: str
    face_shape: str
    age_bracket: str
    gender_presentation: str


class Personality(BaseModel):
    """Trait scores used to pick poses and expressions."""

    model_config = ConfigDict(frozen=True)

    confidence: float = Field(..., ge=0.0, le=1.0)
    friendliness: float = Field(..., ge=0.0, le=1.0)
    intelligence: float = Field(..., ge=0.0, le=1.0)
    energy: float = Field(..., ge=0.0, le=1.0)


class CharacterProfile(BaseModel):
    """Stable description of the uploaded reference character.

    `character_id` and `visual_embedding` are always derived from the image
    locator so that re-profiling the same image yields the same identity.
    """

    model_config = ConfigDict(frozen=True)

    character_id: str
    source_locator: str
    facial_features: FacialFeatures
    art_style: ArtStyle
    color_palette: list[str] = Field(..., min_length=3)
    visual_embedding: list[float] = Field(
        ..., min_length=EMBEDDING_DIMENSIONS, max_length=EMBEDDING_DIMENSIONS
    )
    personality: Personality
    description: str
    analysis_source: AnalysisSource = AnalysisSource.deterministic


class VisionAnalysis(BaseModel):
    """Structured output requested from the vision model.

    Every field is optional: whatever the model omits keeps the
    deterministic default.
    """

    eye_color: Optional[str] = None
    hair_color: Optional[str] = None
    skin_tone: Optional[str] = None
    face_shape: Optional[str] = None
    age_bracket: Optional[str] = None
    gender_presentation: Optional[str] = None
    art_style: Optional[ArtStyle] = None
    description: Optional[str] = None


class CharacterProfileRequest(BaseModel):
    """Request model for profiling a reference image."""

    image_locator: str = Field(..., min_length=1, max_length=2048)
