"""Scene descriptor data models."""
from enum import Enum

from pydantic import BaseModel, ConfigDict


class NarrativeArc(str, Enum):
    """Position of a page within the story arc."""

    beginning = "beginning"
    rising = "rising"
    climax = "climax"
    falling = "falling"
    resolution = "resolution"


class SceneType(str, Enum):
    """Coarse kind of scene a page depicts."""

    dialogue = "dialogue"
    action = "action"
    emotion = "emotion"
    setting = "setting"
    transition = "transition"


class SceneDescriptor(BaseModel):
    """What one page shows: computed fresh from its text and position."""

    model_config = ConfigDict(frozen=True)

    action: str
    setting: str
    lighting_mood: str
    emotional_tone: str
    narrative_arc_position: NarrativeArc
    scene_type: SceneType = SceneType.transition
