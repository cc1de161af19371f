"""PromptSynthesizer: character profile + scene -> generation instruction."""
from typing import Optional

from storybook.models.character import CharacterProfile
from storybook.models.scene import NarrativeArc, SceneDescriptor, SceneType

CLOSE_UP_ARCS = {NarrativeArc.beginning, NarrativeArc.resolution}

# Transition pages get no pose clause.
POSE_BY_SCENE_TYPE: dict[SceneType, str] = {
    SceneType.dialogue: "mid-conversation with open, expressive gestures",
    SceneType.action: "in a dynamic pose that captures the movement",
    SceneType.emotion: "with a clearly readable facial expression",
    SceneType.setting: "placed within a wide establishing view of the surroundings",
}

QUALITY_SUFFIX = (
    "High quality digital art, detailed composition, vibrant colors, "
    "professional storybook illustration."
)


class PromptSynthesizer:
    """Builds one deterministic prompt per page.

    Every prompt names the character (name and id) and the art style, which
    are the anchors the image model uses to keep the character identical
    across pages.
    """

    def __init__(self, character_name: str = "Maya") -> None:
        self.character_name = character_name or "Maya"

    def character_clause(self, profile: CharacterProfile) -> str:
        f = profile.facial_features
        article = "an" if f.age_bracket.lower().startswith(tuple("aeiou")) else "a"
        return (
            f"{self.character_name} ({profile.character_id}), {article} {f.age_bracket} "
            f"{f.gender_presentation} character with {f.hair_color} hair, "
            f"{f.eye_color} eyes, {f.skin_tone} skin, {f.face_shape} face shape"
        )

    def synthesize(
        self,
        profile: CharacterProfile,
        scene: SceneDescriptor,
        page_number: int,
        guidance_text: Optional[str] = None,
        style_image_locator: Optional[str] = None,
    ) -> str:
        """Compose the prompt for `page_number`.

        Args:
            profile: Character profile of the reference image.
            scene: Scene descriptor of the page.
            page_number: 1-based page number.
            guidance_text: Optional free-text guidance from the story settings.
            style_image_locator: Optional style reference image.

        Returns:
            Non-empty prompt string.
        """
        style = profile.art_style.value
        framing = (
            "close-up character focus with detailed facial features"
            if scene.narrative_arc_position in CLOSE_UP_ARCS
            else "medium shot showing the character and the environment"
        )
        clauses = [
            f"High-quality {style} illustration of {self.character_clause(profile)}",
            f"{scene.action} in {scene.setting}.",
            f"{scene.lighting_mood.capitalize()}, {scene.emotional_tone} atmosphere,",
            f"{framing}.",
        ]
        pose = POSE_BY_SCENE_TYPE.get(scene.scene_type)
        if pose:
            clauses.append(f"{self.character_name} {pose}.")
        clauses += [
            f"Page {page_number}, {scene.narrative_arc_position.value} of the story.",
            f"Color palette: {', '.join(profile.color_palette[:3])}.",
        ]
        if style_image_locator:
            clauses.append(f"Match the visual style of the reference image {style_image_locator}.")
        if guidance_text and guidance_text.strip():
            clauses.append(f"Story guidance: {guidance_text.strip()}.")
        clauses.append(
            f"Keep {self.character_name} identical on every page: same face, hair, "
            f"eyes and outfit, always drawn in {style} style."
        )
        clauses.append(QUALITY_SUFFIX)
        return " ".join(clauses)
