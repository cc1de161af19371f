"""CharacterProfiler: turns a reference image locator into a stable profile."""
import mimetypes
from pathlib import Path
from typing import Optional

from storybook.core.hashing import hash_hex, rolling_hash, seeded_sequence
from storybook.core.logging import setup_logging
from storybook.models.character import (
    EMBEDDING_DIMENSIONS,
    AnalysisSource,
    ArtStyle,
    CharacterProfile,
    FacialFeatures,
    Personality,
    VisionAnalysis,
)

logger = setup_logging("character")

EYE_COLORS = ("brown", "dark brown", "hazel", "green", "blue", "grey")
HAIR_COLORS = ("dark brown", "black", "chestnut", "auburn", "blonde", "red")
SKIN_TONES = ("fair", "light", "medium", "olive", "tan", "deep")
FACE_SHAPES = ("oval", "round", "heart-shaped", "square")
AGE_BRACKETS = ("child", "teen", "young adult", "adult")
GENDER_PRESENTATIONS = ("female", "male", "androgynous")
ART_STYLES = (ArtStyle.manga, ArtStyle.anime, ArtStyle.cartoon, ArtStyle.realistic)

PALETTE_CATALOGUE = (
    "#8B4513", "#F4E4BC", "#2F1B14", "#6B8E23", "#D2B48C",
    "#4A4A4A", "#F5F5F5", "#6B4E3D", "#1E3A5F", "#C0392B",
    "#F1C40F", "#7D5BA6", "#2E8B57", "#E67E22", "#34495E",
)
PALETTE_SIZE = 5

VISION_PROMPT = (
    "Analyze this character image for consistent story illustration. "
    "Describe eye color, hair color, skin tone, face shape, age bracket, "
    "gender presentation, the overall art style (realistic, anime, cartoon "
    "or manga) and a one-sentence appearance description."
)


def _pick(options: tuple, seed: int, shift: int):
    return options[(seed >> shift) % len(options)]


def _clamp(value: float, low: float = 0.1, high: float = 0.9) -> float:
    return max(low, min(high, value))


def character_id_for(locator: str) -> str:
    """Stable character identifier derived from the image locator."""
    return f"character_{hash_hex(locator)[:8]}"


def visual_embedding_for(locator: str) -> list[float]:
    """512 deterministic floats in [-1, 1) derived from the locator."""
    seed = rolling_hash(locator)
    return [v * 2 - 1 for v in seeded_sequence(seed, EMBEDDING_DIMENSIONS)]


class CharacterProfiler:
    """Builds character profiles, optionally enriched by a Gemini vision model.

    Profiling is a pure function of the locator: results are memoised and the
    identity fields never depend on the vision backend.
    """

    def __init__(
        self,
        project_id: Optional[str] = None,
        location: Optional[str] = None,
        vision_model: str = "gemini-3-flash-preview",
        use_vision: bool = True,
    ) -> None:
        self.project_id = project_id
        self.location = location
        self.vision_model = vision_model
        self.use_vision = use_vision and bool(project_id)
        self._profiles: dict[str, CharacterProfile] = {}

    def profile(self, image_locator: str) -> CharacterProfile:
        """Return the profile for `image_locator`.

        Raises:
            ValueError: When the locator is empty.
        """
        if not image_locator or not image_locator.strip():
            raise ValueError("image_locator must be a non-empty string")

        cached = self._profiles.get(image_locator)
        if cached is not None:
            return cached

        profile = self._deterministic_profile(image_locator)
        if self.use_vision:
            try:
                analysis = self._call_vision_api(image_locator)
                profile = self._apply_analysis(profile, analysis)
            except Exception as exc:
                logger.warning(
                    "Vision profiling degraded, using deterministic profile: %s: %s",
                    type(exc).__name__,
                    exc,
                    extra={
                        "character_id": profile.character_id,
                        "error_type": type(exc).__name__,
                    },
                )

        self._profiles[image_locator] = profile
        logger.info(
            "Character profiled: style=%s source=%s",
            profile.art_style.value,
            profile.analysis_source.value,
            extra={"character_id": profile.character_id},
        )
        return profile

    def _deterministic_profile(self, locator: str) -> CharacterProfile:
        seed = abs(rolling_hash(locator))
        features = FacialFeatures(
            eye_color=_pick(EYE_COLORS, seed, 0),
            hair_color=_pick(HAIR_COLORS, seed, 3),
            skin_tone=_pick(SKIN_TONES, seed, 6),
            face_shape=_pick(FACE_SHAPES, seed, 9),
            age_bracket=_pick(AGE_BRACKETS, seed, 11),
            gender_presentation=_pick(GENDER_PRESENTATIONS, seed, 13),
        )
        art_style = _pick(ART_STYLES, seed, 15)
        start = seed % len(PALETTE_CATALOGUE)
        palette = [
            PALETTE_CATALOGUE[(start + i * 3) % len(PALETTE_CATALOGUE)]
            for i in range(PALETTE_SIZE)
        ]
        embedding = visual_embedding_for(locator)
        return CharacterProfile(
            character_id=character_id_for(locator),
            source_locator=locator,
            facial_features=features,
            art_style=art_style,
            color_palette=palette,
            visual_embedding=embedding,
            personality=self._infer_personality(embedding),
            description=self._describe(features, art_style),
        )

    @staticmethod
    def _infer_personality(embedding: list[float]) -> Personality:
        # Embedding values live in [-1, 1); shift the mean into [0, 1).
        mean = (sum(embedding) / len(embedding) + 1) / 2
        return Personality(
            confidence=round(_clamp(mean + 0.1), 4),
            friendliness=round(_clamp(mean + 0.2), 4),
            intelligence=round(_clamp(mean + 0.3), 4),
            energy=round(_clamp(mean), 4),
        )

    @staticmethod
    def _describe(features: FacialFeatures, art_style: ArtStyle) -> str:
        return (
            f"{features.age_bracket} {features.gender_presentation} character with "
            f"{features.hair_color} hair, {features.eye_color} eyes and "
            f"{features.skin_tone} skin, {art_style.value} art style"
        )

    def _apply_analysis(
        self, profile: CharacterProfile, analysis: VisionAnalysis
    ) -> CharacterProfile:
        """Overlay vision output on the deterministic profile.

        Identity fields (id, embedding, palette) are left untouched.
        """
        overrides = {
            key: value
            for key, value in analysis.model_dump(
                include=set(FacialFeatures.model_fields)
            ).items()
            if value
        }
        features = profile.facial_features.model_copy(update=overrides)
        art_style = analysis.art_style or profile.art_style
        description = analysis.description or self._describe(features, art_style)
        return profile.model_copy(
            update={
                "facial_features": features,
                "art_style": art_style,
                "description": description,
                "analysis_source": AnalysisSource.vision,
            }
        )

    def _call_vision_api(self, image_locator: str) -> VisionAnalysis:
        """Ask the Gemini vision model for a structured character analysis.

        Remote locators (http/https/gs) are passed by URI; anything else is
        read as a local file.

        Raises:
            RuntimeError: When the model returns no parsable analysis.
        """
        from google import genai  # type: ignore[import-untyped]
        from google.genai import types  # type: ignore[import-untyped]

        client = genai.Client(
            vertexai=True,
            project=self.project_id,
            location="global",
        )

        mime_type = mimetypes.guess_type(image_locator)[0] or "image/png"
        if image_locator.startswith(("http://", "https://", "gs://")):
            image_part = types.Part.from_uri(file_uri=image_locator, mime_type=mime_type)
        else:
            image_part = types.Part.from_bytes(
                data=Path(image_locator).read_bytes(), mime_type=mime_type
            )

        response = client.models.generate_content(
            model=self.vision_model,
            contents=[image_part, VISION_PROMPT],
            config=types.GenerateContentConfig(
                response_mime_type="application/json",
                response_schema=VisionAnalysis,
            ),
        )

        if isinstance(response.parsed, VisionAnalysis):
            return response.parsed
        if response.text:
            return VisionAnalysis.model_validate_json(response.text)
        raise RuntimeError("No analysis returned by Gemini vision model")
