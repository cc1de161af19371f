"""ImageGenerationOrchestrator: three-tier illustration chain.

Tiers are tried in order (real -> simulated -> fallback). A tier either
returns a TierOutput or None; any exception it raises is logged and treated
as None. The fallback tier always resolves, so `generate` never raises.
"""
import re
import time
import uuid
from collections import OrderedDict
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional, Protocol, Sequence
from urllib.parse import urlencode

from storybook.core.logging import setup_logging
from storybook.models.character import CharacterProfile
from storybook.models.image import (
    GeneratedImageResult,
    ImageGenerationRequest,
    SourceTier,
    TierOutput,
)
from storybook.models.scene import SceneDescriptor

logger = setup_logging("image")

REAL_CONSISTENCY_SCORE = 0.95
SIMULATED_CONSISTENCY_SCORE = 0.85
FALLBACK_CONSISTENCY_SCORE = 0.7

# Reference images kept for the most recently used characters.
MAX_REFERENCE_IMAGES = 32

_UNSPLASH = "https://images.unsplash.com/{}?w=800&h=600&fit=crop&auto=format"

# Ordered (category, prompt keywords, curated assets). First category whose
# keyword appears in the prompt wins.
SIMULATED_CATEGORIES: tuple[tuple[str, tuple[str, ...], tuple[str, ...]], ...] = (
    (
        "reading",
        ("reading", "studying", "library"),
        (
            _UNSPLASH.format("photo-1481627834876-b7833e8f5570"),
            _UNSPLASH.format("photo-1544947950-fa07a98d237f"),
            _UNSPLASH.format("photo-1507003211169-0a1dd7228f2d"),
        ),
    ),
    (
        "writing",
        ("writing", "documenting", "documented", "noting"),
        (
            _UNSPLASH.format("photo-1513475382585-d06e58bcb0e0"),
            _UNSPLASH.format("photo-1434030216411-0b793f4b4173"),
            _UNSPLASH.format("photo-1488161628813-04466f872be2"),
        ),
    ),
    (
        "examining",
        ("examining", "investigating", "manuscript"),
        (
            _UNSPLASH.format("photo-1522202176988-66273c2fd55f"),
            _UNSPLASH.format("photo-1494790108755-2616c471768c"),
            _UNSPLASH.format("photo-1531746020798-e6953c6e8e04"),
        ),
    ),
    (
        "research",
        ("laboratory", "research", "scientific"),
        (
            _UNSPLASH.format("photo-1582719478250-c89cae4dc85b"),
            _UNSPLASH.format("photo-1559757148-5c350d0d3c56"),
            _UNSPLASH.format("photo-1507003211169-0a1dd7228f2d"),
        ),
    ),
    (
        "speaking",
        ("speaking", "discussing", "explaining"),
        (
            _UNSPLASH.format("photo-1517841905240-472988babdf9"),
            _UNSPLASH.format("photo-1524504388940-b1c1722653e1"),
            _UNSPLASH.format("photo-1539571696357-5a69c17a67c6"),
        ),
    ),
    (
        "moving",
        ("running", "moving", "walking", "active"),
        (
            _UNSPLASH.format("photo-1499996860823-5214fcc65f8f"),
            _UNSPLASH.format("photo-1506794778202-cad84cf45f04"),
            _UNSPLASH.format("photo-1520813792240-56fc4a3765a7"),
        ),
    ),
)

FALLBACK_IMAGE = _UNSPLASH.format("photo-1494790108755-2616c471768c")


class GenerationTier(Protocol):
    """One stage of the generation chain."""

    name: SourceTier

    def try_generate(self, request: ImageGenerationRequest) -> Optional[TierOutput]:
        """Return an image for `request`, or None when this tier cannot."""
        ...


class RealGenerationTier:
    """Gemini image generation with local persistence.

    The first successful image of each character is kept as a reference and
    passed to later calls so the model keeps the character consistent. At
    most `max_reference_images` references are held; the least recently used
    character is dropped first.
    """

    name = SourceTier.real

    def __init__(
        self,
        project_id: Optional[str] = None,
        location: Optional[str] = None,
        images_dir: Optional[Path] = None,
        image_model: str = "gemini-3-pro-image-preview",
        url_prefix: str = "/images",
        attempts: int = 2,
        max_reference_images: int = MAX_REFERENCE_IMAGES,
    ) -> None:
        self.project_id = project_id
        self.location = location
        self.images_dir = Path(images_dir) if images_dir is not None else Path("data/images")
        self.image_model = image_model
        self.url_prefix = url_prefix.rstrip("/")
        self.attempts = max(1, attempts)
        self.max_reference_images = max(1, max_reference_images)
        # character_id -> PNG bytes of its first generated image, LRU order
        self._reference_images: OrderedDict[str, bytes] = OrderedDict()

    @property
    def configured(self) -> bool:
        return bool(self.project_id)

    def try_generate(self, request: ImageGenerationRequest) -> Optional[TierOutput]:
        """Generate, save and return the image; None when not configured or all attempts fail."""
        character_id = request.profile.character_id
        if not self.configured:
            logger.info(
                "Real tier not configured, skipping",
                extra={"tier": self.name.value, "page_number": request.page_number},
            )
            return None

        reference = self._reference_images.get(character_id)
        if reference is not None:
            self._reference_images.move_to_end(character_id)
        for attempt in range(self.attempts):
            try:
                image_bytes = self._call_image_api(request.prompt, reference)
                locator = self._save_image(image_bytes, character_id, request.page_number)
                if reference is None:
                    self._remember_reference(character_id, image_bytes)
                return TierOutput(
                    image_locator=locator, consistency_score=REAL_CONSISTENCY_SCORE
                )
            except Exception as exc:
                logger.error(
                    "Image generation failed (attempt %d/%d): %s: %s",
                    attempt + 1,
                    self.attempts,
                    type(exc).__name__,
                    exc,
                    extra={
                        "tier": self.name.value,
                        "character_id": character_id,
                        "page_number": request.page_number,
                        "error_type": type(exc).__name__,
                    },
                )
        return None

    def _call_image_api(
        self, prompt: str, reference_image_bytes: Optional[bytes] = None
    ) -> bytes:
        """Call the Vertex AI Gemini image model and return raw PNG bytes.

        When reference_image_bytes is provided the image is included as the
        first part of a multimodal request to anchor the character's look.

        Raises:
            RuntimeError: When the API returns no image data.
        """
        from google import genai  # type: ignore[import-untyped]
        from google.genai import types  # type: ignore[import-untyped]

        # Gemini 3 Pro Image is only available on the global endpoint.
        client = genai.Client(
            vertexai=True,
            project=self.project_id,
            location="global",
        )

        if reference_image_bytes is not None:
            contents: object = [
                types.Part(
                    inline_data=types.Blob(data=reference_image_bytes, mime_type="image/png")
                ),
                types.Part(text=prompt),
            ]
        else:
            contents = prompt

        response = client.models.generate_content(
            model=self.image_model,
            contents=contents,
            config=types.GenerateContentConfig(response_modalities=["IMAGE"]),
        )

        candidates = response.candidates
        if not candidates or candidates[0].content is None:
            raise RuntimeError("No candidates returned by Gemini Image API")

        for part in candidates[0].content.parts:
            if hasattr(part, "inline_data") and part.inline_data is not None:
                return bytes(part.inline_data.data)

        raise RuntimeError("No image data returned by Gemini Image API")

    def _remember_reference(self, character_id: str, image_bytes: bytes) -> None:
        self._reference_images[character_id] = image_bytes
        while len(self._reference_images) > self.max_reference_images:
            self._reference_images.popitem(last=False)

    def _save_image(self, image_bytes: bytes, character_id: str, page_number: int) -> str:
        """Save image bytes under images_dir.

        File name format: {character_id}_p{page:02d}_{YYYYMMDDHHMMSS}_{suffix}.png
        where suffix is random, so stories sharing a character never overwrite
        each other's pages.

        Returns:
            URL path served by the /images static mount.
        """
        self.images_dir.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime("%Y%m%d%H%M%S")
        suffix = uuid.uuid4().hex[:8]
        filename = f"{character_id}_p{page_number:02d}_{timestamp}_{suffix}.png"
        (self.images_dir / filename).write_bytes(image_bytes)
        return f"{self.url_prefix}/{filename}"


class SimulatedGenerationTier:
    """Picks a curated placeholder asset by keywords in the page's scene.

    Only the scene action and setting are matched, so free-text guidance in
    the prompt cannot steer the category.

    Within a category the asset cycles with the page number so consecutive
    pages do not repeat the same picture.
    """

    name = SourceTier.simulated

    def __init__(
        self,
        categories: Sequence[tuple[str, Sequence[str], Sequence[str]]] = SIMULATED_CATEGORIES,
    ) -> None:
        self.categories = [
            (
                category,
                re.compile(
                    r"\b(?:" + "|".join(re.escape(k) for k in keywords) + r")\b",
                    re.IGNORECASE,
                ),
                tuple(assets),
            )
            for category, keywords, assets in categories
        ]

    @staticmethod
    def scene_text(request: ImageGenerationRequest) -> str:
        return f"{request.scene.action} {request.scene.setting}"

    def match_category(self, text: str) -> Optional[tuple[str, tuple[str, ...]]]:
        for category, pattern, assets in self.categories:
            if assets and pattern.search(text or ""):
                return category, assets
        return None

    def try_generate(self, request: ImageGenerationRequest) -> Optional[TierOutput]:
        matched = self.match_category(self.scene_text(request))
        if matched is None:
            logger.info(
                "Simulated tier found no matching category",
                extra={"tier": self.name.value, "page_number": request.page_number},
            )
            return None

        category, assets = matched
        base_url = assets[(request.page_number - 1) % len(assets)]
        params = urlencode(
            {
                "character": request.profile.character_id,
                "style": request.profile.art_style.value,
                "category": category,
                "page": request.page_number,
            }
        )
        separator = "&" if "?" in base_url else "?"
        logger.info(
            "Simulated tier selected category=%s",
            category,
            extra={"tier": self.name.value, "page_number": request.page_number},
        )
        return TierOutput(
            image_locator=f"{base_url}{separator}{params}",
            consistency_score=SIMULATED_CONSISTENCY_SCORE,
        )


class FallbackGenerationTier:
    """Fixed default asset; never fails."""

    name = SourceTier.fallback

    def __init__(self, image_locator: str = FALLBACK_IMAGE) -> None:
        self.image_locator = image_locator or FALLBACK_IMAGE

    def try_generate(self, request: ImageGenerationRequest) -> Optional[TierOutput]:
        logger.info(
            "Fallback tier used",
            extra={"tier": self.name.value, "page_number": request.page_number},
        )
        return TierOutput(
            image_locator=self.image_locator,
            consistency_score=FALLBACK_CONSISTENCY_SCORE,
        )


class ImageGenerationOrchestrator:
    """Runs the tier chain for one page and attaches timing metadata."""

    def __init__(
        self,
        tiers: Optional[Sequence[GenerationTier]] = None,
        clock: Callable[[], float] = time.perf_counter,
    ) -> None:
        self.tiers: list[GenerationTier] = (
            list(tiers)
            if tiers is not None
            else [RealGenerationTier(), SimulatedGenerationTier(), FallbackGenerationTier()]
        )
        self.clock = clock

    def _elapsed_ms(self, started: float) -> int:
        return max(0, int(round((self.clock() - started) * 1000)))

    def generate(
        self,
        prompt: str,
        profile: CharacterProfile,
        scene: SceneDescriptor,
        page_number: int,
    ) -> GeneratedImageResult:
        """Produce an illustration for one page. Never raises.

        Args:
            prompt: Prompt built by PromptSynthesizer (may be empty).
            profile: Character profile of the reference image.
            scene: Scene descriptor of the page.
            page_number: 1-based page number.

        Returns:
            GeneratedImageResult whose source_tier names the tier that succeeded.
        """
        started = self.clock()
        if not isinstance(prompt, str):
            prompt = "" if prompt is None else str(prompt)
        try:
            request = ImageGenerationRequest(
                prompt=prompt,
                profile=profile,
                scene=scene,
                page_number=max(1, page_number),
            )
        except Exception as exc:
            logger.error(
                "Invalid generation request, using fallback image: %s",
                exc,
                extra={"page_number": page_number, "error_type": type(exc).__name__},
            )
            request = None

        if request is not None:
            for tier in self.tiers:
                try:
                    output = tier.try_generate(request)
                    if output is not None:
                        return GeneratedImageResult(
                            prompt=prompt,
                            image_locator=output.image_locator,
                            consistency_score=output.consistency_score,
                            generation_time_ms=self._elapsed_ms(started),
                            source_tier=tier.name,
                        )
                except Exception as exc:
                    logger.error(
                        "Generation tier %s failed: %s: %s",
                        tier.name.value,
                        type(exc).__name__,
                        exc,
                        extra={
                            "tier": tier.name.value,
                            "page_number": page_number,
                            "error_type": type(exc).__name__,
                        },
                    )

        logger.warning(
            "All generation tiers exhausted, using default image",
            extra={"tier": SourceTier.fallback.value, "page_number": page_number},
        )
        return GeneratedImageResult(
            prompt=prompt,
            image_locator=FALLBACK_IMAGE,
            consistency_score=FALLBACK_CONSISTENCY_SCORE,
            generation_time_ms=self._elapsed_ms(started),
            source_tier=SourceTier.fallback,
        )
