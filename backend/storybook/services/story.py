"""StoryAssembler drives the illustration pipeline; StoryService exposes it to the API."""
import asyncio
import math
import re
import uuid
from pathlib import Path
from typing import Optional

from storybook.core.config import Settings
from storybook.core.logging import setup_logging
from storybook.models.character import CharacterProfile
from storybook.models.story import (
    MAX_DISPLAYED_COUNT,
    Story,
    StoryCreateRequest,
    StoryPage,
    StorySettings,
    VocabularyTarget,
)
from storybook.services.cache import StoryRepository, TTLStoryCache
from storybook.services.character import CharacterProfiler
from storybook.services.image import (
    FallbackGenerationTier,
    ImageGenerationOrchestrator,
    RealGenerationTier,
    SimulatedGenerationTier,
)
from storybook.services.prompt import PromptSynthesizer
from storybook.services.scene import EMPHASIS_PATTERN, SceneExtractor, strip_emphasis
from storybook.services.translation import inject_translations

logger = setup_logging("story")

PARAGRAPH_BREAK = re.compile(r"\n\s*\n")
SENTENCE_END = re.compile(r"(?<=[.!?])\s+")
TITLE_MAX_WORDS = 8
DEFAULT_TITLE = "An Illustrated Story"
DEMO_STORY_ID = "demo"
DEMO_STORY_PATH = Path(__file__).resolve().parent.parent / "data" / "demo_story.json"


class MalformedStoryInputError(ValueError):
    """Top-level story input rejected before any pipeline work."""


def paginate(story_text: str, page_count: int) -> list[str]:
    """Split text into at most `page_count` pages on paragraph boundaries.

    Each page takes ceil(paragraphs / page_count) paragraphs; trailing pages
    that end up empty are dropped.
    """
    paragraphs = [p.strip() for p in PARAGRAPH_BREAK.split(story_text) if p.strip()]
    if not paragraphs or page_count < 1:
        return []
    per_page = math.ceil(len(paragraphs) / page_count)
    pages = []
    for i in range(page_count):
        chunk = paragraphs[i * per_page:(i + 1) * per_page]
        if chunk:
            pages.append("\n\n".join(chunk))
    return pages


def emphasised_lemmas(text: str) -> list[str]:
    """Distinct ``**word**`` terms in order of first appearance, lowercased."""
    seen: dict[str, None] = {}
    for match in EMPHASIS_PATTERN.finditer(text):
        lemma = match.group(1).strip().lower()
        if lemma:
            seen.setdefault(lemma, None)
    return list(seen)


def count_occurrences(lemma: str, page_texts: list[str]) -> int:
    """Whole-word, case-insensitive occurrences of `lemma` across all pages."""
    pattern = re.compile(rf"\b{re.escape(lemma)}\b", re.IGNORECASE)
    return sum(len(pattern.findall(strip_emphasis(text))) for text in page_texts)


def derive_title(story_text: str) -> str:
    """First sentence of the story, shortened to a few words."""
    first = strip_emphasis(story_text).strip().split("\n", 1)[0]
    sentence = SENTENCE_END.split(first, 1)[0].strip().rstrip(".!?")
    words = sentence.split()
    if not words:
        return DEFAULT_TITLE
    if len(words) > TITLE_MAX_WORDS:
        return " ".join(words[:TITLE_MAX_WORDS]) + "…"
    return " ".join(words)


class StoryAssembler:
    """Builds an illustrated Story from a reference image and story text.

    Pages are processed strictly in order so page numbers follow the text and
    the simulated tier's asset cycling is reproducible.
    """

    def __init__(
        self,
        profiler: CharacterProfiler,
        extractor: SceneExtractor,
        synthesizer: PromptSynthesizer,
        orchestrator: ImageGenerationOrchestrator,
        repository: Optional[StoryRepository] = None,
    ) -> None:
        self.profiler = profiler
        self.extractor = extractor
        self.synthesizer = synthesizer
        self.orchestrator = orchestrator
        self.repository = repository

    def assemble(
        self,
        character_image_locator: str,
        story_text: str,
        page_count: int,
        settings: Optional[StorySettings] = None,
        vocabulary: Optional[list[str]] = None,
        title: Optional[str] = None,
    ) -> Story:
        """Assemble and cache a story.

        Args:
            character_image_locator: Locator of the reference character image.
            story_text: Full story text; paragraphs separated by blank lines.
            page_count: Requested number of pages (actual may be fewer).
            settings: Story settings snapshot.
            vocabulary: Target lemmas; defaults to the emphasised words.
            title: Story title; defaults to the opening words.

        Returns:
            The assembled Story.

        Raises:
            MalformedStoryInputError: For empty text, empty locator or page_count < 1.
        """
        settings = settings or StorySettings()
        self._validate(character_image_locator, story_text, page_count)

        segments = paginate(story_text, page_count)
        if not segments:
            raise MalformedStoryInputError("story_text has no non-empty paragraphs")

        story_id = f"story-{uuid.uuid4().hex[:12]}"
        logger.info(
            "Assembling story: requested_pages=%d actual_pages=%d",
            page_count,
            len(segments),
            extra={"story_id": story_id},
        )

        profile = self.profiler.profile(character_image_locator)

        lemmas = self._select_lemmas(story_text, vocabulary, settings.words_to_include)
        page_texts = inject_translations(segments, lemmas, settings.translation_locale)

        pages: list[StoryPage] = []
        total = len(segments)
        for index, segment in enumerate(segments):
            page_number = index + 1
            try:
                scene = self.extractor.extract(segment, index, total)
                prompt = self.synthesizer.synthesize(
                    profile,
                    scene,
                    page_number,
                    guidance_text=settings.guidance_text,
                    style_image_locator=settings.style_image_locator,
                )
            except Exception:
                # The orchestrator degrades an invalid scene to the fallback image.
                logger.error(
                    "Scene analysis failed for page %d",
                    page_number,
                    exc_info=True,
                    extra={"story_id": story_id, "page_number": page_number},
                )
                scene, prompt = None, ""
            image = self.orchestrator.generate(prompt, profile, scene, page_number)
            pages.append(
                StoryPage(page_number=page_number, text=page_texts[index], generated_image=image)
            )
            logger.info(
                "Page %d illustrated by %s tier",
                page_number,
                image.source_tier.value,
                extra={
                    "story_id": story_id,
                    "page_number": page_number,
                    "tier": image.source_tier.value,
                },
            )

        story = Story(
            story_id=story_id,
            title=(title or "").strip() or derive_title(story_text),
            pages=pages,
            targets=self._count_targets(lemmas, segments),
            settings=settings,
        )
        if self.repository is not None:
            self.repository.put(story)
        return story

    @staticmethod
    def _validate(locator: str, story_text: str, page_count: int) -> None:
        if not locator or not locator.strip():
            raise MalformedStoryInputError("character_image_locator must not be empty")
        if not story_text or not story_text.strip():
            raise MalformedStoryInputError("story_text must not be empty")
        if page_count < 1:
            raise MalformedStoryInputError("page_count must be at least 1")

    @staticmethod
    def _select_lemmas(
        story_text: str, vocabulary: Optional[list[str]], limit: int
    ) -> list[str]:
        if vocabulary is not None:
            candidates = list(
                dict.fromkeys(w.strip().lower() for w in vocabulary if w and w.strip())
            )
        else:
            candidates = emphasised_lemmas(story_text)
        return candidates[:limit]

    @staticmethod
    def _count_targets(lemmas: list[str], page_texts: list[str]) -> list[VocabularyTarget]:
        return [
            VocabularyTarget(
                lemma=lemma,
                occurrence_count=min(count_occurrences(lemma, page_texts), MAX_DISPLAYED_COUNT),
            )
            for lemma in lemmas
        ]


def load_demo_story(path: Path = DEMO_STORY_PATH) -> Story:
    """Load the canned preview story served under the `demo` id."""
    return Story.model_validate_json(Path(path).read_text(encoding="utf-8"))


class StoryService:
    """Async facade used by the HTTP layer.

    Assembly is CPU- and network-bound synchronous work, so it runs in a
    worker thread under an overall deadline.
    """

    def __init__(
        self,
        assembler: StoryAssembler,
        repository: StoryRepository,
        timeout_seconds: Optional[float] = None,
        demo_story: Optional[Story] = None,
    ) -> None:
        self.assembler = assembler
        self.repository = repository
        self.timeout_seconds = timeout_seconds
        self.demo_story = demo_story

    async def create_story(self, request: StoryCreateRequest) -> Story:
        """Assemble a story for `request`.

        Raises:
            MalformedStoryInputError: Rejected input.
            asyncio.TimeoutError: Assembly exceeded `timeout_seconds`.
        """
        work = asyncio.to_thread(
            self.assembler.assemble,
            request.character_image_locator,
            request.story_text,
            request.page_count,
            request.settings,
            request.vocabulary,
            request.title,
        )
        story = await asyncio.wait_for(work, timeout=self.timeout_seconds)
        logger.info(
            "Story created: title=%s pages=%d",
            story.title,
            len(story.pages),
            extra={"story_id": story.story_id},
        )
        return story

    def get_story(self, story_id: str) -> Optional[Story]:
        if story_id == DEMO_STORY_ID and self.demo_story is not None:
            return self.demo_story
        return self.repository.get(story_id)

    def delete_story(self, story_id: str) -> bool:
        return self.repository.delete(story_id)

    def profile_character(self, image_locator: str) -> CharacterProfile:
        return self.assembler.profiler.profile(image_locator)


def build_story_service(settings: Settings) -> StoryService:
    """Wire the illustration pipeline from settings."""
    profiler = CharacterProfiler(
        project_id=settings.gcp_project_id,
        location=settings.vertex_ai_location,
        vision_model=settings.vision_model,
        use_vision=settings.enable_vision_profiling,
    )
    orchestrator = ImageGenerationOrchestrator(
        tiers=[
            RealGenerationTier(
                project_id=settings.gcp_project_id,
                location=settings.vertex_ai_location,
                images_dir=Path(settings.images_dir),
                image_model=settings.image_model,
                url_prefix=settings.images_url_prefix,
                attempts=settings.image_api_attempts,
            ),
            SimulatedGenerationTier(),
            FallbackGenerationTier(),
        ]
    )
    repository = StoryRepository(
        immediate=TTLStoryCache(ttl_seconds=settings.immediate_cache_ttl_seconds),
    )
    assembler = StoryAssembler(
        profiler=profiler,
        extractor=SceneExtractor(),
        synthesizer=PromptSynthesizer(character_name=settings.character_name),
        orchestrator=orchestrator,
        repository=repository,
    )
    return StoryService(
        assembler=assembler,
        repository=repository,
        timeout_seconds=settings.assembly_timeout_seconds,
        demo_story=load_demo_story(),
    )
