"""SceneExtractor: page text -> SceneDescriptor via ordered keyword rules.

Each field is classified independently by scanning its rule list in order;
the first rule whose keywords occur in the text wins. Rule order is part of
the contract: reordering changes output for text that matches several rules.
"""
import re
from dataclasses import dataclass, field
from typing import Sequence

from storybook.models.scene import NarrativeArc, SceneDescriptor, SceneType

EMPHASIS_PATTERN = re.compile(r"\*\*(.+?)\*\*", re.DOTALL)


@dataclass(frozen=True)
class KeywordRule:
    """Label assigned when any keyword appears as a whole word (case-insensitive)."""

    keywords: tuple[str, ...]
    label: str
    pattern: re.Pattern = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        alternation = "|".join(re.escape(k) for k in self.keywords)
        object.__setattr__(
            self, "pattern", re.compile(rf"\b(?:{alternation})\b", re.IGNORECASE)
        )

    def matches(self, text: str) -> bool:
        return self.pattern.search(text) is not None


ACTION_RULES: tuple[KeywordRule, ...] = (
    KeywordRule(("reading", "read", "studied", "studying", "examining", "analyzed", "reviewed"), "reading and studying"),
    KeywordRule(("writing", "wrote", "documented", "noted", "recorded"), "writing and documenting"),
    KeywordRule(("walked", "walking", "explored", "wandered", "moved", "strolled"), "walking and exploring"),
    KeywordRule(("discovered", "found", "uncovered", "revealed", "located"), "making a discovery"),
    KeywordRule(("thinking", "thought", "pondering", "pondered", "contemplated", "considered", "realized"), "thinking deeply"),
    KeywordRule(("speaking", "spoke", "talking", "talked", "explained", "discussed", "said"), "speaking and explaining"),
    KeywordRule(("searching", "searched", "looking", "seeking", "investigating", "investigated"), "searching and investigating"),
    KeywordRule(("running", "ran", "rushed", "hurried", "sprinted"), "moving with urgency"),
    KeywordRule(("climbed", "climbing", "ascended", "scaled"), "climbing carefully"),
    KeywordRule(("smiled", "laughed", "grinned"), "smiling warmly"),
)
DEFAULT_ACTION = "standing thoughtfully"

SETTING_RULES: tuple[KeywordRule, ...] = (
    KeywordRule(("library", "libraries", "books", "manuscript", "manuscripts", "shelves"), "an ancient library with towering bookshelves and scrolls"),
    KeywordRule(("laboratory", "lab", "research", "scientific", "equipment"), "a modern research laboratory with advanced equipment"),
    KeywordRule(("office", "workplace", "desk", "computer"), "a professional office with modern technology"),
    KeywordRule(("museum", "gallery", "exhibition", "artifacts"), "an elegant museum hall"),
    KeywordRule(("cave", "underground", "tunnel"), "a mysterious underground cavern"),
    KeywordRule(("mountain", "mountains", "hill", "peak", "cliff"), "a majestic mountain landscape"),
    KeywordRule(("beach", "ocean", "sea", "shore", "waves"), "a beautiful ocean shore"),
    KeywordRule(("outdoor", "outdoors", "forest", "woods", "trees", "nature", "landscape"), "a lush natural outdoor environment"),
    KeywordRule(("city", "urban", "street", "building", "downtown"), "a vibrant urban cityscape"),
    KeywordRule(("academy", "school", "classroom", "university"), "a grand academy hall"),
    KeywordRule(("village", "town"), "a small village square"),
    KeywordRule(("home", "house", "room", "indoor", "inside", "kitchen"), "a comfortable indoor living space"),
)
DEFAULT_SETTING = "a thoughtfully composed indoor setting"

LIGHTING_RULES: tuple[KeywordRule, ...] = (
    KeywordRule(("sunset", "fire", "firelight", "golden", "candle", "candlelight"), "warm golden light"),
    KeywordRule(("night", "dark", "darkness", "shadow", "shadows", "evening", "dim"), "dim, shadowy light"),
    KeywordRule(("moon", "moonlight", "winter", "snow", "frost"), "cool moonlit light"),
    KeywordRule(("storm", "rain", "thunder", "lightning"), "stormy, dramatic light"),
    KeywordRule(("sun", "sunshine", "sunlight", "bright", "morning", "dawn", "daylight"), "bright daylight"),
)
DEFAULT_LIGHTING = "soft natural light"

TONE_RULES: tuple[KeywordRule, ...] = (
    KeywordRule(("mysterious", "enigmatic", "hidden", "secret", "unknown", "mystery"), "mysterious and intriguing"),
    KeywordRule(("exciting", "thrilling", "amazing", "wonderful", "discovery", "adventure"), "exciting and dynamic"),
    KeywordRule(("peaceful", "calm", "serene", "gentle", "quiet", "tranquil"), "peaceful and serene"),
    KeywordRule(("dramatic", "intense", "important", "crucial", "significant", "crisis", "danger"), "dramatic and intense"),
    KeywordRule(("worried", "concerned", "anxious", "troubled", "nervous", "afraid"), "tense and uncertain"),
    KeywordRule(("scholarly", "academic", "intellectual", "scientific", "empirical"), "scholarly and intellectual"),
    KeywordRule(("hopeful", "optimistic", "positive", "bright", "happily"), "hopeful and optimistic"),
    KeywordRule(("magic", "magical", "enchanted", "spell", "arcane"), "magical and wondrous"),
)
DEFAULT_TONE = "thoughtful and engaging"

SCENE_TYPE_RULES: tuple[KeywordRule, ...] = (
    KeywordRule(("said", "asked", "told", "replied", "whispered"), SceneType.dialogue.value),
    KeywordRule(("ran", "jumped", "fought", "rushed", "chased"), SceneType.action.value),
    KeywordRule(("felt", "emotion", "heart", "tears"), SceneType.emotion.value),
    KeywordRule(("entered", "arrived", "walked", "reached"), SceneType.setting.value),
)

# Upper bounds (exclusive) of page_index / total_pages for each arc position;
# anything at or above the last bound is the resolution.
ARC_BREAKPOINTS: tuple[tuple[float, NarrativeArc], ...] = (
    (0.2, NarrativeArc.beginning),
    (0.6, NarrativeArc.rising),
    (0.7, NarrativeArc.climax),
    (0.9, NarrativeArc.falling),
)


def strip_emphasis(text: str) -> str:
    """Remove inline ``**word**`` emphasis markers, keeping the word."""
    return EMPHASIS_PATTERN.sub(r"\1", text)


def classify(text: str, rules: Sequence[KeywordRule], default: str) -> str:
    """Return the label of the first matching rule, or `default`."""
    for rule in rules:
        if rule.matches(text):
            return rule.label
    return default


def narrative_arc(page_index: int, total_pages: int) -> NarrativeArc:
    """Arc position from the page's relative position in the story."""
    ratio = page_index / max(total_pages, 1)
    ratio = max(0.0, min(1.0, ratio))
    for bound, arc in ARC_BREAKPOINTS:
        if ratio < bound:
            return arc
    return NarrativeArc.resolution


class SceneExtractor:
    """Deterministic scene classifier for a single page of text."""

    def __init__(
        self,
        action_rules: Sequence[KeywordRule] = ACTION_RULES,
        setting_rules: Sequence[KeywordRule] = SETTING_RULES,
        lighting_rules: Sequence[KeywordRule] = LIGHTING_RULES,
        tone_rules: Sequence[KeywordRule] = TONE_RULES,
    ) -> None:
        self.action_rules = tuple(action_rules)
        self.setting_rules = tuple(setting_rules)
        self.lighting_rules = tuple(lighting_rules)
        self.tone_rules = tuple(tone_rules)

    def extract(self, page_text: str, page_index: int, total_pages: int) -> SceneDescriptor:
        """Build the scene descriptor for one page.

        Args:
            page_text: Raw page text, possibly containing emphasis markers.
            page_index: 0-based index of the page.
            total_pages: Number of pages in the story.

        Returns:
            SceneDescriptor with every field populated (defaults when no rule matches).
        """
        text = strip_emphasis(page_text or "")
        return SceneDescriptor(
            action=classify(text, self.action_rules, DEFAULT_ACTION),
            setting=classify(text, self.setting_rules, DEFAULT_SETTING),
            lighting_mood=classify(text, self.lighting_rules, DEFAULT_LIGHTING),
            emotional_tone=classify(text, self.tone_rules, DEFAULT_TONE),
            narrative_arc_position=narrative_arc(page_index, total_pages),
            scene_type=SceneType(
                classify(text, SCENE_TYPE_RULES, SceneType.transition.value)
            ),
        )
