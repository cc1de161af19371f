"""Illustrate a story file from the command line.

This is a standalone script, independent of the FastAPI server. It runs the
same pipeline and prints the assembled story as JSON.

Usage:
    # run from the project root
    python scripts/illustrate_story.py story.txt --image https://example.com/maya.png
    python scripts/illustrate_story.py story.txt --image maya.png --pages 5 --locale es
"""

import argparse
import sys
from pathlib import Path
from typing import Optional

# Make backend/ importable when run as a standalone script
_BACKEND_PATH = Path(__file__).parent.parent / "backend"
if str(_BACKEND_PATH) not in sys.path:
    sys.path.insert(0, str(_BACKEND_PATH))

from storybook.core.config import get_settings
from storybook.models.story import Story, StorySettings
from storybook.services.story import build_story_service


def illustrate(
    story_path: Path,
    image_locator: str,
    page_count: int = 10,
    locale: str = "none",
    guidance: Optional[str] = None,
) -> Story:
    """Assemble an illustrated story from a UTF-8 text file.

    Args:
        story_path: Story text; paragraphs separated by blank lines.
        image_locator: Reference character image (URL or local path).
        page_count: Requested number of pages.
        locale: Translation locale for vocabulary annotations.
        guidance: Optional guidance text passed to every prompt.

    Returns:
        The assembled Story.
    """
    service = build_story_service(get_settings())
    return service.assembler.assemble(
        image_locator,
        story_path.read_text(encoding="utf-8"),
        page_count,
        settings=StorySettings(translation_locale=locale, guidance_text=guidance),
    )


if __name__ == "__main__":
    parser = argparse.ArgumentParser(
        description="Generate character-consistent illustrations for a story."
    )
    parser.add_argument("story", type=Path, help="Path to the story text file.")
    parser.add_argument(
        "--image", required=True, help="Reference character image (URL or path)."
    )
    parser.add_argument("--pages", type=int, default=10, help="Requested page count.")
    parser.add_argument(
        "--locale", default="none", help="Translation locale, e.g. es or zh-CN."
    )
    parser.add_argument("--guidance", default=None, help="Optional story guidance text.")
    args = parser.parse_args()
    story = illustrate(args.story, args.image, args.pages, args.locale, args.guidance)
    print(story.model_dump_json(indent=2))
