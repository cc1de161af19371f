"""Story and character API routers."""
import asyncio
import logging

from fastapi import APIRouter, Depends, HTTPException, Request

from storybook.models.character import CharacterProfile, CharacterProfileRequest
from storybook.models.story import Story, StoryCreateRequest
from storybook.services.story import MalformedStoryInputError, StoryService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/stories", tags=["stories"])
characters_router = APIRouter(prefix="/api/characters", tags=["characters"])


def get_story_service(request: Request) -> StoryService:
    """FastAPI dependency: retrieve StoryService from app.state.

    Returns HTTP 503 if the service was not initialized at startup.
    """
    svc: StoryService | None = getattr(request.app.state, "story_service", None)
    if svc is None:
        raise HTTPException(
            status_code=503,
            detail="Story service unavailable. Service not initialized.",
        )
    return svc


@router.post("", response_model=Story)
async def create_story(
    body: StoryCreateRequest,
    service: StoryService = Depends(get_story_service),
) -> Story:
    """Assemble an illustrated story.

    Every page gets an image: generation failures degrade to the simulated
    or fallback tier instead of failing the request.

    Raises:
        HTTPException 422: Malformed story input.
        HTTPException 504: Assembly exceeded the configured deadline.
    """
    try:
        return await service.create_story(body)
    except MalformedStoryInputError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    except asyncio.TimeoutError as exc:
        logger.error(
            "Story assembly timed out",
            extra={"service": "StoryRouter", "error_type": type(exc).__name__},
        )
        raise HTTPException(
            status_code=504,
            detail="Story assembly timed out. Please try again later.",
        ) from exc


@router.get("/{story_id}", response_model=Story)
async def get_story(
    story_id: str,
    service: StoryService = Depends(get_story_service),
) -> Story:
    """Fetch a story from the immediate cache or the store.

    The id `demo` always resolves to the canned preview story.
    """
    story = service.get_story(story_id)
    if story is None:
        logger.info("Story not found", extra={"story_id": story_id})
        raise HTTPException(status_code=404, detail="Story not found")
    return story


@router.delete("/{story_id}", status_code=204)
async def delete_story(
    story_id: str,
    service: StoryService = Depends(get_story_service),
) -> None:
    if not service.delete_story(story_id):
        raise HTTPException(status_code=404, detail="Story not found")


@characters_router.post("/profile", response_model=CharacterProfile)
async def profile_character(
    body: CharacterProfileRequest,
    service: StoryService = Depends(get_story_service),
) -> CharacterProfile:
    """Profile a reference character image."""
    try:
        return await asyncio.to_thread(service.profile_character, body.image_locator)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
