"""Tests for the story and character routers."""
import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from storybook.models.story import Story, StorySettings
from storybook.services.story import MalformedStoryInputError

from conftest import REFERENCE_IMAGE

CREATE_BODY = {
    "character_image_locator": REFERENCE_IMAGE,
    "story_text": "Maya was reading in the library.\n\nShe smiled.",
    "page_count": 2,
}


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


def _make_story(story_id: str = "story-abc123") -> Story:
    return Story(story_id=story_id, title="A Story", pages=[], settings=StorySettings())


@pytest.fixture
def mock_service():
    svc = MagicMock()
    svc.create_story = AsyncMock(return_value=_make_story())
    svc.get_story = MagicMock(return_value=_make_story())
    svc.delete_story = MagicMock(return_value=True)
    return svc


@pytest.fixture
def client(mock_service):
    from storybook.main import app

    with TestClient(app) as c:
        # Replace the service built by the lifespan.
        app.state.story_service = mock_service
        yield c
    if hasattr(app.state, "story_service"):
        del app.state.story_service


@pytest.fixture
def live_client():
    """App with the real pipeline wired by the lifespan (offline tiers only)."""
    from storybook.main import app

    with TestClient(app) as c:
        yield c
    if hasattr(app.state, "story_service"):
        del app.state.story_service


# ---------------------------------------------------------------------------
# POST /api/stories
# ---------------------------------------------------------------------------


class TestCreateStoryEndpoint:
    def test_returns_200_on_success(self, client: TestClient) -> None:
        resp = client.post("/api/stories", json=CREATE_BODY)
        assert resp.status_code == 200
        assert resp.json()["story_id"] == "story-abc123"

    def test_malformed_input_returns_422(self, client: TestClient, mock_service) -> None:
        mock_service.create_story.side_effect = MalformedStoryInputError("empty")
        resp = client.post("/api/stories", json=CREATE_BODY)
        assert resp.status_code == 422
        assert resp.json()["detail"] == "empty"

    def test_validation_error_returns_422(self, client: TestClient) -> None:
        resp = client.post("/api/stories", json={"story_text": "x"})
        assert resp.status_code == 422

    def test_timeout_returns_504(self, client: TestClient, mock_service) -> None:
        mock_service.create_story.side_effect = asyncio.TimeoutError()
        resp = client.post("/api/stories", json=CREATE_BODY)
        assert resp.status_code == 504


# ---------------------------------------------------------------------------
# GET / DELETE /api/stories/{id}
# ---------------------------------------------------------------------------


class TestGetStoryEndpoint:
    def test_returns_story(self, client: TestClient, mock_service) -> None:
        resp = client.get("/api/stories/story-abc123")
        assert resp.status_code == 200
        mock_service.get_story.assert_called_once_with("story-abc123")

    def test_not_found(self, client: TestClient, mock_service) -> None:
        mock_service.get_story.return_value = None
        resp = client.get("/api/stories/unknown")
        assert resp.status_code == 404
        assert resp.json()["detail"] == "Story not found"

    def test_delete(self, client: TestClient) -> None:
        assert client.delete("/api/stories/story-abc123").status_code == 204

    def test_delete_missing(self, client: TestClient, mock_service) -> None:
        mock_service.delete_story.return_value = False
        assert client.delete("/api/stories/unknown").status_code == 404


class TestServiceUnavailable:
    def test_returns_503_when_service_missing(self) -> None:
        from storybook.main import app

        c = TestClient(app)  # lifespan not run: no service on app.state
        if hasattr(app.state, "story_service"):
            del app.state.story_service
        assert c.get("/api/stories/demo").status_code == 503
        assert c.post("/api/stories", json=CREATE_BODY).status_code == 503


# ---------------------------------------------------------------------------
# End to end with the lifespan-built pipeline
# ---------------------------------------------------------------------------


class TestLivePipeline:
    def test_create_then_fetch(self, live_client: TestClient) -> None:
        created = live_client.post("/api/stories", json=CREATE_BODY)
        assert created.status_code == 200
        story = created.json()
        assert len(story["pages"]) == 2
        for page in story["pages"]:
            assert page["generated_image"]["image_locator"]
            assert page["generated_image"]["source_tier"] in {"simulated", "fallback"}

        fetched = live_client.get(f"/api/stories/{story['story_id']}")
        assert fetched.status_code == 200
        assert fetched.json()["story_id"] == story["story_id"]

    def test_demo_story(self, live_client: TestClient) -> None:
        resp = live_client.get("/api/stories/demo")
        assert resp.status_code == 200
        assert resp.json()["title"] == "The Resilient Adventure"

    def test_empty_story_text_rejected(self, live_client: TestClient) -> None:
        body = dict(CREATE_BODY, story_text="\n\n   \n\n")
        assert live_client.post("/api/stories", json=body).status_code == 422

    def test_profile_character(self, live_client: TestClient) -> None:
        resp = live_client.post(
            "/api/characters/profile", json={"image_locator": REFERENCE_IMAGE}
        )
        assert resp.status_code == 200
        data = resp.json()
        assert data["character_id"].startswith("character_")
        assert len(data["visual_embedding"]) == 512
        assert data["analysis_source"] == "deterministic"
