"""In-process fake of the OnlyFits API.

The fake implements the endpoints the client uses with FastAPI, keeps its
data in a FakeApiState that tests can inspect and tweak, and serves image
bytes under ``http://test/images`` so the disk cache can download through
the same app. Tests mount it with httpx's ASGITransport (async) or a
TestClient-backed transport (sync), so no server process is needed.
"""

import json
from dataclasses import dataclass, field
from typing import Any

import httpx
import pytest
from fastapi import Body, Depends, FastAPI, File, Form, Header, HTTPException, UploadFile
from fastapi.responses import JSONResponse, Response
from httpx import ASGITransport
from starlette.testclient import TestClient

from onlyfits import AsyncOnlyFitsClient, OnlyFitsClient
from tests.fixtures.posts import IMAGE_HOST, api_post_payload

TEST_TOKEN = "test-token"
TEST_USER_ID = "user-alice"
FAKE_JPEG = b"\xff\xd8\xff\xe0fake-jpeg-bytes"


@dataclass
class FakeApiState:
    """Mutable data behind the fake API.

    Attributes:
        posts: Stored posts, newest first, in wire format.
        liked: Ids of posts the test user has liked.
        views: Post ids in the order views were recorded.
        profiles: Profiles keyed by user id.
        uploads: Form data of every accepted upload.
        failures: Path -> status code, returned once for the next request.
        image_requests: Paths of image requests, in order.
    """

    posts: list[dict[str, Any]] = field(default_factory=list)
    liked: set[str] = field(default_factory=set)
    views: list[str] = field(default_factory=list)
    profiles: dict[str, dict[str, Any]] = field(default_factory=dict)
    uploads: list[dict[str, Any]] = field(default_factory=list)
    failures: dict[str, int] = field(default_factory=dict)
    image_requests: list[str] = field(default_factory=list)

    def find_post(self, post_id: str) -> dict[str, Any] | None:
        for post in self.posts:
            if post["id"] == post_id:
                return post
        return None


def seed_state(post_count: int = 25) -> FakeApiState:
    """Create a state with ``post_count`` posts alternating between two authors."""
    posts = []
    for index in range(1, post_count + 1):
        handle = "alice" if index % 2 else "bob"
        tags = ["casual"] if index % 2 else ["streetwear", "denim"]
        posts.append(
            api_post_payload(post_id=f"post-{index:02d}", handle=handle, tags=tags, likes=index)
        )
    profiles = {
        TEST_USER_ID: {"user_id": TEST_USER_ID, "username": "alice", "bio": "Vintage fan"},
        "user-bob": {"user_id": "user-bob", "username": "bob"},
    }
    return FakeApiState(posts=posts, profiles=profiles)


def _paginate(
    posts: list[dict[str, Any]], limit: int, cursor: str | None
) -> tuple[list[dict[str, Any]], str | None]:
    start = int(cursor) if cursor else 0
    end = start + limit
    next_cursor = str(end) if end < len(posts) else None
    return posts[start:end], next_cursor


def create_fake_api(state: FakeApiState) -> FastAPI:
    """Build the fake API app over ``state``."""
    app = FastAPI()

    @app.middleware("http")
    async def inject_failures(request, call_next):
        status_code = state.failures.pop(request.url.path, None)
        if status_code is not None:
            return JSONResponse(status_code=status_code, content={"detail": "Injected failure"})
        return await call_next(request)

    def require_user(authorization: str | None = Header(default=None)) -> str:
        if authorization != f"Bearer {TEST_TOKEN}":
            raise HTTPException(status_code=401, detail="Missing or invalid token")
        return TEST_USER_ID

    def render(post: dict[str, Any]) -> dict[str, Any]:
        return {**post, "liked_by_me": post["id"] in state.liked}

    def resolve(user_id: str, caller: str) -> str:
        return caller if user_id == "me" else user_id

    @app.get("/feed")
    def get_feed(limit: int = 20, cursor: str | None = None, _: str = Depends(require_user)):
        page, next_cursor = _paginate(state.posts, limit, cursor)
        return {"feed": [render(post) for post in page], "next_cursor": next_cursor}

    @app.get("/users/{user_id}/posts")
    def get_user_posts(
        user_id: str,
        limit: int = 20,
        cursor: str | None = None,
        caller: str = Depends(require_user),
    ):
        author_id = resolve(user_id, caller)
        if author_id not in state.profiles:
            raise HTTPException(status_code=404, detail="User not found")
        mine = [post for post in state.posts if post["author"]["id"] == author_id]
        page, next_cursor = _paginate(mine, limit, cursor)
        return {"posts": [render(post) for post in page], "next_cursor": next_cursor}

    @app.post("/posts/{post_id}/like")
    def like(post_id: str, _: str = Depends(require_user)):
        post = state.find_post(post_id)
        if post is None:
            raise HTTPException(status_code=404, detail="Post not found")
        if post_id not in state.liked:
            state.liked.add(post_id)
            post["likes"] += 1
        return {"liked": True, "likes": post["likes"]}

    @app.delete("/posts/{post_id}/like")
    def unlike(post_id: str, _: str = Depends(require_user)):
        post = state.find_post(post_id)
        if post is None:
            raise HTTPException(status_code=404, detail="Post not found")
        if post_id in state.liked:
            state.liked.discard(post_id)
            post["likes"] = max(post["likes"] - 1, 0)
        return {"liked": False, "likes": post["likes"]}

    @app.post("/posts/{post_id}/view")
    def record_view(post_id: str, _: str = Depends(require_user)):
        if state.find_post(post_id) is None:
            raise HTTPException(status_code=404, detail="Post not found")
        state.views.append(post_id)
        return {"recorded": True}

    @app.get("/profiles/{user_id}")
    def get_profile(user_id: str, caller: str = Depends(require_user)):
        profile = state.profiles.get(resolve(user_id, caller))
        if profile is None:
            raise HTTPException(status_code=404, detail="Profile not found")
        return {"profile": profile}

    @app.put("/profiles/me")
    def update_profile(
        changes: dict[str, Any] = Body(...), caller: str = Depends(require_user)
    ):
        username = changes.get("username")
        if username is not None and any(
            other["username"] == username
            for user_id, other in state.profiles.items()
            if user_id != caller
        ):
            raise HTTPException(status_code=409, detail="Username already taken")
        state.profiles[caller].update(changes)
        return {"profile": state.profiles[caller]}

    @app.post("/upload-post")
    async def upload_post(
        title: str = Form(...),
        description: str = Form(...),
        items: str | None = Form(default=None),
        images: list[UploadFile] = File(...),
        caller: str = Depends(require_user),
    ):
        parsed_items = json.loads(items) if items else []
        post_id = f"new-{len(state.uploads) + 1}"
        media = []
        for index, image in enumerate(images):
            await image.read()
            media.append(f"{IMAGE_HOST}/{post_id}-{index}.jpg")

        state.uploads.append(
            {
                "title": title,
                "description": description,
                "items": parsed_items,
                "filenames": [image.filename for image in images],
                "content_types": [image.content_type for image in images],
            }
        )
        state.posts.insert(
            0,
            api_post_payload(
                post_id=post_id,
                images=media,
                title=title,
                handle="alice",
                likes=0,
                items=[
                    {**item, "price_cents": item.get("price"), "id": f"{post_id}-i{n}"}
                    for n, item in enumerate(parsed_items)
                ],
            ),
        )
        created = {"id": post_id, "user_id": caller, "created_at": "2025-01-16T09:00:00Z"}
        return {"post": created, "media": media}

    @app.get("/images/{name}")
    def get_image(name: str):
        state.image_requests.append(name)
        return Response(content=FAKE_JPEG, media_type="image/jpeg")

    return app


class SyncTestTransport(httpx.BaseTransport):
    """Routes a sync httpx client through Starlette's TestClient."""

    def __init__(self, app: FastAPI) -> None:
        self._test_client = TestClient(app, raise_server_exceptions=False)

    def handle_request(self, request: httpx.Request) -> httpx.Response:
        response = self._test_client.request(
            method=request.method,
            url=str(request.url.path),
            params=dict(request.url.params) if request.url.params else None,
            content=request.read(),
            headers=dict(request.headers),
        )
        return httpx.Response(
            status_code=response.status_code,
            headers=response.headers,
            content=response.content,
        )


@pytest.fixture
def fake_state() -> FakeApiState:
    """Fresh fake API data with 25 posts."""
    return seed_state()


@pytest.fixture
def fake_api(fake_state: FakeApiState) -> FastAPI:
    """The fake API app bound to fake_state."""
    return create_fake_api(fake_state)


@pytest.fixture
def image_transport(fake_api: FastAPI) -> ASGITransport:
    """Transport serving the fake API's images to the disk cache."""
    return ASGITransport(app=fake_api)


@pytest.fixture
async def async_client(fake_api: FastAPI):
    """Async OnlyFits client connected to the fake API."""
    transport = ASGITransport(app=fake_api)
    async with AsyncOnlyFitsClient(
        base_url="http://test", token_getter=lambda: TEST_TOKEN, transport=transport
    ) as client:
        yield client


@pytest.fixture
def sync_client(fake_api: FastAPI):
    """Sync OnlyFits client connected to the fake API."""
    transport = SyncTestTransport(fake_api)
    with OnlyFitsClient(
        base_url="http://test", token_getter=lambda: TEST_TOKEN, transport=transport
    ) as client:
        yield client
