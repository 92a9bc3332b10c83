"""Unit tests for the post composer.

Submission is tested both against an AsyncMock client (to pin the exact
arguments) and against the fake API (to check the multipart request the
server actually receives).
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from fitfeed.composer import (
    EMPTY_DESCRIPTION,
    MAX_IMAGES,
    ItemDraft,
    PostDraft,
    parse_price,
)
from fitfeed.exceptions import NetworkError, ValidationError
from fitfeed.models import Position
from onlyfits import CreatedPost, ServerError, UploadPostResponse


def make_item(name: str = "Denim Jacket", price: str = "2999", sizes=("S", "M"), **kwargs):
    return ItemDraft(name=name, price=price, sizes=list(sizes), **kwargs)


@pytest.fixture
def image_files(tmp_path):
    paths = []
    for index in range(MAX_IMAGES + 1):
        path = tmp_path / f"look-{index}.jpg"
        path.write_bytes(b"\xff\xd8jpeg")
        paths.append(path)
    return paths


@pytest.fixture
def draft(image_files) -> PostDraft:
    """A draft ready to submit: one image, a title and one item."""
    draft = PostDraft(title="  Sunday layers  ")
    draft.add_image(image_files[0])
    draft.add_item(make_item())
    return draft


@pytest.fixture
def mock_client():
    client = MagicMock()
    client.posts.upload = AsyncMock(
        return_value=UploadPostResponse(
            post=CreatedPost(id="new-1", user_id="user-alice", created_at="2025-01-16T09:00:00Z"),
            media=["http://test/images/new-1-0.jpg"],
        )
    )
    return client


class TestParsePrice:
    @pytest.mark.parametrize(
        "text, expected",
        [("2999", 2999), ("¥2,999", 2999), ("$29.99", 2999), ("free", 0), ("", 0)],
    )
    def test_digits_only(self, text, expected):
        assert parse_price(text) == expected


class TestItemDraft:
    """Tests for ItemDraft."""

    def test_add_size_trims_and_dedupes(self):
        item = ItemDraft()

        assert item.add_size(" M ") is True
        assert item.add_size("M") is False
        assert item.add_size("   ") is False
        assert item.sizes == ["M"]

    def test_remove_size(self):
        item = make_item(sizes=["S", "M", "L"])
        item.remove_size("M")
        assert item.sizes == ["S", "L"]

    def test_to_upload_item(self):
        item = make_item(
            price="¥2,999",
            brand="Levi's",
            link="https://shop.example.com/jacket",
            description="Fits large",
            position=Position(x=25, y=45),
        )

        payload = item.to_upload_item()

        assert payload == {
            "item_name": "Denim Jacket",
            "brand": "Levi's",
            "price": 2999,
            "currency": "JPY",
            "link": "https://shop.example.com/jacket",
            "user_desc": "Fits large",
            "sizes": ["S", "M"],
            "x": pytest.approx(0.25),
            "y": pytest.approx(0.45),
        }

    def test_to_upload_item_defaults(self):
        payload = make_item().to_upload_item()

        assert payload["brand"] == "Unknown"
        assert payload["link"] is None
        assert payload["user_desc"] is None
        assert payload["x"] == 0.5
        assert payload["y"] == 0.5


class TestImages:
    """Tests for add_image() and remove_image()."""

    def test_up_to_six_images(self, image_files):
        draft = PostDraft()
        for path in image_files[:MAX_IMAGES]:
            draft.add_image(path)

        with pytest.raises(ValidationError, match="up to 6 images") as exc_info:
            draft.add_image(image_files[MAX_IMAGES])

        assert exc_info.value.field == "images"
        assert len(draft.images) == MAX_IMAGES

    def test_remove_image(self, image_files):
        draft = PostDraft()
        draft.add_image(image_files[0])
        draft.add_image(image_files[1])

        draft.remove_image(0)
        draft.remove_image(5)

        assert draft.images == [image_files[1]]


class TestItems:
    """Tests for add_item(), remove_item() and dot dragging."""

    def test_items_get_default_positions(self):
        draft = PostDraft()

        first = draft.add_item(make_item(name="Jacket"))
        second = draft.add_item(make_item(name="Jeans"))

        assert first.position == Position(x=25, y=25)
        assert second.position == Position(x=50, y=45)

    @pytest.mark.parametrize(
        "kwargs",
        [{"name": " "}, {"price": ""}, {"sizes": ()}],
        ids=["no-name", "no-price", "no-sizes"],
    )
    def test_incomplete_item_rejected(self, kwargs):
        draft = PostDraft()

        with pytest.raises(ValidationError) as exc_info:
            draft.add_item(make_item(**kwargs))

        assert exc_info.value.field == "item"
        assert draft.items == []

    def test_duplicate_item_rejected(self):
        draft = PostDraft()
        item = draft.add_item(make_item())

        with pytest.raises(ValidationError, match="already tagged"):
            draft.add_item(item)

    def test_remove_item(self):
        draft = PostDraft()
        item = draft.add_item(make_item())

        draft.remove_item(item.id)

        assert draft.get_item(item.id) is None

    def test_drag_moves_dot(self):
        draft = PostDraft()
        item = draft.add_item(make_item())

        session = draft.begin_drag(item.id, container_width=400, container_height=400)
        session.move(30, -40)
        final = draft.end_drag()

        assert final == Position(x=32.5, y=15.0)
        assert draft.get_item(item.id).position == final

    def test_drag_is_clamped(self):
        draft = PostDraft()
        item = draft.add_item(make_item())

        session = draft.begin_drag(item.id, container_width=100, container_height=100)
        session.move(500, 500)
        draft.end_drag()

        assert draft.get_item(item.id).position == Position(x=93, y=83)

    def test_end_without_drag(self):
        assert PostDraft().end_drag() is None

    def test_drag_unknown_item(self):
        with pytest.raises(ValidationError):
            PostDraft().begin_drag("nope", 100, 100)

    def test_removing_dragged_item_drops_the_drag(self):
        draft = PostDraft()
        item = draft.add_item(make_item())
        draft.begin_drag(item.id, 100, 100)

        draft.remove_item(item.id)

        assert draft.end_drag() is None


class TestValidate:
    """validate() checks images, then the title, then the items."""

    def test_images_first(self):
        draft = PostDraft(title="")

        with pytest.raises(ValidationError) as exc_info:
            draft.validate()

        assert exc_info.value.field == "images"

    def test_title_required(self, image_files):
        draft = PostDraft(title="   ")
        draft.add_image(image_files[0])

        with pytest.raises(ValidationError) as exc_info:
            draft.validate()

        assert exc_info.value.field == "title"

    def test_items_required(self, image_files):
        draft = PostDraft(title="Look")
        draft.add_image(image_files[0])

        with pytest.raises(ValidationError) as exc_info:
            draft.validate()

        assert exc_info.value.field == "items"

    def test_complete_draft(self, draft):
        draft.validate()


class TestSubmit:
    """Tests for PostDraft.submit()."""

    async def test_sends_trimmed_fields(self, draft, mock_client):
        result = await draft.submit(mock_client)

        assert result.post.id == "new-1"
        kwargs = mock_client.posts.upload.call_args.kwargs
        assert kwargs["title"] == "Sunday layers"
        assert kwargs["description"] == EMPTY_DESCRIPTION
        assert kwargs["images"] == draft.images
        assert kwargs["items"] == draft.to_upload_items()

    async def test_invalid_draft_sends_nothing(self, mock_client):
        with pytest.raises(ValidationError):
            await PostDraft(title="x").submit(mock_client)

        mock_client.posts.upload.assert_not_called()

    async def test_client_error_becomes_network_error(self, draft, mock_client):
        mock_client.posts.upload.side_effect = ServerError("boom", status_code=500)

        with pytest.raises(NetworkError, match="Failed to upload") as exc_info:
            await draft.submit(mock_client)

        assert isinstance(exc_info.value.cause, ServerError)

    async def test_unreadable_image_becomes_network_error(self, draft, mock_client):
        mock_client.posts.upload.side_effect = FileNotFoundError("gone.jpg")

        with pytest.raises(NetworkError):
            await draft.submit(mock_client)

    async def test_multipart_upload_reaches_server(self, draft, image_files, async_client, fake_state):
        draft.add_image(image_files[1])
        draft.description = "Layered for a cold morning"

        result = await draft.submit(async_client)

        upload = fake_state.uploads[0]
        assert result.post.id == "new-1"
        assert len(result.media) == 2
        assert upload["title"] == "Sunday layers"
        assert upload["description"] == "Layered for a cold morning"
        assert upload["filenames"] == ["image_0.jpg", "image_1.jpg"]
        assert upload["content_types"] == ["image/jpeg", "image/jpeg"]
        assert upload["items"][0]["item_name"] == "Denim Jacket"
        assert upload["items"][0]["price"] == 2999
        assert upload["items"][0]["x"] == pytest.approx(0.25)
