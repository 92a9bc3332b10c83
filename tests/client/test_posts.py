"""Unit tests for the PostsClient and AsyncPostsClient.

This module tests per-post actions (like, unlike, view recording), user
post listings and the multipart upload.
"""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from onlyfits._posts import AsyncPostsClient, PostsClient, _image_part, _upload_form
from onlyfits.models import UploadPostResponse, UserPostsResponse
from tests.fixtures.posts import api_post_payload

UPLOAD_RESPONSE = {
    "post": {"id": "new-1", "user_id": "user-alice", "created_at": "2025-01-16T09:00:00Z"},
    "media": ["http://test/images/new-1-0.jpg"],
}


@pytest.fixture
def image_files(tmp_path):
    """Two local image files, a jpg and a png."""
    jpg = tmp_path / "look.jpg"
    jpg.write_bytes(b"jpeg-bytes")
    png = tmp_path / "detail.PNG"
    png.write_bytes(b"png-bytes")
    return [jpg, png]


# =============================================================================
# Helper Tests
# =============================================================================


class TestImagePart:
    """Tests for the multipart image part builder."""

    def test_jpg_is_sent_as_jpeg(self, tmp_path):
        part = _image_part(0, tmp_path / "a.jpg", b"x")
        assert part == ("images", ("image_0.jpg", b"x", "image/jpeg"))

    def test_extension_is_lowercased(self, tmp_path):
        part = _image_part(3, tmp_path / "a.PNG", b"x")
        assert part == ("images", ("image_3.png", b"x", "image/png"))

    def test_missing_extension_defaults_to_jpg(self, tmp_path):
        name, (filename, _, mime_type) = _image_part(1, tmp_path / "photo", b"x")
        assert filename == "image_1.jpg"
        assert mime_type == "image/jpeg"


class TestUploadForm:
    """Tests for the multipart form fields."""

    def test_items_are_json_encoded(self):
        items = [{"item_name": "Jacket", "price": 2999}]
        form = _upload_form("Fit", "Desc", items)

        assert form["title"] == "Fit"
        assert json.loads(form["items"]) == items

    def test_no_items_field_when_empty(self):
        assert "items" not in _upload_form("Fit", "Desc", [])
        assert "items" not in _upload_form("Fit", "Desc", None)


# =============================================================================
# PostsClient Tests
# =============================================================================


class TestPostsClientActions:
    """Tests for like, unlike and record_view."""

    def test_like(self):
        mock_http = MagicMock()
        PostsClient(mock_http).like("p1")
        mock_http.post.assert_called_once_with("/posts/p1/like", json=None, params=None)

    def test_unlike(self):
        mock_http = MagicMock()
        PostsClient(mock_http).unlike("p1")
        mock_http.delete.assert_called_once_with("/posts/p1/like", params=None)

    def test_record_view(self):
        mock_http = MagicMock()
        PostsClient(mock_http).record_view("p1")
        mock_http.post.assert_called_once_with("/posts/p1/view", json=None, params=None)


class TestPostsClientGetUserPosts:
    """Tests for PostsClient.get_user_posts() method."""

    def test_defaults_to_me(self):
        mock_http = MagicMock()
        mock_http.get.return_value = {"posts": [api_post_payload()], "next_cursor": None}

        result = PostsClient(mock_http).get_user_posts()

        mock_http.get.assert_called_once_with(
            "/users/me/posts", params={"limit": 20, "cursor": None}
        )
        assert isinstance(result, UserPostsResponse)
        assert len(result.posts) == 1

    def test_other_user_with_cursor(self):
        mock_http = MagicMock()
        mock_http.get.return_value = {"posts": [], "next_cursor": None}

        PostsClient(mock_http).get_user_posts("user-bob", limit=5, cursor="10")

        mock_http.get.assert_called_once_with(
            "/users/user-bob/posts", params={"limit": 5, "cursor": "10"}
        )


class TestPostsClientUpload:
    """Tests for PostsClient.upload() method."""

    def test_upload(self, image_files):
        """Images become multipart parts, metadata becomes form fields."""
        mock_http = MagicMock()
        mock_http.post.return_value = UPLOAD_RESPONSE
        items = [{"item_name": "Jacket", "price": 2999, "x": 0.25, "y": 0.25}]

        result = PostsClient(mock_http).upload(image_files, "Fit", "Desc", items)

        call_args = mock_http.post.call_args
        assert call_args[0][0] == "/upload-post"
        assert call_args[1]["data"]["title"] == "Fit"
        assert json.loads(call_args[1]["data"]["items"]) == items
        assert call_args[1]["files"] == [
            ("images", ("image_0.jpg", b"jpeg-bytes", "image/jpeg")),
            ("images", ("image_1.png", b"png-bytes", "image/png")),
        ]
        assert isinstance(result, UploadPostResponse)
        assert result.post.id == "new-1"

    def test_unreadable_image_raises_before_sending(self, tmp_path):
        mock_http = MagicMock()

        with pytest.raises(OSError):
            PostsClient(mock_http).upload([tmp_path / "missing.jpg"], "Fit", "Desc")

        mock_http.post.assert_not_called()


# =============================================================================
# AsyncPostsClient Tests
# =============================================================================


class TestAsyncPostsClient:
    """Tests for AsyncPostsClient."""

    async def test_like_and_unlike(self):
        mock_http = MagicMock()
        mock_http.post = AsyncMock(return_value=None)
        mock_http.delete = AsyncMock(return_value=None)
        client = AsyncPostsClient(mock_http)

        await client.like("p1")
        await client.unlike("p1")

        mock_http.post.assert_called_once_with("/posts/p1/like", json=None, params=None)
        mock_http.delete.assert_called_once_with("/posts/p1/like", params=None)

    async def test_upload_reads_files(self, image_files):
        mock_http = MagicMock()
        mock_http.post = AsyncMock(return_value=UPLOAD_RESPONSE)

        result = await AsyncPostsClient(mock_http).upload(image_files[:1], "Fit", "Desc")

        files = mock_http.post.call_args[1]["files"]
        assert files == [("images", ("image_0.jpg", b"jpeg-bytes", "image/jpeg"))]
        assert "items" not in mock_http.post.call_args[1]["data"]
        assert result.media == ["http://test/images/new-1-0.jpg"]
