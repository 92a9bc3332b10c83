"""OnlyFits feed core.

Client-side state and policy for the OnlyFits outfit feed: a disk image
cache with single-flight downloads, a prefetch scheduler, a paginated feed
store with optimistic likes, the grid/vertical view controller, the
shopping-dot coordinate model, the post composer and the cart.

Example:
    Running a feed session::

        from fitfeed import FeedSession, FeedSettings

        async with FeedSession(FeedSettings.from_env(), get_token) as session:
            await session.controller.start()
            await session.controller.toggle_mode()

Exports:
    FeedSession: Per-session composition root.
    FeedSettings: Session configuration.
    DiskImageCache: URL-keyed on-disk image cache.
    PrefetchScheduler: Pushes feed images through the cache.
    FeedStore: Paginated posts with optimistic likes.
    ViewController: Grid/vertical view state machine.
    PostDraft, ItemDraft: Post composer.
    Cart, CartItem: Local cart.

    Exceptions:
        FeedError: Base exception for feed core errors.
        NetworkError: An API call failed.
        DownloadError: An image download failed.
        ValidationError: Local input validation failed.
"""

from fitfeed.cart import Cart, CartItem, add_tagged_item
from fitfeed.composer import ItemDraft, PostDraft
from fitfeed.config import FeedSettings
from fitfeed.exceptions import DownloadError, FeedError, NetworkError, ValidationError
from fitfeed.image_cache import DiskImageCache
from fitfeed.models import (
    Author,
    CachedImage,
    FeedPage,
    FeedPost,
    ImageKey,
    ImageLoadState,
    Position,
    TaggedItem,
    ViewMode,
)
from fitfeed.prefetch import PrefetchResult, PrefetchScheduler
from fitfeed.store import FeedSource, FeedStore, Notice, UserPostsSource
from fitfeed.view_state import ViewableItem, ViewController, ViewState
from fitfeed.session import FeedSession

__all__ = [
    # Session
    "FeedSession",
    "FeedSettings",
    # Components
    "DiskImageCache",
    "PrefetchScheduler",
    "PrefetchResult",
    "FeedStore",
    "FeedSource",
    "UserPostsSource",
    "Notice",
    "ViewController",
    "ViewState",
    "ViewableItem",
    "PostDraft",
    "ItemDraft",
    "Cart",
    "CartItem",
    "add_tagged_item",
    # Models
    "Author",
    "CachedImage",
    "FeedPage",
    "FeedPost",
    "ImageKey",
    "ImageLoadState",
    "Position",
    "TaggedItem",
    "ViewMode",
    # Exceptions
    "FeedError",
    "NetworkError",
    "DownloadError",
    "ValidationError",
]
