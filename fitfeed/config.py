"""Configuration for a feed session.

Defaults are the production policy values. ``FeedSettings.from_env`` layers
``ONLYFITS_*`` environment variables (optionally from a ``.env`` file) over
them.
"""

import os
import tempfile
from datetime import timedelta
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, Field

ENV_PREFIX = "ONLYFITS_"


def _default_cache_dir() -> Path:
    return Path(tempfile.gettempdir()) / "onlyfits" / "image-cache"


class FeedSettings(BaseModel):
    """Tunable values for the API client, image cache and feed screen.

    Args:
        api_base_url: Base URL of the OnlyFits API.
        request_timeout: Per-request timeout in seconds.
        retry_enabled: Whether the API client retries transient failures.
        cache_dir: Directory holding downloaded images.
        cache_max_age_hours: Age after which cached images are evicted.
        page_size: Posts requested per feed page.
        prefetch_limit: Posts prefetched after a page load.
        vertical_prefetch_limit: Posts prefetched when entering vertical mode.
        max_image_retries: Render retries per image before it settles in error.
        retry_base_delay: Linear backoff base for image retries, in seconds.
        transition_duration: Grid/vertical transition length, in seconds.
    """

    api_base_url: str = Field(default="https://api.egress.live")
    request_timeout: float = Field(default=30.0, gt=0)
    retry_enabled: bool = Field(default=False)
    cache_dir: Path = Field(default_factory=_default_cache_dir)
    cache_max_age_hours: float = Field(default=24.0, gt=0)
    page_size: int = Field(default=20, ge=1)
    prefetch_limit: int = Field(default=10, ge=0)
    vertical_prefetch_limit: int = Field(default=5, ge=0)
    max_image_retries: int = Field(default=3, ge=0)
    retry_base_delay: float = Field(default=1.0, ge=0)
    transition_duration: float = Field(default=0.2, ge=0)

    @property
    def cache_max_age(self) -> timedelta:
        return timedelta(hours=self.cache_max_age_hours)

    @classmethod
    def from_env(cls, dotenv_path: str | Path | None = None) -> "FeedSettings":
        """Build settings from ``ONLYFITS_*`` environment variables.

        A ``.env`` file is loaded first without overriding variables that are
        already set. Variable names are the field names upper-cased with the
        prefix, e.g. ``ONLYFITS_PAGE_SIZE``. Values are validated by pydantic.
        """
        load_dotenv(dotenv_path=dotenv_path, override=False)

        values: dict[str, str] = {}
        for name in cls.model_fields:
            raw = os.getenv(f"{ENV_PREFIX}{name.upper()}")
            if raw is not None and raw != "":
                values[name] = raw
        return cls(**values)
