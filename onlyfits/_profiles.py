"""Profiles sub-client for the OnlyFits API.

This module provides ProfilesClient and AsyncProfilesClient for reading
any profile and updating the caller's own (``/profiles/*``).

This is an internal module. Import from `onlyfits` instead.
"""

from typing import Any

from onlyfits._base import AsyncBaseClient, BaseClient
from onlyfits.models import Profile, ProfileResponse

# Fields the API accepts on PUT /profiles/me
UPDATABLE_FIELDS = frozenset(
    {"username", "avatar_url", "bio", "height_cm", "chest_cm", "waist_cm"}
)


def _update_body(fields: dict[str, Any]) -> dict[str, Any]:
    unknown = set(fields) - UPDATABLE_FIELDS
    if unknown:
        raise ValueError(f"Unknown profile field(s): {', '.join(sorted(unknown))}")
    return {key: value for key, value in fields.items() if value is not None}


class ProfilesClient(BaseClient):
    """Synchronous client for profile endpoints.

    Example:
        with OnlyFitsClient(token_getter=get_token) as client:
            me = client.profiles.get()
            client.profiles.update(bio="Vintage denim only")
    """

    _BASE_PATH = "/profiles"

    def get(self, user_id: str = "me") -> Profile:
        """Fetch a profile.

        Args:
            user_id: The user id, or "me" for the caller.

        Returns:
            The profile.

        Raises:
            NotFoundError: If the profile does not exist.
            APIError: If the request fails.
        """
        data = self._get(f"{self._BASE_PATH}/{user_id}")
        return ProfileResponse(**data).profile

    def update(self, **fields: Any) -> Profile:
        """Update the caller's profile with a partial field set.

        Fields set to None are not sent.

        Args:
            **fields: Any of username, avatar_url, bio, height_cm,
                chest_cm, waist_cm.

        Returns:
            The updated profile.

        Raises:
            ValueError: If an unknown field is given (nothing is sent).
            APIError: If the request fails.
        """
        data = self._put(f"{self._BASE_PATH}/me", json=_update_body(fields))
        return ProfileResponse(**data).profile


class AsyncProfilesClient(AsyncBaseClient):
    """Asynchronous client for profile endpoints."""

    _BASE_PATH = "/profiles"

    async def get(self, user_id: str = "me") -> Profile:
        """Fetch a profile. See ProfilesClient.get."""
        data = await self._get(f"{self._BASE_PATH}/{user_id}")
        return ProfileResponse(**data).profile

    async def update(self, **fields: Any) -> Profile:
        """Update the caller's profile. See ProfilesClient.update."""
        data = await self._put(f"{self._BASE_PATH}/me", json=_update_body(fields))
        return ProfileResponse(**data).profile
