"""Raider.IO character profile client.

API docs: https://raider.io/api
No API key is needed for the public profile endpoint. Requests are not
retried; a failure is reported once as a TransportFailure.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Optional

import httpx
from pydantic import ValidationError

from ..exceptions import TransportFailure
from ..models import CharacterInfo, RaiderIoProfile

logger = logging.getLogger(__name__)

API_BASE = os.environ.get("RAIDERIO_API_BASE", "https://raider.io/api/v1")

PROFILE_FIELDS = ",".join([
    "mythic_plus_best_runs",
    "mythic_plus_alternate_runs",
    "guild",
])

NO_CACHE_HEADERS = {"Cache-Control": "no-cache", "Pragma": "no-cache"}


def _get_timeout() -> httpx.Timeout:
    """No timeout unless RAIDERIO_TIMEOUT_SECONDS is set."""
    seconds = os.environ.get("RAIDERIO_TIMEOUT_SECONDS", "")
    if not seconds:
        return httpx.Timeout(None)
    return httpx.Timeout(float(seconds), connect=10.0)


async def _get_profile(
    client: httpx.AsyncClient,
    params: dict,
    headers: dict,
) -> Any:
    response = await client.get(f"{API_BASE}/characters/profile", params=params, headers=headers)
    response.raise_for_status()
    return response.json()


async def fetch_character_profile(
    region: str,
    realm: str,
    name: str,
    force_refresh: bool = False,
    client: Optional[httpx.AsyncClient] = None,
) -> RaiderIoProfile:
    """Fetch a character's Mythic+ runs and guild from Raider.IO.

    Args:
        region: Region slug (e.g., 'eu', 'us').
        realm: Realm name or slug.
        name: Character name.
        force_refresh: Ask every cache on the way to revalidate.
        client: Optional shared client; a short-lived one is created otherwise.

    Returns:
        The decoded profile. Run lists are left unvalidated.

    Raises:
        TransportFailure: request error, non-2xx status, or undecodable body.
    """
    params = {
        "region": region,
        "realm": realm,
        "name": name,
        "fields": PROFILE_FIELDS,
    }
    headers = dict(NO_CACHE_HEADERS) if force_refresh else {}
    timeout = _get_timeout() if client is None else None

    try:
        if client is not None:
            data = await _get_profile(client, params, headers)
        else:
            async with httpx.AsyncClient(timeout=timeout) as own_client:
                data = await _get_profile(own_client, params, headers)
    except httpx.HTTPStatusError as exc:
        raise TransportFailure(
            f"Raider.IO returned {exc.response.status_code} for {region}/{realm}/{name}"
        ) from exc
    except httpx.HTTPError as exc:
        raise TransportFailure(f"Raider.IO request failed for {region}/{realm}/{name}: {exc}") from exc
    except ValueError as exc:
        raise TransportFailure(f"Raider.IO returned an undecodable body for {region}/{realm}/{name}") from exc

    try:
        profile = RaiderIoProfile.model_validate(data)
    except ValidationError as exc:
        raise TransportFailure(f"Unexpected Raider.IO profile shape for {region}/{realm}/{name}: {exc}") from exc

    logger.info(
        "Fetched Raider.IO profile %s/%s/%s (%d best, %d alternate runs)",
        profile.region, profile.realm, profile.name,
        len(profile.mythic_plus_best_runs), len(profile.mythic_plus_alternate_runs),
    )
    return profile


def all_runs(profile: RaiderIoProfile) -> list[dict[str, Any]]:
    """Best and alternate runs as one list."""
    return [*profile.mythic_plus_best_runs, *profile.mythic_plus_alternate_runs]


def build_character_info(profile: RaiderIoProfile) -> CharacterInfo:
    return CharacterInfo(
        region=profile.region,
        realm=profile.realm,
        name=profile.name,
        character_class=profile.character_class,
        spec=profile.active_spec_name,
        thumbnail_url=profile.thumbnail_url,
        guild_name=profile.guild.name if profile.guild else None,
    )
