"""
Turns raw GitHub API payloads into ModItem and ModStats records.

Both parsers raise MalformedPayloadError when the payload as a whole has the
wrong shape. Individual search results that lack an identity are skipped.
"""

import logging
from typing import Any

from pydantic import ValidationError

from modinfo_plus.exceptions import MalformedPayloadError
from modinfo_plus.models.mods import ModItem, ModStats

log = logging.getLogger(__name__)


def _as_int(value: Any) -> int:
    # bool is an int subclass but never a valid count
    if isinstance(value, bool) or not isinstance(value, int):
        return 0
    return max(0, value)


def parse_discovery(
    payload: Any, required_topic: str, min_stars: int, now: float
) -> list[ModItem]:
    """
    Extracts the mods from a repository search response.

    Only repositories tagged with ``required_topic`` and with at least
    ``min_stars`` stars are kept, in response order.
    """
    if not isinstance(payload, dict):
        raise MalformedPayloadError("Search response is not a JSON object.")

    raw_items = payload.get("items")
    if not isinstance(raw_items, list):
        raise MalformedPayloadError("Search response has no 'items' array.")

    mods: list[ModItem] = []
    skipped = 0
    for raw in raw_items:
        if not isinstance(raw, dict):
            skipped += 1
            continue

        topics = raw.get("topics") or []
        if not isinstance(topics, list) or required_topic not in topics:
            continue

        stars = _as_int(raw.get("stargazers_count"))
        if stars < min_stars:
            continue

        owner = raw.get("owner") or {}
        repo_name = raw.get("name")
        try:
            mods.append(
                ModItem(
                    owner=owner.get("login", "") if isinstance(owner, dict) else "",
                    repo=repo_name if isinstance(repo_name, str) else "",
                    name=repo_name if isinstance(repo_name, str) else "",
                    description=raw.get("description") or "No description",
                    stars=stars,
                    url=raw.get("html_url") or "",
                    topics=[t for t in topics if isinstance(t, str)],
                    discovered_at=now,
                )
            )
        except ValidationError as e:
            skipped += 1
            log.debug(f"Skipping search result without a usable identity: {e}")

    if skipped:
        log.debug(f"Skipped {skipped} malformed search results.")
    return mods


def parse_releases(payload: Any, now: float) -> ModStats:
    """
    Sums asset downloads over all releases.

    The API lists releases newest first; that order is trusted as-is, so the
    first timestamp seen is the latest release and the last one the first.
    """
    if not isinstance(payload, list):
        raise MalformedPayloadError("Releases response is not a JSON array.")

    downloads = 0
    latest_release: str | None = None
    first_release: str | None = None

    for release in payload:
        if not isinstance(release, dict):
            raise MalformedPayloadError("Release entry is not a JSON object.")

        published_at = release.get("published_at")
        if isinstance(published_at, str) and published_at:
            if latest_release is None:
                latest_release = published_at
            first_release = published_at

        assets = release.get("assets") or []
        if not isinstance(assets, list):
            raise MalformedPayloadError("Release 'assets' is not an array.")
        downloads += sum(
            _as_int(asset.get("download_count"))
            for asset in assets
            if isinstance(asset, dict)
        )

    return ModStats(
        downloads=downloads,
        releases=len(payload),
        latest_release=latest_release,
        first_release=first_release,
        cache_time=now,
    )
