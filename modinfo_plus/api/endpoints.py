"""
URL builders for the GitHub REST endpoints used by the plugin.
"""

from urllib.parse import quote, urlencode

DISCOVERY_PAGE_SIZE = 100


def discovery_url(base_url: str, topic: str, min_stars: int) -> str:
    """Repository search for non-fork repositories tagged with the mod topic."""
    params = {
        "q": f"topic:{topic} fork:false stars:>={min_stars}",
        "sort": "updated",
        "order": "desc",
        "per_page": DISCOVERY_PAGE_SIZE,
    }
    return f"{base_url}/search/repositories?{urlencode(params)}"


def releases_url(base_url: str, owner: str, repo: str) -> str:
    """Release listing for one repository, newest first."""
    return f"{base_url}/repos/{quote(owner, safe='')}/{quote(repo, safe='')}/releases"
