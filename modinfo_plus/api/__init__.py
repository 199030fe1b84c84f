"""
GitHub API Layer.

This package handles all communication with the GitHub REST API.
"""

from .client import GitHubClient, RemoteClient
from .rate_limiter import AdaptiveRateLimiter

__all__ = ["AdaptiveRateLimiter", "GitHubClient", "RemoteClient"]
