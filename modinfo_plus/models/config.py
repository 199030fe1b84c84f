"""
Pydantic model for application configuration.
Provides robust validation for all settings.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

DEFAULT_API_BASE_URL = "https://api.github.com"
DEFAULT_REQUIRED_TOPIC = "mindustry-mod"

# Environment variables consulted for the GitHub token, in priority order
TOKEN_ENV_VARS = ("MODINFO_GITHUB_TOKEN", "GITHUB_TOKEN")


class PluginConfig(BaseModel):
    """A validated configuration model for the application."""

    # Discovery
    required_topic: str = DEFAULT_REQUIRED_TOPIC
    min_stars: int = 1
    mods_per_page: int = 3

    # Cache lifetimes
    discover_ttl_seconds: int = 900
    stats_ttl_seconds: int = 300
    refresh_cooldown_seconds: int = 60

    # Notifications
    max_notifications: int = 50
    notify_on_release: bool = False
    notify_on_new_mods: bool = False

    # Network
    api_base_url: str = DEFAULT_API_BASE_URL
    token: str = Field(default="", repr=False)
    discover_timeout_seconds: float = 10.0
    stats_timeout_seconds: float = 8.0
    max_concurrent_stats: int = 4

    # Internal fields not loaded from INI file
    config_path: str = Field(default="", repr=False)

    model_config = ConfigDict(validate_assignment=True, str_strip_whitespace=True)

    @field_validator("required_topic")
    @classmethod
    def validate_topic(cls, v: str) -> str:
        """GitHub topics are lowercase and may not contain spaces."""
        if not v:
            raise ValueError("Required topic cannot be empty.")
        if " " in v:
            raise ValueError(f"Topic may not contain spaces: '{v}'")
        return v.lower()

    @field_validator("min_stars")
    @classmethod
    def validate_min_stars(cls, v: int) -> int:
        if v < 0:
            raise ValueError("Minimum stars cannot be negative.")
        return v

    @field_validator(
        "mods_per_page", "max_notifications", "max_concurrent_stats"
    )
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Value must be at least 1.")
        return v

    @field_validator(
        "discover_ttl_seconds", "stats_ttl_seconds", "refresh_cooldown_seconds"
    )
    @classmethod
    def validate_durations(cls, v: int) -> int:
        if v < 0:
            raise ValueError("Durations cannot be negative.")
        return v

    @field_validator("discover_timeout_seconds", "stats_timeout_seconds")
    @classmethod
    def validate_timeouts(cls, v: float) -> float:
        if v <= 0 or v > 120:
            raise ValueError("Timeouts must be between 0 and 120 seconds.")
        return v

    @field_validator("api_base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"API base URL must be an http(s) URL, got: {v}")
        return v.rstrip("/")

    @model_validator(mode="after")
    def validate_token(self) -> "PluginConfig":
        """Rejects tokens that would produce a malformed Authorization header."""
        if self.token and any(c.isspace() for c in self.token):
            raise ValueError("The GitHub token must not contain whitespace.")
        return self

    @classmethod
    def get_ini_keys(cls) -> set[str]:
        """Returns a set of all keys that are expected in the INI file."""
        internal_fields = {"config_path"}
        return {key for key in cls.model_fields if key not in internal_fields}
