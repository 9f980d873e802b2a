"""Configuration handling for the link archiver."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Literal, Optional, Union
from urllib.parse import urlsplit

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigInvalid

# Django's SESSION_COOKIE_AGE default, two weeks.
DEFAULT_SESSION_MAX_AGE = 1209600.0


class Settings(BaseSettings):
    """Settings snapshot loaded from environment variables or a YAML file."""

    archivebox_uri: str = Field(default="")
    use_basic_auth: bool = Field(default=False)
    basic_auth_username: str = Field(default="")
    basic_auth_password: str = Field(default="")
    archivebox_username: str = Field(default="")
    archivebox_password: str = Field(default="")
    ignore_domains: str = Field(default="")
    ignore_private_addresses: bool = Field(default=True)
    dedup_enabled: bool = Field(default=True)
    batch_every_sec: float = Field(default=10.0, ge=0)
    auto_submit_on_modify: bool = Field(default=False)
    submit_timeout: float = Field(default=2.0, gt=0)
    login_timeout: float = Field(default=10.0, gt=0)
    session_max_age: Optional[float] = Field(default=DEFAULT_SESSION_MAX_AGE, gt=0)
    dedup_cache_path: Optional[Path] = Field(default=None)
    log_level: str = Field(default="INFO")
    log_format: Literal["json", "console"] = Field(default="json")

    model_config = SettingsConfigDict(
        env_prefix="LINK_ARCHIVER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    @field_validator("dedup_cache_path")
    @classmethod
    def expand_dedup_cache_path(cls, value: Optional[Path]) -> Optional[Path]:
        """Expand a leading ~ so the cache location does not depend on the cwd."""
        return value.expanduser() if value is not None else None

    @property
    def base_uri(self) -> str:
        """Service URI without a trailing slash."""
        return self.archivebox_uri.strip().rstrip("/")

    @property
    def ignored_domain_list(self) -> List[str]:
        """Comma-separated ignore list, whitespace-trimmed."""
        return [item.strip() for item in self.ignore_domains.split(",") if item.strip()]

    @property
    def basic_auth(self) -> Optional[tuple[str, str]]:
        """Credentials for HTTP Basic auth, if enabled."""
        if not self.use_basic_auth:
            return None
        return (self.basic_auth_username, self.basic_auth_password)


def load_settings(config_file: Optional[Union[str, Path]] = None, **overrides: Any) -> Settings:
    """Build settings from the environment, a YAML file and explicit overrides.

    Args:
        config_file: Optional YAML file holding a mapping of setting names.
        overrides: Values that win over both the file and the environment.

    Returns:
        A frozen settings snapshot.
    """
    values: Dict[str, Any] = {}
    if config_file:
        path = Path(config_file)
        try:
            with open(path, "r", encoding="utf-8") as handle:
                data = yaml.safe_load(handle) or {}
        except FileNotFoundError:
            raise FileNotFoundError(f"Configuration file not found: {path}")
        except yaml.YAMLError as exc:
            raise ValueError(f"Invalid YAML in config file: {exc}") from exc
        if not isinstance(data, dict):
            raise ValueError(f"Configuration file must contain a mapping: {path}")
        values.update(data)
    values.update(overrides)
    return Settings(**values)


def validate_settings(settings: Settings) -> None:
    """Check that settings are usable before touching the network.

    Raises:
        ConfigInvalid: With a message suitable for the status surface.
    """
    parts = urlsplit(settings.base_uri)
    if parts.scheme not in {"http", "https"} or not parts.netloc:
        raise ConfigInvalid("❌ Missing ArchiveBox URI.")

    if bool(settings.archivebox_username) != bool(settings.archivebox_password):
        if not settings.archivebox_username:
            raise ConfigInvalid("❌ Missing ArchiveBox username")
        raise ConfigInvalid("❌ Missing ArchiveBox password")

    if settings.use_basic_auth:
        if not settings.basic_auth_username:
            raise ConfigInvalid("❌ Missing basic auth username")
        if not settings.basic_auth_password:
            raise ConfigInvalid("❌ Missing basic auth password")


__all__ = ["DEFAULT_SESSION_MAX_AGE", "Settings", "load_settings", "validate_settings"]
