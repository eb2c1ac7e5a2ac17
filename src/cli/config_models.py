"""Pydantic configuration models for mother-skills."""

import os
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

DEFAULT_REGISTRY_URL = "https://cdn.jsdelivr.net/gh/dmgrok/agent_skills_directory@main/catalog.json"
DEFAULT_BUNDLES_URL = "https://cdn.jsdelivr.net/gh/dmgrok/agent_skills_directory@main/bundles.json"
DEFAULT_INSTALL_PATH = ".github/skills"
DEFAULT_CACHE_DIR = ".mother/cache"


def _expand_env(value: Optional[str]) -> Optional[str]:
    """Expand a whole-value ``${VAR}`` reference."""
    if value and value.startswith("${") and value.endswith("}"):
        return os.getenv(value[2:-1], "")
    return value


class RegistrySourceConfig(BaseModel):
    """One catalog source. Priority 1 is the highest."""

    url: str
    priority: int = 1
    auth: Optional[str] = None

    @field_validator("priority")
    @classmethod
    def validate_priority(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"priority must be >= 1, got {v}")
        return v


class CacheConfig(BaseModel):
    """Catalog cache location and TTL."""

    refresh_interval_days: float = 7
    dir: str = DEFAULT_CACHE_DIR

    @field_validator("refresh_interval_days")
    @classmethod
    def validate_interval(cls, v: float) -> float:
        if v < 0:
            raise ValueError(f"refresh_interval_days must be >= 0, got {v}")
        return v


class DetectionConfig(BaseModel):
    """Which detector tiers run."""

    enabled: bool = True
    sbom: bool = True
    analyzer: bool = True
    manifest: bool = True
    analyzer_command: Optional[list[str]] = None  # None = stack-analyser via npx


class GitHubConfig(BaseModel):
    """Repository identity and credential for GitHub-backed tiers and sources."""

    owner: Optional[str] = None
    repo: Optional[str] = None
    token: Optional[str] = None


class SkillsConfig(BaseModel):
    """Manual include/exclude lists."""

    always_include: list[str] = Field(default_factory=list)
    always_exclude: list[str] = Field(default_factory=list)


class SyncConfig(BaseModel):
    """Sync behaviour."""

    auto_remove: bool = False
    prompt_on_changes: bool = True


class RetryConfig(BaseModel):
    """Retry/backoff configuration for remote fetches."""

    max_attempts: int = 3
    min_wait: float = 1.0
    max_wait: float = 10.0


VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    json_mode: bool = False

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        v_upper = v.upper()
        if v_upper not in VALID_LOG_LEVELS:
            raise ValueError(f"Invalid log level: {v}. Must be one of {VALID_LOG_LEVELS}")
        return v_upper


class MotherConfig(BaseModel):
    """Main configuration model."""

    version: str = "1.0"
    registry: list[RegistrySourceConfig] = Field(
        default_factory=lambda: [RegistrySourceConfig(url=DEFAULT_REGISTRY_URL, priority=1)]
    )
    bundles_url: Optional[str] = DEFAULT_BUNDLES_URL
    install_path: str = DEFAULT_INSTALL_PATH
    cache: CacheConfig = Field(default_factory=CacheConfig)
    detection: DetectionConfig = Field(default_factory=DetectionConfig)
    github: GitHubConfig = Field(default_factory=GitHubConfig)
    skills: SkillsConfig = Field(default_factory=SkillsConfig)
    sync: SyncConfig = Field(default_factory=SyncConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @field_validator("registry")
    @classmethod
    def validate_registry(cls, v: list[RegistrySourceConfig]) -> list[RegistrySourceConfig]:
        if not v:
            raise ValueError("at least one registry source is required")
        return v

    @model_validator(mode="after")
    def expand_env_vars(self):
        """Expand ${VAR} patterns in credentials."""
        self.github.token = _expand_env(self.github.token)
        for source in self.registry:
            source.auth = _expand_env(source.auth)
        return self

    @classmethod
    def from_dict(cls, data: dict) -> "MotherConfig":
        """Create config from dict. A bare registry URL string is accepted."""
        data = dict(data or {})
        registry = data.get("registry")
        if isinstance(registry, str):
            data["registry"] = [{"url": registry, "priority": 1}]
        elif isinstance(registry, list):
            data["registry"] = [
                {"url": item, "priority": i + 1} if isinstance(item, str) else item
                for i, item in enumerate(registry)
            ]
        return cls.model_validate(data)

    def to_dict(self) -> dict:
        return self.model_dump(mode="python")
