"""Shared enums and types for mother-skills."""

from enum import StrEnum


class StackCategory(StrEnum):
    LANGUAGES = "languages"
    FRAMEWORKS = "frameworks"
    DATABASES = "databases"
    INFRASTRUCTURE = "infrastructure"
    TOOLS = "tools"


class MatchProvenance(StrEnum):
    MANUAL = "manual"
    DISCOVERY = "discovery"
    DEPENDENCY = "dependency"


class ChangeAction(StrEnum):
    ADD = "add"
    UPDATE = "update"
    REMOVE = "remove"


class DetectionTier(StrEnum):
    SBOM = "github-sbom"
    ANALYZER = "analyzer"
    MANIFEST = "manifest"


class InstallStatus(StrEnum):
    INSTALLED = "installed"
    UNINSTALLED = "uninstalled"
    NOT_FOUND = "not_found"
    FAILED = "failed"
