"""Catalog document parsers: JSON catalog, YAML registry, SKILL.md frontmatter."""

import re
from typing import Any, Optional

import frontmatter
import structlog
import yaml
from pydantic import ValidationError

from catalog.models import Bundle, CatalogEntry

logger = structlog.get_logger().bind(source="catalog_parsers")

_GITHUB_PATH = re.compile(r"github\.com/([^/]+)/([^/]+?)(?:\.git)?(?:/tree/([^/]+))?/(.+)$")
_GITHUB_REPO = re.compile(r"^https?://github\.com/([^/]+)/([^/]+?)(?:\.git)?/?$")

# Trigger inference for repositories that ship bare skill directories
INFERRED_PACKAGES = {
    "typescript": ["typescript"],
    "react": ["react", "react-dom"],
    "nextjs": ["next"],
    "vue": ["vue"],
    "angular": ["@angular/core"],
    "express": ["express"],
    "fastapi": ["fastapi"],
    "postgresql": ["pg", "psycopg2"],
    "mongodb": ["mongodb", "mongoose"],
}
INFERRED_FILES = {
    "typescript": ["tsconfig.json"],
    "nextjs": ["next.config.js", "next.config.mjs"],
    "docker": ["Dockerfile"],
    "kubernetes": ["k8s/**/*.yaml"],
    "github-actions": [".github/workflows/*.yaml"],
}


class CatalogFormatError(ValueError):
    """Catalog document does not have the expected shape."""


def parse_github_path(path: str) -> Optional[tuple[str, str, Optional[str], str]]:
    """``https://github.com/o/r/tree/main/skills/x`` -> (owner, repo, branch, subpath)."""
    match = _GITHUB_PATH.search(path)
    if not match:
        return None
    owner, repo, branch, subpath = match.groups()
    return owner, repo, branch, subpath.strip("/")


def parse_github_repo(url: str) -> Optional[tuple[str, str]]:
    match = _GITHUB_REPO.match(url.strip())
    return (match.group(1), match.group(2)) if match else None


def _entries(raw_items: Any, build) -> list[CatalogEntry]:
    if not isinstance(raw_items, list):
        raise CatalogFormatError("catalog 'skills' must be a list")
    entries = []
    for raw in raw_items:
        if not isinstance(raw, dict):
            continue
        try:
            entries.append(CatalogEntry.model_validate(build(raw)))
        except (ValidationError, KeyError, TypeError) as e:
            logger.warning("catalog_entry_invalid", entry=str(raw.get("name") or raw.get("id")), error=str(e))
    return entries


def parse_json_catalog(data: Any) -> list[CatalogEntry]:
    """Catalog JSON: ``{"skills": [{"id"|"name", "source": {"repo", "path"} | "path", ...}]}``."""
    if not isinstance(data, dict):
        raise CatalogFormatError("catalog document must be an object")
    generated_at = data.get("generated_at")

    def build(skill: dict) -> dict:
        source = skill.get("source") or {}
        repo, sub = source.get("repo"), source.get("path")
        if repo and not repo.startswith(("http://", "https://")):
            repo = f"https://github.com/{repo.strip('/')}"
        path = f"{repo}/tree/main/{sub}" if repo and sub else skill.get("path") or skill.get("id", "")
        return {
            "name": skill.get("name") or skill["id"],
            "path": path,
            "version": skill.get("version"),
            "description": skill.get("description"),
            "triggers": skill.get("triggers"),
            "dependencies": skill.get("dependencies"),
            "tags": skill.get("tags"),
            "last_updated": source.get("commit_sha") or generated_at,
        }

    return _entries(data.get("skills") or [], build)


def parse_registry_yaml(content: str, base_url: str) -> list[CatalogEntry]:
    """``registry.yaml``: relative skill paths are resolved against ``base_url``."""
    parsed = yaml.safe_load(content) or {}
    if not isinstance(parsed, dict):
        raise CatalogFormatError("registry.yaml must be a mapping")

    def build(skill: dict) -> dict:
        return {
            "name": skill["name"],
            "path": resolve_path(skill.get("path") or skill["name"], base_url),
            "version": skill.get("version"),
            "description": skill.get("description"),
            "triggers": skill.get("triggers"),
            "dependencies": skill.get("dependencies"),
            "tags": skill.get("tags"),
            "last_updated": skill.get("last_updated"),
        }

    return _entries(parsed.get("skills") or [], build)


def parse_bundles(data: Any) -> list[Bundle]:
    if not isinstance(data, dict):
        raise CatalogFormatError("bundles document must be an object")
    bundles = []
    for raw in data.get("bundles") or []:
        try:
            bundles.append(Bundle.model_validate(raw))
        except ValidationError as e:
            logger.warning("bundle_invalid", error=str(e))
    return bundles


def parse_skill_metadata(content: str) -> dict:
    """YAML frontmatter of a SKILL.md document, ``{}`` when absent or broken."""
    try:
        post = frontmatter.loads(content)
    except (yaml.YAMLError, ValueError):
        return {}
    return dict(post.metadata)


def infer_triggers(skill_name: str) -> dict:
    triggers: dict = {}
    if skill_name in INFERRED_PACKAGES:
        triggers["packages"] = INFERRED_PACKAGES[skill_name]
    if skill_name in INFERRED_FILES:
        triggers["files"] = INFERRED_FILES[skill_name]
    return triggers


def resolve_path(path: str, base_url: str) -> str:
    if not path or path.startswith(("http://", "https://")):
        return path
    return f"{base_url.rstrip('/')}/{path.lstrip('/')}"
