"""Remote dependency-graph tier: GitHub's SPDX SBOM endpoint."""

import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional
from urllib.parse import unquote

import httpx
import structlog

from detection.base import BaseDetector
from detection.models import DetectedTechnology, Detection
from shared_types import DetectionTier, StackCategory

logger = structlog.get_logger().bind(source="sbom_detector")

GITHUB_API = "https://api.github.com"
SBOM_CONFIDENCE = 0.95

PURL_ECOSYSTEM_MAP = {
    "npm": "npm",
    "pypi": "pip",
    "gem": "rubygems",
    "cargo": "cargo",
    "golang": "go",
    "maven": "maven",
    "nuget": "nuget",
    "composer": "composer",
    "pub": "pub",
    "swift": "swift",
    "hex": "hex",
    "github": "github-actions",
}

ECOSYSTEM_TECH_MAP: dict[str, tuple[str, StackCategory]] = {
    "npm": ("javascript", StackCategory.LANGUAGES),
    "pip": ("python", StackCategory.LANGUAGES),
    "cargo": ("rust", StackCategory.LANGUAGES),
    "rubygems": ("ruby", StackCategory.LANGUAGES),
    "go": ("go", StackCategory.LANGUAGES),
    "maven": ("java", StackCategory.LANGUAGES),
    "nuget": ("csharp", StackCategory.LANGUAGES),
    "composer": ("php", StackCategory.LANGUAGES),
    "pub": ("dart", StackCategory.LANGUAGES),
    "swift": ("swift", StackCategory.LANGUAGES),
    "hex": ("elixir", StackCategory.LANGUAGES),
    "github-actions": ("github-actions", StackCategory.INFRASTRUCTURE),
}

F, D, T, I = (
    StackCategory.FRAMEWORKS,
    StackCategory.DATABASES,
    StackCategory.TOOLS,
    StackCategory.INFRASTRUCTURE,
)

PACKAGE_TECH_MAP: dict[str, tuple[str, StackCategory]] = {
    "react": ("react", F),
    "react-dom": ("react", F),
    "next": ("nextjs", F),
    "vue": ("vue", F),
    "@angular/core": ("angular", F),
    "svelte": ("svelte", F),
    "express": ("express", F),
    "fastify": ("fastify", F),
    "@nestjs/core": ("nestjs", F),
    "hono": ("hono", F),
    "django": ("django", F),
    "flask": ("flask", F),
    "fastapi": ("fastapi", F),
    "pg": ("postgresql", D),
    "postgres": ("postgresql", D),
    "psycopg2": ("postgresql", D),
    "asyncpg": ("postgresql", D),
    "mysql": ("mysql", D),
    "mysql2": ("mysql", D),
    "mongodb": ("mongodb", D),
    "mongoose": ("mongodb", D),
    "pymongo": ("mongodb", D),
    "redis": ("redis", D),
    "ioredis": ("redis", D),
    "sqlite3": ("sqlite", D),
    "better-sqlite3": ("sqlite", D),
    "prisma": ("prisma", T),
    "@prisma/client": ("prisma", T),
    "drizzle-orm": ("drizzle", T),
    "typeorm": ("typeorm", T),
    "sequelize": ("sequelize", T),
    "jest": ("jest", T),
    "vitest": ("vitest", T),
    "mocha": ("mocha", T),
    "pytest": ("pytest", T),
    "playwright": ("playwright", T),
    "@playwright/test": ("playwright", T),
    "cypress": ("cypress", T),
    "vite": ("vite", T),
    "webpack": ("webpack", T),
    "esbuild": ("esbuild", T),
    "rollup": ("rollup", T),
    "turbo": ("turborepo", T),
    "eslint": ("eslint", T),
    "prettier": ("prettier", T),
    "@biomejs/biome": ("biome", T),
    "tailwindcss": ("tailwindcss", T),
    "styled-components": ("styled-components", T),
    "typescript": ("typescript", StackCategory.LANGUAGES),
    "@aws-sdk/client-s3": ("aws", I),
    "aws-sdk": ("aws", I),
    "boto3": ("aws", I),
    "@google-cloud/storage": ("gcp", I),
    "@azure/storage-blob": ("azure", I),
}

_PURL = re.compile(r"^pkg:([^/]+)/(.+?)(?:@([^?#]+))?(?:[?#].*)?$")
_REMOTE_ORIGIN = re.compile(r'\[remote\s+"origin"\][^\[]*?url\s*=\s*(\S+)', re.MULTILINE)
_GITHUB_URL_PATTERNS = [
    re.compile(r"^https?://(?:[^@/]+@)?github\.com/([^/]+)/([^/\s]+?)(?:\.git)?/?$", re.I),
    re.compile(r"^git@github\.com:([^/]+)/([^/\s]+?)(?:\.git)?$", re.I),
    re.compile(r"^ssh://git@github\.com/([^/]+)/([^/\s]+?)(?:\.git)?$", re.I),
]

TOKEN_ENV_VARS = ("GITHUB_TOKEN", "GH_TOKEN", "GITHUB_PAT")


@dataclass
class RepoIdentity:
    owner: Optional[str] = None
    repo: Optional[str] = None
    token: Optional[str] = None

    @property
    def is_configured(self) -> bool:
        return bool(self.owner and self.repo)


@dataclass
class SBOMPackage:
    name: str
    ecosystem: str
    version: Optional[str] = None
    license: Optional[str] = None
    relationship: str = "transitive"
    purl: Optional[str] = None


def parse_github_url(url: str) -> Optional[tuple[str, str]]:
    """Owner and repo from https, ``git@`` or ``ssh://`` GitHub remote URLs."""
    url = url.strip()
    for pattern in _GITHUB_URL_PATTERNS:
        match = pattern.match(url)
        if match:
            return match.group(1), match.group(2)
    return None


def parse_purl(purl: str) -> Optional[tuple[str, str, Optional[str]]]:
    """``pkg:ecosystem/name@version`` -> (ecosystem, name, version)."""
    match = _PURL.match(purl)
    if not match:
        return None
    ecosystem, name, version = match.groups()
    return PURL_ECOSYSTEM_MAP.get(ecosystem, ecosystem), unquote(name), version


def resolve_repo_identity(
    project_path: str | Path,
    owner: Optional[str] = None,
    repo: Optional[str] = None,
    token: Optional[str] = None,
) -> RepoIdentity:
    """Explicit values first, then ``GITHUB_REPOSITORY``, then the origin remote."""
    token = token or next((os.environ[v] for v in TOKEN_ENV_VARS if os.environ.get(v)), None)
    if owner and repo:
        return RepoIdentity(owner, repo, token)

    env_repo = os.environ.get("GITHUB_REPOSITORY", "")
    if "/" in env_repo:
        env_owner, env_name = env_repo.split("/", 1)
        return RepoIdentity(env_owner, env_name, token)

    git_config = Path(project_path).expanduser() / ".git" / "config"
    if git_config.is_file():
        match = _REMOTE_ORIGIN.search(git_config.read_text(encoding="utf-8", errors="replace"))
        if match:
            parsed = parse_github_url(match.group(1))
            if parsed:
                return RepoIdentity(parsed[0], parsed[1], token)

    return RepoIdentity(token=token)


def parse_sbom(data: dict) -> list[SBOMPackage]:
    """SPDX document -> packages, marking direct dependencies of the repository node."""
    sbom = data.get("sbom") or {}
    spdx_packages = sbom.get("packages") or []

    repo_id = next(
        (
            p.get("SPDXID")
            for p in spdx_packages
            if p.get("SPDXID") == "SPDXRef-Repository" or "/" in p.get("name", "")
        ),
        None,
    )
    direct = {
        rel.get("relatedSpdxElement")
        for rel in sbom.get("relationships") or []
        if rel.get("relationshipType") == "DEPENDS_ON" and rel.get("spdxElementId") == repo_id
    }

    packages: list[SBOMPackage] = []
    for pkg in spdx_packages:
        spdx_id = pkg.get("SPDXID")
        if spdx_id in ("SPDXRef-Repository", repo_id):
            continue
        relationship = "direct" if spdx_id in direct else "transitive"
        license_ = pkg.get("licenseDeclared") or pkg.get("licenseConcluded")

        purl = next(
            (
                ref.get("referenceLocator")
                for ref in pkg.get("externalRefs") or []
                if ref.get("referenceType") == "purl"
            ),
            None,
        )
        parsed = parse_purl(purl) if purl else None
        if parsed:
            ecosystem, name, version = parsed
            packages.append(SBOMPackage(
                name=name,
                ecosystem=ecosystem,
                version=version or pkg.get("versionInfo"),
                license=license_,
                relationship=relationship,
                purl=purl,
            ))
            continue

        # Fallback: "npm:lodash"
        raw_name = pkg.get("name", "")
        if ":" in raw_name and not raw_name.startswith(":"):
            ecosystem, name = raw_name.split(":", 1)
            packages.append(SBOMPackage(
                name=name,
                ecosystem=PURL_ECOSYSTEM_MAP.get(ecosystem, ecosystem),
                version=pkg.get("versionInfo"),
                license=license_,
                relationship=relationship,
            ))

    return packages


def packages_to_detections(packages: list[SBOMPackage]) -> list[Detection]:
    """Ecosystems become languages, well-known packages become frameworks/tools."""
    seen: set[str] = set()
    detections: list[Detection] = []

    for pkg in packages:
        eco = ECOSYSTEM_TECH_MAP.get(pkg.ecosystem)
        if eco and eco[0] not in seen:
            seen.add(eco[0])
            detections.append((
                eco[1],
                DetectedTechnology(
                    id=eco[0], confidence=SBOM_CONFIDENCE, source=f"github-sbom ({pkg.ecosystem})"
                ),
            ))

        tech = PACKAGE_TECH_MAP.get(pkg.name)
        if tech and tech[0] not in seen:
            seen.add(tech[0])
            detections.append((
                tech[1],
                DetectedTechnology(
                    id=tech[0],
                    version=pkg.version,
                    confidence=SBOM_CONFIDENCE,
                    source=f"github-sbom ({pkg.name})",
                ),
            ))

    return detections


class SbomDetector(BaseDetector):
    """Fetches the repository's dependency graph as an SPDX SBOM."""

    def __init__(self, project_path: str | Path, identity: Optional[RepoIdentity] = None, client=None):
        super().__init__(project_path, client=client)
        self.identity = identity or resolve_repo_identity(project_path)

    @property
    def tier_name(self) -> str:
        return DetectionTier.SBOM

    async def fetch_sbom(self) -> Optional[list[SBOMPackage]]:
        if not self.identity.is_configured:
            return None

        url = f"{GITHUB_API}/repos/{self.identity.owner}/{self.identity.repo}/dependency-graph/sbom"
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if self.identity.token:
            headers["Authorization"] = f"Bearer {self.identity.token}"

        response = await self.client.get(url, headers=headers)
        if response.status_code == 404:
            logger.warning(
                "sbom_not_available",
                repo=f"{self.identity.owner}/{self.identity.repo}",
                reason="repository not found or dependency graph disabled",
            )
            return None
        if response.status_code == 403:
            logger.warning("sbom_forbidden", reason="rate limited or insufficient permissions")
            return None
        response.raise_for_status()
        return parse_sbom(response.json())

    async def detect(self) -> list[Detection]:
        packages = await self.fetch_sbom()
        if not packages:
            return []
        logger.info("sbom_fetched", packages=len(packages))
        return packages_to_detections(packages)
