"""Catalog client: prioritized remote sources behind a TTL disk cache."""

import base64
from pathlib import PurePosixPath
from typing import Optional, Sequence

import httpx
import structlog
from pydantic import ValidationError

from catalog.cache import BUNDLES_CACHE_KEY, CatalogCache
from catalog.models import Bundle, CatalogEntry, RegistrySource
from catalog.parsers import (
    CatalogFormatError,
    infer_triggers,
    parse_bundles,
    parse_github_path,
    parse_github_repo,
    parse_json_catalog,
    parse_registry_yaml,
    parse_skill_metadata,
    resolve_path,
)
from cli.retry import http_retry
from observability import metrics

logger = structlog.get_logger().bind(source="catalog_client")

DEFAULT_REGISTRY_URL = "https://cdn.jsdelivr.net/gh/dmgrok/agent_skills_directory@main/catalog.json"
DEFAULT_BUNDLES_URL = "https://cdn.jsdelivr.net/gh/dmgrok/agent_skills_directory@main/bundles.json"
GITHUB_API = "https://api.github.com"
GITHUB_RAW = "https://raw.githubusercontent.com"
USER_AGENT = "mother-skills/0.1 (+skill provisioning)"


class CatalogError(Exception):
    """Base for catalog failures."""


class CatalogFetchError(CatalogError):
    """A skill document could not be retrieved from any location."""


class CatalogClient:
    """Aggregates catalog entries across sources; first source (by priority) wins a name.

    Usage:
        async with CatalogClient(sources, cache) as catalog:
            entries = await catalog.get_catalog()
    """

    def __init__(
        self,
        sources: Sequence[RegistrySource],
        cache: CatalogCache,
        bundles_url: Optional[str] = DEFAULT_BUNDLES_URL,
        client: Optional[httpx.AsyncClient] = None,
        github_token: Optional[str] = None,
        max_attempts: int = 3,
        min_wait: float = 1.0,
        max_wait: float = 10.0,
    ):
        self.sources = sorted(sources, key=lambda s: s.priority)
        self.cache = cache
        self.bundles_url = bundles_url
        self.github_token = github_token
        self.max_attempts = max_attempts
        self.min_wait = min_wait
        self.max_wait = max_wait
        self._client = client
        self._owns_client = client is None
        self._bundles: Optional[list[Bundle]] = None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=30.0,
                follow_redirects=True,
                headers={"User-Agent": USER_AGENT},
            )
        return self._client

    async def close(self):
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        await self.close()

    # --- HTTP ---------------------------------------------------------------

    async def _get(self, url: str, headers: Optional[dict] = None) -> httpx.Response:
        """GET with backoff on transport errors. HTTP status errors are raised, not retried."""

        @http_retry(
            max_attempts=self.max_attempts,
            min_wait=self.min_wait,
            max_wait=self.max_wait,
            exceptions=(httpx.TransportError,),
        )
        async def _do() -> httpx.Response:
            response = await self.client.get(url, headers=headers or {})
            response.raise_for_status()
            return response

        return await _do()

    def _github_headers(self, accept: str = "application/vnd.github+json") -> dict:
        headers = {"Accept": accept}
        if self.github_token:
            headers["Authorization"] = f"Bearer {self.github_token}"
        return headers

    @staticmethod
    def _source_headers(source: RegistrySource) -> dict:
        if not source.auth:
            return {}
        auth = source.auth
        if not auth.lower().startswith(("bearer ", "token ", "basic ")):
            auth = f"Bearer {auth}"
        return {"Authorization": auth}

    # --- Catalog ------------------------------------------------------------

    async def get_catalog(self, force_refresh: bool = False) -> list[CatalogEntry]:
        """All entries across sources. A failing source contributes nothing."""
        entries: list[CatalogEntry] = []
        seen: set[str] = set()
        for source in self.sources:
            try:
                source_entries = await self._load_source(source, force_refresh)
            except Exception as e:
                logger.warning(
                    "catalog_source_failed",
                    url=source.url,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                metrics.counter("catalog_source_failure")
                continue
            for entry in source_entries:
                if entry.name in seen:
                    logger.debug("catalog_entry_shadowed", name=entry.name, url=source.url)
                    continue
                seen.add(entry.name)
                entries.append(entry)

        logger.info("catalog_loaded", entries=len(entries), sources=len(self.sources))
        return entries

    async def _load_source(self, source: RegistrySource, force_refresh: bool) -> list[CatalogEntry]:
        key = self.cache.key_for_url(source.url)
        if not force_refresh:
            cached = self.cache.get_fresh(key)
            if cached is not None:
                metrics.counter("catalog_cache_hit")
                return [CatalogEntry.model_validate(raw) for raw in cached.payload or []]

        metrics.counter("catalog_cache_miss")
        entries = await self._fetch_source(source)
        self.cache.write(key, source.url, [entry.model_dump() for entry in entries])
        return entries

    async def _fetch_source(self, source: RegistrySource) -> list[CatalogEntry]:
        url = source.url
        headers = self._source_headers(source)
        base_url = url.rsplit("/", 1)[0]
        suffix = PurePosixPath(url.split("?", 1)[0]).suffix.lower()

        if suffix in (".yaml", ".yml"):
            response = await self._get(url, headers)
            return parse_registry_yaml(response.text, base_url)

        repo = parse_github_repo(url)
        if repo is not None and suffix != ".json":
            return await self._fetch_github_repo(*repo)

        response = await self._get(url, headers)
        try:
            data = response.json()
        except ValueError as e:
            raise CatalogFormatError(f"catalog at {url} is not valid JSON") from e
        entries = parse_json_catalog(data)
        return [self._resolved(entry, base_url) for entry in entries]

    @staticmethod
    def _resolved(entry: CatalogEntry, base_url: str) -> CatalogEntry:
        path = resolve_path(entry.path, base_url) if "github.com" not in entry.path else entry.path
        if path == entry.path:
            return entry
        return entry.model_copy(update={"path": path})

    async def _fetch_github_repo(self, owner: str, repo: str) -> list[CatalogEntry]:
        """``registry.yaml`` at the repository root, else a scan of ``skills/*/SKILL.md``."""
        base_url = f"https://github.com/{owner}/{repo}/tree/main"
        try:
            response = await self._get(f"{GITHUB_RAW}/{owner}/{repo}/main/registry.yaml")
            return parse_registry_yaml(response.text, base_url)
        except httpx.HTTPStatusError as e:
            if e.response.status_code != 404:
                raise
            logger.debug("registry_yaml_missing", owner=owner, repo=repo)

        listing = await self._get(
            f"{GITHUB_API}/repos/{owner}/{repo}/contents/skills", self._github_headers()
        )
        entries = []
        for item in listing.json():
            if item.get("type") != "dir":
                continue
            dirname = item["name"]
            try:
                doc = await self._get(f"{GITHUB_RAW}/{owner}/{repo}/main/skills/{dirname}/SKILL.md")
            except httpx.HTTPError as e:
                logger.warning("skill_scan_failed", skill=dirname, error=str(e))
                continue
            meta = parse_skill_metadata(doc.text)
            try:
                entries.append(
                    CatalogEntry.model_validate(
                        {
                            "name": meta.get("name") or dirname,
                            "path": f"{base_url}/skills/{dirname}",
                            "version": meta.get("version"),
                            "description": meta.get("description"),
                            "triggers": meta.get("triggers") or infer_triggers(dirname),
                            "dependencies": meta.get("dependencies"),
                            "tags": meta.get("tags"),
                            "last_updated": meta.get("last_updated"),
                        }
                    )
                )
            except ValidationError as e:
                logger.warning("catalog_entry_invalid", entry=dirname, error=str(e))
        return entries

    async def get_entry(self, name: str) -> Optional[CatalogEntry]:
        for entry in await self.get_catalog():
            if entry.name == name:
                return entry
        return None

    async def search(self, query: Optional[str] = None, tags: Optional[Sequence[str]] = None) -> list[CatalogEntry]:
        """Case-insensitive substring match on name/description; any-tag match."""
        results = []
        needle = query.lower() if query else None
        wanted = {t.lower() for t in tags or []}
        for entry in await self.get_catalog():
            if needle and needle not in entry.name.lower() and needle not in entry.description.lower():
                continue
            if wanted and not wanted & {t.lower() for t in entry.tags}:
                continue
            results.append(entry)
        return results

    # --- Bundles ------------------------------------------------------------

    async def get_bundles(self, force_refresh: bool = False) -> list[Bundle]:
        if self._bundles is not None and not force_refresh:
            return self._bundles
        if not self.bundles_url:
            return []

        if not force_refresh:
            cached = self.cache.get_fresh(BUNDLES_CACHE_KEY)
            if cached is not None:
                metrics.counter("catalog_cache_hit")
                self._bundles = [Bundle.model_validate(raw) for raw in cached.payload or []]
                return self._bundles

        metrics.counter("catalog_cache_miss")
        try:
            response = await self._get(self.bundles_url)
            bundles = parse_bundles(response.json())
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("bundles_fetch_failed", url=self.bundles_url, error=str(e))
            return []

        self.cache.write(BUNDLES_CACHE_KEY, self.bundles_url, [b.model_dump() for b in bundles])
        self._bundles = bundles
        return bundles

    async def get_bundle(self, bundle_id: str) -> Optional[Bundle]:
        for bundle in await self.get_bundles():
            if bundle.id == bundle_id:
                return bundle
        return None

    async def search_bundles(self, query: Optional[str] = None, tags: Optional[Sequence[str]] = None) -> list[Bundle]:
        results = []
        needle = query.lower() if query else None
        wanted = {t.lower() for t in tags or []}
        for bundle in await self.get_bundles():
            haystack = " ".join([bundle.id, bundle.name, bundle.description, *bundle.use_cases]).lower()
            if needle and needle not in haystack:
                continue
            if wanted and not wanted & {t.lower() for t in bundle.tags}:
                continue
            results.append(bundle)
        return results

    # --- Documents ----------------------------------------------------------

    async def fetch_document(self, entry: CatalogEntry) -> str:
        """Primary ``SKILL.md`` text for ``entry``."""
        location = parse_github_path(entry.path)
        if location is not None:
            owner, repo, branch, subpath = location
            ref = branch or "main"
            try:
                response = await self._get(
                    f"{GITHUB_API}/repos/{owner}/{repo}/contents/{subpath}/SKILL.md?ref={ref}",
                    self._github_headers(),
                )
                content = response.json().get("content")
                if content:
                    return base64.b64decode(content).decode("utf-8")
            except (httpx.HTTPError, ValueError) as e:
                logger.debug("contents_api_failed", skill=entry.name, error=str(e))
            raw_url = f"{GITHUB_RAW}/{owner}/{repo}/{ref}/{subpath}/SKILL.md"
        elif entry.path.startswith(("http://", "https://")):
            raw_url = entry.path if entry.path.endswith(".md") else f"{entry.path.rstrip('/')}/SKILL.md"
        else:
            raise CatalogFetchError(f"no fetchable location for skill '{entry.name}': {entry.path!r}")

        try:
            response = await self._get(raw_url)
        except httpx.HTTPError as e:
            raise CatalogFetchError(f"failed to fetch SKILL.md for '{entry.name}': {e}") from e
        return response.text

    async def fetch_resources(self, entry: CatalogEntry) -> dict[str, str]:
        """Files under the skill's ``resources/`` directory, keyed by file name. Optional."""
        location = parse_github_path(entry.path)
        if location is None:
            return {}
        owner, repo, branch, subpath = location
        ref = branch or "main"
        try:
            listing = await self._get(
                f"{GITHUB_API}/repos/{owner}/{repo}/contents/{subpath}/resources?ref={ref}",
                self._github_headers(),
            )
        except httpx.HTTPStatusError as e:
            if e.response.status_code != 404:
                logger.warning("resources_list_failed", skill=entry.name, status=e.response.status_code)
            return {}
        except httpx.HTTPError as e:
            logger.warning("resources_list_failed", skill=entry.name, error=str(e))
            return {}

        resources: dict[str, str] = {}
        items = listing.json()
        for item in items if isinstance(items, list) else []:
            if item.get("type") != "file" or not item.get("download_url"):
                continue
            try:
                response = await self._get(item["download_url"])
            except httpx.HTTPError as e:
                logger.warning("resource_fetch_failed", skill=entry.name, file=item.get("name"), error=str(e))
                continue
            resources[item["name"]] = response.text
        return resources
