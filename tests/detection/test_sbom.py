"""Tests for the GitHub dependency-graph (SBOM) tier."""

import httpx
import pytest

from detection.sbom import (
    RepoIdentity,
    SbomDetector,
    packages_to_detections,
    parse_github_url,
    parse_purl,
    parse_sbom,
    resolve_repo_identity,
)
from shared_types import StackCategory

SBOM = {
    "sbom": {
        "packages": [
            {"SPDXID": "SPDXRef-Repository", "name": "com.github.acme/web"},
            {
                "SPDXID": "SPDXRef-npm-next",
                "name": "npm:next",
                "versionInfo": "14.1.0",
                "externalRefs": [{"referenceType": "purl", "referenceLocator": "pkg:npm/next@14.1.0"}],
            },
            {
                "SPDXID": "SPDXRef-npm-scoped",
                "name": "npm:@prisma/client",
                "externalRefs": [
                    {"referenceType": "purl", "referenceLocator": "pkg:npm/%40prisma/client@5.0.0"}
                ],
            },
            {"SPDXID": "SPDXRef-pip-flask", "name": "pip:flask", "versionInfo": "3.0.0"},
        ],
        "relationships": [
            {
                "spdxElementId": "SPDXRef-Repository",
                "relatedSpdxElement": "SPDXRef-npm-next",
                "relationshipType": "DEPENDS_ON",
            }
        ],
    }
}


class TestParsing:
    @pytest.mark.parametrize(
        "url",
        [
            "https://github.com/acme/web.git",
            "https://github.com/acme/web",
            "git@github.com:acme/web.git",
            "ssh://git@github.com/acme/web.git",
        ],
    )
    def test_parse_github_url(self, url):
        assert parse_github_url(url) == ("acme", "web")

    def test_parse_github_url_other_host(self):
        assert parse_github_url("https://gitlab.com/acme/web") is None

    def test_parse_purl(self):
        assert parse_purl("pkg:pypi/django@5.0") == ("pip", "django", "5.0")
        assert parse_purl("pkg:npm/%40scope/pkg") == ("npm", "@scope/pkg", None)
        assert parse_purl("not-a-purl") is None

    def test_parse_sbom(self):
        packages = {p.name: p for p in parse_sbom(SBOM)}
        assert set(packages) == {"next", "@prisma/client", "flask"}
        assert packages["next"].relationship == "direct"
        assert packages["flask"].relationship == "transitive"
        assert packages["flask"].ecosystem == "pip"
        assert packages["@prisma/client"].version == "5.0.0"

    def test_packages_to_detections(self):
        found = {t.id: (c, t) for c, t in packages_to_detections(parse_sbom(SBOM))}
        assert found["javascript"][0] == StackCategory.LANGUAGES
        assert found["nextjs"][1].version == "14.1.0"
        assert found["nextjs"][1].confidence == 0.95
        assert found["nextjs"][1].source == "github-sbom (next)"
        assert found["prisma"][0] == StackCategory.TOOLS
        assert found["python"][1].source == "github-sbom (pip)"


class TestRepoIdentity:
    def test_explicit_values_win(self, tmp_path, monkeypatch):
        monkeypatch.setenv("GITHUB_REPOSITORY", "other/repo")
        identity = resolve_repo_identity(tmp_path, owner="acme", repo="web", token="t")
        assert (identity.owner, identity.repo, identity.token) == ("acme", "web", "t")

    def test_env_repository_and_token(self, tmp_path, monkeypatch):
        monkeypatch.setenv("GITHUB_REPOSITORY", "acme/web")
        monkeypatch.delenv("GITHUB_TOKEN", raising=False)
        monkeypatch.setenv("GH_TOKEN", "gh-token")
        identity = resolve_repo_identity(tmp_path)
        assert identity.is_configured
        assert identity.token == "gh-token"

    def test_git_origin_remote(self, tmp_path, monkeypatch):
        monkeypatch.delenv("GITHUB_REPOSITORY", raising=False)
        (tmp_path / ".git").mkdir()
        (tmp_path / ".git" / "config").write_text(
            '[core]\n\tbare = false\n[remote "origin"]\n\turl = git@github.com:acme/web.git\n'
        )
        identity = resolve_repo_identity(tmp_path)
        assert (identity.owner, identity.repo) == ("acme", "web")

    def test_unknown(self, tmp_path, monkeypatch):
        monkeypatch.delenv("GITHUB_REPOSITORY", raising=False)
        assert not resolve_repo_identity(tmp_path).is_configured


@pytest.mark.asyncio
class TestSbomDetector:
    def _detector(self, tmp_path, handler, token=None):
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return SbomDetector(tmp_path, identity=RepoIdentity("acme", "web", token), client=client)

    async def test_fetch_with_bearer_token(self, tmp_path):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["auth"] = request.headers.get("Authorization")
            return httpx.Response(200, json=SBOM)

        found = await self._detector(tmp_path, handler, token="secret").detect()
        assert seen["url"].endswith("/repos/acme/web/dependency-graph/sbom")
        assert seen["auth"] == "Bearer secret"
        assert "nextjs" in {t.id for _, t in found}

    @pytest.mark.parametrize("status", [403, 404])
    async def test_forbidden_or_missing_is_no_data(self, tmp_path, status):
        found = await self._detector(tmp_path, lambda r: httpx.Response(status)).detect()
        assert found == []

    async def test_server_error_raises(self, tmp_path):
        with pytest.raises(httpx.HTTPStatusError):
            await self._detector(tmp_path, lambda r: httpx.Response(500)).detect()
