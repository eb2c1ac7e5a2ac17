"""Shared test fixtures for mother-skills."""

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from catalog.models import CatalogEntry  # noqa: E402
from detection.merger import add_detection  # noqa: E402
from detection.models import DetectedStack, DetectedTechnology, DetectionReport  # noqa: E402
from provisioning.context import ProjectContextStore  # noqa: E402
from provisioning.manager import SyncManager  # noqa: E402
from provisioning.materializer import Materializer  # noqa: E402
from provisioning.service import SkillsService  # noqa: E402
from provisioning.sessions import SessionStore  # noqa: E402
from shared_types import StackCategory  # noqa: E402


class FrozenClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


class FakeCatalog:
    """In-memory stand-in for CatalogClient."""

    def __init__(self, entries=None, documents=None, resources=None, fail=None):
        self.entries = list(entries or [])
        self.documents = documents or {}
        self.resources = resources or {}
        self.fail = fail or {}
        self.cache = MagicMock()
        self.cache.clear.return_value = 0
        self.fetched: list[str] = []
        self.closed = False

    async def get_catalog(self, force_refresh: bool = False):
        return list(self.entries)

    async def get_entry(self, name: str):
        return next((e for e in self.entries if e.name == name), None)

    async def fetch_document(self, entry):
        if entry.name in self.fail:
            raise self.fail[entry.name]
        self.fetched.append(entry.name)
        return self.documents.get(
            entry.name, f"---\nname: {entry.name}\nversion: {entry.version}\n---\n\n# {entry.name}\n"
        )

    async def fetch_resources(self, entry):
        return dict(self.resources.get(entry.name, {}))

    async def close(self):
        self.closed = True


@pytest.fixture
def make_entry():
    """Factory for CatalogEntry objects."""

    def _make(name, version="1.0.0", dependencies=(), packages=(), manual_only=False, tags=(), description=""):
        return CatalogEntry(
            name=name,
            path=f"https://github.com/acme/skills/tree/main/skills/{name}",
            version=version,
            description=description or f"{name} skill",
            triggers={"packages": list(packages), "manual_only": manual_only},
            dependencies=list(dependencies),
            tags=list(tags),
        )

    return _make


@pytest.fixture
def clock():
    return FrozenClock(datetime(2025, 1, 15, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def fake_catalog():
    """Factory for FakeCatalog instances."""
    return FakeCatalog


@pytest.fixture
def install_dir(tmp_path):
    path = tmp_path / "skills"
    path.mkdir()
    return path


def write_skill(install_dir: Path, dirname: str, version: str = "1.0.0", name: str | None = None) -> Path:
    """Create an installed skill directory with frontmatter."""
    skill_dir = install_dir / dirname
    skill_dir.mkdir(parents=True, exist_ok=True)
    (skill_dir / "SKILL.md").write_text(
        f"---\nname: {name or dirname}\nversion: {version}\n---\n\n# {dirname}\n"
    )
    return skill_dir


@pytest.fixture
def installed_skill(install_dir):
    """Factory writing an installed skill into ``install_dir``."""

    def _write(dirname, version="1.0.0", name=None):
        return write_skill(install_dir, dirname, version, name)

    return _write


@pytest.fixture
def make_stack():
    """Build a DetectedStack from ``(category, id, confidence[, source])`` tuples."""

    def _make(*items):
        stack = DetectedStack()
        for category, tech_id, confidence, *rest in items:
            source = rest[0] if rest else f"package.json ({tech_id})"
            add_detection(stack, StackCategory(category), DetectedTechnology(tech_id, confidence, source))
        return stack

    return _make


@pytest.fixture
def components(tmp_path, install_dir, fake_catalog, make_entry, make_stack, clock):
    """Components dict shaped like ``cli.utils.get_components`` around a FakeCatalog.

    The stack detector reports ``nextjs``; the catalog holds nextjs -> react and a
    manual-only docker skill.
    """
    stack = make_stack(("frameworks", "nextjs", 0.95, "package.json (next)"))
    detector = MagicMock()
    detector.detect = AsyncMock(return_value=DetectionReport(stack=stack))

    catalog = fake_catalog([
        make_entry("nextjs", dependencies=["react"]),
        make_entry("react", tags=["frontend"]),
        make_entry("docker", manual_only=True),
    ])
    catalog.search = AsyncMock(return_value=[make_entry("react", tags=["frontend"])])
    catalog.search_bundles = AsyncMock(return_value=[])

    materializer = Materializer(install_dir)
    manager = SyncManager(catalog, materializer, sessions=SessionStore(clock=clock))
    context_path = tmp_path / ".mother" / "project-context.yaml"
    service = SkillsService(
        tmp_path,
        catalog,
        manager,
        ProjectContextStore(context_path),
        detector_factory=lambda: detector,
    )
    return {
        "config": {},
        "config_model": MagicMock(),
        "paths": {"project": tmp_path, "install_path": install_dir, "context": context_path},
        "cache": catalog.cache,
        "catalog": catalog,
        "materializer": materializer,
        "context": service.context_store,
        "manager": manager,
        "service": service,
        "detector": detector,
    }
