"""Manifest tier: package manifests, recognizable config files, README mentions."""

import json
import re
import tomllib
from pathlib import Path
from typing import Optional

import structlog

from detection.base import BaseDetector
from detection.models import DetectedTechnology, Detection
from detection.triggers import TECH_TRIGGERS
from shared_types import DetectionTier, StackCategory

logger = structlog.get_logger().bind(source="manifest_detector")

PACKAGE_JSON_CONFIDENCE = 0.95
REQUIREMENTS_CONFIDENCE = 0.9
PYPROJECT_CONFIDENCE = 0.85
CONFIG_FILE_CONFIDENCE = 0.9
README_CONFIDENCE = 0.6

IGNORED_DIRS = {"node_modules", ".git", "dist", "build", ".venv", "venv", "__pycache__"}
README_NAMES = ("README.md", "readme.md", "README.MD", "Readme.md")

_REQ_NAME = re.compile(r"^([A-Za-z0-9_.-]+)(?:\[[^\]]*\])?\s*(?:==\s*([A-Za-z0-9_.+-]+))?")
_PEP508_NAME = re.compile(r"^\s*([A-Za-z0-9_.-]+)")


def _strip_range(version: Optional[str]) -> Optional[str]:
    if not version or not isinstance(version, str):
        return None
    return re.sub(r"^[\^~]", "", version.strip()) or None


def _normalize(name: str) -> str:
    return name.strip().lower().replace("_", "-")


class ManifestDetector(BaseDetector):
    """Reads package manifests and scans for well-known files in the project tree."""

    @property
    def tier_name(self) -> str:
        return DetectionTier.MANIFEST

    async def detect(self) -> list[Detection]:
        detections: list[Detection] = []
        detections.extend(self.parse_package_json())
        detections.extend(self.parse_requirements_txt())
        detections.extend(self.parse_pyproject_toml())
        detections.extend(self.scan_config_files())
        detections.extend(self.parse_readme())
        return detections

    # --- manifests ---

    def _read(self, name: str) -> Optional[str]:
        path = self.project_path / name
        if not path.is_file():
            return None
        return path.read_text(encoding="utf-8", errors="replace")

    def parse_package_json(self) -> list[Detection]:
        content = self._read("package.json")
        if content is None:
            return []
        try:
            pkg = json.loads(content)
        except json.JSONDecodeError as e:
            logger.warning("manifest_unreadable", file="package.json", error=str(e))
            return []

        all_deps = {**(pkg.get("dependencies") or {}), **(pkg.get("devDependencies") or {})}
        detections: list[Detection] = []

        for tech_id, trigger in TECH_TRIGGERS.items():
            for pattern in trigger.packages:
                if pattern.endswith("/*"):
                    prefix = pattern[:-2]
                    hits = [dep for dep in all_deps if dep.startswith(prefix)]
                    matched = hits[0] if hits else None
                else:
                    matched = pattern if pattern in all_deps else None
                if matched:
                    detections.append((
                        trigger.category,
                        DetectedTechnology(
                            id=tech_id,
                            version=_strip_range(all_deps.get(matched)),
                            confidence=PACKAGE_JSON_CONFIDENCE,
                            source=f"package.json ({matched})",
                        ),
                    ))
                    break

        detections.append((
            StackCategory.LANGUAGES,
            DetectedTechnology(id="javascript", confidence=0.9, source="package.json exists"),
        ))
        return detections

    def parse_requirements_txt(self) -> list[Detection]:
        content = self._read("requirements.txt")
        if content is None:
            return []

        packages: dict[str, Optional[str]] = {}
        for line in content.splitlines():
            line = line.strip()
            if not line or line.startswith(("#", "-")):
                continue
            match = _REQ_NAME.match(line)
            if match:
                packages[_normalize(match.group(1))] = match.group(2)

        return self._match_packages(packages, "requirements.txt", REQUIREMENTS_CONFIDENCE)

    def parse_pyproject_toml(self) -> list[Detection]:
        content = self._read("pyproject.toml")
        if content is None:
            return []
        try:
            data = tomllib.loads(content)
        except tomllib.TOMLDecodeError as e:
            logger.warning("manifest_unreadable", file="pyproject.toml", error=str(e))
            return []

        requirements: list[str] = list(data.get("project", {}).get("dependencies", []) or [])
        for extra in (data.get("project", {}).get("optional-dependencies") or {}).values():
            requirements.extend(extra)
        for group in (data.get("dependency-groups") or {}).values():
            requirements.extend(r for r in group if isinstance(r, str))

        packages: dict[str, Optional[str]] = {}
        for req in requirements:
            match = _PEP508_NAME.match(req)
            if match:
                packages[_normalize(match.group(1))] = None

        poetry = data.get("tool", {}).get("poetry", {})
        for section in ("dependencies", "dev-dependencies"):
            for name, spec in (poetry.get(section) or {}).items():
                if name.lower() == "python":
                    continue
                packages[_normalize(name)] = _strip_range(spec) if isinstance(spec, str) else None

        return self._match_packages(packages, "pyproject.toml", PYPROJECT_CONFIDENCE)

    def _match_packages(
        self, packages: dict[str, Optional[str]], manifest: str, confidence: float
    ) -> list[Detection]:
        detections: list[Detection] = []
        for tech_id, trigger in TECH_TRIGGERS.items():
            for pkg_name in trigger.packages:
                key = _normalize(pkg_name)
                if key in packages:
                    detections.append((
                        trigger.category,
                        DetectedTechnology(
                            id=tech_id,
                            version=packages[key],
                            confidence=confidence,
                            source=f"{manifest} ({pkg_name})",
                        ),
                    ))
                    break
        return detections

    # --- files ---

    def _first_match(self, pattern: str) -> Optional[Path]:
        for path in self.project_path.glob(pattern):
            rel = path.relative_to(self.project_path)
            if IGNORED_DIRS.intersection(rel.parts[:-1]):
                continue
            if path.is_file():
                return rel
        return None

    def scan_config_files(self) -> list[Detection]:
        detections: list[Detection] = []
        for tech_id, trigger in TECH_TRIGGERS.items():
            for pattern in trigger.files:
                match = self._first_match(pattern)
                if match is not None:
                    detections.append((
                        trigger.category,
                        DetectedTechnology(
                            id=tech_id,
                            confidence=CONFIG_FILE_CONFIDENCE,
                            source=f"file: {match.as_posix()}",
                        ),
                    ))
                    break
        return detections

    def parse_readme(self) -> list[Detection]:
        content = None
        for name in README_NAMES:
            content = self._read(name)
            if content:
                break
        if not content:
            return []

        lowered = content.lower()
        detections: list[Detection] = []
        for tech_id, trigger in TECH_TRIGGERS.items():
            for keyword in trigger.readme_keywords:
                if re.search(rf"(?<![a-z0-9]){re.escape(keyword)}(?![a-z0-9])", lowered):
                    detections.append((
                        trigger.category,
                        DetectedTechnology(
                            id=tech_id,
                            confidence=README_CONFIDENCE,
                            source=f'README.md mentions "{keyword}"',
                        ),
                    ))
                    break
        return detections


def get_project_info(project_path: str | Path) -> dict:
    """Project name and description from package.json, then pyproject.toml, then dir name."""
    root = Path(project_path).expanduser().resolve()

    pkg_path = root / "package.json"
    if pkg_path.is_file():
        try:
            pkg = json.loads(pkg_path.read_text(encoding="utf-8"))
            if pkg.get("name"):
                return {"name": pkg["name"], "description": pkg.get("description")}
        except json.JSONDecodeError:
            logger.debug("project_info_unreadable", file="package.json")

    pyproject_path = root / "pyproject.toml"
    if pyproject_path.is_file():
        try:
            data = tomllib.loads(pyproject_path.read_text(encoding="utf-8"))
            project = data.get("project") or data.get("tool", {}).get("poetry") or {}
            if project.get("name"):
                return {"name": project["name"], "description": project.get("description")}
        except tomllib.TOMLDecodeError:
            logger.debug("project_info_unreadable", file="pyproject.toml")

    return {"name": root.name, "description": None}
