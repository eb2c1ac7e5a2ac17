"""Installation directory I/O: one subdirectory per skill holding SKILL.md."""

import shutil
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import frontmatter
import structlog
import yaml

from provisioning.models import InstalledSkill, UnsafeSkillNameError

logger = structlog.get_logger().bind(source="materializer")

SKILL_FILE = "SKILL.md"
RESOURCES_DIR = "resources"
DEFAULT_VERSION = "1.0.0"


class Materializer:
    """Writes, removes and discovers installed skills under ``install_path``.

    The directory tree is the source of truth for what is installed.
    """

    def __init__(self, install_path: str | Path):
        self.install_path = Path(install_path).expanduser()

    def skill_dir(self, name: str) -> Path:
        if not name or name in (".", "..") or "/" in name or "\\" in name:
            raise UnsafeSkillNameError(f"Invalid skill name: {name!r}")
        root = self.install_path.resolve()
        target = (root / name).resolve()
        if target.parent != root:
            raise UnsafeSkillNameError(f"Skill name escapes install directory: {name!r}")
        return self.install_path / name

    def install(self, name: str, document: str, resources: Optional[dict[str, str]] = None) -> Path:
        """Write ``SKILL.md`` (verbatim) and optional resources. Overwrites in place."""
        target = self.skill_dir(name)
        target.mkdir(parents=True, exist_ok=True)
        (target / SKILL_FILE).write_text(document, encoding="utf-8")

        if resources:
            res_dir = target / RESOURCES_DIR
            res_dir.mkdir(exist_ok=True)
            for filename, content in resources.items():
                res_path = res_dir / Path(filename).name
                res_path.write_text(content, encoding="utf-8")

        logger.info("skill_written", skill=name, path=str(target), resources=len(resources or {}))
        return target

    def uninstall(self, name: str) -> bool:
        """Delete the skill directory. Returns False if it did not exist."""
        target = self.skill_dir(name)
        if not target.exists():
            return False
        shutil.rmtree(target)
        logger.info("skill_deleted", skill=name, path=str(target))
        return True

    def list_installed(self) -> list[InstalledSkill]:
        if not self.install_path.is_dir():
            return []
        skills = []
        for child in sorted(self.install_path.iterdir()):
            doc = child / SKILL_FILE
            if not child.is_dir() or not doc.is_file():
                continue
            skills.append(self._read_skill(child, doc))
        return skills

    def get_installed(self, name: str) -> Optional[InstalledSkill]:
        doc = self.skill_dir(name) / SKILL_FILE
        if not doc.is_file():
            return None
        return self._read_skill(doc.parent, doc)

    @staticmethod
    def _read_skill(directory: Path, doc: Path) -> InstalledSkill:
        try:
            meta = frontmatter.load(str(doc)).metadata
        except (yaml.YAMLError, ValueError, UnicodeDecodeError) as e:
            logger.warning("skill_frontmatter_unreadable", path=str(doc), error=str(e))
            meta = {}

        last_updated = meta.get("last_updated")
        return InstalledSkill(
            name=str(meta.get("name") or directory.name),
            version=str(meta.get("version") or DEFAULT_VERSION),
            installed_at=datetime.fromtimestamp(doc.stat().st_mtime, tz=timezone.utc),
            path=str(directory),
            last_updated=str(last_updated) if last_updated is not None else None,
        )
