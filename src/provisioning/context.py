"""Project context file: last detection, installed skills, manual overrides."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Sequence

import structlog
import yaml

from detection.models import DetectedStack
from provisioning.models import InstalledSkill

logger = structlog.get_logger().bind(source="project_context")


@dataclass
class ManualOverrides:
    include_skills: list[str] = field(default_factory=list)
    exclude_skills: list[str] = field(default_factory=list)


@dataclass
class ProjectContext:
    generated_at: str
    detection_sources: list[str]
    project: dict
    detected: dict
    installed_skills: list[dict]
    manual: ManualOverrides = field(default_factory=ManualOverrides)

    def to_dict(self) -> dict:
        return {
            "generated_at": self.generated_at,
            "detection_sources": list(self.detection_sources),
            "project": dict(self.project),
            "detected": self.detected,
            "installed_skills": list(self.installed_skills),
            "manual": {
                "include_skills": list(self.manual.include_skills),
                "exclude_skills": list(self.manual.exclude_skills),
            },
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ProjectContext":
        manual = data.get("manual") or {}
        return cls(
            generated_at=str(data.get("generated_at", "")),
            detection_sources=list(data.get("detection_sources") or []),
            project=dict(data.get("project") or {}),
            detected=data.get("detected") or DetectedStack().to_dict(),
            installed_skills=list(data.get("installed_skills") or []),
            manual=ManualOverrides(
                include_skills=list(manual.get("include_skills") or []),
                exclude_skills=list(manual.get("exclude_skills") or []),
            ),
        )

    @property
    def stack(self) -> DetectedStack:
        return DetectedStack.from_dict(self.detected)


class ProjectContextStore:
    """YAML-backed ``project-context.yaml``. Manual overrides survive regeneration."""

    def __init__(self, path: str | Path):
        self.path = Path(path).expanduser()

    def load(self) -> Optional[ProjectContext]:
        if not self.path.is_file():
            return None
        try:
            data = yaml.safe_load(self.path.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as e:
            logger.warning("context_unreadable", path=str(self.path), error=str(e))
            return None
        if not isinstance(data, dict):
            return None
        return ProjectContext.from_dict(data)

    def save(self, context: ProjectContext) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w") as f:
            yaml.safe_dump(context.to_dict(), f, default_flow_style=False, sort_keys=False)

    def update(
        self,
        project: dict,
        stack: DetectedStack,
        sources: Sequence[str],
        installed: Sequence[InstalledSkill],
    ) -> ProjectContext:
        """Regenerate the context from fresh detection, keeping manual overrides."""
        existing = self.load()
        context = ProjectContext(
            generated_at=datetime.now(timezone.utc).isoformat(),
            detection_sources=list(sources),
            project=project,
            detected=stack.to_dict(),
            installed_skills=[skill.to_dict() for skill in installed],
            manual=existing.manual if existing else ManualOverrides(),
        )
        self.save(context)
        return context

    def add_manual_skill(self, name: str) -> bool:
        """Record ``name`` as manually included. No-op without a context file."""
        context = self.load()
        if context is None:
            return False
        if name not in context.manual.include_skills:
            context.manual.include_skills.append(name)
        context.manual.exclude_skills = [s for s in context.manual.exclude_skills if s != name]
        self.save(context)
        return True

    def exclude_skill(self, name: str) -> bool:
        """Record ``name`` as manually excluded. No-op without a context file."""
        context = self.load()
        if context is None:
            return False
        if name not in context.manual.exclude_skills:
            context.manual.exclude_skills.append(name)
        context.manual.include_skills = [s for s in context.manual.include_skills if s != name]
        self.save(context)
        return True
