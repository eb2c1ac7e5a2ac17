"""Provisioning data: matches, pending changes, sync results, installed skills."""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Optional

from catalog.models import CatalogEntry
from shared_types import ChangeAction, InstallStatus, MatchProvenance


class ProvisioningError(Exception):
    """Base for sync / install failures."""


class SessionNotFoundError(ProvisioningError):
    """Preview session id unknown, already confirmed, or expired."""

    def __init__(self, session_id: str):
        super().__init__(f"Sync session '{session_id}' not found or expired")
        self.session_id = session_id


class UnsafeSkillNameError(ProvisioningError):
    """Skill name would resolve outside the installation directory."""


@dataclass
class Match:
    entry: CatalogEntry
    matched_by: str
    confidence: float
    provenance: MatchProvenance

    @property
    def name(self) -> str:
        return self.entry.name

    def to_dict(self) -> dict:
        return {
            "name": self.entry.name,
            "version": self.entry.version,
            "matched_by": self.matched_by,
            "confidence": round(self.confidence, 4),
            "provenance": self.provenance.value,
        }


@dataclass
class InstalledSkill:
    name: str
    version: str
    installed_at: datetime
    path: str
    last_updated: Optional[str] = None

    def to_dict(self) -> dict:
        data = asdict(self)
        data["installed_at"] = self.installed_at.isoformat()
        return data


@dataclass
class PendingChange:
    name: str
    version: str
    action: ChangeAction
    reason: str
    old_version: Optional[str] = None
    provenance: Optional[MatchProvenance] = None
    matched_by: Optional[str] = None

    def to_dict(self) -> dict:
        data = {
            "name": self.name,
            "version": self.version,
            "action": self.action.value,
            "reason": self.reason,
        }
        if self.old_version is not None:
            data["old_version"] = self.old_version
        if self.provenance is not None:
            data["provenance"] = self.provenance.value
        if self.matched_by is not None:
            data["matched_by"] = self.matched_by
        return data


@dataclass
class SkillChange:
    name: str
    version: str
    old_version: Optional[str] = None
    provenance: Optional[MatchProvenance] = None
    matched_by: Optional[str] = None

    @classmethod
    def from_pending(cls, change: PendingChange) -> "SkillChange":
        return cls(
            name=change.name,
            version=change.version,
            old_version=change.old_version,
            provenance=change.provenance,
            matched_by=change.matched_by,
        )

    def to_dict(self) -> dict:
        data = {"name": self.name, "version": self.version}
        if self.old_version is not None:
            data["old_version"] = self.old_version
        if self.provenance is not None:
            data["provenance"] = self.provenance.value
        if self.matched_by is not None:
            data["matched_by"] = self.matched_by
        return data


@dataclass
class SyncResult:
    """Outcome of applying (or dry-running) a change set."""

    install_path: str
    dry_run: bool = False
    added: list[SkillChange] = field(default_factory=list)
    updated: list[SkillChange] = field(default_factory=list)
    removed: list[SkillChange] = field(default_factory=list)
    unchanged: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    errors: list[dict] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.added or self.updated or self.removed)

    def to_dict(self) -> dict:
        return {
            "install_path": self.install_path,
            "dry_run": self.dry_run,
            "added": [c.to_dict() for c in self.added],
            "updated": [c.to_dict() for c in self.updated],
            "removed": [c.to_dict() for c in self.removed],
            "unchanged": list(self.unchanged),
            "skipped": list(self.skipped),
            "errors": list(self.errors),
        }


@dataclass
class InstallOutcome:
    name: str
    status: InstallStatus
    version: Optional[str] = None
    path: Optional[str] = None
    message: str = ""

    def to_dict(self) -> dict:
        data = {"name": self.name, "status": self.status.value, "message": self.message}
        if self.version is not None:
            data["version"] = self.version
        if self.path is not None:
            data["path"] = self.path
        return data


@dataclass
class SyncPreview:
    """Computed change set. ``session_id`` is set only when confirmation is awaited."""

    pending_changes: list[PendingChange]
    manual_names: list[str]
    discovered_names: list[str]
    requires_confirmation: bool
    session_id: Optional[str] = None
    matches: list[Match] = field(default_factory=list)

    def changes(self, action: ChangeAction) -> list[PendingChange]:
        return [c for c in self.pending_changes if c.action == action]

    def to_dict(self) -> dict:
        return {
            "session_id": self.session_id,
            "requires_confirmation": self.requires_confirmation,
            "pending_changes": [c.to_dict() for c in self.pending_changes],
            "manual_skills": list(self.manual_names),
            "discovered_skills": list(self.discovered_names),
            "matches": [m.to_dict() for m in self.matches],
        }
