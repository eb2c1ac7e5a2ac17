"""Sync orchestration: diff computation, preview/confirm sessions, materialization.

Lifecycle of a change set::

    computed -> awaiting confirmation -> applied | rejected | expired

``sync_immediate`` goes straight from computed to applied (or to a report only
when ``dry_run`` is set) and never allocates a session.
"""

from pathlib import Path
from typing import Iterable, Optional, Sequence

import httpx
import structlog

from catalog.client import CatalogClient, CatalogError
from catalog.models import CatalogEntry
from detection.models import DetectedStack
from observability import metrics
from provisioning.matcher import compute_matches
from provisioning.materializer import Materializer
from provisioning.models import (
    InstallOutcome,
    InstalledSkill,
    Match,
    PendingChange,
    SkillChange,
    SyncPreview,
    SyncResult,
    UnsafeSkillNameError,
)
from provisioning.sessions import SessionStore
from shared_types import ChangeAction, InstallStatus, MatchProvenance

logger = structlog.get_logger().bind(source="sync_manager")

# Failures that are recorded per skill instead of aborting a batch
MATERIALIZE_ERRORS = (CatalogError, httpx.HTTPError, OSError, UnsafeSkillNameError)


def compute_changes(
    matches: Sequence[Match],
    installed: Sequence[InstalledSkill],
    auto_remove: bool = False,
) -> list[PendingChange]:
    """Diff resolved matches against installed skills.

    Same version is unchanged (no entry). Installed-only skills are removed only
    when ``auto_remove`` is set.
    """
    installed_by_name = {skill.name: skill for skill in installed}
    changes: list[PendingChange] = []

    for match in matches:
        entry = match.entry
        origin = "manually configured" if match.provenance == MatchProvenance.MANUAL else "auto-discovered"
        existing = installed_by_name.get(entry.name)
        if existing is None:
            if match.provenance == MatchProvenance.MANUAL:
                reason = "Manually configured in always_include"
            elif match.provenance == MatchProvenance.DEPENDENCY:
                reason = f"Required as a {match.matched_by}"
            else:
                reason = f"Auto-discovered: {match.matched_by}"
            changes.append(PendingChange(
                name=entry.name,
                version=entry.version,
                action=ChangeAction.ADD,
                reason=reason,
                provenance=match.provenance,
                matched_by=match.matched_by,
            ))
        elif existing.version != entry.version:
            changes.append(PendingChange(
                name=entry.name,
                version=entry.version,
                action=ChangeAction.UPDATE,
                reason=f"Update from v{existing.version} to v{entry.version} ({origin})",
                old_version=existing.version,
                provenance=match.provenance,
                matched_by=match.matched_by,
            ))

    if auto_remove:
        required = {m.name for m in matches}
        for skill in installed:
            if skill.name not in required:
                changes.append(PendingChange(
                    name=skill.name,
                    version=skill.version,
                    action=ChangeAction.REMOVE,
                    reason="No longer matches detected stack and not in always_include",
                ))

    return changes


def select_changes(
    changes: Sequence[PendingChange],
    approved: Optional[Iterable[str]] = None,
    rejected: Optional[Iterable[str]] = None,
) -> tuple[list[PendingChange], list[str]]:
    """Split into (to apply, skipped names). Rejection wins over approval."""
    approved_set = set(approved) if approved is not None else None
    rejected_set = set(rejected or [])
    selected, skipped = [], []
    for change in changes:
        if change.name in rejected_set or (approved_set is not None and change.name not in approved_set):
            skipped.append(change.name)
        else:
            selected.append(change)
    return selected, skipped


class SyncManager:
    """Resolves, previews and applies skill change sets for one installation directory."""

    def __init__(
        self,
        catalog: CatalogClient,
        materializer: Materializer,
        sessions: Optional[SessionStore] = None,
        always_include: Sequence[str] = (),
        always_exclude: Sequence[str] = (),
        auto_remove: bool = False,
        prompt_on_changes: bool = True,
    ):
        self.catalog = catalog
        self.materializer = materializer
        self.sessions = sessions if sessions is not None else SessionStore()
        self.always_include = list(always_include)
        self.always_exclude = list(always_exclude)
        self.auto_remove = auto_remove
        self.prompt_on_changes = prompt_on_changes

    @property
    def install_path(self) -> str:
        return str(self.materializer.install_path)

    def installed(self) -> list[InstalledSkill]:
        return self.materializer.list_installed()

    async def resolve(self, stack: DetectedStack, force_refresh: bool = False) -> list[Match]:
        entries = await self.catalog.get_catalog(force_refresh=force_refresh)
        matches = compute_matches(stack, entries, self.always_include, self.always_exclude)
        logger.debug("matches_resolved", matches=len(matches), catalog=len(entries))
        return matches

    # --- Preview / confirm --------------------------------------------------

    async def preview(
        self,
        stack: DetectedStack,
        installed: Optional[Sequence[InstalledSkill]] = None,
        force_refresh: bool = False,
        immediate: bool = False,
    ) -> SyncPreview:
        """Compute the change set; hold it in a session unless empty or ``immediate``."""
        self.sessions.sweep()
        installed = list(installed) if installed is not None else self.installed()
        matches = await self.resolve(stack, force_refresh=force_refresh)
        changes = compute_changes(matches, installed, self.auto_remove)

        manual = [m.name for m in matches if m.provenance == MatchProvenance.MANUAL]
        discovered = [m.name for m in matches if m.provenance != MatchProvenance.MANUAL]
        preview = SyncPreview(
            pending_changes=changes,
            manual_names=manual,
            discovered_names=discovered,
            requires_confirmation=bool(changes) and self.prompt_on_changes and not immediate,
            matches=matches,
        )

        if changes and not immediate:
            session = self.sessions.create(
                pending_changes=changes,
                matches=matches,
                installed=installed,
                manual_names=manual,
                discovered_names=discovered,
            )
            preview.session_id = session.id

        logger.info(
            "sync_previewed",
            session_id=preview.session_id,
            changes=len(changes),
            manual=len(manual),
            discovered=len(discovered),
        )
        return preview

    async def confirm(
        self,
        session_id: str,
        approved: Optional[Iterable[str]] = None,
        rejected: Optional[Iterable[str]] = None,
    ) -> SyncResult:
        """Apply a previewed session. Raises ``SessionNotFoundError`` for unknown/expired ids."""
        session = self.sessions.pop(session_id)
        selected, skipped = select_changes(session.pending_changes, approved, rejected)
        result = await self._apply(selected, session.matches, session.installed)
        result.skipped = skipped
        logger.info(
            "sync_confirmed",
            session_id=session_id,
            added=len(result.added),
            updated=len(result.updated),
            removed=len(result.removed),
            skipped=len(skipped),
            errors=len(result.errors),
        )
        return result

    async def sync_immediate(
        self,
        stack: DetectedStack,
        installed: Optional[Sequence[InstalledSkill]] = None,
        dry_run: bool = False,
        force_refresh: bool = False,
    ) -> SyncResult:
        """Compute and apply without a confirmation step."""
        installed = list(installed) if installed is not None else self.installed()
        matches = await self.resolve(stack, force_refresh=force_refresh)
        changes = compute_changes(matches, installed, self.auto_remove)
        return await self._apply(changes, matches, installed, dry_run=dry_run)

    async def _apply(
        self,
        changes: Sequence[PendingChange],
        matches: Sequence[Match],
        installed: Sequence[InstalledSkill],
        dry_run: bool = False,
    ) -> SyncResult:
        result = SyncResult(install_path=self.install_path, dry_run=dry_run)
        entries = {m.name: m.entry for m in matches}
        directories = {skill.name: Path(skill.path).name for skill in installed}

        for change in changes:
            directory = directories.get(change.name, change.name)
            try:
                if change.action == ChangeAction.REMOVE:
                    if not dry_run:
                        self.materializer.uninstall(directory)
                        metrics.counter("skills_removed")
                    result.removed.append(SkillChange.from_pending(change))
                    continue

                entry = entries.get(change.name)
                if entry is None:
                    logger.warning("change_without_match", skill=change.name)
                    continue
                if not dry_run:
                    await self._materialize(entry)
            except MATERIALIZE_ERRORS as e:
                metrics.counter("materialize_errors")
                logger.error("materialize_failed", skill=change.name, action=change.action, error=str(e))
                result.errors.append({
                    "name": change.name,
                    "path": str(self.materializer.install_path / directory),
                    "error": f"{type(e).__name__}: {e}",
                })
                continue

            target = result.added if change.action == ChangeAction.ADD else result.updated
            target.append(SkillChange.from_pending(change))

        changed = {c.name for c in (*result.added, *result.updated, *result.removed)}
        result.unchanged = [skill.name for skill in installed if skill.name not in changed]
        return result

    async def _materialize(self, entry: CatalogEntry) -> None:
        document = await self.catalog.fetch_document(entry)
        resources = await self.catalog.fetch_resources(entry)
        self.materializer.install(entry.name, document, resources)
        metrics.counter("skills_installed")

    # --- Single skills ------------------------------------------------------

    async def install(self, name: str) -> InstallOutcome:
        entry = await self.catalog.get_entry(name)
        if entry is None:
            return InstallOutcome(name, InstallStatus.NOT_FOUND, message=f"Skill '{name}' not found in catalog")
        try:
            await self._materialize(entry)
        except MATERIALIZE_ERRORS as e:
            metrics.counter("materialize_errors")
            logger.error("install_failed", skill=name, error=str(e))
            return InstallOutcome(name, InstallStatus.FAILED, version=entry.version, message=str(e))

        path = str(self.materializer.install_path / name)
        logger.info("skill_installed", skill=name, version=entry.version)
        return InstallOutcome(
            name, InstallStatus.INSTALLED, version=entry.version, path=path, message="Installed"
        )

    def directory_for(self, name: str) -> str:
        """Directory holding the installed skill ``name``; falls back to ``name`` itself."""
        for skill in self.installed():
            if skill.name == name:
                return Path(skill.path).name
        return name

    def uninstall(self, name: str) -> InstallOutcome:
        directory = self.directory_for(name)
        try:
            removed = self.materializer.uninstall(directory)
        except (OSError, UnsafeSkillNameError) as e:
            logger.error("uninstall_failed", skill=name, error=str(e))
            return InstallOutcome(name, InstallStatus.FAILED, message=str(e))
        if not removed:
            return InstallOutcome(name, InstallStatus.NOT_FOUND, message=f"Skill '{name}' is not installed")
        metrics.counter("skills_removed")
        return InstallOutcome(
            name,
            InstallStatus.UNINSTALLED,
            path=str(self.materializer.install_path / directory),
            message="Uninstalled",
        )

    async def check_updates(self) -> list[dict]:
        """Installed skills whose catalog version differs."""
        entries = {e.name: e for e in await self.catalog.get_catalog()}
        updates = []
        for skill in self.installed():
            latest = entries.get(skill.name)
            if latest is not None and latest.version != skill.version:
                updates.append({
                    "name": skill.name,
                    "current_version": skill.version,
                    "latest_version": latest.version,
                    "last_updated": latest.last_updated,
                })
        return updates

    def reset(self, clear_cache: bool = False) -> dict:
        """Uninstall every installed skill; optionally drop the catalog cache."""
        removed, errors = [], []
        for skill in self.installed():
            outcome = self.uninstall(Path(skill.path).name)
            if outcome.status == InstallStatus.UNINSTALLED:
                removed.append(skill.name)
            elif outcome.status == InstallStatus.FAILED:
                errors.append({"name": skill.name, "path": skill.path, "error": outcome.message})

        cleared = 0
        if clear_cache:
            cleared = self.catalog.cache.clear()
        logger.info("skills_reset", removed=len(removed), errors=len(errors), cache_files=cleared)
        return {
            "success": not errors,
            "removed_skills": removed,
            "cache_cleared": clear_cache,
            "cache_files_removed": cleared,
            "errors": errors,
        }
