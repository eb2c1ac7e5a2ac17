"""Caller-facing operations shared by the MCP tools and the CLI."""

from pathlib import Path
from typing import Callable, Iterable, Optional

import structlog

from catalog.client import CatalogClient
from catalog.models import CatalogEntry
from detection.detector import StackDetector
from detection.manifest import get_project_info
from detection.models import DetectedStack, DetectionReport
from observability import log_run_summary
from provisioning.context import ProjectContext, ProjectContextStore
from provisioning.manager import SyncManager
from provisioning.models import InstallOutcome, SyncPreview, SyncResult
from shared_types import InstallStatus

logger = structlog.get_logger().bind(source="skills_service")


class SkillsService:
    """Detect -> match -> preview/confirm -> materialize, for one project.

    Manual include/exclude lists from config are combined with the ones recorded
    in the project context by ``install`` / ``uninstall``; an exclusion wins.
    """

    def __init__(
        self,
        project_path: str | Path,
        catalog: CatalogClient,
        manager: SyncManager,
        context_store: ProjectContextStore,
        detector_factory: Callable[[], StackDetector],
        detection_enabled: bool = True,
    ):
        self.project_path = Path(project_path)
        self.catalog = catalog
        self.manager = manager
        self.context_store = context_store
        self.detector_factory = detector_factory
        self.detection_enabled = detection_enabled
        self._config_include = list(manager.always_include)
        self._config_exclude = list(manager.always_exclude)
        self._last_report: Optional[DetectionReport] = None

    async def close(self):
        await self.catalog.close()

    # --- Detection ----------------------------------------------------------

    async def detect(self) -> DetectionReport:
        if not self.detection_enabled:
            report = DetectionReport(stack=DetectedStack())
        else:
            report = await self.detector_factory().detect()
        self._last_report = report
        return report

    async def redetect(self) -> ProjectContext:
        """Fresh detection written to the project context."""
        report = await self.detect()
        return self.refresh_context(report)

    def refresh_context(self, report: DetectionReport) -> ProjectContext:
        return self.context_store.update(
            get_project_info(self.project_path),
            report.stack,
            report.sources,
            self.manager.installed(),
        )

    async def project_context(self) -> ProjectContext:
        context = self.context_store.load()
        if context is None:
            context = await self.redetect()
        return context

    # --- Catalog ------------------------------------------------------------

    async def get_catalog(self, force_refresh: bool = False) -> list[CatalogEntry]:
        return await self.catalog.get_catalog(force_refresh=force_refresh)

    # --- Sync ---------------------------------------------------------------

    def apply_overrides(self) -> None:
        include = list(self._config_include)
        exclude = list(self._config_exclude)
        context = self.context_store.load()
        if context is not None:
            include += [n for n in context.manual.include_skills if n not in include]
            exclude += [n for n in context.manual.exclude_skills if n not in exclude]
        self.manager.always_include = [n for n in include if n not in exclude]
        self.manager.always_exclude = exclude

    async def _stack(self, stack: Optional[DetectedStack]) -> DetectedStack:
        if stack is not None:
            return stack
        return (await self.detect()).stack

    async def preview(
        self, stack: Optional[DetectedStack] = None, force_refresh: bool = False
    ) -> SyncPreview:
        stack = await self._stack(stack)
        self.apply_overrides()
        return await self.manager.preview(stack, force_refresh=force_refresh)

    async def confirm(
        self,
        session_id: str,
        approved: Optional[Iterable[str]] = None,
        rejected: Optional[Iterable[str]] = None,
    ) -> SyncResult:
        result = await self.manager.confirm(session_id, approved, rejected)
        self._after_sync("confirm_sync")
        return result

    async def sync_immediate(
        self,
        stack: Optional[DetectedStack] = None,
        dry_run: bool = False,
        force_refresh: bool = False,
    ) -> SyncResult:
        stack = await self._stack(stack)
        self.apply_overrides()
        result = await self.manager.sync_immediate(stack, dry_run=dry_run, force_refresh=force_refresh)
        if not dry_run:
            self._after_sync()
        return result

    async def sync(self, dry_run: bool = False, force: bool = False, force_refresh: bool = False) -> dict:
        """Preview by default; apply straight away on ``force`` or when prompting is off."""
        if dry_run:
            result = await self.sync_immediate(dry_run=True, force_refresh=force_refresh)
            return {"requires_confirmation": False, "result": result}
        if force or not self.manager.prompt_on_changes:
            result = await self.sync_immediate(force_refresh=force_refresh)
            return {"requires_confirmation": False, "result": result}
        preview = await self.preview(force_refresh=force_refresh)
        return {"requires_confirmation": preview.requires_confirmation, "preview": preview}

    def _after_sync(self, operation: str = "sync") -> None:
        log_run_summary(operation, project=str(self.project_path))
        if self._last_report is not None:
            self.refresh_context(self._last_report)

    # --- Single skills ------------------------------------------------------

    async def install(self, name: str) -> InstallOutcome:
        outcome = await self.manager.install(name)
        if outcome.status == InstallStatus.INSTALLED:
            self.context_store.add_manual_skill(name)
        return outcome

    def uninstall(self, name: str) -> InstallOutcome:
        outcome = self.manager.uninstall(name)
        if outcome.status != InstallStatus.FAILED:
            self.context_store.exclude_skill(name)
        return outcome

    async def check_updates(self) -> list[dict]:
        return await self.manager.check_updates()

    def reset(self, clear_cache: bool = False) -> dict:
        return self.manager.reset(clear_cache=clear_cache)
