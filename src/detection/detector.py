"""Tier orchestration: run each detector, record its outcome, merge into one stack."""

import uuid
from pathlib import Path
from typing import Optional, Sequence

import structlog

from detection.analyzer import StaticAnalyzerDetector
from detection.base import BaseDetector
from detection.manifest import ManifestDetector
from detection.merger import merge_detections
from detection.models import DetectedStack, DetectionReport, TierResult
from detection.sbom import SbomDetector, resolve_repo_identity
from observability import metrics

logger = structlog.get_logger().bind(source="stack_detector")


class StackDetector:
    """Runs detector tiers one at a time and folds their output into a canonical stack.

    A tier that raises is recorded as a failed ``TierResult`` and contributes nothing.
    """

    def __init__(self, detectors: Sequence[BaseDetector]):
        self.detectors = list(detectors)

    @classmethod
    def from_config(cls, project_path: str | Path, config: Optional[dict] = None) -> "StackDetector":
        """Build the default tier list (SBOM, analyzer, manifest) from config."""
        config = config or {}
        detection = config.get("detection", {})
        github = config.get("github", {})
        detectors: list[BaseDetector] = []

        if detection.get("sbom", True):
            identity = resolve_repo_identity(
                project_path,
                owner=github.get("owner"),
                repo=github.get("repo"),
                token=github.get("token"),
            )
            detectors.append(SbomDetector(project_path, identity=identity))
        if detection.get("analyzer", True):
            detectors.append(
                StaticAnalyzerDetector(project_path, command=detection.get("analyzer_command"))
            )
        if detection.get("manifest", True):
            detectors.append(ManifestDetector(project_path))

        return cls(detectors)

    async def run_tier(self, detector: BaseDetector) -> TierResult:
        tier = detector.tier_name
        if isinstance(detector, SbomDetector) and not detector.identity.is_configured:
            return TierResult.skip(tier, "repository identity unknown")

        try:
            with metrics.timer(f"detect_{tier}"):
                detections = await detector.detect()
        except Exception as e:
            logger.warning("tier_failed", tier=tier, error=str(e), error_type=type(e).__name__)
            metrics.counter("detection_tier_failure")
            return TierResult.failure(tier, f"{type(e).__name__}: {e}")
        finally:
            await detector.close()

        metrics.counter("detection_tier_success")
        logger.debug("tier_done", tier=tier, detections=len(detections))
        return TierResult.success(tier, detections)

    async def detect(self) -> DetectionReport:
        run_id = uuid.uuid4().hex[:8]
        structlog.contextvars.bind_contextvars(detect_run=run_id)
        try:
            stack = DetectedStack()
            results: list[TierResult] = []
            for detector in self.detectors:
                result = await self.run_tier(detector)
                results.append(result)
                merge_detections(stack, result.detections)

            logger.info(
                "stack_detected",
                technologies=len(stack),
                sources=[r.tier for r in results if r.ok and r.detections],
                failed=[r.tier for r in results if not r.ok],
            )
            return DetectionReport(stack=stack, tiers=results)
        finally:
            structlog.contextvars.unbind_contextvars("detect_run")
