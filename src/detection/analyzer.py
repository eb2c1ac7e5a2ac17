"""Static analyzer tier: wraps an external multi-technology stack analyzer.

The analyzer is an out-of-process command (Specfy's stack-analyser by default)
that emits a JSON payload shaped like::

    {"techs": ["react", ...], "languages": {"TypeScript": 120},
     "childs": [{"techs": [...], "childs": [...]}]}

Tech items may also be objects ``{"key": ..., "name": ..., "type": ...}``.
"""

import asyncio
import json
import tempfile
from pathlib import Path
from typing import Any, Optional

import structlog

from detection.base import BaseDetector
from detection.models import DetectedTechnology, Detection
from detection.triggers import category_for
from shared_types import DetectionTier, StackCategory

logger = structlog.get_logger().bind(source="analyzer_detector")

DEFAULT_ANALYZER_COMMAND = [
    "npx",
    "--yes",
    "@specfy/stack-analyser",
    "{path}",
    "--output",
    "{output}",
]

TOP_LEVEL_CONFIDENCE = 0.9
NESTED_CONFIDENCE = 0.85
LANGUAGE_CONFIDENCE = 0.85

TYPE_CATEGORY_MAP: dict[str, StackCategory] = {
    "language": StackCategory.LANGUAGES,
    "runtime": StackCategory.LANGUAGES,
    "framework": StackCategory.FRAMEWORKS,
    "library": StackCategory.FRAMEWORKS,
    "database": StackCategory.DATABASES,
    "queue": StackCategory.DATABASES,
    "cache": StackCategory.DATABASES,
    "storage": StackCategory.DATABASES,
    "hosting": StackCategory.INFRASTRUCTURE,
    "ci": StackCategory.INFRASTRUCTURE,
    "cloud": StackCategory.INFRASTRUCTURE,
    "container": StackCategory.INFRASTRUCTURE,
    "iaas": StackCategory.INFRASTRUCTURE,
    "paas": StackCategory.INFRASTRUCTURE,
    "monitoring": StackCategory.TOOLS,
    "tool": StackCategory.TOOLS,
    "analytics": StackCategory.TOOLS,
    "auth": StackCategory.TOOLS,
    "saas": StackCategory.TOOLS,
    "app": StackCategory.TOOLS,
}

LANGUAGE_ID_MAP = {
    "c#": "csharp",
    "c++": "cplusplus",
    "cpp": "cplusplus",
    "golang": "go",
}


class AnalyzerError(RuntimeError):
    """External analyzer exited non-zero or produced unusable output."""


class StaticAnalyzerDetector(BaseDetector):
    """Runs the analyzer command once and maps its payload into detections."""

    def __init__(self, project_path: str | Path, command: Optional[list[str]] = None):
        super().__init__(project_path)
        self.command = list(command or DEFAULT_ANALYZER_COMMAND)

    @property
    def tier_name(self) -> str:
        return DetectionTier.ANALYZER

    async def detect(self) -> list[Detection]:
        payload = await self.run_analyzer()
        return self.map_payload(payload)

    async def run_analyzer(self) -> dict:
        with tempfile.TemporaryDirectory(prefix="mother-analyzer-") as tmp:
            output_path = Path(tmp) / "output.json"
            argv = [
                arg.replace("{path}", str(self.project_path)).replace("{output}", str(output_path))
                for arg in self.command
            ]
            logger.debug("analyzer_run", argv=argv)
            proc = await asyncio.create_subprocess_exec(
                *argv,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=self.project_path,
            )
            stdout, stderr = await proc.communicate()
            if proc.returncode != 0:
                raise AnalyzerError(
                    f"analyzer exited {proc.returncode}: {stderr.decode(errors='replace')[:300]}"
                )

            raw = output_path.read_text(encoding="utf-8") if output_path.exists() else stdout.decode()

        try:
            payload = json.loads(raw)
        except json.JSONDecodeError as e:
            raise AnalyzerError(f"analyzer output is not JSON: {e}") from e
        if not isinstance(payload, dict):
            raise AnalyzerError("analyzer output must be a JSON object")
        return payload

    def map_payload(self, payload: dict) -> list[Detection]:
        detections: list[Detection] = []

        for item in payload.get("techs") or []:
            detection = self._tech(item, TOP_LEVEL_CONFIDENCE)
            if detection:
                detections.append(detection)

        for child in self._walk_children(payload):
            for item in child.get("techs") or []:
                detection = self._tech(item, NESTED_CONFIDENCE)
                if detection:
                    detections.append(detection)

        for language in (payload.get("languages") or {}):
            key = str(language).lower()
            detections.append((
                StackCategory.LANGUAGES,
                DetectedTechnology(
                    id=LANGUAGE_ID_MAP.get(key, key),
                    name=str(language),
                    confidence=LANGUAGE_CONFIDENCE,
                    source="analyzer (language detection)",
                ),
            ))

        return detections

    def _walk_children(self, node: dict):
        for child in node.get("childs") or []:
            if isinstance(child, dict):
                yield child
                yield from self._walk_children(child)

    def _tech(self, item: Any, confidence: float) -> Optional[Detection]:
        if isinstance(item, str):
            key, name, tech_type = item, None, None
        elif isinstance(item, dict) and item.get("key"):
            key, name, tech_type = item["key"], item.get("name"), item.get("type")
        else:
            return None

        key = str(key).lower()
        if tech_type and tech_type in TYPE_CATEGORY_MAP:
            category = TYPE_CATEGORY_MAP[tech_type]
        else:
            category = category_for(key)

        return (
            category,
            DetectedTechnology(
                id=key,
                name=name,
                confidence=confidence,
                source=f"analyzer ({tech_type or category})",
            ),
        )
