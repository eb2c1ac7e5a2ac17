"""Detection data types: technologies, the canonical stack, per-tier results."""

from dataclasses import asdict, dataclass, field
from typing import Iterator, Optional

from shared_types import StackCategory


@dataclass
class DetectedTechnology:
    """Single technology guess from one detector tier."""

    id: str
    confidence: float
    source: str
    name: Optional[str] = None
    version: Optional[str] = None

    def __post_init__(self):
        self.id = self.id.lower()
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"confidence must be 0-1, got {self.confidence}")

    def to_dict(self) -> dict:
        return {k: v for k, v in asdict(self).items() if v is not None}

    @classmethod
    def from_dict(cls, data: dict) -> "DetectedTechnology":
        return cls(
            id=data["id"],
            confidence=float(data.get("confidence", 0.0)),
            source=data.get("source", ""),
            name=data.get("name"),
            version=data.get("version"),
        )


# A detector emits (category, technology) pairs
Detection = tuple[StackCategory, DetectedTechnology]


class DetectedStack:
    """Canonical stack: one ordered, unique-by-id collection per category.

    Only ``detection.merger`` mutates the collections.
    """

    def __init__(self):
        self._entries: dict[StackCategory, list[DetectedTechnology]] = {
            category: [] for category in StackCategory
        }

    def __getitem__(self, category: StackCategory | str) -> list[DetectedTechnology]:
        return self._entries[StackCategory(category)]

    def __iter__(self) -> Iterator[StackCategory]:
        return iter(self._entries)

    def __len__(self) -> int:
        return sum(len(items) for items in self._entries.values())

    def __eq__(self, other) -> bool:
        if not isinstance(other, DetectedStack):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    @property
    def languages(self) -> list[DetectedTechnology]:
        return self._entries[StackCategory.LANGUAGES]

    @property
    def frameworks(self) -> list[DetectedTechnology]:
        return self._entries[StackCategory.FRAMEWORKS]

    @property
    def databases(self) -> list[DetectedTechnology]:
        return self._entries[StackCategory.DATABASES]

    @property
    def infrastructure(self) -> list[DetectedTechnology]:
        return self._entries[StackCategory.INFRASTRUCTURE]

    @property
    def tools(self) -> list[DetectedTechnology]:
        return self._entries[StackCategory.TOOLS]

    def get(self, category: StackCategory | str, tech_id: str) -> Optional[DetectedTechnology]:
        tech_id = tech_id.lower()
        for tech in self[category]:
            if tech.id == tech_id:
                return tech
        return None

    def all(self) -> list[DetectedTechnology]:
        """Flatten across categories, in category order."""
        return [tech for items in self._entries.values() for tech in items]

    def ids(self) -> set[str]:
        return {tech.id for tech in self.all()}

    def is_empty(self) -> bool:
        return len(self) == 0

    def to_dict(self) -> dict[str, list[dict]]:
        return {
            str(category): [tech.to_dict() for tech in items]
            for category, items in self._entries.items()
        }

    @classmethod
    def from_dict(cls, data: dict | None) -> "DetectedStack":
        stack = cls()
        for category in StackCategory:
            for raw in (data or {}).get(str(category), []) or []:
                stack._entries[category].append(DetectedTechnology.from_dict(raw))
        return stack


@dataclass
class TierResult:
    """Outcome of one detector tier: success with detections, or failure with reason."""

    tier: str
    ok: bool
    detections: list[Detection] = field(default_factory=list)
    error: Optional[str] = None
    skipped: bool = False

    @classmethod
    def success(cls, tier: str, detections: list[Detection]) -> "TierResult":
        return cls(tier=tier, ok=True, detections=detections)

    @classmethod
    def failure(cls, tier: str, error: str) -> "TierResult":
        return cls(tier=tier, ok=False, error=error)

    @classmethod
    def skip(cls, tier: str, reason: str) -> "TierResult":
        return cls(tier=tier, ok=True, error=reason, skipped=True)

    def to_dict(self) -> dict:
        data = {"tier": self.tier, "ok": self.ok, "detections": len(self.detections)}
        if self.error:
            data["error"] = self.error
        if self.skipped:
            data["skipped"] = True
        return data


@dataclass
class DetectionReport:
    """Merged stack plus the per-tier outcomes that produced it."""

    stack: DetectedStack
    tiers: list[TierResult] = field(default_factory=list)

    @property
    def sources(self) -> list[str]:
        """Tiers that actually contributed detections."""
        return [t.tier for t in self.tiers if t.ok and t.detections]

    @property
    def failures(self) -> list[TierResult]:
        return [t for t in self.tiers if not t.ok]

    def to_dict(self) -> dict:
        return {
            "stack": self.stack.to_dict(),
            "sources": self.sources,
            "tiers": [t.to_dict() for t in self.tiers],
        }
