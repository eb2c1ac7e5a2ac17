"""Stack-to-catalog matching and dependency closure."""

from typing import Iterable, Sequence

import structlog

from catalog.models import CatalogEntry
from detection.models import DetectedStack
from provisioning.models import Match
from shared_types import MatchProvenance

logger = structlog.get_logger().bind(source="matcher")

PACKAGE_TRIGGER_FACTOR = 0.9
DEPENDENCY_DECAY = 0.8
MANUAL_MATCHED_BY = "manual (always_include)"


def match_stack(stack: DetectedStack, catalog: Sequence[CatalogEntry]) -> list[Match]:
    """Discovery matches for every non-manual-only entry.

    Direct id equality beats a package trigger; the first detection (in category
    order) that satisfies a strategy decides the match.
    """
    detected = stack.all()
    matches: list[Match] = []

    for entry in catalog:
        if entry.triggers.manual_only:
            continue

        direct = next((d for d in detected if d.id == entry.name), None)
        if direct is not None:
            matches.append(
                Match(entry, f"detected: {direct.source}", direct.confidence, MatchProvenance.DISCOVERY)
            )
            continue

        packages = [p.lower() for p in entry.triggers.packages]
        if not packages:
            continue
        for tech in detected:
            source = tech.source.lower()
            if any(pkg in source for pkg in packages):
                matches.append(
                    Match(
                        entry,
                        f"package trigger: {tech.source}",
                        tech.confidence * PACKAGE_TRIGGER_FACTOR,
                        MatchProvenance.DISCOVERY,
                    )
                )
                break

    return matches


def add_manual(matches: list[Match], names: Iterable[str], catalog: Sequence[CatalogEntry]) -> list[Match]:
    """Append ``always_include`` names that exist in the catalog and are not matched yet."""
    by_name = {entry.name: entry for entry in catalog}
    present = {m.name for m in matches}
    result = list(matches)
    for name in names:
        if name in present:
            continue
        entry = by_name.get(name)
        if entry is None:
            logger.warning("manual_skill_unknown", skill=name)
            continue
        result.append(Match(entry, MANUAL_MATCHED_BY, 1.0, MatchProvenance.MANUAL))
        present.add(name)
    return result


def apply_excludes(matches: Iterable[Match], excluded: Iterable[str]) -> list[Match]:
    excluded = set(excluded)
    return [m for m in matches if m.name not in excluded]


def resolve_dependencies(matches: Sequence[Match], catalog: Sequence[CatalogEntry]) -> list[Match]:
    """Close ``matches`` over declared dependencies.

    Names are checked against ``resolved`` before being queued, so cyclic graphs
    terminate. Unknown dependency names are dropped.
    """
    by_name = {entry.name: entry for entry in catalog}
    resolved: dict[str, Match] = {m.name: m for m in matches}
    queue = list(matches)

    while queue:
        current = queue.pop()
        for dep_name in current.entry.dependencies:
            if dep_name in resolved:
                continue
            dep_entry = by_name.get(dep_name)
            if dep_entry is None:
                logger.debug("dependency_unknown", skill=current.name, dependency=dep_name)
                continue
            dep = Match(
                dep_entry,
                f"dependency of {current.name}",
                current.confidence * DEPENDENCY_DECAY,
                MatchProvenance.DEPENDENCY,
            )
            resolved[dep_name] = dep
            queue.append(dep)

    return list(resolved.values())


def compute_matches(
    stack: DetectedStack,
    catalog: Sequence[CatalogEntry],
    always_include: Iterable[str] = (),
    always_exclude: Iterable[str] = (),
) -> list[Match]:
    """Full pipeline: discover, add manual, exclude, resolve, exclude again."""
    excluded = list(always_exclude)
    matches = add_manual(match_stack(stack, catalog), always_include, catalog)
    matches = apply_excludes(matches, excluded)
    matches = resolve_dependencies(matches, catalog)
    return apply_excludes(matches, excluded)
