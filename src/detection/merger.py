"""Stack merger: fold tier detections into one canonical stack.

Merge rule per ``(category, id)``:

* absent -> insert a copy of the incoming detection
* present, incoming confidence strictly higher -> incoming replaces the entry
* present either way -> a missing ``version`` is backfilled from the incoming
  detection, even when its confidence is lower

Confidence is replaced, version information only ever accumulates.
"""

from dataclasses import replace
from typing import Iterable

from detection.models import DetectedStack, DetectedTechnology, Detection
from shared_types import StackCategory


def add_detection(
    stack: DetectedStack, category: StackCategory | str, detection: DetectedTechnology
) -> DetectedTechnology:
    """Merge one detection into ``stack`` and return the resulting entry."""
    entries = stack[category]
    for index, existing in enumerate(entries):
        if existing.id != detection.id:
            continue
        merged = existing
        if detection.confidence > existing.confidence:
            merged = replace(detection)
        if not merged.version:
            merged.version = existing.version or detection.version
        entries[index] = merged
        return merged

    entry = replace(detection)
    entries.append(entry)
    return entry


def merge_detections(stack: DetectedStack, detections: Iterable[Detection]) -> DetectedStack:
    """Merge ``(category, detection)`` pairs into ``stack`` in order."""
    for category, detection in detections:
        add_detection(stack, category, detection)
    return stack


def merge_stacks(target: DetectedStack, source: DetectedStack) -> DetectedStack:
    """Merge every entry of ``source`` into ``target``."""
    for category in source:
        for tech in source[category]:
            add_detection(target, category, tech)
    return target
