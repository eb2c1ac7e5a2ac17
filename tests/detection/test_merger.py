"""Tests for the stack merger."""

import pytest

from detection.merger import add_detection, merge_detections, merge_stacks
from detection.models import DetectedStack, DetectedTechnology
from shared_types import StackCategory

F = StackCategory.FRAMEWORKS
L = StackCategory.LANGUAGES


def tech(tech_id, confidence, version=None, source="test"):
    return DetectedTechnology(id=tech_id, confidence=confidence, version=version, source=source)


class TestAddDetection:
    def test_inserts_new_entry(self):
        stack = DetectedStack()
        add_detection(stack, F, tech("react", 0.9))
        assert stack.ids() == {"react"}
        assert stack.frameworks[0].confidence == 0.9

    def test_higher_confidence_replaces(self):
        stack = DetectedStack()
        add_detection(stack, F, tech("react", 0.6, source="README.md"))
        add_detection(stack, F, tech("react", 0.95, source="package.json (react)"))
        entry = stack.get(F, "react")
        assert entry.confidence == 0.95
        assert entry.source == "package.json (react)"
        assert len(stack.frameworks) == 1

    def test_lower_confidence_kept_out(self):
        stack = DetectedStack()
        add_detection(stack, F, tech("react", 0.95, source="package.json (react)"))
        add_detection(stack, F, tech("react", 0.6, source="README.md"))
        assert stack.get(F, "react").source == "package.json (react)"

    def test_version_backfilled_from_lower_confidence(self):
        """Low-confidence detection with a version, then high-confidence without one."""
        stack = DetectedStack()
        add_detection(stack, F, tech("react", 0.6, version="18.2.0"))
        add_detection(stack, F, tech("react", 0.95))
        entry = stack.get(F, "react")
        assert entry.confidence == 0.95
        assert entry.version == "18.2.0"

    def test_version_backfilled_when_existing_wins(self):
        stack = DetectedStack()
        add_detection(stack, F, tech("react", 0.95))
        add_detection(stack, F, tech("react", 0.6, version="18.2.0"))
        entry = stack.get(F, "react")
        assert entry.confidence == 0.95
        assert entry.version == "18.2.0"

    def test_existing_version_not_overwritten_by_lower(self):
        stack = DetectedStack()
        add_detection(stack, F, tech("react", 0.95, version="18.2.0"))
        add_detection(stack, F, tech("react", 0.6, version="17.0.0"))
        assert stack.get(F, "react").version == "18.2.0"

    def test_same_id_in_different_categories_is_separate(self):
        stack = DetectedStack()
        add_detection(stack, L, tech("typescript", 0.9))
        add_detection(stack, StackCategory.TOOLS, tech("typescript", 0.8))
        assert len(stack) == 2

    def test_incoming_detection_is_copied(self):
        stack = DetectedStack()
        incoming = tech("react", 0.9)
        add_detection(stack, F, incoming)
        add_detection(stack, F, tech("react", 0.5, version="1.0"))
        assert incoming.version is None


class TestMergeProperties:
    @pytest.mark.parametrize(
        "first,second",
        [
            ((0.6, "1.0"), (0.95, None)),
            ((0.95, None), (0.6, "1.0")),
            ((0.7, None), (0.8, None)),
            ((0.9, "2.0"), (0.9, None)),
        ],
    )
    def test_confidence_is_max_and_version_unions(self, first, second):
        stack = DetectedStack()
        add_detection(stack, F, tech("vue", first[0], version=first[1]))
        add_detection(stack, F, tech("vue", second[0], version=second[1]))
        entry = stack.get(F, "vue")
        assert entry.confidence == max(first[0], second[0])
        if first[1] or second[1]:
            assert entry.version is not None

    def test_merge_is_idempotent(self):
        detections = [
            (F, tech("react", 0.95, version="18.2.0")),
            (L, tech("typescript", 0.9)),
            (F, tech("react", 0.6)),
        ]
        once = merge_detections(DetectedStack(), detections)
        twice = merge_detections(merge_detections(DetectedStack(), detections), detections)
        assert once == twice

    def test_merge_stacks(self):
        a = merge_detections(DetectedStack(), [(F, tech("react", 0.6, version="18"))])
        b = merge_detections(DetectedStack(), [(F, tech("react", 0.9)), (L, tech("python", 0.9))])
        merged = merge_stacks(a, b)
        assert merged.get(F, "react").confidence == 0.9
        assert merged.get(F, "react").version == "18"
        assert merged.ids() == {"react", "python"}
