"""Technology stack detection across independent evidence tiers."""

from .detector import StackDetector
from .merger import add_detection, merge_detections, merge_stacks
from .models import DetectedStack, DetectedTechnology, DetectionReport, TierResult

__all__ = [
    "StackDetector",
    "DetectedStack",
    "DetectedTechnology",
    "DetectionReport",
    "TierResult",
    "add_detection",
    "merge_detections",
    "merge_stacks",
]
