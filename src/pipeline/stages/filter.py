"""
Filter stage: reduce raw detections to confident target-class hits.

The aggregate `target_present` flag is the only signal forwarded to the
actuator; individual detections are used for drawing only.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List

from models.config import DetectionConfig
from models.detection import Detection


@dataclass
class FilterStageConfig:
    """
    Configuration for the filter stage.

    Attributes:
        score_threshold: Detections must score strictly above this value.
        target_class: Class identifier of the target (weed).
    """
    score_threshold: float = 0.6
    target_class: int = 1


@dataclass(frozen=True)
class FilterResult:
    kept: List[Detection] = field(default_factory=list)

    @property
    def target_present(self) -> bool:
        return len(self.kept) > 0


class DetectionFilter:
    """
    Keeps detections with score > threshold and class == target class.

    Example:
        stage = DetectionFilter(FilterStageConfig(score_threshold=0.6, target_class=1))
        result = stage.process(detections)
        if result.target_present:
            ...
    """

    def __init__(self, config: FilterStageConfig):
        self._config = config

    @property
    def config(self) -> FilterStageConfig:
        return self._config

    def accepts(self, detection: Detection) -> bool:
        return (
            detection.score > self._config.score_threshold
            and detection.class_id == self._config.target_class
        )

    def process(self, detections: List[Detection]) -> FilterResult:
        return FilterResult(kept=[d for d in detections if self.accepts(d)])


def any_target_present(detections: List[Detection], score_threshold: float = 0.6, target_class: int = 1) -> bool:
    """True iff at least one detection passes the target filter."""
    stage = DetectionFilter(FilterStageConfig(score_threshold=score_threshold, target_class=target_class))
    return stage.process(detections).target_present


def create_filter_stage(detection_cfg: DetectionConfig) -> DetectionFilter:
    """Factory: build the filter from the typed `detection` config section."""
    return DetectionFilter(
        FilterStageConfig(
            score_threshold=detection_cfg.score_threshold,
            target_class=detection_cfg.target_class,
        )
    )
