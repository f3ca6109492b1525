"""
Ошибки извлечения признаков доски.

Все они относятся к одному циклу захвата: цикл логирует ошибку и
пропускает кадр, система продолжает работу со следующей парой.
"""

from enum import Enum


class FailureReason(str, Enum):
    PATTERN_NOT_FOUND = "pattern_not_found"
    PLANE_FIT_FAILED = "plane_fit_failed"
    INSUFFICIENT_RING_COVERAGE = "insufficient_ring_coverage"
    DEGENERATE_INTERSECTION = "degenerate_intersection"
    INCOMPLETE_CORNER_SET = "incomplete_corner_set"


class ExtractionError(RuntimeError):
    """Базовая ошибка цикла; reason задаёт тип отказа."""

    reason: FailureReason

    def __init__(self, message: str) -> None:
        super().__init__(message)


class PatternNotFound(ExtractionError):
    reason = FailureReason.PATTERN_NOT_FOUND


class PlaneFitFailed(ExtractionError):
    reason = FailureReason.PLANE_FIT_FAILED


class InsufficientRingCoverage(ExtractionError):
    reason = FailureReason.INSUFFICIENT_RING_COVERAGE


class DegenerateIntersection(ExtractionError):
    reason = FailureReason.DEGENERATE_INTERSECTION


class IncompleteCornerSet(ExtractionError):
    reason = FailureReason.INCOMPLETE_CORNER_SET
