import itertools
import logging
from typing import Iterator, Optional, Tuple

import numpy as np
from numpy.typing import NDArray

from .constants import LINE_DISTANCE_THRESHOLD, LINE_MAX_ITERATIONS, MIN_LINE_POINTS
from .errors import InsufficientRingCoverage
from .models import EdgeLines, LineModel, RingExtrema

logger = logging.getLogger(__name__)


def _candidate_pairs(n: int, max_iterations: int, rng: np.random.Generator) -> Iterator[Tuple[int, int]]:
    """
    Пары индексов для гипотез прямой: если всех пар не больше max_iterations,
    перебираем их все, иначе — случайные пары.
    """
    if n * (n - 1) // 2 <= max_iterations:
        yield from itertools.combinations(range(n), 2)
        return
    for _ in range(max_iterations):
        i, j = rng.choice(n, size=2, replace=False)
        yield int(i), int(j)


def _refit_line(points: NDArray[np.float64]) -> Tuple[NDArray[np.float64], NDArray[np.float64]]:
    """МНК‐прямая по точкам: центр + главный собственный вектор ковариации."""
    centroid = points.mean(axis=0)
    cov = np.cov((points - centroid).T)
    eigvals, eigvecs = np.linalg.eigh(cov)
    direction = eigvecs[:, np.argmax(eigvals)]
    return centroid, direction / np.linalg.norm(direction)


def fit_line_ransac(
    points: NDArray[np.float64],
    distance_threshold: float = LINE_DISTANCE_THRESHOLD,
    max_iterations: int = LINE_MAX_ITERATIONS,
    rng: Optional[np.random.Generator] = None
) -> Tuple[LineModel, NDArray[np.int64]]:
    """
    RANSAC‐прямая в 3D.

    Гипотеза строится по двум точкам, лучшая — с наибольшим числом inliers
    (при равенстве — с меньшей суммой расстояний). Итоговая прямая уточняется
    МНК по inliers.

    Возвращает:
      line (LineModel): прямая с точками‐inliers.
      inliers (NDArray[int]): отсортированные индексы inliers во входном массиве.

    Исключения:
      InsufficientRingCoverage: если точек меньше двух или все они совпадают.
    """
    pts = np.asarray(points, dtype=np.float64).reshape(-1, 3)
    if len(pts) < MIN_LINE_POINTS:
        raise InsufficientRingCoverage(
            f"Для прямой нужно минимум {MIN_LINE_POINTS} точки, получено {len(pts)}"
        )
    if rng is None:
        rng = np.random.default_rng(0)

    best_mask = None
    best_score = (-1, 0.0)
    for i, j in _candidate_pairs(len(pts), max_iterations, rng):
        direction = pts[j] - pts[i]
        norm = np.linalg.norm(direction)
        if norm < 1e-12:
            continue
        direction /= norm
        dist = np.linalg.norm(np.cross(pts - pts[i], direction), axis=1)
        mask = dist <= distance_threshold
        score = (int(np.count_nonzero(mask)), -float(dist[mask].sum()))
        if score > best_score:
            best_score = score
            best_mask = mask

    if best_mask is None:
        raise InsufficientRingCoverage("Все точки для прямой совпадают")

    inliers = np.flatnonzero(best_mask)
    point, direction = _refit_line(pts[inliers])
    return LineModel(point, direction, pts[inliers]), inliers


def fit_edge_pair(
    points: NDArray[np.float64],
    distance_threshold: float = LINE_DISTANCE_THRESHOLD,
    max_iterations: int = LINE_MAX_ITERATIONS,
    rng: Optional[np.random.Generator] = None
) -> Tuple[LineModel, LineModel]:
    """
    Две прямые через множество экстремумов: первая — по всем точкам,
    вторая — по оставшимся после удаления inliers первой.
    """
    pts = np.asarray(points, dtype=np.float64).reshape(-1, 3)
    first, inliers = fit_line_ransac(pts, distance_threshold, max_iterations, rng)
    rest = np.delete(pts, inliers, axis=0)
    if len(rest) < MIN_LINE_POINTS:
        raise InsufficientRingCoverage(
            f"После первой прямой осталось {len(rest)} точек, для второй нужно {MIN_LINE_POINTS}"
        )
    second, _ = fit_line_ransac(rest, distance_threshold, max_iterations, rng)
    return first, second


def fit_edge_lines(
    extrema: RingExtrema,
    distance_threshold: float = LINE_DISTANCE_THRESHOLD,
    max_iterations: int = LINE_MAX_ITERATIONS,
    seed: Optional[int] = None
) -> EdgeLines:
    """
    Рёбра доски: {left_upper, left_lower} по максимумам колец и
    {right_upper, right_lower} по минимумам.

    Исключения:
      InsufficientRingCoverage: если в каком‐либо множестве точек не хватает
        на две непересекающиеся прямые.
    """
    rng = np.random.default_rng(seed)
    left_upper, left_lower = fit_edge_pair(extrema.max_points, distance_threshold, max_iterations, rng)
    right_upper, right_lower = fit_edge_pair(extrema.min_points, distance_threshold, max_iterations, rng)
    logger.debug(
        f"Рёбра: left {len(left_upper.inlier_points)}+{len(left_lower.inlier_points)}, "
        f"right {len(right_upper.inlier_points)}+{len(right_lower.inlier_points)} точек"
    )
    return EdgeLines(left_upper, left_lower, right_upper, right_lower)
