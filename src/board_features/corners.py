import logging
from typing import Optional, Tuple

import numpy as np
from numpy.typing import NDArray

from .constants import LINE_INTERSECTION_MAX_GAP, PARALLEL_EPS, SIDE_TEST_EPS
from .errors import DegenerateIntersection, IncompleteCornerSet
from .models import CornerSet, EdgeLines, LineModel

logger = logging.getLogger(__name__)


def intersect_lines(
    a: LineModel,
    b: LineModel,
    parallel_eps: float = PARALLEL_EPS,
    max_gap: float = LINE_INTERSECTION_MAX_GAP
) -> Optional[NDArray[np.float64]]:
    """
    Пересечение двух прямых в 3D.

    Ищутся ближайшие точки прямых; результат — их середина. Возвращает None,
    если прямые (почти) параллельны или проходят дальше max_gap друг от друга.
    """
    b_dot = float(a.direction @ b.direction)
    denom = 1.0 - b_dot * b_dot
    if denom < parallel_eps:
        return None
    w0 = a.point - b.point
    d = float(a.direction @ w0)
    e = float(b.direction @ w0)
    s = (b_dot * e - d) / denom
    t = (e - b_dot * d) / denom
    pa = a.point + s * a.direction
    pb = b.point + t * b.direction
    if np.linalg.norm(pa - pb) > max_gap:
        return None
    return 0.5 * (pa + pb)


def _support_point(line: LineModel, origin: NDArray[np.float64], axis: NDArray[np.float64]) -> NDArray[np.float64]:
    """Точка‐inlier прямой, наиболее удалённая от диагонали origin + k·axis."""
    pts = line.inlier_points if len(line.inlier_points) else line.point.reshape(1, 3)
    axis = axis / np.linalg.norm(axis)
    dist = np.linalg.norm(np.cross(pts - origin, axis), axis=1)
    return pts[np.argmax(dist)]


def choose_diagonal_pairs(
    edges: EdgeLines,
    corner0: NDArray[np.float64],
    corner1: NDArray[np.float64],
    side_eps: float = SIDE_TEST_EPS
) -> Tuple[Tuple[LineModel, LineModel], Tuple[LineModel, LineModel]]:
    """
    Тест сторон: какие пары рёбер дают оставшиеся два угла.

    Опорные точки берутся на right_upper и left_lower (inlier, наиболее
    удалённый от диагонали corner₀–corner₁). Если они по одну сторону
    диагонали, эти рёбра ограничивают один и тот же угол.

    Исключения:
      DegenerateIntersection: опорная точка лежит на диагонали.
    """
    diagonal = corner1 - corner0
    diag_norm = np.linalg.norm(diagonal)
    if diag_norm == 0:
        raise DegenerateIntersection("corner₀ и corner₁ совпадают")

    # опора на right_upper, а не right_lower: с right_lower то же правило выбора пар стало бы зеркальным
    p1 = _support_point(edges.right_upper, corner0, diagonal) - corner0
    p2 = _support_point(edges.left_lower, corner0, diagonal) - corner0
    side = float(np.cross(diagonal, p1) @ np.cross(diagonal, p2))
    scale = diag_norm ** 2 * np.linalg.norm(p1) * np.linalg.norm(p2)
    if abs(side) <= side_eps * scale:
        raise DegenerateIntersection("Опорная точка ребра лежит на диагонали доски")

    if side > 0:
        return (edges.left_lower, edges.right_upper), (edges.left_upper, edges.right_lower)
    return (edges.left_lower, edges.right_lower), (edges.left_upper, edges.right_upper)


def reconstruct_corners(edges: EdgeLines, side_eps: float = SIDE_TEST_EPS) -> CornerSet:
    """
    Восстанавливает 4 угла доски по четырём рёбрам.

    Алгоритм:
      1. corner₀ = left_upper × left_lower, corner₁ = right_upper × right_lower.
      2. Диагональ corner₁ − corner₀.
      3. Опорные точки на right_upper и left_lower; векторы от corner₀ к ним.
      4. Если векторные произведения диагонали с ними сонаправлены (точки по
         одну сторону диагонали), пары (left_lower, right_upper) и
         (left_upper, right_lower), иначе (left_lower, right_lower) и
         (left_upper, right_upper).
      5. Пересечения выбранных пар → corner₂, corner₃.
      6. Центр доски — середина corner₀ и corner₁.

    Исключения:
      DegenerateIntersection: corner₀/corner₁ не определены или опорная точка
        лежит на диагонали.
      IncompleteCornerSet: не удалось получить corner₂ или corner₃.
    """
    corner0 = intersect_lines(edges.left_upper, edges.left_lower)
    corner1 = intersect_lines(edges.right_upper, edges.right_lower)
    if corner0 is None or corner1 is None:
        raise DegenerateIntersection("Рёбра одного множества экстремумов не пересекаются")

    pairs = choose_diagonal_pairs(edges, corner0, corner1, side_eps)

    corners = [corner0, corner1]
    for first, second in pairs:
        point = intersect_lines(first, second)
        if point is not None:
            corners.append(point)
    if len(corners) != 4:
        raise IncompleteCornerSet(f"Восстановлено {len(corners)} углов доски из 4")

    logger.debug(f"Углы доски: {np.round(np.vstack(corners), 4).tolist()}")
    return CornerSet(corners=np.vstack(corners), centroid=0.5 * (corner0 + corner1))
