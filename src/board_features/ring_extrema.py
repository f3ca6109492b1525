import logging
from typing import Dict

import numpy as np
from numpy.typing import NDArray

from .models import RingExtrema

logger = logging.getLogger(__name__)

# Ось «боковой» координаты, по которой ищутся экстремумы в кольце (y сенсора)
LATERAL_AXIS = 1


def _valid_rings(rings: NDArray[np.int64], ring_count: int) -> NDArray[np.bool_]:
    valid = (rings >= 0) & (rings < ring_count)
    dropped = int(np.count_nonzero(~valid))
    if dropped:
        logger.warning(f"{dropped} точек с номером кольца вне [0, {ring_count}) отброшены")
    return valid


def bucket_by_ring(
    points: NDArray[np.float64],
    rings: NDArray[np.int64],
    ring_count: int
) -> Dict[int, NDArray[np.float64]]:
    """
    Раскладывает точки по кольцам.

    Возвращает словарь кольцо → точки кольца, упорядоченные по убыванию
    боковой координаты (стабильно). Пустые кольца в словарь не попадают.
    """
    pts = np.asarray(points, dtype=np.float64).reshape(-1, 3)
    rings = np.asarray(rings, dtype=np.int64).reshape(-1)
    valid = _valid_rings(rings, ring_count)
    pts, rings = pts[valid], rings[valid]

    buckets: Dict[int, NDArray[np.float64]] = {}
    for ring in np.unique(rings):
        ring_pts = pts[rings == ring]
        order = np.argsort(-ring_pts[:, LATERAL_AXIS], kind="stable")
        buckets[int(ring)] = ring_pts[order]
    return buckets


def extract_ring_extrema(
    points: NDArray[np.float64],
    rings: NDArray[np.int64],
    ring_count: int
) -> RingExtrema:
    """
    Для каждого заполненного кольца берёт точки с максимальной и минимальной
    боковой координатой — кандидаты на рёбра доски.

    Один линейный проход по кольцу вместо сортировки. При равенстве значений
    результат совпадает со стабильной сортировкой по убыванию: первый максимум
    и последний минимум в исходном порядке.

    Кольца без точек просто отсутствуют в результате.
    """
    pts = np.asarray(points, dtype=np.float64).reshape(-1, 3)
    rings = np.asarray(rings, dtype=np.int64).reshape(-1)
    valid = _valid_rings(rings, ring_count)
    pts, rings = pts[valid], rings[valid]

    populated = np.unique(rings)
    max_points = np.zeros((len(populated), 3), dtype=np.float64)
    min_points = np.zeros((len(populated), 3), dtype=np.float64)
    for i, ring in enumerate(populated):
        ring_pts = pts[rings == ring]
        lateral = ring_pts[:, LATERAL_AXIS]
        max_points[i] = ring_pts[np.argmax(lateral)]
        min_points[i] = ring_pts[len(lateral) - 1 - np.argmin(lateral[::-1])]

    logger.debug(f"Экстремумы найдены в {len(populated)} кольцах")
    return RingExtrema(max_points=max_points, min_points=min_points, rings=populated.astype(np.int64))
