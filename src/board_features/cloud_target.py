import logging
from typing import Optional

import numpy as np
import open3d as o3d
from numpy.typing import NDArray

from .constants import (
    NORMAL_PROBE_SCALE,
    PLANE_DISTANCE_THRESHOLD,
    PLANE_MAX_ITERATIONS,
    PLANE_RANSAC_N,
)
from .errors import PlaneFitFailed
from .models import CloudTarget, LidarScan, PlaneModel

logger = logging.getLogger(__name__)


def height_band(scan: LidarScan, thickness: float) -> LidarScan:
    """
    Оставляет точки с z ∈ [z_max − thickness, z_max].

    Предполагается, что доска — самый высокий объект в экспериментальной
    области, поэтому полоса высотой в диагональ доски вырезает именно её.

    Исключения:
      PlaneFitFailed: если облако пустое.
    """
    if len(scan) == 0:
        raise PlaneFitFailed("Экспериментальная область пуста: нечего сегментировать")
    z = scan.points[:, 2]
    z_max = float(z.max())
    return scan.select((z >= z_max - thickness) & (z <= z_max))


def fit_plane(
    points: NDArray[np.float64],
    distance_threshold: float = PLANE_DISTANCE_THRESHOLD,
    num_iterations: int = PLANE_MAX_ITERATIONS,
    seed: Optional[int] = None
) -> PlaneModel:
    """
    RANSAC‐плоскость через Open3D segment_plane.

    Исключения:
      PlaneFitFailed: если точек меньше трёх, Open3D не смог построить модель
        или вернул меньше трёх коэффициентов.
    """
    pts = np.asarray(points, dtype=np.float64).reshape(-1, 3)
    if len(pts) < PLANE_RANSAC_N:
        raise PlaneFitFailed(f"Для плоскости нужно минимум {PLANE_RANSAC_N} точки, получено {len(pts)}")

    if seed is not None:
        o3d.utility.random.seed(seed)
    pcd = o3d.geometry.PointCloud(o3d.utility.Vector3dVector(pts))
    try:
        plane_model, inliers = pcd.segment_plane(
            distance_threshold=distance_threshold,
            ransac_n=PLANE_RANSAC_N,
            num_iterations=num_iterations
        )
    except RuntimeError as e:
        raise PlaneFitFailed(f"Сегментация плоскости доски не удалась: {e}") from e

    coefficients = np.asarray(plane_model, dtype=np.float64).reshape(-1)
    if coefficients.size < 3 or len(inliers) == 0:
        raise PlaneFitFailed("Сегментация плоскости доски не удалась")
    if not np.all(np.isfinite(coefficients)) or np.linalg.norm(coefficients[:3]) == 0:
        raise PlaneFitFailed(f"Вырожденные коэффициенты плоскости: {coefficients}")
    logger.debug(f"Плоскость доски: {coefficients}, inliers={len(inliers)}/{len(pts)}")
    return PlaneModel(coefficients)


def locate_cloud_target(
    scan: LidarScan,
    diagonal: float,
    distance_threshold: float = PLANE_DISTANCE_THRESHOLD,
    num_iterations: int = PLANE_MAX_ITERATIONS,
    seed: Optional[int] = None
) -> CloudTarget:
    """
    Выделяет доску в облаке и строит её плоскость.

    Алгоритм:
      1. Полоса по высоте толщиной в диагональ доски от максимального z.
      2. RANSAC‐плоскость по полосе.
      3. Все точки полосы проецируются на плоскость (кольца сохраняются).
      4. Центроид проекции.
    """
    band = height_band(scan, diagonal)
    plane = fit_plane(band.points, distance_threshold, num_iterations, seed)
    projected = band.with_points(plane.project(band.points))
    logger.info(f"Плоскость доски найдена: {len(band)} точек в полосе")
    return CloudTarget(
        plane=plane,
        band=band,
        projected=projected,
        centroid=projected.points.mean(axis=0),
    )


def lidar_normal(plane: PlaneModel) -> NDArray[np.float64]:
    """Нормаль доски: нормированный вектор коэффициентов с обратным знаком."""
    return -plane.coefficients[:3] / plane.magnitude


def orient_normal(normal: NDArray[np.float64], point: NDArray[np.float64]) -> NDArray[np.float64]:
    """
    Разворачивает нормаль к сенсору.

    Строим point + normal/2 и сравниваем его расстояние до начала координат
    в плоскости XY с расстоянием самой точки: если оно больше, нормаль
    смотрит от сенсора и её знак меняется.

    Параметры:
      normal (NDArray, (3,)): единичная нормаль.
      point (NDArray, (3,)): точка на доске, метры.
    """
    normal = np.asarray(normal, dtype=np.float64).reshape(3)
    point = np.asarray(point, dtype=np.float64).reshape(3)
    top_down_radius = np.hypot(point[0], point[1])
    probe = point + normal * NORMAL_PROBE_SCALE
    if np.hypot(probe[0], probe[1]) > top_down_radius:
        return -normal
    return normal
