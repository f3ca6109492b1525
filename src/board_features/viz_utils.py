from typing import List, Sequence, Tuple

import numpy as np
import open3d as o3d
from numpy.typing import NDArray

from .constants import NORMAL_PROBE_SCALE
from .models import CornerSet, RingExtrema

CORNER_RADIUS = 0.02
EXTREMA_RADIUS = 0.01

# Цвета (RGB 0..1) углов 0..3 и центра доски
CORNER_COLORS: Tuple[Tuple[float, float, float], ...] = (
    (0.0, 0.0, 1.0),
    (0.0, 1.0, 0.0),
    (1.0, 0.0, 0.0),
    (1.0, 1.0, 0.0),
    (1.0, 1.0, 1.0),
)
MIN_POINT_COLOR = (1.0, 0.0, 1.0)
MAX_POINT_COLOR = (0.0, 1.0, 1.0)
EDGE_COLOR = (0.0, 0.0, 1.0)

# Ломаная по углам: 1→3→0→2→1→0 (контур доски и диагональ)
EDGE_STRIP_ORDER = (1, 3, 0, 2, 1, 0)


def _sphere(center: NDArray[np.float64], radius: float, color: Sequence[float]) -> o3d.geometry.TriangleMesh:
    sph = o3d.geometry.TriangleMesh.create_sphere(radius=radius)
    sph.compute_vertex_normals()
    sph.translate(np.asarray(center, dtype=np.float64))
    sph.paint_uniform_color(color)
    return sph


def _line_set(points: NDArray[np.float64], lines: List[Tuple[int, int]], color: Sequence[float]) -> o3d.geometry.LineSet:
    ls = o3d.geometry.LineSet(
        points=o3d.utility.Vector3dVector(np.asarray(points, dtype=np.float64)),
        lines=o3d.utility.Vector2iVector(np.asarray(lines, dtype=np.int32)),
    )
    ls.colors = o3d.utility.Vector3dVector(np.tile(np.asarray(color, dtype=np.float64), (len(lines), 1)))
    return ls


def make_board_markers(
    corners: CornerSet,
    normal: NDArray[np.float64],
    extrema: RingExtrema
) -> List[o3d.geometry.Geometry3D]:
    """
    Диагностические 3D‐маркеры доски в системе LiDAR.

    Возвращает список геометрий Open3D:
      - сферы в 4 углах и центре доски (синий, зелёный, красный, жёлтый, белый);
      - сферы экстремумов колец (минимумы пурпурные, максимумы бирюзовые);
      - ломаная рёбер доски;
      - стрелка нормали длиной 0.5 м из центра.
    """
    geometries: List[o3d.geometry.Geometry3D] = []
    for point, color in zip(list(corners.corners) + [corners.centroid], CORNER_COLORS):
        geometries.append(_sphere(point, CORNER_RADIUS, color))
    for point in extrema.min_points:
        geometries.append(_sphere(point, EXTREMA_RADIUS, MIN_POINT_COLOR))
    for point in extrema.max_points:
        geometries.append(_sphere(point, EXTREMA_RADIUS, MAX_POINT_COLOR))

    strip = corners.corners[list(EDGE_STRIP_ORDER)]
    geometries.append(_line_set(strip, [(i, i + 1) for i in range(len(strip) - 1)], EDGE_COLOR))

    start = np.asarray(corners.centroid, dtype=np.float64)
    end = start + np.asarray(normal, dtype=np.float64) * NORMAL_PROBE_SCALE
    geometries.append(_line_set(np.vstack([start, end]), [(0, 1)], EDGE_COLOR))
    return geometries


def show_markers(
    cloud: o3d.geometry.PointCloud,
    markers: List[o3d.geometry.Geometry3D],
    window_name: str = "Board features"
) -> None:
    """Показывает облако доски (серое) вместе с маркерами в окне Open3D."""
    cloud.paint_uniform_color([0.7, 0.7, 0.7])
    o3d.visualization.draw_geometries([cloud] + markers, window_name=window_name, width=800, height=600)
