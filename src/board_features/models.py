"""
Структуры данных одного цикла захвата.

Все записи неизменяемы и живут ровно один цикл: сканы, позы, плоскости,
прямые, углы доски и итоговое соответствие камера ↔ LiDAR.
"""

from dataclasses import dataclass, field
from typing import Dict, Optional

import cv2
import numpy as np
import open3d as o3d
from numpy.typing import NDArray
from scipy.spatial.transform import Rotation


@dataclass(frozen=True)
class LidarScan:
    """
    Облако LiDAR, где каждая точка несёт номер кольца (scan line).

    points    (N,3) float64 — XYZ в системе сенсора, метры.
    rings     (N,)  int     — индекс кольца 0..ring_count-1.
    intensity (N,)  float   — интенсивность, если есть.
    """
    points: NDArray[np.float64]
    rings: NDArray[np.int64]
    intensity: Optional[NDArray[np.float64]] = None

    def __post_init__(self) -> None:
        points = np.asarray(self.points, dtype=np.float64).reshape(-1, 3)
        rings = np.asarray(self.rings, dtype=np.int64).reshape(-1)
        if len(rings) != len(points):
            raise ValueError(f"rings ({len(rings)}) и points ({len(points)}) разной длины")
        object.__setattr__(self, "points", points)
        object.__setattr__(self, "rings", rings)
        if self.intensity is not None:
            intensity = np.asarray(self.intensity, dtype=np.float64).reshape(-1)
            if len(intensity) != len(points):
                raise ValueError("intensity и points разной длины")
            object.__setattr__(self, "intensity", intensity)

    def __len__(self) -> int:
        return len(self.points)

    def select(self, mask: NDArray) -> "LidarScan":
        """Подмножество скана по булевой маске или массиву индексов."""
        intensity = None if self.intensity is None else self.intensity[mask]
        return LidarScan(self.points[mask], self.rings[mask], intensity)

    def with_points(self, points: NDArray[np.float64]) -> "LidarScan":
        """Тот же скан (кольца, интенсивность) с заменёнными координатами."""
        return LidarScan(points, self.rings, self.intensity)

    def to_o3d(self) -> o3d.geometry.PointCloud:
        return o3d.geometry.PointCloud(o3d.utility.Vector3dVector(self.points))

    @classmethod
    def empty(cls) -> "LidarScan":
        return cls(np.zeros((0, 3)), np.zeros(0, dtype=np.int64))


@dataclass(frozen=True)
class Pose3D:
    """Поза доски: камера ← доска (rotation 3×3, translation 3)."""
    rotation: NDArray[np.float64]
    translation: NDArray[np.float64]

    def __post_init__(self) -> None:
        object.__setattr__(self, "rotation", np.asarray(self.rotation, dtype=np.float64).reshape(3, 3))
        object.__setattr__(self, "translation", np.asarray(self.translation, dtype=np.float64).reshape(3))

    @classmethod
    def from_rvec_tvec(cls, rvec: NDArray, tvec: NDArray) -> "Pose3D":
        R_mat, _ = cv2.Rodrigues(np.asarray(rvec, dtype=np.float64).reshape(3, 1))
        return cls(R_mat, np.asarray(tvec, dtype=np.float64).reshape(3))

    @property
    def rvec(self) -> NDArray[np.float64]:
        return cv2.Rodrigues(self.rotation)[0].reshape(3)

    @property
    def quaternion(self) -> NDArray[np.float64]:
        """Кватернион (x, y, z, w)."""
        return Rotation.from_matrix(self.rotation).as_quat()

    def transform(self, points: NDArray[np.float64]) -> NDArray[np.float64]:
        pts = np.asarray(points, dtype=np.float64).reshape(-1, 3)
        return pts @ self.rotation.T + self.translation


@dataclass(frozen=True)
class PlaneModel:
    """Плоскость ax + by + cz + d = 0."""
    coefficients: NDArray[np.float64]

    def __post_init__(self) -> None:
        object.__setattr__(self, "coefficients", np.asarray(self.coefficients, dtype=np.float64).reshape(-1))

    @property
    def magnitude(self) -> float:
        return float(np.linalg.norm(self.coefficients[:3]))

    @property
    def normal(self) -> NDArray[np.float64]:
        return self.coefficients[:3] / self.magnitude

    @property
    def offset(self) -> float:
        return float(self.coefficients[3] / self.magnitude)

    def distance(self, points: NDArray[np.float64]) -> NDArray[np.float64]:
        """Знаковое расстояние точек до плоскости."""
        return np.asarray(points, dtype=np.float64).reshape(-1, 3) @ self.normal + self.offset

    def project(self, points: NDArray[np.float64]) -> NDArray[np.float64]:
        """Ортогональная проекция точек на плоскость."""
        pts = np.asarray(points, dtype=np.float64).reshape(-1, 3)
        return pts - np.outer(self.distance(pts), self.normal)


@dataclass(frozen=True)
class LineModel:
    """Прямая в 3D: точка + единичное направление и поддерживающие её точки."""
    point: NDArray[np.float64]
    direction: NDArray[np.float64]
    inlier_points: NDArray[np.float64] = field(default_factory=lambda: np.zeros((0, 3)))

    def __post_init__(self) -> None:
        direction = np.asarray(self.direction, dtype=np.float64).reshape(3)
        norm = np.linalg.norm(direction)
        if norm == 0:
            raise ValueError("Нулевое направление прямой")
        object.__setattr__(self, "point", np.asarray(self.point, dtype=np.float64).reshape(3))
        object.__setattr__(self, "direction", direction / norm)
        object.__setattr__(self, "inlier_points",
                           np.asarray(self.inlier_points, dtype=np.float64).reshape(-1, 3))

    def distance(self, points: NDArray[np.float64]) -> NDArray[np.float64]:
        """Расстояние точек до прямой."""
        diff = np.asarray(points, dtype=np.float64).reshape(-1, 3) - self.point
        return np.linalg.norm(np.cross(diff, self.direction), axis=1)


@dataclass(frozen=True)
class RingExtrema:
    """По одной точке max/min по боковой координате на каждое заполненное кольцо."""
    max_points: NDArray[np.float64]
    min_points: NDArray[np.float64]
    rings: NDArray[np.int64]


@dataclass(frozen=True)
class EdgeLines:
    """
    Две пары рёбер: left_* из множества максимумов, right_* из множества минимумов.
    Названия отражают происхождение, а не реальное положение слева/справа.
    """
    left_upper: LineModel
    left_lower: LineModel
    right_upper: LineModel
    right_lower: LineModel


@dataclass(frozen=True)
class CornerSet:
    """Ровно 4 угла доски и центр (середина corner₀–corner₁)."""
    corners: NDArray[np.float64]
    centroid: NDArray[np.float64]


@dataclass(frozen=True)
class ImageTarget:
    """Результат поиска доски на изображении (система камеры)."""
    pose: Pose3D
    image_corners: NDArray[np.float32]
    board_points: NDArray[np.float64]
    normal: NDArray[np.float64]
    grid_projection: NDArray[np.float64]
    board_projection: NDArray[np.float64]

    @property
    def centre(self) -> NDArray[np.float64]:
        return self.board_points[4]


@dataclass(frozen=True)
class CloudTarget:
    """Результат поиска плоскости доски в облаке."""
    plane: PlaneModel
    band: LidarScan
    projected: LidarScan
    centroid: NDArray[np.float64]


@dataclass(frozen=True)
class Correspondence:
    """
    Соответствие камера ↔ LiDAR для одного сэмпла.

    camera_point  — центр доски в камере (единицы геометрии доски, мм).
    camera_normal — нормаль доски в камере.
    lidar_point   — центр доски в LiDAR, мм.
    lidar_normal  — нормаль доски в LiDAR, направлена к сенсору.
    lidar_corner  — один восстановленный угол доски в LiDAR, метры.
    """
    camera_point: NDArray[np.float64]
    camera_normal: NDArray[np.float64]
    lidar_point: NDArray[np.float64]
    lidar_normal: NDArray[np.float64]
    lidar_corner: NDArray[np.float64]

    def to_dict(self) -> Dict[str, list]:
        return {
            "camera_point": self.camera_point.tolist(),
            "camera_normal": self.camera_normal.tolist(),
            "lidar_point": self.lidar_point.tolist(),
            "lidar_normal": self.lidar_normal.tolist(),
            "lidar_corner": self.lidar_corner.tolist(),
        }
