import logging
from pathlib import Path

import cv2
import numpy as np
import open3d as o3d
from numpy.typing import NDArray

from board_features.calib_io import LidarParams
from board_features.models import LidarScan

logger = logging.getLogger(__name__)


def load_image(path: str) -> NDArray[np.uint8]:
    """
    Читает PNG/JPEG-картинку и возвращает NumPy-матрицу (H×W×3).
    """
    img = cv2.imread(str(path), cv2.IMREAD_COLOR)
    if img is None:
        raise FileNotFoundError(f"Не удалось загрузить изображение: {path}")
    return img


def estimate_rings(points: NDArray[np.float64], lidar: LidarParams) -> NDArray[np.int64]:
    """
    Номер кольца по углу возвышения точки: вертикальное поле зрения
    [min_elevation, max_elevation] делится на ring_count равных секторов,
    кольцо 0 — нижнее.
    """
    pts = np.asarray(points, dtype=np.float64).reshape(-1, 3)
    elevation = np.degrees(np.arctan2(pts[:, 2], np.hypot(pts[:, 0], pts[:, 1])))
    span = lidar.max_elevation - lidar.min_elevation
    rings = np.floor((elevation - lidar.min_elevation) / span * lidar.ring_count).astype(np.int64)
    return np.clip(rings, 0, lidar.ring_count - 1)


def load_scan(path: str, lidar: LidarParams) -> LidarScan:
    """
    Загружает скан LiDAR с номерами колец.

    Поддерживаемые форматы:
      - .npy, .txt: столбцы X Y Z [I [R]]; без столбца R кольца оцениваются
        по углу возвышения.
      - .bin : Velodyne/KITTI float32 X Y Z I, кольца оцениваются.
      - .pcd, .ply: через Open3D (только XYZ), кольца оцениваются.

    Исключения:
      FileNotFoundError: если файла нет.
      ValueError: если формат файла не поддерживается или данные некорректны.
    """
    p = Path(path)
    if not p.is_file():
        raise FileNotFoundError(f"Файл облака точек не найден: {path}")
    ext = p.suffix.lower()

    if ext in ('.npy', '.txt'):
        data = np.load(str(p)) if ext == '.npy' else np.loadtxt(str(p), dtype=np.float64)
        data = np.asarray(data, dtype=np.float64)
        if data.ndim == 1:
            data = data.reshape(1, -1)
        if data.shape[1] < 3:
            raise ValueError(f"Файл {path} должен содержать минимум три столбца (X Y Z).")
        points = data[:, :3]
        intensity = data[:, 3] if data.shape[1] > 3 else None
        if data.shape[1] > 4:
            rings = data[:, 4].astype(np.int64)
        else:
            rings = estimate_rings(points, lidar)
    elif ext == '.bin':
        data = np.fromfile(str(p), dtype=np.float32)
        if data.size % 4 != 0:
            raise ValueError(f"Неправильный формат Velodyne‐файла: {path}")
        data = data.reshape(-1, 4).astype(np.float64)
        points, intensity = data[:, :3], data[:, 3]
        rings = estimate_rings(points, lidar)
    elif ext in ('.pcd', '.ply'):
        pcd = o3d.io.read_point_cloud(str(p))
        points = np.asarray(pcd.points, dtype=np.float64)
        intensity = None
        rings = estimate_rings(points, lidar)
    else:
        raise ValueError(f"Неподдерживаемый формат облака точек: {ext}")

    logger.debug(f"Загружено {len(points)} точек из {path}")
    return LidarScan(points, rings, intensity)
