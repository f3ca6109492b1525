import json
import logging
import math
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

import numpy as np
from numpy.typing import NDArray

from .spatial_filter import Bounds

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TargetParams:
    """
    Геометрия калибровочной доски (миллиметры).

    pattern_size      — (cols, rows) внутренних углов шахматки.
    square_length     — сторона клетки.
    board_size        — (width, height) физической доски.
    translation_error — смещение центра напечатанной шахматки относительно
                        центра доски (x, y).
    """
    pattern_size: Tuple[int, int]
    square_length: float
    board_size: Tuple[float, float]
    translation_error: Tuple[float, float] = (0.0, 0.0)

    def __post_init__(self) -> None:
        cols, rows = self.pattern_size
        if int(cols) < 2 or int(rows) < 2:
            raise ValueError(f"pattern_size должен быть не меньше (2, 2), получено {self.pattern_size}")
        if not self.square_length > 0:
            raise ValueError(f"square_length должен быть положительным, получено {self.square_length}")
        width, height = self.board_size
        if not (width > 0 and height > 0):
            raise ValueError(f"board_size должен быть положительным, получено {self.board_size}")
        if len(self.translation_error) != 2 or not all(math.isfinite(v) for v in self.translation_error):
            raise ValueError(f"translation_error должен быть парой чисел, получено {self.translation_error}")
        object.__setattr__(self, "pattern_size", (int(cols), int(rows)))

    @property
    def diagonal(self) -> float:
        """Диагональ доски в метрах — толщина полосы по высоте в облаке."""
        width, height = self.board_size
        return math.hypot(width, height) / 1000.0


@dataclass(frozen=True)
class CameraParams:
    """Intrinsics камеры и модель объектива (pinhole или fisheye)."""
    K: NDArray[np.float64]
    D: NDArray[np.float64]
    fisheye: bool = False

    def __post_init__(self) -> None:
        K = np.asarray(self.K, dtype=np.float64)
        if K.size != 9:
            raise ValueError(f"K должна содержать 9 элементов, получено {K.size}")
        K = K.reshape(3, 3)
        if not (K[0, 0] > 0 and K[1, 1] > 0):
            raise ValueError("Фокусные расстояния в K должны быть положительными")
        D = np.asarray(self.D, dtype=np.float64).reshape(-1)
        if self.fisheye and D.size != 4:
            raise ValueError(f"Для fisheye-модели нужно 4 коэффициента дисторсии, получено {D.size}")
        if not self.fisheye and D.size not in (0, 4, 5, 8, 12, 14):
            raise ValueError(f"Неподдерживаемое число коэффициентов дисторсии: {D.size}")
        object.__setattr__(self, "K", K)
        object.__setattr__(self, "D", D)


@dataclass(frozen=True)
class LidarParams:
    """Число колец LiDAR и вертикальное поле зрения (градусы) для оценки колец."""
    ring_count: int
    min_elevation: float = -15.0
    max_elevation: float = 15.0

    def __post_init__(self) -> None:
        if int(self.ring_count) < 1:
            raise ValueError(f"ring_count должен быть >= 1, получено {self.ring_count}")
        if not self.min_elevation < self.max_elevation:
            raise ValueError("min_elevation должен быть меньше max_elevation")
        object.__setattr__(self, "ring_count", int(self.ring_count))


@dataclass(frozen=True)
class ExtractorParams:
    target: TargetParams
    camera: CameraParams
    lidar: LidarParams
    bounds: Bounds
    seed: Optional[int] = None


@lru_cache(maxsize=None)
def read_cam_to_cam(path: str) -> Dict[str, np.ndarray]:
    """
    Считывает calib_cam_to_cam.txt (KITTI) в словарь:
      ключи — части до ":", значения — np.array из чисел.
    Строки без числовых значений (calib_time) пропускаются.
    """
    data: Dict[str, np.ndarray] = {}
    with open(path, 'r') as f:
        for line in f:
            line = line.strip()
            if not line or ':' not in line:
                continue
            key, vals = line.split(':', 1)
            try:
                data[key.strip()] = np.array([float(v) for v in vals.split()], dtype=np.float64)
            except ValueError:
                continue
    return data


def read_kitti_cam_calib(path: str, cam_idx: int) -> Tuple[NDArray[np.float64], NDArray[np.float64]]:
    """
    Берёт из calib_cam_to_cam.txt intrinsics камеры #cam_idx:
      K — (3×3), D — (5,).
    """
    d = read_cam_to_cam(str(path))
    idx = f"{cam_idx:02d}"
    try:
        K = d[f"K_{idx}"].reshape(3, 3)
        D = d[f"D_{idx}"]
    except KeyError as e:
        raise KeyError(f"Ключ {e.args[0]} не найден в {path}") from None
    return K, D


def create_ideal_camera_params(image_size: Tuple[int, int]) -> Tuple[NDArray[np.float64], NDArray[np.float64]]:
    """
    Creates ideal camera parameters (K and D) based on image size.

    Parameters:
        image_size (Tuple[int, int]): (width, height) of the image

    Returns:
        K (NDArray[float64], shape (3,3)): Ideal camera matrix
        D (NDArray[float64], shape (5,)): Zero distortion coefficients
    """
    width, height = image_size
    fx = width * 0.8
    K = np.array([
        [fx, 0, width / 2.0],
        [0, fx, height / 2.0],
        [0, 0, 1]
    ], dtype=np.float64)
    return K, np.zeros(5, dtype=np.float64)


def _pair(data: Mapping[str, Any], key: str, names: Tuple[str, str]) -> Tuple[float, float]:
    value = data[key]
    if isinstance(value, Mapping):
        return float(value[names[0]]), float(value[names[1]])
    first, second = value
    return float(first), float(second)


def parse_target(data: Mapping[str, Any]) -> TargetParams:
    cols, rows = _pair(data, "pattern_size", ("width", "height"))
    translation = (0.0, 0.0)
    if "translation_error" in data:
        translation = _pair(data, "translation_error", ("x", "y"))
    return TargetParams(
        pattern_size=(int(cols), int(rows)),
        square_length=float(data["square_length"]),
        board_size=_pair(data, "board_dimensions", ("width", "height")),
        translation_error=translation,
    )


def parse_camera(data: Mapping[str, Any], base_dir: Path) -> CameraParams:
    """
    Intrinsics берутся из одного из источников (по приоритету):
      1. K и D прямо в JSON;
      2. kitti_calib (путь к calib_cam_to_cam.txt) + cam_idx;
      3. image_size — идеальная камера без дисторсии.
    """
    fisheye = bool(data.get("fisheye_model", False))
    if "K" in data:
        K = np.asarray(data["K"], dtype=np.float64)
        D = np.asarray(data.get("D", []), dtype=np.float64)
    elif "kitti_calib" in data:
        calib_path = Path(data["kitti_calib"])
        if not calib_path.is_absolute():
            calib_path = base_dir / calib_path
        if not calib_path.is_file():
            raise FileNotFoundError(f"Файл калибровки камеры не найден: {calib_path}")
        K, D = read_kitti_cam_calib(str(calib_path), int(data.get("cam_idx", 0)))
    elif "image_size" in data:
        K, D = create_ideal_camera_params(tuple(data["image_size"]))
        if fisheye:
            D = np.zeros(4, dtype=np.float64)
    else:
        raise ValueError("В секции camera нужен K, kitti_calib или image_size")
    return CameraParams(K=K, D=D, fisheye=fisheye)


def load_params(path: str) -> ExtractorParams:
    """
    Загружает параметры извлечения из JSON.

    Формат:
      {
        "chessboard": {"pattern_size": {"width": 9, "height": 6},
                       "square_length": 25,
                       "board_dimensions": {"width": 600, "height": 450},
                       "translation_error": {"x": 0, "y": 0}},
        "camera": {"fisheye_model": false, "K": [...], "D": [...]},
        "lidar": {"ring_count": 32},
        "bounds": {"x_min": ..., "x_max": ..., ...},
        "seed": 0
      }

    Исключения:
      FileNotFoundError: если файла нет.
      ValueError: если формат или значения параметров неверны.
    """
    params_path = Path(path)
    if not params_path.is_file():
        raise FileNotFoundError(f"Файл параметров не найден: {path}")
    with open(params_path, 'r') as f:
        data = json.load(f)

    try:
        target = parse_target(data["chessboard"])
        camera = parse_camera(data["camera"], params_path.parent)
        lidar = LidarParams(**data["lidar"])
        bounds = Bounds.from_mapping(data["bounds"])
    except KeyError as e:
        raise ValueError(f"В {path} отсутствует обязательный ключ {e.args[0]}") from None
    except TypeError as e:
        raise ValueError(f"Некорректный формат {path}: {e}") from None

    seed = data.get("seed")
    params = ExtractorParams(target, camera, lidar, bounds, None if seed is None else int(seed))
    logger.info(
        f"Параметры загружены: шахматка {target.pattern_size}, клетка {target.square_length} мм, "
        f"доска {target.board_size} мм, fisheye={camera.fisheye}, колец {lidar.ring_count}"
    )
    return params
