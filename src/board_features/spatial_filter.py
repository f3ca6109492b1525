import math
from dataclasses import dataclass, astuple
from typing import Mapping, Tuple

import numpy as np
from numpy.typing import NDArray

from .models import LidarScan


@dataclass(frozen=True)
class Bounds:
    """
    Экспериментальная область: замкнутый бокс в системе LiDAR (метры).

    Исключения:
      ValueError: если границы не конечны или min > max по какой-либо оси.
    """
    x_min: float
    x_max: float
    y_min: float
    y_max: float
    z_min: float
    z_max: float

    def __post_init__(self) -> None:
        for name, value in zip(("x_min", "x_max", "y_min", "y_max", "z_min", "z_max"), astuple(self)):
            if not math.isfinite(value):
                raise ValueError(f"Граница {name} должна быть конечным числом, получено {value}")
        for axis in ("x", "y", "z"):
            lo = getattr(self, f"{axis}_min")
            hi = getattr(self, f"{axis}_max")
            if lo > hi:
                raise ValueError(f"{axis}_min ({lo}) больше {axis}_max ({hi})")

    def as_tuple(self) -> Tuple[float, float, float, float, float, float]:
        return astuple(self)

    @classmethod
    def from_mapping(cls, data: Mapping[str, float]) -> "Bounds":
        try:
            return cls(**{k: float(data[k]) for k in ("x_min", "x_max", "y_min", "y_max", "z_min", "z_max")})
        except KeyError as e:
            raise ValueError(f"В границах отсутствует ключ {e.args[0]}") from None


def crop_mask(points: NDArray[np.float64], bounds: Bounds) -> NDArray[np.bool_]:
    """Маска точек, лежащих внутри бокса по всем трём осям (границы включены)."""
    pts = np.asarray(points, dtype=np.float64).reshape(-1, 3)
    x, y, z = pts[:, 0], pts[:, 1], pts[:, 2]
    return (
        (x >= bounds.x_min) & (x <= bounds.x_max) &
        (y >= bounds.y_min) & (y <= bounds.y_max) &
        (z >= bounds.z_min) & (z <= bounds.z_max)
    )


def filter_scan(scan: LidarScan, bounds: Bounds) -> LidarScan:
    """Обрезает скан по экспериментальной области. Пустой результат допустим."""
    return scan.select(crop_mask(scan.points, bounds))
