# src/board_features/constants.py

from typing import Final

# Метры → миллиметры для точки доски в итоговом сэмпле
MM_PER_M: Final[float] = 1000.0

# RANSAC для плоскости доски (метры / итерации / размер выборки)
PLANE_DISTANCE_THRESHOLD: Final[float] = 0.004
PLANE_MAX_ITERATIONS: Final[int] = 1000
PLANE_RANSAC_N: Final[int] = 3

# RANSAC для рёбер доски по экстремумам колец
LINE_DISTANCE_THRESHOLD: Final[float] = 0.02
LINE_MAX_ITERATIONS: Final[int] = 1000
MIN_LINE_POINTS: Final[int] = 2

# Пересечение прямых: максимальный зазор между прямыми (sqrt(1e-4) м)
LINE_INTERSECTION_MAX_GAP: Final[float] = 1e-2
# Порог |d1 × d2|² для единичных направлений: ниже него прямые параллельны
PARALLEL_EPS: Final[float] = 1e-8
# Относительный порог «точка на диагонали» в тесте сторон
SIDE_TEST_EPS: Final[float] = 1e-9

# Уточнение углов шахматки (cornerSubPix)
SUBPIX_WINDOW: Final[tuple[int, int]] = (11, 11)
SUBPIX_ZERO_ZONE: Final[tuple[int, int]] = (-1, -1)
SUBPIX_MAX_ITER: Final[int] = 30
SUBPIX_EPS: Final[float] = 0.1

# Стрелка нормали: проверка знака по точке + половина нормали
NORMAL_PROBE_SCALE: Final[float] = 0.5

# Цвета (BGR) для диагностического кадра
GRID_POINT_COLOR: Final[tuple[int, int, int]] = (0, 0, 255)
BOARD_POINT_COLOR: Final[tuple[int, int, int]] = (0, 255, 255)
OVERLAY_POINT_RADIUS: Final[int] = 5
