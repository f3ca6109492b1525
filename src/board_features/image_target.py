import logging
from typing import Tuple

import cv2
import numpy as np
from numpy.typing import NDArray

from .calib_io import CameraParams, TargetParams
from .constants import (
    BOARD_POINT_COLOR,
    GRID_POINT_COLOR,
    OVERLAY_POINT_RADIUS,
    SUBPIX_EPS,
    SUBPIX_MAX_ITER,
    SUBPIX_WINDOW,
    SUBPIX_ZERO_ZONE,
)
from .errors import PatternNotFound
from .models import ImageTarget, Pose3D

logger = logging.getLogger(__name__)


def grid_object_points(pattern_size: Tuple[int, int], square_length: float) -> NDArray[np.float64]:
    """
    Генерирует 3D‐координаты внутренних углов шахматки в локальной системе доски.

    Углы идут построчно (строки снаружи, столбцы внутри), как их возвращает
    cv2.findChessboardCorners. Система центрирована: центроид углов — начало
    координат, z = 0.

    Параметры:
      pattern_size (Tuple[int, int]): (cols, rows) внутренних углов.
      square_length (float): сторона клетки.

    Возвращает:
      pts3d (NDArray[float64], shape (cols*rows, 3)).
    """
    cols, rows = pattern_size
    xs, ys = np.meshgrid(np.arange(cols), np.arange(rows))
    pts3d = np.zeros((cols * rows, 3), dtype=np.float64)
    pts3d[:, 0] = xs.ravel() * square_length
    pts3d[:, 1] = ys.ravel() * square_length
    centre = np.array([cols - 1, rows - 1, 0], dtype=np.float64) * 0.5 * square_length
    return pts3d - centre


def board_object_points(
    board_size: Tuple[float, float],
    translation_error: Tuple[float, float]
) -> NDArray[np.float64]:
    """
    Четыре физических угла доски и её центр в системе шахматки.

    Порядок углов: (−w/2,−h/2), (−w/2,+h/2), (+w/2,−h/2), (+w/2,+h/2), затем центр.
    Всё смещено на −translation_error: шахматка напечатана не точно по центру доски.
    """
    width, height = board_size
    offset = np.array([translation_error[0], translation_error[1], 0.0], dtype=np.float64)
    pts = [
        np.array([(-0.5 + x) * width, (-0.5 + y) * height, 0.0]) - offset
        for x in range(2)
        for y in range(2)
    ]
    pts.append(-offset)
    return np.vstack(pts)


def detect_chessboard(image: NDArray[np.uint8], pattern_size: Tuple[int, int]) -> NDArray[np.float32]:
    """
    Находит внутренние углы шахматной доски и уточняет их субпиксельно.

    Параметры:
      image (NDArray[uint8], shape (H,W,3) или (H,W)): BGR‐изображение.
      pattern_size (Tuple[int,int]): (cols, rows) внутренних углов.

    Возвращает:
      corners (NDArray[float32], shape (N,2)), упорядоченные построчно.

    Исключения:
      PatternNotFound: если шахматка не найдена.
      ValueError: если изображение некорректного формата.
    """
    if image is None or not isinstance(image, np.ndarray):
        raise ValueError("На входе должно быть корректное NumPy‐изображение.")
    if image.ndim == 3 and image.shape[2] in (3, 4):
        gray = cv2.cvtColor(image, cv2.COLOR_BGR2GRAY if image.shape[2] == 3 else cv2.COLOR_BGRA2GRAY)
    elif image.ndim == 2:
        gray = image
    else:
        raise ValueError("Изображение должно быть 2D или 3D с 3 или 4 каналами.")

    found, corners = cv2.findChessboardCorners(
        gray,
        pattern_size,
        flags=cv2.CALIB_CB_ADAPTIVE_THRESH | cv2.CALIB_CB_NORMALIZE_IMAGE
    )
    if not found:
        raise PatternNotFound(f"Шахматка размером {pattern_size} не найдена на изображении.")

    criteria = (cv2.TERM_CRITERIA_EPS | cv2.TERM_CRITERIA_COUNT, SUBPIX_MAX_ITER, SUBPIX_EPS)
    corners = cv2.cornerSubPix(gray, corners, SUBPIX_WINDOW, SUBPIX_ZERO_ZONE, criteria)
    return corners.reshape(-1, 2).astype(np.float32)


def solve_board_pose(
    object_points: NDArray[np.float64],
    image_points: NDArray,
    camera: CameraParams
) -> Pose3D:
    """
    Решает PnP: локальные 3D‐точки доски ↔ 2D‐точки изображения.

    Pinhole: solvePnP с K, D и уточнение solvePnPRefineLM.
    Fisheye: точки сначала выпрямляются cv2.fisheye.undistortPoints (P = K),
    затем solvePnP без дисторсии.
    """
    obj = np.asarray(object_points, dtype=np.float64).reshape(-1, 1, 3)
    img = np.asarray(image_points, dtype=np.float64).reshape(-1, 1, 2)

    if camera.fisheye:
        undistorted = cv2.fisheye.undistortPoints(img, camera.K, camera.D, R=np.eye(3), P=camera.K)
        no_dist = np.zeros(4, dtype=np.float64)
        ok, rvec, tvec = cv2.solvePnP(obj, undistorted.reshape(-1, 1, 2), camera.K, no_dist)
        if ok:
            rvec, tvec = cv2.solvePnPRefineLM(obj, undistorted.reshape(-1, 1, 2), camera.K, no_dist, rvec, tvec)
    else:
        ok, rvec, tvec = cv2.solvePnP(obj, img, camera.K, camera.D)
        if ok:
            rvec, tvec = cv2.solvePnPRefineLM(obj, img, camera.K, camera.D, rvec, tvec)
    if not ok:
        raise PatternNotFound("solvePnP не сошёлся для найденной шахматки")
    return Pose3D.from_rvec_tvec(rvec, tvec)


def project_points(
    object_points: NDArray[np.float64],
    pose: Pose3D,
    camera: CameraParams
) -> NDArray[np.float64]:
    """Проецирует точки доски на изображение выбранной моделью объектива → (N,2)."""
    obj = np.asarray(object_points, dtype=np.float64).reshape(-1, 1, 3)
    rvec = pose.rvec.reshape(3, 1)
    tvec = pose.translation.reshape(3, 1)
    if camera.fisheye:
        uv, _ = cv2.fisheye.projectPoints(obj, rvec, tvec, camera.K, camera.D)
    else:
        uv, _ = cv2.projectPoints(obj, rvec, tvec, camera.K, camera.D)
    return uv.reshape(-1, 2)


def board_normal(pose: Pose3D) -> NDArray[np.float64]:
    """Нормаль доски в системе камеры: ось +Z доски, повёрнутая позой."""
    normal = pose.rotation @ np.array([0.0, 0.0, 1.0])
    return normal / np.linalg.norm(normal)


def locate_image_target(
    image: NDArray[np.uint8],
    target: TargetParams,
    camera: CameraParams
) -> ImageTarget:
    """
    Находит доску на изображении и восстанавливает её позу в системе камеры.

    Алгоритм:
      1. Поиск шахматки и субпиксельное уточнение углов.
      2. Локальные 3D‐координаты внутренних углов, физических углов и центра доски.
      3. PnP (pinhole или fisheye) → поза камера ← доска.
      4. Углы и центр доски переводятся в систему камеры, сетка и доска
         перепроецируются для диагностики.
      5. Нормаль = поворот оси +Z доски.

    Исключения:
      PatternNotFound: если шахматка не найдена или PnP не решён.
    """
    corners = detect_chessboard(image, target.pattern_size)
    logger.info(f"Шахматка найдена: {len(corners)} углов")

    grid_3d = grid_object_points(target.pattern_size, target.square_length)
    board_3d = board_object_points(target.board_size, target.translation_error)

    pose = solve_board_pose(grid_3d, corners, camera)
    logger.debug(f"Поза доски: rvec={pose.rvec}, tvec={pose.translation}")

    return ImageTarget(
        pose=pose,
        image_corners=corners,
        board_points=pose.transform(board_3d),
        normal=board_normal(pose),
        grid_projection=project_points(grid_3d, pose, camera),
        board_projection=project_points(board_3d, pose, camera),
    )


def draw_image_target(image: NDArray[np.uint8], image_target: ImageTarget) -> NDArray[np.uint8]:
    """
    Возвращает копию кадра с перепроецированными углами сетки (красные)
    и углами/центром доски (жёлтые).
    """
    vis = image.copy()
    if vis.ndim == 2:
        vis = cv2.cvtColor(vis, cv2.COLOR_GRAY2BGR)
    for points, color in ((image_target.grid_projection, GRID_POINT_COLOR),
                          (image_target.board_projection, BOARD_POINT_COLOR)):
        for u, v in points:
            if not (np.isfinite(u) and np.isfinite(v)):
                continue
            cv2.circle(vis, (int(round(u)), int(round(v))), OVERLAY_POINT_RADIUS, color, -1)
    return vis
