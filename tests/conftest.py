"""
Synthetic scenes: a diamond-mounted 600x450 mm board carrying a 9x6 / 25 mm
checkerboard, seen by a pinhole camera and by a 32-ring LiDAR sharing its
origin (LiDAR x forward, y left, z up; camera x right, y down, z forward).
"""

from dataclasses import dataclass

import cv2
import numpy as np
import pytest
from scipy.spatial.transform import Rotation

from board_features.calib_io import CameraParams, ExtractorParams, LidarParams, TargetParams
from board_features.image_target import board_object_points
from board_features.models import LidarScan
from board_features.spatial_filter import Bounds

IMAGE_SIZE = (1280, 1024)
K = np.array([[1000.0, 0.0, 640.0], [0.0, 1000.0, 512.0], [0.0, 0.0, 1.0]])

# X_cam = CAM_FROM_LIDAR @ X_lidar
CAM_FROM_LIDAR = np.array([[0.0, -1.0, 0.0], [0.0, 0.0, -1.0], [1.0, 0.0, 0.0]])

RING_COUNT = 32
RING_ELEVATIONS = np.linspace(-20.0, 20.0, RING_COUNT)
AZIMUTHS = np.linspace(-40.0, 40.0, 1601)

# Diamond board 2 m ahead: left, top, right, bottom corners (LiDAR frame, metres)
LEFT = np.array([2.0, 0.4, 0.0])
TOP = np.array([2.0, 0.0, 0.4])
RIGHT = np.array([2.0, -0.4, 0.0])
BOTTOM = np.array([2.0, 0.0, -0.4])


@dataclass(frozen=True)
class Scene:
    params: ExtractorParams
    rotation: np.ndarray     # camera <- board
    translation: np.ndarray  # mm
    image: np.ndarray
    scan: LidarScan

    @property
    def lidar_corners(self) -> np.ndarray:
        """True physical board corners in the LiDAR frame, metres."""
        board = board_object_points(self.params.target.board_size, self.params.target.translation_error)[:4]
        cam = board @ self.rotation.T + self.translation
        return (cam / 1000.0) @ CAM_FROM_LIDAR

    @property
    def lidar_centre(self) -> np.ndarray:
        return self.lidar_corners.mean(axis=0)


def make_target() -> TargetParams:
    return TargetParams(pattern_size=(9, 6), square_length=25.0, board_size=(600.0, 450.0))


def make_params(seed: int = 0) -> ExtractorParams:
    return ExtractorParams(
        target=make_target(),
        camera=CameraParams(K=K, D=np.zeros(5)),
        lidar=LidarParams(ring_count=RING_COUNT, min_elevation=-20.0, max_elevation=20.0),
        bounds=Bounds(0.5, 3.0, -1.5, 1.5, -0.6, 1.0),
        seed=seed,
    )


def board_pose(yaw_deg: float = 20.0, roll_deg: float = 45.0, distance_mm: float = 1300.0):
    """Board tilted about the camera's vertical axis and spun about its normal (diamond)."""
    rotation = Rotation.from_euler("YZ", [yaw_deg, roll_deg], degrees=True).as_matrix()
    return rotation, np.array([0.0, 0.0, distance_mm])


def render_board_image(target: TargetParams, rotation: np.ndarray, translation: np.ndarray,
                       pixels_per_mm: float = 2.0) -> np.ndarray:
    """Perspective rendering of the board texture through K, grey background."""
    width, height = target.board_size
    cols, rows = target.pattern_size
    sq = target.square_length
    s = pixels_per_mm

    texture = np.full((int(height * s), int(width * s)), 255, dtype=np.uint8)
    for i in range(cols + 1):
        for j in range(rows + 1):
            if (i + j) % 2:
                continue
            x0 = (i - 1 - (cols - 1) / 2.0) * sq
            y0 = (j - 1 - (rows - 1) / 2.0) * sq
            px0 = int(round((x0 + width / 2.0) * s))
            py0 = int(round((y0 + height / 2.0) * s))
            px1 = int(round((x0 + sq + width / 2.0) * s))
            py1 = int(round((y0 + sq + height / 2.0) * s))
            texture[py0:py1, px0:px1] = 0

    # board mm <- texture px (pixel centres)
    A = np.array([
        [1.0 / s, 0.0, 0.5 / s - width / 2.0],
        [0.0, 1.0 / s, 0.5 / s - height / 2.0],
        [0.0, 0.0, 1.0],
    ])
    H_board = K @ np.column_stack([rotation[:, 0], rotation[:, 1], translation])
    H = H_board @ A
    gray = cv2.warpPerspective(texture, H, IMAGE_SIZE, flags=cv2.INTER_LINEAR,
                               borderMode=cv2.BORDER_CONSTANT, borderValue=128)
    return cv2.cvtColor(gray, cv2.COLOR_GRAY2BGR)


def cast_board_scan(target: TargetParams, rotation: np.ndarray, translation: np.ndarray,
                    with_ground: bool = True) -> LidarScan:
    """Ray-cast every ring / azimuth against the board rectangle (LiDAR frame, metres)."""
    width, height = (v / 1000.0 for v in target.board_size)
    centre = CAM_FROM_LIDAR.T @ (translation / 1000.0)
    u_axis = CAM_FROM_LIDAR.T @ rotation[:, 0]
    v_axis = CAM_FROM_LIDAR.T @ rotation[:, 1]
    normal = CAM_FROM_LIDAR.T @ rotation[:, 2]

    elev, azim = np.meshgrid(np.radians(RING_ELEVATIONS), np.radians(AZIMUTHS), indexing="ij")
    rings = np.broadcast_to(np.arange(RING_COUNT)[:, None], elev.shape).ravel()
    dirs = np.stack([
        np.cos(elev) * np.cos(azim),
        np.cos(elev) * np.sin(azim),
        np.sin(elev),
    ], axis=-1).reshape(-1, 3)

    t = (normal @ centre) / (dirs @ normal)
    hits = dirs * t[:, None]
    local = hits - centre
    inside = (t > 0) & (np.abs(local @ u_axis) <= width / 2.0) & (np.abs(local @ v_axis) <= height / 2.0)
    points, ring_ids = hits[inside], rings[inside]

    if with_ground:
        gx, gy = np.meshgrid(np.linspace(0.5, 3.0, 26), np.linspace(-1.5, 1.5, 31))
        ground = np.column_stack([gx.ravel(), gy.ravel(), np.full(gx.size, -1.0)])
        points = np.vstack([points, ground])
        ring_ids = np.concatenate([ring_ids, np.zeros(len(ground), dtype=np.int64)])

    return LidarScan(points, ring_ids, np.ones(len(points)))


def make_scene(yaw_deg: float = 20.0, roll_deg: float = 45.0, seed: int = 0) -> Scene:
    params = make_params(seed)
    rotation, translation = board_pose(yaw_deg, roll_deg)
    image = render_board_image(params.target, rotation, translation)
    scan = cast_board_scan(params.target, rotation, translation)
    return Scene(params, rotation, translation, image, scan)


@pytest.fixture(scope="session")
def scene() -> Scene:
    return make_scene()


@pytest.fixture
def target() -> TargetParams:
    return make_target()


@pytest.fixture
def pinhole_camera() -> CameraParams:
    return CameraParams(K=K, D=np.array([0.05, -0.02, 0.001, 0.0005, 0.0]))


@pytest.fixture
def fisheye_camera() -> CameraParams:
    return CameraParams(K=K, D=np.array([0.02, -0.01, 0.002, -0.0005]), fisheye=True)
