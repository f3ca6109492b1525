"""
Пакет board_features: извлечение геометрических признаков калибровочной
доски из пары «изображение + облако LiDAR».

Модули:
  - spatial_filter: экспериментальная область (бокс) и обрезка облака.
  - image_target: поиск шахматки, PnP (pinhole/fisheye), поза и нормаль доски.
  - cloud_target: полоса по высоте, RANSAC‐плоскость, проекция, знак нормали.
  - ring_extrema: экстремумы боковой координаты по кольцам LiDAR.
  - edge_lines: RANSAC‐прямые рёбер доски.
  - corners: пересечения рёбер и восстановление 4 углов.
  - sample: сборка соответствия камера ↔ LiDAR.
  - calib_io: параметры доски, камеры и LiDAR.
  - viz_utils: диагностические 3D‐маркеры.

Из этого пакета удобно импортировать основные функции:
    from board_features import (
        Bounds, filter_scan,
        locate_image_target, locate_cloud_target,
        extract_ring_extrema, fit_edge_lines,
        reconstruct_corners, assemble_sample,
        load_params
    )
"""

from .calib_io import CameraParams, ExtractorParams, LidarParams, TargetParams, load_params
from .cloud_target import fit_plane, height_band, lidar_normal, locate_cloud_target, orient_normal
from .corners import choose_diagonal_pairs, intersect_lines, reconstruct_corners
from .edge_lines import fit_edge_lines, fit_edge_pair, fit_line_ransac
from .errors import (
    DegenerateIntersection,
    ExtractionError,
    FailureReason,
    IncompleteCornerSet,
    InsufficientRingCoverage,
    PatternNotFound,
    PlaneFitFailed,
)
from .image_target import (
    board_normal,
    board_object_points,
    detect_chessboard,
    draw_image_target,
    grid_object_points,
    locate_image_target,
    project_points,
    solve_board_pose,
)
from .models import (
    CloudTarget,
    CornerSet,
    Correspondence,
    EdgeLines,
    ImageTarget,
    LidarScan,
    LineModel,
    PlaneModel,
    Pose3D,
    RingExtrema,
)
from .ring_extrema import bucket_by_ring, extract_ring_extrema
from .sample import assemble_sample
from .spatial_filter import Bounds, crop_mask, filter_scan

__all__ = [
    # calib_io
    "CameraParams",
    "ExtractorParams",
    "LidarParams",
    "TargetParams",
    "load_params",
    # cloud_target
    "fit_plane",
    "height_band",
    "lidar_normal",
    "locate_cloud_target",
    "orient_normal",
    # corners
    "choose_diagonal_pairs",
    "intersect_lines",
    "reconstruct_corners",
    # edge_lines
    "fit_edge_lines",
    "fit_edge_pair",
    "fit_line_ransac",
    # errors
    "DegenerateIntersection",
    "ExtractionError",
    "FailureReason",
    "IncompleteCornerSet",
    "InsufficientRingCoverage",
    "PatternNotFound",
    "PlaneFitFailed",
    # image_target
    "board_normal",
    "board_object_points",
    "detect_chessboard",
    "draw_image_target",
    "grid_object_points",
    "locate_image_target",
    "project_points",
    "solve_board_pose",
    # models
    "CloudTarget",
    "CornerSet",
    "Correspondence",
    "EdgeLines",
    "ImageTarget",
    "LidarScan",
    "LineModel",
    "PlaneModel",
    "Pose3D",
    "RingExtrema",
    # ring_extrema
    "bucket_by_ring",
    "extract_ring_extrema",
    # sample
    "assemble_sample",
    # spatial_filter
    "Bounds",
    "crop_mask",
    "filter_scan",
]
