import logging

import numpy as np

from .cloud_target import lidar_normal, orient_normal
from .constants import MM_PER_M
from .errors import IncompleteCornerSet
from .models import CloudTarget, CornerSet, Correspondence, ImageTarget

logger = logging.getLogger(__name__)

# Угол, который уходит в сэмпл (первое пересечение второй пары)
SAMPLE_CORNER_INDEX = 2


def assemble_sample(image_target: ImageTarget, cloud_target: CloudTarget, corners: CornerSet) -> Correspondence:
    """
    Собирает соответствие камера ↔ LiDAR.

    Камера: центр доски и нормаль из позы.
    LiDAR: центр доски (середина corner₀–corner₁) в мм, нормаль плоскости,
    развёрнутая к сенсору, и угол corner₂ в метрах.
    """
    if corners.corners.shape != (4, 3):
        raise IncompleteCornerSet(f"Ожидалось 4 угла доски, получено {len(corners.corners)}")

    centroid = np.asarray(corners.centroid, dtype=np.float64)
    normal = orient_normal(lidar_normal(cloud_target.plane), centroid)
    sample = Correspondence(
        camera_point=np.asarray(image_target.centre, dtype=np.float64).copy(),
        camera_normal=np.asarray(image_target.normal, dtype=np.float64).copy(),
        lidar_point=centroid * MM_PER_M,
        lidar_normal=normal,
        lidar_corner=np.asarray(corners.corners[SAMPLE_CORNER_INDEX], dtype=np.float64).copy(),
    )
    logger.info(
        f"Сэмпл собран: camera_point={np.round(sample.camera_point, 1).tolist()}, "
        f"lidar_point={np.round(sample.lidar_point, 1).tolist()}"
    )
    return sample
