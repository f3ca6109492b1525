"""
Capture cycle: one synchronized image / point cloud pair in, at most one
correspondence out.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, List, Optional

import numpy as np
import open3d as o3d
from numpy.typing import NDArray

from board_features.calib_io import ExtractorParams
from board_features.cloud_target import locate_cloud_target
from board_features.corners import reconstruct_corners
from board_features.edge_lines import fit_edge_lines
from board_features.errors import ExtractionError, FailureReason
from board_features.image_target import draw_image_target, locate_image_target
from board_features.models import (
    CloudTarget,
    CornerSet,
    Correspondence,
    ImageTarget,
    LidarScan,
    RingExtrema,
)
from board_features.ring_extrema import extract_ring_extrema
from board_features.sample import assemble_sample
from board_features.spatial_filter import filter_scan
from board_features.viz_utils import make_board_markers

from .bounds import BoundsStore
from .trigger import CaptureTrigger, SampleOperation

logger = logging.getLogger(__name__)


class CycleStatus(str, Enum):
    IDLE = "idle"
    CAPTURED = "captured"
    FAILED = "failed"


@dataclass(frozen=True)
class CycleResult:
    status: CycleStatus
    region: LidarScan
    sample: Optional[Correspondence] = None
    failure: Optional[FailureReason] = None
    message: str = ""
    image_target: Optional[ImageTarget] = None
    cloud_target: Optional[CloudTarget] = None
    extrema: Optional[RingExtrema] = None
    corners: Optional[CornerSet] = None

    @property
    def ok(self) -> bool:
        return self.status is CycleStatus.CAPTURED


class FeatureExtractor:
    """
    Runs the feature extraction pipeline on synchronized image / cloud pairs.

    The experimental region is filtered and published on every call; the
    remaining stages run only when a capture was requested. Expected failures
    are logged and reported in the returned CycleResult, never raised.

    Publishers are optional callables:
      on_region(o3d.geometry.PointCloud)       -- every cycle
      on_board_cloud(o3d.geometry.PointCloud)  -- height band of a captured board
      on_image(np.ndarray)                     -- annotated camera frame
      on_markers(list of Open3D geometries)    -- corners, edges, normal
      on_sample(Correspondence)                -- assembled correspondence
    """

    def __init__(
        self,
        params: ExtractorParams,
        trigger: Optional[CaptureTrigger] = None,
        bounds: Optional[BoundsStore] = None,
        on_region: Optional[Callable[[o3d.geometry.PointCloud], Any]] = None,
        on_board_cloud: Optional[Callable[[o3d.geometry.PointCloud], Any]] = None,
        on_image: Optional[Callable[[np.ndarray], Any]] = None,
        on_markers: Optional[Callable[[List[o3d.geometry.Geometry3D]], Any]] = None,
        on_sample: Optional[Callable[[Correspondence], Any]] = None,
    ):
        self.params = params
        self.trigger = trigger if trigger is not None else CaptureTrigger()
        self.bounds = bounds if bounds is not None else BoundsStore(params.bounds)
        self.on_region = on_region
        self.on_board_cloud = on_board_cloud
        self.on_image = on_image
        self.on_markers = on_markers
        self.on_sample = on_sample

    def request_sample(self, operation: SampleOperation = SampleOperation.CAPTURE) -> bool:
        return self.trigger.request(operation)

    def _publish(self, publisher: Optional[Callable], payload: Any, name: str) -> None:
        if publisher is None:
            return
        try:
            publisher(payload)
        except Exception as e:
            logger.error(f"Publisher {name} failed: {e}")

    def process(self, image: NDArray[np.uint8], scan: LidarScan) -> CycleResult:
        """Process one synchronized pair."""
        region = filter_scan(scan, self.bounds.snapshot())
        self._publish(self.on_region, region.to_o3d(), "on_region")

        if not self.trigger.consume():
            return CycleResult(CycleStatus.IDLE, region)

        logger.info("Processing sample")
        stages = {}
        try:
            return self._extract(image, region, stages)
        except ExtractionError as e:
            logger.warning(f"Sample rejected ({e.reason.value}): {e}")
            return CycleResult(
                CycleStatus.FAILED,
                region,
                failure=e.reason,
                message=str(e),
                **stages,
            )

    def _extract(self, image: NDArray[np.uint8], region: LidarScan, stages: dict) -> CycleResult:
        target = self.params.target

        image_target = locate_image_target(image, target, self.params.camera)
        stages["image_target"] = image_target
        self._publish(self.on_image, draw_image_target(image, image_target), "on_image")

        cloud_target = locate_cloud_target(region, target.diagonal, seed=self.params.seed)
        stages["cloud_target"] = cloud_target
        self._publish(self.on_board_cloud, cloud_target.band.to_o3d(), "on_board_cloud")

        extrema = extract_ring_extrema(
            cloud_target.projected.points,
            cloud_target.projected.rings,
            self.params.lidar.ring_count,
        )
        stages["extrema"] = extrema

        edges = fit_edge_lines(extrema, seed=self.params.seed)
        corners = reconstruct_corners(edges)
        stages["corners"] = corners

        sample = assemble_sample(image_target, cloud_target, corners)
        self._publish(self.on_markers, make_board_markers(corners, sample.lidar_normal, extrema), "on_markers")
        self._publish(self.on_sample, sample, "on_sample")

        return CycleResult(CycleStatus.CAPTURED, region, sample=sample, **stages)
