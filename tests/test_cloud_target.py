import numpy as np
import pytest

from board_features.cloud_target import fit_plane, height_band, lidar_normal, locate_cloud_target, orient_normal
from board_features.errors import PlaneFitFailed
from board_features.models import LidarScan, PlaneModel
from board_features.spatial_filter import filter_scan


def _tilted_plane_points(n=400, seed=1):
    rng = np.random.default_rng(seed)
    uv = rng.uniform(-0.3, 0.3, size=(n, 2))
    # x = 2 + 0.2 y - 0.1 z
    pts = np.column_stack([2.0 + 0.2 * uv[:, 0] - 0.1 * uv[:, 1], uv[:, 0], uv[:, 1]])
    return pts


def test_height_band_keeps_top_slice():
    scan = LidarScan(np.array([[1.0, 0.0, z] for z in (-1.0, -0.2, 0.0, 0.3, 0.5)]), np.arange(5))
    band = height_band(scan, 0.5)
    assert band.points[:, 2].tolist() == [0.0, 0.3, 0.5]
    assert band.rings.tolist() == [2, 3, 4]


def test_height_band_empty_scan():
    with pytest.raises(PlaneFitFailed):
        height_band(LidarScan.empty(), 0.75)


def test_fit_plane_recovers_tilted_plane():
    pts = _tilted_plane_points()
    plane = fit_plane(pts, seed=0)
    expected = np.array([1.0, -0.2, 0.1]) / np.linalg.norm([1.0, -0.2, 0.1])
    assert abs(plane.normal @ expected) > 0.9999
    assert np.max(np.abs(plane.distance(pts))) < 1e-6


def test_fit_plane_needs_three_points():
    with pytest.raises(PlaneFitFailed):
        fit_plane(np.array([[0.0, 0.0, 0.0], [1.0, 0.0, 0.0]]))


def test_plane_projection_lands_on_plane():
    plane = PlaneModel([0.0, 0.0, 2.0, -2.0])
    projected = plane.project(np.array([[1.0, 2.0, 3.0], [0.0, 0.0, -1.0]]))
    np.testing.assert_allclose(projected, [[1.0, 2.0, 1.0], [0.0, 0.0, 1.0]])


def test_lidar_normal_is_negated_unit_coefficients():
    np.testing.assert_allclose(lidar_normal(PlaneModel([0.0, 2.0, 0.0, 1.0])), [0.0, -1.0, 0.0])


def test_orient_normal_points_towards_sensor():
    point = np.array([2.0, 0.5, 0.1])
    away = np.array([1.0, 0.0, 0.0])
    np.testing.assert_allclose(orient_normal(away, point), -away)
    np.testing.assert_allclose(orient_normal(-away, point), -away)


def test_locate_cloud_target_on_scene(scene):
    region = filter_scan(scene.scan, scene.params.bounds)
    found = locate_cloud_target(region, scene.params.target.diagonal, seed=0)

    assert len(found.band) == len(found.projected)
    np.testing.assert_array_equal(found.band.rings, found.projected.rings)
    assert np.max(np.abs(found.plane.distance(found.projected.points))) < 1e-9
    # the ground sheet stays outside the region, so the band is the board
    assert np.all(found.band.points[:, 2] > -0.5)

    true_normal = np.cross(scene.lidar_corners[1] - scene.lidar_corners[0],
                           scene.lidar_corners[2] - scene.lidar_corners[0])
    true_normal /= np.linalg.norm(true_normal)
    assert abs(found.plane.normal @ true_normal) > 0.999
    np.testing.assert_allclose(found.centroid, scene.lidar_centre, atol=0.1)
