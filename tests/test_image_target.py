import numpy as np
import pytest
from scipy.spatial.transform import Rotation

from board_features.calib_io import CameraParams
from board_features.errors import PatternNotFound
from board_features.image_target import (
    board_normal,
    board_object_points,
    detect_chessboard,
    draw_image_target,
    grid_object_points,
    locate_image_target,
    project_points,
    solve_board_pose,
)
from board_features.models import Pose3D
from conftest import K, board_pose


def test_grid_object_points_row_major_and_centred():
    pts = grid_object_points((3, 2), 10.0)
    assert pts.shape == (6, 3)
    np.testing.assert_allclose(pts.mean(axis=0), 0.0, atol=1e-12)
    np.testing.assert_allclose(pts[0], [-10.0, -5.0, 0.0])
    np.testing.assert_allclose(pts[1], [0.0, -5.0, 0.0])
    np.testing.assert_allclose(pts[3], [-10.0, 5.0, 0.0])
    assert np.all(pts[:, 2] == 0)


def test_board_object_points_order_and_offset():
    pts = board_object_points((600.0, 450.0), (10.0, -5.0))
    expected = np.array([
        [-300.0, -225.0, 0.0],
        [-300.0, 225.0, 0.0],
        [300.0, -225.0, 0.0],
        [300.0, 225.0, 0.0],
        [0.0, 0.0, 0.0],
    ]) - [10.0, -5.0, 0.0]
    np.testing.assert_allclose(pts, expected)


def test_detect_chessboard_missing_pattern():
    with pytest.raises(PatternNotFound):
        detect_chessboard(np.zeros((480, 640, 3), dtype=np.uint8), (9, 6))


def test_detect_chessboard_rejects_bad_input():
    with pytest.raises(ValueError):
        detect_chessboard(None, (9, 6))
    with pytest.raises(ValueError):
        detect_chessboard(np.zeros((10, 10, 2), dtype=np.uint8), (9, 6))


def test_pinhole_pose_roundtrip(pinhole_camera):
    rotation, translation = board_pose()
    truth = Pose3D(rotation, translation)
    grid = grid_object_points((9, 6), 25.0)
    image_points = project_points(grid, truth, pinhole_camera)

    pose = solve_board_pose(grid, image_points, pinhole_camera)
    assert Rotation.from_matrix(pose.rotation.T @ rotation).magnitude() <= 1e-6
    assert np.linalg.norm(pose.translation - translation) / np.linalg.norm(translation) <= 1e-6


def test_fisheye_pose_roundtrip(fisheye_camera):
    rotation, translation = board_pose(yaw_deg=-15.0, roll_deg=30.0)
    truth = Pose3D(rotation, translation)
    grid = grid_object_points((9, 6), 25.0)
    image_points = project_points(grid, truth, fisheye_camera)

    pose = solve_board_pose(grid, image_points, fisheye_camera)
    assert Rotation.from_matrix(pose.rotation.T @ rotation).magnitude() <= 1e-6
    assert np.linalg.norm(pose.translation - translation) / np.linalg.norm(translation) <= 1e-6


def test_board_normal_is_rotated_z_axis():
    rotation, translation = board_pose()
    normal = board_normal(Pose3D(rotation, translation))
    np.testing.assert_allclose(normal, rotation[:, 2])
    assert normal[2] > 0


def test_locate_image_target_on_rendered_board(scene):
    found = locate_image_target(scene.image, scene.params.target, scene.params.camera)

    assert found.image_corners.shape == (54, 2)
    assert found.board_points.shape == (5, 3)
    np.testing.assert_allclose(found.centre, scene.translation, atol=10.0)
    assert abs(found.normal @ scene.rotation[:, 2]) > 0.999
    # physical corners keep their distance from the centre
    radii = np.linalg.norm(found.board_points[:4] - found.centre, axis=1)
    np.testing.assert_allclose(radii, np.hypot(300.0, 225.0), rtol=1e-5)
    assert found.grid_projection.shape == (54, 2)
    assert found.board_projection.shape == (5, 2)
    assert np.max(np.linalg.norm(found.grid_projection - found.image_corners, axis=1)) < 1.0


def test_draw_image_target_returns_annotated_copy(scene):
    found = locate_image_target(scene.image, scene.params.target, scene.params.camera)
    original = scene.image.copy()
    drawn = draw_image_target(scene.image, found)

    np.testing.assert_array_equal(scene.image, original)
    assert drawn.shape == scene.image.shape
    u, v = np.round(found.board_projection[4]).astype(int)
    assert drawn[v, u].tolist() == [0, 255, 255]


def test_project_points_matches_pinhole_model():
    camera_pose = Pose3D(np.eye(3), np.array([0.0, 0.0, 1000.0]))
    uv = project_points(np.array([[100.0, -50.0, 0.0]]), camera_pose, CameraParams(K=K, D=np.zeros(5)))
    np.testing.assert_allclose(uv, [[740.0, 462.0]])
