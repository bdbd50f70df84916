import logging

import numpy as np
import pytest

from posing.skeleton import Skeleton, SkeletonError, euler_to_matrix


def test_humanoid_layout(humanoid):
    assert humanoid.n == 35
    assert humanoid.root == 'Hips'
    assert 'LeftHandPinky1' in humanoid
    assert len(humanoid.bones()) == 34


def test_local_position_relative_to_parent(humanoid):
    np.testing.assert_allclose(humanoid.joints['Spine'].local_position, [0, 0.5, 0])
    np.testing.assert_allclose(humanoid.joints['Spine1'].local_position, [0, 0.7, 0])
    np.testing.assert_allclose(humanoid.joints['LeftArm'].local_position, [-0.2, -0.3, 0])


def test_rest_world_positions(humanoid):
    np.testing.assert_allclose(humanoid.world_position('Neck'), [0, 2.8, 0], atol=1e-12)
    np.testing.assert_allclose(humanoid.world_position('RightToe_End'), [0.4, -3.8, 0.5], atol=1e-12)


def test_root_world_transform_is_local(humanoid):
    root = humanoid.joints['Hips']
    root.rotation[:] = [0.1, 0.2, 0.3]
    np.testing.assert_allclose(humanoid.world_transform('Hips'), root.local_matrix())


def test_global_transforms_match_world_transform(free_humanoid):
    free_humanoid.joints['Spine1'].rotation[:] = [0.3, -0.2, 0.5]
    free_humanoid.joints['LeftArm'].rotation[:] = [1.0, 0.0, -0.4]
    global_T = free_humanoid.global_transforms()
    for name in free_humanoid.names:
        np.testing.assert_allclose(global_T[name], free_humanoid.world_transform(name), atol=1e-12)


def test_hierarchy_depth(humanoid):
    assert humanoid.depth('Hips') == 0
    assert humanoid.depth('LeftToe_End') == 5
    assert max(humanoid.depth(n) for n in humanoid.names) == 8


def test_descendants_and_path(humanoid):
    assert humanoid.descendants('LeftHand') == [
        'LeftHandThumb1', 'LeftHandIndex1', 'LeftHandMiddle1', 'LeftHandRing1', 'LeftHandPinky1'
    ]
    assert humanoid.path_to_root('LeftForeArm') == [
        'LeftForeArm', 'LeftArm', 'LeftShoulder', 'Spine2', 'Spine1', 'Spine', 'Hips'
    ]
    assert humanoid.descendants('HeadTop_End') == []
    assert humanoid.descendants('Nope') == []


def test_duplicate_name_rejected():
    s = Skeleton()
    s.create_joint('Hips', (0, 0, 0))
    with pytest.raises(SkeletonError):
        s.create_joint('Hips', (0, 1, 0), parent='Hips')


def test_second_root_rejected():
    s = Skeleton()
    s.create_joint('Hips', (0, 0, 0))
    with pytest.raises(SkeletonError):
        s.create_joint('Other', (1, 0, 0))


def test_unknown_parent_rejected():
    s = Skeleton()
    s.create_joint('Hips', (0, 0, 0))
    with pytest.raises(ValueError):
        s.create_joint('Spine', (0, 1, 0), parent='Missing')


def test_unknown_name_is_soft(humanoid, caplog):
    with caplog.at_level(logging.WARNING):
        assert humanoid.world_transform('Tail') is None
        assert humanoid.world_position('Tail') is None
        assert humanoid.get('Tail') is None
        assert humanoid.path_to_root('Tail') == []
        assert humanoid.depth('Tail') is None
        assert humanoid.descendants('Tail') == []
    assert 'Tail' in caplog.text


def test_model_matrix_applies_to_world():
    M = np.diag([2.0, 2.0, 2.0, 1.0])
    M[:3, 3] = (3, 0, 0)
    s = Skeleton(model_matrix=M)
    s.create_joint('Root', (0, 1, 0))
    s.create_joint('Tip', (0, 2, 0), parent='Root')
    np.testing.assert_allclose(s.world_position('Root'), [3, 2, 0])
    np.testing.assert_allclose(s.world_position('Tip'), [3, 4, 0])
    np.testing.assert_allclose(s.positions(), [[3, 2, 0], [3, 4, 0]])


def test_stale_marks_descendants(humanoid):
    humanoid.consume_stale()
    humanoid.mark_stale('LeftForeArm')
    stale = humanoid.consume_stale()
    assert stale == {'LeftForeArm', 'LeftHand', 'LeftHandThumb1', 'LeftHandIndex1',
                     'LeftHandMiddle1', 'LeftHandRing1', 'LeftHandPinky1'}
    assert humanoid.consume_stale() == set()


def test_euler_order_is_intrinsic_xyz():
    angles = np.array([0.4, -0.7, 1.1])
    c, s = np.cos, np.sin
    Rx = np.array([[1, 0, 0], [0, c(angles[0]), -s(angles[0])], [0, s(angles[0]), c(angles[0])]])
    Ry = np.array([[c(angles[1]), 0, s(angles[1])], [0, 1, 0], [-s(angles[1]), 0, c(angles[1])]])
    Rz = np.array([[c(angles[2]), -s(angles[2]), 0], [s(angles[2]), c(angles[2]), 0], [0, 0, 1]])
    np.testing.assert_allclose(euler_to_matrix(angles), Rx @ Ry @ Rz, atol=1e-12)
