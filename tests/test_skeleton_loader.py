import logging

import numpy as np
import pytest

from posing.skeleton_loader import (Bone, _clean_name, bones_from_scene, build_proxy_skeleton,
                                    mesh_from_scene, placement_matrix, skeleton_tree_lines)


def test_bones_from_scene(rigged_scene):
    bones = bones_from_scene(rigged_scene())
    assert [b.name for b in bones] == ['Hips', 'Spine', 'Head']
    assert [b.parent for b in bones] == [None, 'Hips', 'Spine']
    np.testing.assert_allclose(bones[0].world_position, [0, 1, 0])
    np.testing.assert_allclose(bones[1].world_position, [0, 1.5, 0])
    # 中间的非骨骼节点被跳过，但其变换仍计入
    np.testing.assert_allclose(bones[2].world_position, [0, 2.5, 0])


def test_scene_without_bones(rigged_scene, caplog):
    with caplog.at_level(logging.WARNING):
        assert bones_from_scene(rigged_scene(with_bones=False)) == []
        assert build_proxy_skeleton([]) is None
    assert caplog.records


def test_clean_name():
    assert _clean_name('mixamorig:LeftArm') == 'LeftArm'
    assert _clean_name('Armature|Spine') == 'Spine'
    assert _clean_name('Hips') == 'Hips'
    assert _clean_name(None) == ''


def test_placement_matrix():
    M = placement_matrix([[-1, 0, -1], [1, 4, 1]], target_height=2.0, offset_x=3.0)
    bottom = M @ [0, 0, 0, 1]
    top = M @ [0, 4, 0, 1]
    np.testing.assert_allclose(bottom[:3], [3, -1, 0])
    np.testing.assert_allclose(top[:3], [3, 1, 0])


def test_flat_bounds_keep_scale():
    M = placement_matrix([[0, 0, 0], [2, 0, 2]])
    np.testing.assert_allclose(M[:3, :3], np.eye(3))


def test_proxy_positions_match_bones():
    M = placement_matrix([[-1, 0, -1], [1, 4, 1]], offset_x=3.0)
    asset = {'Hips': (0, 1, 0), 'Spine': (0, 1.5, 0), 'LeftArm': (-0.5, 2.5, 0)}
    bones = [
        Bone('Hips', None, (M @ np.append(asset['Hips'], 1))[:3]),
        Bone('Spine', 'Hips', (M @ np.append(asset['Spine'], 1))[:3]),
        Bone('LeftArm', 'Spine', (M @ np.append(asset['LeftArm'], 1))[:3]),
    ]
    skeleton = build_proxy_skeleton(bones, M, radius=0.05)

    for bone in bones:
        np.testing.assert_allclose(skeleton.world_position(bone.name), bone.world_position, atol=1e-12)
    np.testing.assert_allclose(skeleton.joints['LeftArm'].local_position, [-0.5, 1.0, 0], atol=1e-12)
    assert skeleton.joints['Hips'].proxy.radius == 0.05
    # 名字在约束表里的骨骼自动获得约束
    assert skeleton.joints['LeftArm'].constraint is not None


def test_extra_roots_attach_to_first_root():
    bones = [Bone('Hips', None, np.zeros(3)), Bone('Prop', None, np.array([1.0, 0, 0]))]
    skeleton = build_proxy_skeleton(bones)
    assert skeleton.root == 'Hips'
    assert skeleton.joints['Prop'].parent == 'Hips'
    np.testing.assert_allclose(skeleton.world_position('Prop'), [1, 0, 0])


def test_mesh_from_scene(rigged_scene):
    vertices, faces = mesh_from_scene(rigged_scene())
    assert len(faces) == 12
    assert vertices[:, 1].min() == pytest.approx(0.0)
    assert vertices[:, 1].max() == pytest.approx(4.0)


def test_tree_lines(humanoid):
    lines = skeleton_tree_lines(humanoid)
    assert len(lines) == humanoid.n
    assert lines[0].startswith('● Hips')
    assert skeleton_tree_lines(None) == []
