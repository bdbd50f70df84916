# -*- coding: utf-8 -*-
"""
pytest 配置与公共 fixture
"""

import os
import sys

import numpy as np
import pytest
import trimesh

# 项目根目录加入路径，直接导入 posing
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from posing.app import create_app  # noqa: E402
from posing.humanoid import build_humanoid  # noqa: E402
from posing.pose import PoseController  # noqa: E402


def translation(x, y, z):
    T = np.eye(4)
    T[:3, 3] = (x, y, z)
    return T


@pytest.fixture
def humanoid():
    """内置人体（带约束），不生成人体部件"""
    skeleton, _ = build_humanoid(with_body=False)
    return skeleton


@pytest.fixture
def free_humanoid():
    """无约束的内置人体"""
    skeleton, _ = build_humanoid(constraints={}, with_body=False)
    return skeleton


@pytest.fixture
def pose(humanoid):
    return PoseController(humanoid)


@pytest.fixture
def app():
    return create_app()


@pytest.fixture
def rigged_scene():
    """
    内存中的带骨骼场景：
        world -> mixamorig:Hips (0,1,0) -> mixamorig:Spine (+0,0.5,0)
              -> Group (+0,0.5,0) -> mixamorig:Head (+0,0.5,0)
    外加一个 1x4x1 的盒子网格（y 从 0 到 4）和一个相机节点。
    """
    def make(with_mesh=True, with_bones=True):
        scene = trimesh.Scene()
        base = scene.graph.base_frame
        if with_mesh:
            scene.add_geometry(trimesh.creation.box(extents=(1.0, 4.0, 1.0)),
                               node_name='Surface', geom_name='surface',
                               transform=translation(0, 2, 0))
        if with_bones:
            scene.graph.update(frame_from=base, frame_to='mixamorig:Hips', matrix=translation(0, 1, 0))
            scene.graph.update(frame_from='mixamorig:Hips', frame_to='mixamorig:Spine', matrix=translation(0, 0.5, 0))
            scene.graph.update(frame_from='mixamorig:Spine', frame_to='Group', matrix=translation(0, 0.5, 0))
            scene.graph.update(frame_from='Group', frame_to='mixamorig:Head', matrix=translation(0, 0.5, 0))
        scene.graph.update(frame_from=base, frame_to='Camera', matrix=translation(0, 0, 10))
        return scene

    return make
