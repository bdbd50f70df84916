# posing/humanoid.py
"""
内置人体模板：Mixamo 命名的关节层级 + 占位人体部件
"""

import logging

import numpy as np

from .constraints import ROTATION_CONSTRAINTS
from .mesh_io import BodyPart, Mesh
from .skeleton import Skeleton

logger = logging.getLogger(__name__)


def _side_joints(side, d):
    """一侧的肩臂手指和腿脚；d = -1 为左，+1 为右"""
    s = side
    return [
        # 手臂
        (f"{s}Shoulder", "Spine2",        (d * 1.0, 2.4, 0.0)),
        (f"{s}Arm",      f"{s}Shoulder",  (d * 1.2, 2.1, 0.0)),
        (f"{s}ForeArm",  f"{s}Arm",       (d * 1.2, 1.05, 0.0)),
        (f"{s}Hand",     f"{s}ForeArm",   (d * 1.2, -0.25, 0.0)),
        # 手指
        (f"{s}HandThumb1",  f"{s}Hand",   (d * 1.35, -0.35, 0.1)),
        (f"{s}HandIndex1",  f"{s}Hand",   (d * 1.35, -0.45, 0.05)),
        (f"{s}HandMiddle1", f"{s}Hand",   (d * 1.35, -0.45, 0.0)),
        (f"{s}HandRing1",   f"{s}Hand",   (d * 1.35, -0.45, -0.05)),
        (f"{s}HandPinky1",  f"{s}Hand",   (d * 1.35, -0.45, -0.1)),
        # 腿
        (f"{s}UpLeg",    "Hips",          (d * 0.4, -0.1, 0.0)),
        (f"{s}Leg",      f"{s}UpLeg",     (d * 0.4, -1.9, 0.0)),
        (f"{s}Foot",     f"{s}Leg",       (d * 0.4, -3.5, 0.0)),
        (f"{s}ToeBase",  f"{s}Foot",      (d * 0.4, -3.8, 0.3)),
        (f"{s}Toe_End",  f"{s}ToeBase",   (d * 0.4, -3.8, 0.5)),
    ]


def humanoid_joint_table():
    """[(name, parent, position), ...]，父节点在前，坐标为模型空间"""
    P = [
        ("Hips",        None,     (0.0, 0.0, 0.0)),
        ("Spine",       "Hips",   (0.0, 0.5, 0.0)),
        ("Spine1",      "Spine",  (0.0, 1.2, 0.0)),
        ("Spine2",      "Spine1", (0.0, 2.0, 0.0)),
        ("Neck",        "Spine2", (0.0, 2.8, 0.0)),
        ("Head",        "Neck",   (0.0, 3.2, 0.0)),
        ("HeadTop_End", "Head",   (0.0, 4.0, 0.0)),
    ]
    P += _side_joints("Left", -1.0)
    P += _side_joints("Right", +1.0)
    return P


def _body_part_table():
    """[(name, joint, offset, mesh), ...]"""
    parts = [
        ("waist", "Spine",  (0.0, 0.0, 0.0), Mesh.cylinder(0.7, 0.8, 1.0)),
        ("chest", "Spine2", (0.0, 0.0, 0.0), Mesh.cylinder(0.8, 0.9, 1.5)),
        ("head",  "Head",   (0.0, 0.3, 0.0), Mesh.sphere(0.5)),
    ]
    for side, prefix in (("Left", "left"), ("Right", "right")):
        parts += [
            (f"{prefix}_upper_arm", f"{side}Arm",     (0.0, -0.5, 0.0), Mesh.cylinder(0.25, 0.3, 1.2)),
            (f"{prefix}_forearm",   f"{side}ForeArm", (0.0, -0.5, 0.0), Mesh.cylinder(0.2, 0.25, 1.0)),
            (f"{prefix}_hand",      f"{side}Hand",    (0.0, 0.0, 0.0),  Mesh.sphere(0.15)),
            (f"{prefix}_thigh",     f"{side}UpLeg",   (0.0, -0.9, 0.0), Mesh.cylinder(0.3, 0.35, 1.8)),
            (f"{prefix}_calf",      f"{side}Leg",     (0.0, -0.8, 0.0), Mesh.cylinder(0.2, 0.25, 1.6)),
            (f"{prefix}_foot",      f"{side}Foot",    (0.0, -0.1, 0.2), Mesh.box((0.3, 0.2, 0.8))),
        ]
    return parts


def build_humanoid(joint_radius=0.1, constraints=None, with_body=True):
    """
    创建内置人体骨架

    Parameters:
    -----------
    joint_radius : float
        关节拾取球半径
    constraints : dict or None
        约束表，默认 ROTATION_CONSTRAINTS
    with_body : bool
        是否生成占位人体部件

    Returns:
    --------
    skeleton : Skeleton
    body_parts : list of BodyPart
    """
    table = ROTATION_CONSTRAINTS if constraints is None else constraints

    skeleton = Skeleton()
    for name, parent, pos in humanoid_joint_table():
        skeleton.create_joint(
            name,
            np.asarray(pos, dtype=np.float64),
            parent=parent,
            constraint=table.get(name),
            proxy_radius=joint_radius,
        )

    body_parts = []
    if with_body:
        body_parts = [BodyPart(n, j, m, off) for (n, j, off, m) in _body_part_table()]

    logger.info("内置人体: %d 关节, %d 部件", skeleton.n, len(body_parts))
    return skeleton, body_parts
