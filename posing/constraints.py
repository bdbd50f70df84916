# posing/constraints.py
"""
关节旋转约束表

格式: {joint_name: {'x': (min, max), 'y': (min, max), 'z': (min, max)}}，单位弧度。
范围按关节刻意不对称，例如前臂弯曲轴只能单向 [0, 0.8π]。
表中没有的关节（手指、脚趾、末端点）不受限制。
"""

import math

PI = math.pi

_TRUNK = {'x': (-PI / 6, PI / 6), 'y': (-PI / 6, PI / 6), 'z': (-PI / 6, PI / 6)}

_SHOULDER = {'x': (-PI / 2, PI), 'y': (-PI / 2, PI / 2), 'z': (-PI / 3, PI / 3)}
_FOREARM = {'x': (0.0, PI * 0.8), 'y': (-PI / 12, PI / 12), 'z': (-PI / 12, PI / 12)}
_HAND = {'x': (-PI / 4, PI / 4), 'y': (-PI / 6, PI / 6), 'z': (-PI / 6, PI / 6)}

_SHIN = {'x': (-PI * 0.8, 0.0), 'y': (-PI / 24, PI / 24), 'z': (-PI / 24, PI / 24)}
_FOOT = {'x': (-PI / 4, PI / 6), 'y': (-PI / 12, PI / 12), 'z': (-PI / 12, PI / 12)}


ROTATION_CONSTRAINTS = {
    # 根
    'Hips': {'x': (-PI / 4, PI / 4), 'y': (-PI / 4, PI / 4), 'z': (-PI / 4, PI / 4)},

    # 脊椎
    'Spine': dict(_TRUNK),
    'Spine1': dict(_TRUNK),
    'Spine2': dict(_TRUNK),

    # 颈部和头部
    'Neck': {'x': (-PI / 4, PI / 4), 'y': (-PI / 3, PI / 3), 'z': (-PI / 4, PI / 4)},
    'Head': {'x': (-PI / 6, PI / 6), 'y': (-PI / 4, PI / 4), 'z': (-PI / 6, PI / 6)},

    # 左臂
    'LeftShoulder': dict(_SHOULDER),
    'LeftArm': dict(_SHOULDER),
    'LeftForeArm': dict(_FOREARM),
    'LeftHand': dict(_HAND),

    # 右臂
    'RightShoulder': dict(_SHOULDER),
    'RightArm': dict(_SHOULDER),
    'RightForeArm': dict(_FOREARM),
    'RightHand': dict(_HAND),

    # 左腿
    'LeftUpLeg': {'x': (-PI / 3, PI / 2), 'y': (-PI / 6, PI / 3), 'z': (-PI / 6, PI / 6)},
    'LeftLeg': dict(_SHIN),
    'LeftFoot': dict(_FOOT),

    # 右腿（y 轴与左腿镜像）
    'RightUpLeg': {'x': (-PI / 3, PI / 2), 'y': (-PI / 3, PI / 6), 'z': (-PI / 6, PI / 6)},
    'RightLeg': dict(_SHIN),
    'RightFoot': dict(_FOOT),
}


def constraint_for(name, table=None):
    table = ROTATION_CONSTRAINTS if table is None else table
    return table.get(name)


def clamp_axis(constraint, axis, value):
    """把单轴角度夹到约束范围内；该轴无约束时原样返回"""
    if not constraint or axis not in constraint:
        return float(value)
    lo, hi = constraint[axis]
    return float(min(max(value, lo), hi))


def clamp_rotation(name, axis, value, table=None):
    """按关节名查表并夹紧单轴角度"""
    return clamp_axis(constraint_for(name, table), axis, value)
