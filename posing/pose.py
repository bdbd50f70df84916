# posing/pose.py
"""
姿态控制器（PoseController）

唯一允许修改关节旋转的入口：按轴写入、按约束表静默夹紧、标记后代变换过期。
"""

import logging
import math
from dataclasses import asdict, dataclass

import numpy as np

from .constraints import clamp_axis
from .skeleton import AXES

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Rotation3:
    x: float
    y: float
    z: float

    def as_array(self):
        return np.array([self.x, self.y, self.z])

    def degrees(self):
        return Rotation3(*np.degrees(self.as_array()).tolist())


class PoseController:
    def __init__(self, skeleton):
        self.skeleton = skeleton
        self._listeners = []

    def add_listener(self, callback):
        """callback(joint_name, Rotation3)，旋转变化后调用"""
        self._listeners.append(callback)

    def _notify(self, name, rotation):
        for callback in self._listeners:
            callback(name, rotation)

    def _joint(self, name):
        joint = self.skeleton.joints.get(name)
        if joint is None:
            logger.warning("关节不存在，忽略操作: %s", name)
        return joint

    def set_rotation(self, name, rotation=None, **axes):
        """
        设置关节旋转（部分轴）

        既可以传 mapping: set_rotation('LeftArm', {'x': 0.3})，
        也可以传关键字: set_rotation('LeftArm', x=0.3)，
        或直接传回 get_rotation 得到的 Rotation3。
        非有限值（nan、inf）被忽略并记录警告。
        超出约束的值被截断，不报错；未给出的轴保持不变。
        """
        joint = self._joint(name)
        if joint is None:
            return None

        if isinstance(rotation, Rotation3):
            rotation = asdict(rotation)
        values = dict(rotation or {})
        values.update(axes)

        for i, axis in enumerate(AXES):
            value = values.get(axis)
            if value is None:
                continue
            if not math.isfinite(value):
                logger.warning("忽略非有限角度 %s.%s = %s", name, axis, value)
                continue
            joint.rotation[i] = clamp_axis(joint.constraint, axis, value)

        self.skeleton.mark_stale(name)
        result = Rotation3(*joint.rotation.tolist())
        self._notify(name, result)
        return result

    def get_rotation(self, name):
        joint = self._joint(name)
        if joint is None:
            return None
        return Rotation3(*joint.rotation.tolist())

    def rotation_degrees(self, name):
        rotation = self.get_rotation(name)
        return None if rotation is None else rotation.degrees()

    def reset_joint(self, name):
        """重置单个关节为零旋转"""
        joint = self._joint(name)
        if joint is None:
            return
        joint.rotation[:] = 0.0
        self.skeleton.mark_stale(name)
        self._notify(name, Rotation3(0.0, 0.0, 0.0))
        logger.info("关节 %s 已重置", name)

    def reset_all(self):
        """重置所有关节"""
        for joint in self.skeleton.joints.values():
            joint.rotation[:] = 0.0
        if self.skeleton.root is not None:
            self.skeleton.mark_stale(self.skeleton.root)
        for name in self.skeleton.joints:
            self._notify(name, Rotation3(0.0, 0.0, 0.0))
        logger.info("所有关节已重置")

    def on_gizmo_change(self, name, proposed):
        """Gizmo 的 "transform changed" 通知：重新夹紧并传播"""
        return self.set_rotation(name, proposed)
