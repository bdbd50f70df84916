# posing/gizmo.py
"""
旋转 Gizmo：挂在选中关节上的三个环

环的法向量与关节内旋 XYZ 欧拉角的三根转轴一致：
    X 环: P @ e_x
    Y 环: P @ Rx @ e_y
    Z 环: P @ Rx @ Ry @ e_z
（P 为父关节的世界旋转）。因此拖动一个环只改变一个欧拉分量。
Gizmo 只提出新角度，由 PoseController 夹紧后写回。
"""

import logging

import numpy as np
from scipy.spatial.transform import Rotation as R

from .picking import ray_plane
from .skeleton import AXES

logger = logging.getLogger(__name__)


def signed_angle(a, b, axis):
    """a 转到 b 绕 axis 的有符号角度（弧度）"""
    return float(np.arctan2(np.dot(axis, np.cross(a, b)), np.dot(a, b)))


class RotationGizmo:
    def __init__(self, skeleton, radius=0.45, tolerance=0.15):
        self.skeleton = skeleton
        self.radius = radius
        self.tolerance = tolerance   # 相对环半径
        self.joint = None

        self.dragging = False
        self._axis = None            # 'x' / 'y' / 'z'
        self._axis_vec = None
        self._center = None
        self._prev_vec = None
        self._accum = 0.0
        self._start_rotation = None

        self._change_listeners = []
        self._dragging_listeners = []

    # ========== 监听 ==========

    def add_change_listener(self, callback):
        """callback(joint_name, {'x': .., 'y': .., 'z': ..})"""
        self._change_listeners.append(callback)

    def add_dragging_listener(self, callback):
        """callback(is_dragging)"""
        self._dragging_listeners.append(callback)

    def _set_dragging(self, value):
        self.dragging = value
        for callback in self._dragging_listeners:
            callback(value)

    # ========== 挂载 ==========

    @property
    def attached(self):
        return self.joint is not None

    def attach(self, name):
        if name not in self.skeleton:
            logger.warning("Gizmo 无法挂到不存在的关节: %s", name)
            return False
        if self.dragging:
            self.end_drag()
        self.joint = name
        return True

    def detach(self):
        if self.dragging:
            self.end_drag()
        self.joint = None

    def set_skeleton(self, skeleton, radius=None):
        self.detach()
        self.skeleton = skeleton
        if radius is not None:
            self.radius = radius

    # ========== 几何 ==========

    def center(self):
        return self.skeleton.world_position(self.joint)

    def ring_axes(self):
        """{'x': axis, 'y': axis, 'z': axis}，世界坐标单位向量"""
        joint = self.skeleton.joints[self.joint]
        if joint.parent is None:
            P = self.skeleton.model_matrix[:3, :3]
        else:
            P = self.skeleton.world_transform(joint.parent)[:3, :3]

        rx = R.from_euler('X', joint.rotation[0]).as_matrix()
        ry = R.from_euler('Y', joint.rotation[1]).as_matrix()
        e = np.eye(3)
        axes = {
            'x': P @ e[0],
            'y': P @ rx @ e[1],
            'z': P @ rx @ ry @ e[2],
        }
        return {k: v / np.linalg.norm(v) for k, v in axes.items()}

    def ring_points(self, axis, n=64):
        """环上的采样点 (n,3)，供渲染"""
        normal = self.ring_axes()[axis]
        helper = np.array([1.0, 0.0, 0.0]) if abs(normal[0]) < 0.9 else np.array([0.0, 1.0, 0.0])
        u = np.cross(normal, helper)
        u /= np.linalg.norm(u)
        v = np.cross(normal, u)
        s = np.linspace(0.0, 2 * np.pi, n)
        return self.center() + self.radius * (np.outer(np.cos(s), u) + np.outer(np.sin(s), v))

    def hit_test(self, ray):
        """射线命中的环（轴名），多个命中取最近；没有返回 None"""
        if not self.attached:
            return None
        center = self.center()
        best, best_t = None, np.inf
        for axis, normal in self.ring_axes().items():
            t = ray_plane(ray, center, normal)
            if t is None:
                continue
            dist = np.linalg.norm(ray.at(t) - center)
            if abs(dist - self.radius) < self.tolerance * self.radius and t < best_t:
                best, best_t = axis, t
        return best

    # ========== 拖动 ==========

    def begin_drag(self, ray):
        """按下时调用；命中某个环则进入拖动并返回 True"""
        axis = self.hit_test(ray)
        if axis is None:
            return False

        self._axis = axis
        self._axis_vec = self.ring_axes()[axis]
        self._center = self.center()
        t = ray_plane(ray, self._center, self._axis_vec)
        self._prev_vec = ray.at(t) - self._center
        self._accum = 0.0
        self._start_rotation = self.skeleton.joints[self.joint].rotation.copy()

        logger.debug("开始拖动 %s 的 %s 环", self.joint, axis)
        self._set_dragging(True)
        return True

    def drag(self, ray):
        """拖动中调用；返回提议的旋转 dict，射线与环平面平行时返回 None"""
        if not self.dragging:
            return None
        t = ray_plane(ray, self._center, self._axis_vec)
        if t is None:
            return None
        vec = ray.at(t) - self._center
        if np.linalg.norm(vec) < 1e-9:
            return None

        self._accum += signed_angle(self._prev_vec, vec, self._axis_vec)
        self._prev_vec = vec

        proposed = dict(zip(AXES, self._start_rotation.tolist()))
        proposed[self._axis] += self._accum
        for callback in self._change_listeners:
            callback(self.joint, proposed)
        return proposed

    def end_drag(self):
        if not self.dragging:
            return
        logger.debug("结束拖动 %s", self.joint)
        self._axis = None
        self._set_dragging(False)
