# posing/picking.py
"""
射线拾取

关节代理用解析射线-球求交，人体部件用 trimesh 的射线-网格求交。
只有关节是拾取目标；命中人体部件或什么都没命中都算"未命中"。
"""

import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np

logger = logging.getLogger(__name__)

JOINT = 'joint'
BODY_PART = 'body_part'


@dataclass
class Ray:
    origin: np.ndarray
    direction: np.ndarray   # 单位向量

    def __post_init__(self):
        self.origin = np.asarray(self.origin, dtype=np.float64)
        d = np.asarray(self.direction, dtype=np.float64)
        self.direction = d / np.linalg.norm(d)

    def at(self, t):
        return self.origin + t * self.direction


@dataclass
class PickResult:
    kind: Optional[str] = None      # JOINT / BODY_PART / None
    name: Optional[str] = None
    t: float = np.inf
    point: Optional[np.ndarray] = None

    @property
    def is_joint(self):
        return self.kind == JOINT

    @property
    def is_miss(self):
        return self.kind != JOINT


def ray_sphere(ray, center, radius):
    """射线与球的最近非负交点参数 t；不相交返回 None"""
    oc = ray.origin - np.asarray(center, dtype=np.float64)
    b = float(np.dot(oc, ray.direction))
    c = float(np.dot(oc, oc)) - radius * radius
    disc = b * b - c
    if disc < 0:
        return None
    sq = np.sqrt(disc)
    for t in (-b - sq, -b + sq):
        if t >= 0:
            return t
    return None


def ray_plane(ray, point, normal):
    """射线与平面交点参数 t；平行或在背后返回 None"""
    denom = float(np.dot(normal, ray.direction))
    if abs(denom) < 1e-9:
        return None
    t = float(np.dot(np.asarray(point) - ray.origin, normal)) / denom
    return t if t >= 0 else None


class Picker:
    def __init__(self, skeleton, body_parts=None):
        self.skeleton = skeleton
        self.body_parts = list(body_parts or [])

    def set_targets(self, skeleton, body_parts=None):
        self.skeleton = skeleton
        self.body_parts = list(body_parts or [])

    def pick_joint(self, ray):
        """所有关节球中 t 最小的那个"""
        best = PickResult()
        if self.skeleton is None:
            return best
        for name, T in self.skeleton.global_transforms().items():
            proxy = self.skeleton.joints[name].proxy
            if proxy is None:
                continue
            t = ray_sphere(ray, T[:3, 3], proxy.radius)
            if t is not None and t < best.t:
                best = PickResult(JOINT, name, t, ray.at(t))
        return best

    def pick_body_part(self, ray):
        best = PickResult()
        for part in self.body_parts:
            mesh = part.world_mesh(self.skeleton)
            if mesh is None:
                continue
            locations, _, _ = mesh.ray.intersects_location(
                ray_origins=ray.origin[None, :],
                ray_directions=ray.direction[None, :],
            )
            if len(locations) == 0:
                continue
            ts = (locations - ray.origin) @ ray.direction
            i = int(np.argmin(ts))
            if ts[i] >= 0 and ts[i] < best.t:
                best = PickResult(BODY_PART, part.name, float(ts[i]), locations[i])
        return best

    def pick(self, ray):
        """
        拾取

        Returns:
        --------
        PickResult
            kind == JOINT 表示命中关节；
            kind == BODY_PART 表示只命中人体部件（按未命中处理）；
            kind is None 表示空白处
        """
        hit = self.pick_joint(ray)
        if hit.is_joint:
            return hit
        if self.body_parts:
            return self.pick_body_part(ray)
        return hit
