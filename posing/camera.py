# posing/camera.py
"""
轨道相机（OrbitCameraController）

相机用围绕 target 的球坐标描述（Y 向上）：
    x = r sinφ sinθ,  y = r cosφ,  z = r sinφ cosθ
输入处理只累积增量（spherical_delta / pan_offset / scale），
每帧 update() 统一积分、夹紧、衰减。预设视角动画用显式的进度状态，
由外部每帧调用 step(dt) 推进。
"""

import logging
import math
from dataclasses import dataclass, field

import numpy as np

from .picking import Ray
from .settings import CameraSettings

logger = logging.getLogger(__name__)

WORLD_UP = np.array([0.0, 1.0, 0.0])

PRESET_VIEWS = {
    'front':     (0.0, 0.0, 8.0),
    'back':      (0.0, 0.0, -8.0),
    'left':      (-8.0, 0.0, 0.0),
    'right':     (8.0, 0.0, 0.0),
    'top':       (0.0, 8.0, 0.0),
    'bottom':    (0.0, -8.0, 0.0),
    'isometric': (5.0, 5.0, 5.0),
}


@dataclass
class Spherical:
    radius: float = 1.0
    phi: float = 0.0     # 极角，从 +Y 量起
    theta: float = 0.0   # 方位角，绕 Y 轴，从 +Z 量起

    @classmethod
    def from_cartesian(cls, v):
        x, y, z = (float(c) for c in v)
        r = math.sqrt(x * x + y * y + z * z)
        if r == 0.0:
            return cls(0.0, 0.0, 0.0)
        return cls(r, math.acos(min(max(y / r, -1.0), 1.0)), math.atan2(x, z))

    def to_cartesian(self):
        s = math.sin(self.phi)
        return np.array([
            self.radius * s * math.sin(self.theta),
            self.radius * math.cos(self.phi),
            self.radius * s * math.cos(self.theta),
        ])


@dataclass
class CameraState:
    target: np.ndarray = field(default_factory=lambda: np.zeros(3))
    position: np.ndarray = field(default_factory=lambda: np.array([5.0, 5.0, 5.0]))
    spherical: Spherical = field(default_factory=Spherical)
    spherical_delta: Spherical = field(default_factory=lambda: Spherical(0.0, 0.0, 0.0))
    pan_offset: np.ndarray = field(default_factory=lambda: np.zeros(3))
    scale: float = 1.0
    zoom_changed: bool = False
    min_distance: float = 2.0
    max_distance: float = 50.0
    damping_factor: float = 0.05
    enable_damping: bool = True
    enabled: bool = True


@dataclass
class Transition:
    """预设视角动画的进度"""
    start_position: np.ndarray
    start_target: np.ndarray
    end_position: np.ndarray
    end_target: np.ndarray
    duration: float
    elapsed: float = 0.0
    active: bool = True

    @property
    def progress(self):
        if self.duration <= 0:
            return 1.0
        return min(self.elapsed / self.duration, 1.0)


def ease_in_out_quad(p):
    if p < 0.5:
        return 2.0 * p * p
    return 1.0 - (-2.0 * p + 2.0) ** 2 / 2.0


class OrbitCameraController:
    def __init__(self, settings=None, width=1200, height=800):
        self.settings = settings or CameraSettings()
        s = self.settings

        self.fov = s.fov
        self.near = s.near
        self.far = s.far
        self.width = width
        self.height = height

        self.state = CameraState(
            min_distance=s.min_distance,
            max_distance=s.max_distance,
            damping_factor=s.damping_factor,
            enable_damping=s.enable_damping,
        )
        self.transition = None
        self._button = None
        self._last = None

        self._place(s.position, s.target)

    # ========== 属性 ==========

    @property
    def aspect(self):
        return self.width / max(self.height, 1)

    @property
    def position(self):
        return self.state.position.copy()

    @property
    def target(self):
        return self.state.target.copy()

    @property
    def spherical(self):
        return self.state.spherical

    @property
    def enabled(self):
        return self.state.enabled

    @enabled.setter
    def enabled(self, value):
        """只应由 FocusArbiter 写入；失去焦点时丢弃未积分的输入"""
        self.state.enabled = bool(value)
        if not value:
            self._button = None
            self._last = None
            self._clear_pending()

    def _clear_pending(self):
        """丢弃惯性与未积分的旋转、平移和缩放"""
        self.state.spherical_delta = Spherical(0.0, 0.0, 0.0)
        self.state.pan_offset = np.zeros(3)
        self.state.scale = 1.0
        self.state.zoom_changed = False

    @property
    def animating(self):
        return self.transition is not None and self.transition.active

    def _place(self, position, target):
        st = self.state
        st.position = np.asarray(position, dtype=np.float64).copy()
        st.target = np.asarray(target, dtype=np.float64).copy()
        st.spherical = Spherical.from_cartesian(st.position - st.target)

    # ========== 坐标系与射线 ==========

    def camera_basis(self):
        """(right, up, forward)，世界坐标单位向量"""
        forward = self.state.target - self.state.position
        forward = forward / np.linalg.norm(forward)
        right = np.cross(forward, WORLD_UP)
        n = np.linalg.norm(right)
        if n < 1e-9:
            # 正对两极时退化，用方位角恢复右向量
            theta = self.state.spherical.theta
            right = np.array([math.cos(theta), 0.0, -math.sin(theta)])
        else:
            right = right / n
        up = np.cross(right, forward)
        return right, up, forward

    def pointer_to_ndc(self, x, y):
        return x / self.width * 2.0 - 1.0, -(y / self.height) * 2.0 + 1.0

    def ray_from_ndc(self, ndc_x, ndc_y):
        right, up, forward = self.camera_basis()
        h = math.tan(math.radians(self.fov) / 2.0)
        direction = forward + ndc_x * h * self.aspect * right + ndc_y * h * up
        return Ray(self.state.position.copy(), direction)

    def ray_from_pointer(self, x, y):
        return self.ray_from_ndc(*self.pointer_to_ndc(x, y))

    def project(self, point):
        """世界坐标点 -> 画布像素坐标 (x, y)；在相机后方返回 None"""
        right, up, forward = self.camera_basis()
        v = np.asarray(point, dtype=np.float64) - self.state.position
        depth = float(np.dot(v, forward))
        if depth <= 0:
            return None
        h = math.tan(math.radians(self.fov) / 2.0)
        ndc_x = np.dot(v, right) / (depth * h * self.aspect)
        ndc_y = np.dot(v, up) / (depth * h)
        return (ndc_x + 1.0) / 2.0 * self.width, (1.0 - ndc_y) / 2.0 * self.height

    # ========== 输入 ==========

    def on_pointer_down(self, x, y, button='left'):
        if not self.enabled:
            return
        if button not in ('left', 'right'):
            return
        self._button = button
        self._last = (x, y)

    def on_pointer_move(self, x, y):
        if not self.enabled or self._button is None:
            return
        dx = x - self._last[0]
        dy = y - self._last[1]
        self._last = (x, y)

        if self._button == 'left':
            self.rotate(dx, dy)
        else:
            self.pan(dx, dy)

    def on_pointer_up(self, x=None, y=None, button=None):
        self._button = None
        self._last = None

    def on_wheel(self, delta_y):
        if not self.enabled or delta_y == 0:
            return
        if delta_y > 0:
            self.state.scale *= self.settings.zoom_out_scale
        else:
            self.state.scale *= self.settings.zoom_in_scale
        self.state.zoom_changed = True

    def rotate(self, dx, dy):
        k = self.settings.rotate_speed / max(self.height, 1)
        self.state.spherical_delta.theta -= dx * k
        self.state.spherical_delta.phi -= dy * k

    def pan(self, dx, dy):
        right, up, _ = self.camera_basis()
        distance = self.state.spherical.radius * math.tan(math.radians(self.fov) / 2.0)
        speed = self.settings.pan_speed * distance / max(self.height, 1)
        self.state.pan_offset += right * (-dx * speed) + up * (dy * speed)

    # ========== 每帧 ==========

    def update(self):
        """积分增量 -> 夹紧 -> 重建位置 -> 衰减；返回相机位置"""
        st = self.state
        sph = st.spherical
        eps = self.settings.polar_epsilon

        # 过渡期间位置由 step() 插值决定
        if self.animating:
            self._clear_pending()

        sph.theta += st.spherical_delta.theta
        sph.phi += st.spherical_delta.phi
        sph.phi = min(max(sph.phi, eps), math.pi - eps)

        if st.zoom_changed:
            sph.radius = min(max(sph.radius * st.scale, st.min_distance), st.max_distance)
            st.scale = 1.0
            st.zoom_changed = False

        st.target = st.target + st.pan_offset
        st.position = st.target + sph.to_cartesian()

        if st.enable_damping:
            k = 1.0 - st.damping_factor
            st.spherical_delta.theta *= k
            st.spherical_delta.phi *= k
            st.pan_offset = st.pan_offset * k
        else:
            st.spherical_delta = Spherical(0.0, 0.0, 0.0)
            st.pan_offset = np.zeros(3)

        return st.position.copy()

    # ========== 预设视角动画 ==========

    def animate_to(self, position, target=(0.0, 0.0, 0.0), duration=None):
        """开始过渡；已有过渡进行中时忽略并返回 False"""
        if self.animating:
            logger.debug("相机过渡进行中，忽略新的请求")
            return False
        if duration is None:
            duration = self.settings.transition_duration
        self.transition = Transition(
            start_position=self.state.position.copy(),
            start_target=self.state.target.copy(),
            end_position=np.asarray(position, dtype=np.float64),
            end_target=np.asarray(target, dtype=np.float64),
            duration=float(duration),
        )
        self._clear_pending()
        return True

    def step(self, dt):
        """推进过渡；返回本帧是否有过渡在运行"""
        tr = self.transition
        if tr is None or not tr.active:
            return False

        tr.elapsed += dt
        p = tr.progress
        e = ease_in_out_quad(p)
        position = tr.start_position + (tr.end_position - tr.start_position) * e
        target = tr.start_target + (tr.end_target - tr.start_target) * e
        self._place(position, target)

        if p >= 1.0:
            tr.active = False
            logger.debug("相机过渡完成: %s", np.round(tr.end_position, 3))
        return True

    def set_preset_view(self, name, animate=True):
        position = PRESET_VIEWS.get(name)
        if position is None:
            logger.warning("未知的预设视角: %s", name)
            return False
        if animate:
            return self.animate_to(position, (0.0, 0.0, 0.0))
        self.transition = None
        self._place(position, (0.0, 0.0, 0.0))
        return True

    def reset(self):
        self.set_preset_view('isometric', animate=False)

    def resize(self, width, height):
        self.width = max(int(width), 1)
        self.height = max(int(height), 1)

    def set_distance(self, distance):
        st = self.state
        st.spherical.radius = min(max(float(distance), st.min_distance), st.max_distance)
        st.position = st.target + st.spherical.to_cartesian()

    @property
    def zoom_level(self):
        """缩放滑块刻度，距离 d 对应 100 / d"""
        return int(round(100.0 / self.state.spherical.radius))

    def set_zoom_level(self, value):
        self.set_distance(100.0 / value)
