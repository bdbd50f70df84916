# posing/interaction.py
"""
交互控制器：指针事件 -> 拾取 -> 选择/悬停/拖动状态机

状态:
    IDLE       无悬停、无选择
    HOVERING   指针停在某个关节上（未选择任何关节）
    SELECTED   某个关节被选中，Gizmo 已挂载
    DRAGGING   正在拖动 Gizmo 环，相机输入被禁用

相机的 enabled 标志只经由 FocusArbiter 写入。
"""

import enum
import logging
import math

logger = logging.getLogger(__name__)


class InteractionState(enum.Enum):
    IDLE = 'idle'
    HOVERING = 'hovering'
    SELECTED = 'selected'
    DRAGGING = 'dragging'


class FocusArbiter:
    """
    指针焦点的所有权

    任何持有者（例如正在拖动的 Gizmo）都会让相机失去输入；
    所有持有者释放后相机恢复。
    """

    def __init__(self, camera):
        self.camera = camera
        self._holders = set()

    @property
    def camera_has_focus(self):
        return not self._holders

    def acquire(self, holder):
        self._holders.add(holder)
        self.camera.enabled = False

    def release(self, holder):
        self._holders.discard(holder)
        self.camera.enabled = not self._holders

    def release_all(self):
        self._holders.clear()
        self.camera.enabled = True


class InteractionController:
    def __init__(self, camera, picker, gizmo, arbiter=None, click_tolerance=4.0):
        self.camera = camera
        self.picker = picker
        self.gizmo = gizmo
        self.arbiter = arbiter or FocusArbiter(camera)
        self.click_tolerance = click_tolerance

        self.state = InteractionState.IDLE
        self.selected = None
        self.hovered = None
        self.enabled = True

        self.on_selected = []     # callback(name)
        self.on_deselected = []   # callback(name)

        self._press = None        # (x, y, button)
        self._travel = 0.0
        self._press_started_drag = False

        self.gizmo.add_dragging_listener(self._on_gizmo_dragging)

    # ========== 焦点 ==========

    def _on_gizmo_dragging(self, dragging):
        if dragging:
            self.arbiter.acquire(self.gizmo)
        else:
            self.arbiter.release(self.gizmo)

    # ========== 显示状态 ==========

    def style_for(self, name):
        """'selected' / 'hover' / 'default'，选中优先于悬停"""
        if name is not None and name == self.selected:
            return 'selected'
        if name is not None and name == self.hovered:
            return 'hover'
        return 'default'

    @property
    def cursor(self):
        if self.state == InteractionState.DRAGGING:
            return 'grabbing'
        if self.hovered is not None:
            return 'pointer'
        return 'default'

    # ========== 指针事件 ==========

    def on_pointer_move(self, x, y):
        if self.enabled:
            self._handle_move(x, y)
        self.camera.on_pointer_move(x, y)

    def _handle_move(self, x, y):
        if self._press is not None:
            px, py, _ = self._press
            self._travel = max(self._travel, math.hypot(x - px, y - py))

        ray = self.camera.ray_from_pointer(x, y)

        if self.state == InteractionState.DRAGGING:
            self.gizmo.drag(ray)
            return

        hit = self.picker.pick_joint(ray)
        self.hovered = hit.name if hit.is_joint else None

        if self.state in (InteractionState.IDLE, InteractionState.HOVERING):
            self.state = InteractionState.HOVERING if self.hovered else InteractionState.IDLE

    def on_pointer_down(self, x, y, button='left'):
        if self.enabled:
            self._press = (x, y, button)
            self._travel = 0.0
            self._press_started_drag = False

            if button == 'left' and self.state == InteractionState.SELECTED:
                ray = self.camera.ray_from_pointer(x, y)
                if self.gizmo.begin_drag(ray):
                    self.state = InteractionState.DRAGGING
                    self._press_started_drag = True
                    logger.debug("拖动关节 %s", self.selected)

        self.camera.on_pointer_down(x, y, button)

    def on_pointer_up(self, x, y, button='left'):
        if self.enabled:
            self._handle_up(x, y, button)
        self.camera.on_pointer_up(x, y, button)

    def _handle_up(self, x, y, button):
        if self.state == InteractionState.DRAGGING:
            self.gizmo.end_drag()
            self.state = InteractionState.SELECTED

        press = self._press
        self._press = None
        if press is None or self._press_started_drag:
            return

        px, py, pressed_button = press
        travel = max(self._travel, math.hypot(x - px, y - py))
        if pressed_button == 'left' and button == 'left' and travel < self.click_tolerance:
            self.click(x, y)

    def on_wheel(self, delta_y):
        self.camera.on_wheel(delta_y)

    # ========== 选择 ==========

    def click(self, x, y):
        ray = self.camera.ray_from_pointer(x, y)
        hit = self.picker.pick(ray)
        if hit.is_joint:
            self.select(hit.name)
        else:
            logger.debug("点击未命中关节 (%s)", hit.kind or 'empty')
            self.deselect()
        return hit

    def select(self, name):
        skeleton = self.picker.skeleton
        if skeleton is None or name not in skeleton:
            logger.warning("无法选择不存在的关节: %s", name)
            return False
        if name == self.selected:
            return True

        if self.selected is not None:
            self.deselect()

        self.selected = name
        self.gizmo.attach(name)
        self.state = InteractionState.SELECTED
        logger.info("选中关节: %s", name)
        for callback in self.on_selected:
            callback(name)
        return True

    def deselect(self):
        previous = self.selected
        if self.state == InteractionState.DRAGGING:
            self.gizmo.end_drag()
        self.gizmo.detach()
        self.selected = None
        self.state = InteractionState.HOVERING if self.hovered else InteractionState.IDLE
        if previous is not None:
            for callback in self.on_deselected:
                callback(previous)

    # ========== 生命周期 ==========

    def set_enabled(self, enabled):
        self.enabled = bool(enabled)
        if not self.enabled:
            self._press = None
            self.hovered = None
            self.deselect()

    def set_targets(self, skeleton, body_parts=None, gizmo_radius=None):
        """换一套可拾取目标（例如显示导入模型时）"""
        self.hovered = None
        self.deselect()
        self.picker.set_targets(skeleton, body_parts)
        self.gizmo.set_skeleton(skeleton, gizmo_radius)

    def dispose(self):
        self.set_enabled(False)
        self.on_selected.clear()
        self.on_deselected.clear()
        self.arbiter.release(self.gizmo)
