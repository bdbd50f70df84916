# pose_editor.py
"""
人体姿态编辑器 UI
功能：
- 点击关节球选择关节，拖动 Gizmo 环旋转（带解剖约束）✅
- 轨道相机：左键旋转、右键平移、滚轮缩放 ✅
- 预设视角（带过渡动画）
- 关节列表 / 当前关节旋转角度
- 导入带骨骼的 GLB 模型（自动生成关节代理）
"""

import logging
import sys
import time

import numpy as np
from PyQt5.QtWidgets import (
    QApplication, QMainWindow, QWidget, QVBoxLayout, QHBoxLayout, QGridLayout,
    QPushButton, QLabel, QGroupBox, QListWidget, QSplitter,
    QFileDialog, QMessageBox, QCheckBox, QSlider, QScrollArea
)
from PyQt5.QtCore import Qt, QEvent, QTimer
import pyvista as pv
from pyvistaqt import QtInteractor

from posing.app import create_app
from posing.camera import PRESET_VIEWS

logger = logging.getLogger(__name__)

_BUTTONS = {
    Qt.LeftButton: 'left',
    Qt.RightButton: 'right',
    Qt.MiddleButton: 'middle',
}

_CURSORS = {
    'default': Qt.ArrowCursor,
    'pointer': Qt.PointingHandCursor,
    'grabbing': Qt.ClosedHandCursor,
}

_RING_COLORS = {'x': 'red', 'y': 'green', 'z': 'blue'}


def _translation(position):
    T = np.eye(4)
    T[:3, 3] = position
    return T


class PoseEditorUI(QMainWindow):
    """姿态编辑器主窗口"""

    def __init__(self, ctx):
        super().__init__()
        self.ctx = ctx
        vs = ctx.settings.viewport

        # 可视化对象
        self.joint_actors = {}      # {joint_name: actor}
        self.joint_styles = {}      # {joint_name: 'selected'/'hover'/'default'}
        self.body_actors = {}       # {part_name: actor}
        self.imported_actors = []
        self.bone_poly = None
        self.bone_actor = None
        self.ring_polys = {}        # {'x': PolyData, ...}
        self.ring_actors = []

        self.style_colors = {
            'default': vs.joint_color,
            'hover': vs.hover_color,
            'selected': vs.selected_color,
        }

        self.init_ui()

        ctx.interaction.on_selected.append(self.on_joint_selected)
        ctx.interaction.on_deselected.append(self.on_joint_deselected)
        ctx.pose.add_listener(self.on_rotation_changed)

        self.rebuild_scene()

        # 帧循环：过渡 -> 相机积分 -> 同步 actor -> 渲染
        self._last_frame = time.perf_counter()
        self.frame_timer = QTimer()
        self.frame_timer.timeout.connect(self.on_frame)
        self.frame_timer.start(vs.frame_interval_ms)

    # ========== 界面 ==========

    def init_ui(self):
        vs = self.ctx.settings.viewport
        self.setWindowTitle("Anypose 姿态编辑器")
        self.setGeometry(100, 100, vs.width + 300, vs.height)

        main_widget = QWidget()
        self.setCentralWidget(main_widget)
        main_layout = QHBoxLayout(main_widget)

        control_panel = self.create_control_panel()

        self.plotter = QtInteractor(self)
        self.plotter.set_background(vs.background)
        self.plotter.add_axes(interactive=False, line_width=3)

        splitter = QSplitter(Qt.Horizontal)
        splitter.addWidget(control_panel)
        splitter.addWidget(self.plotter.interactor)
        splitter.setStretchFactor(0, 0)
        splitter.setStretchFactor(1, 1)
        splitter.setSizes([300, vs.width])
        main_layout.addWidget(splitter)

        # 鼠标事件全部交给交互控制器，VTK 自带的相机交互不再收到
        self.plotter.interactor.installEventFilter(self)
        self.plotter.interactor.setMouseTracking(True)

        self.statusBar().showMessage("💡 点击红色关节球选择关节，拖动彩色圆环旋转")

    def create_control_panel(self):
        scroll_area = QScrollArea()
        scroll_area.setWidgetResizable(True)
        scroll_area.setMinimumWidth(280)

        panel = QWidget()
        layout = QVBoxLayout(panel)

        # ========== 1. 关节列表 ==========
        joint_list_group = QGroupBox("📝 关节列表（点击选择）")
        joint_list_layout = QVBoxLayout()
        self.joint_list = QListWidget()
        self.joint_list.setMinimumHeight(220)
        self.joint_list.itemClicked.connect(self.on_joint_list_clicked)
        joint_list_layout.addWidget(self.joint_list)
        joint_list_group.setLayout(joint_list_layout)
        layout.addWidget(joint_list_group)

        # ========== 2. 当前选中关节 ==========
        joint_info_group = QGroupBox("🎯 当前选中关节")
        joint_info_layout = QVBoxLayout()
        self.selected_joint_label = QLabel("<i>未选中关节</i>")
        self.selected_joint_label.setWordWrap(True)
        joint_info_layout.addWidget(self.selected_joint_label)

        btn_layout = QHBoxLayout()
        reset_btn = QPushButton("重置当前关节")
        reset_btn.clicked.connect(self.reset_current_joint)
        btn_layout.addWidget(reset_btn)
        reset_all_btn = QPushButton("重置所有")
        reset_all_btn.clicked.connect(self.reset_all_joints)
        btn_layout.addWidget(reset_all_btn)
        joint_info_layout.addLayout(btn_layout)

        joint_info_group.setLayout(joint_info_layout)
        layout.addWidget(joint_info_group)

        # ========== 3. 视角 ==========
        view_group = QGroupBox("📷 视角")
        view_layout = QVBoxLayout()

        grid = QGridLayout()
        for i, name in enumerate(PRESET_VIEWS):
            btn = QPushButton(name)
            btn.clicked.connect(lambda _, n=name: self.on_preset_clicked(n))
            grid.addWidget(btn, i // 3, i % 3)
        view_layout.addLayout(grid)

        reset_cam_btn = QPushButton("重置相机")
        reset_cam_btn.clicked.connect(self.reset_camera)
        view_layout.addWidget(reset_cam_btn)

        zoom_layout = QHBoxLayout()
        zoom_layout.addWidget(QLabel("缩放:"))
        cs = self.ctx.settings.camera
        self.zoom_slider = QSlider(Qt.Horizontal)
        self.zoom_slider.setRange(int(100 / cs.max_distance), int(100 / cs.min_distance))
        self.zoom_slider.setValue(self.ctx.camera.zoom_level)
        self.zoom_slider.valueChanged.connect(self.on_zoom_changed)
        zoom_layout.addWidget(self.zoom_slider)
        view_layout.addLayout(zoom_layout)

        view_group.setLayout(view_layout)
        layout.addWidget(view_group)

        # ========== 4. 显示选项 ==========
        display_group = QGroupBox("👁 显示")
        display_layout = QVBoxLayout()
        self.show_body_checkbox = QCheckBox("人体")
        self.show_body_checkbox.setChecked(True)
        self.show_joints_checkbox = QCheckBox("关节")
        self.show_joints_checkbox.setChecked(True)
        self.show_bones_checkbox = QCheckBox("骨骼连线")
        self.show_bones_checkbox.setChecked(False)
        for cb in (self.show_body_checkbox, self.show_joints_checkbox, self.show_bones_checkbox):
            cb.stateChanged.connect(self.on_display_changed)
            display_layout.addWidget(cb)
        display_group.setLayout(display_layout)
        layout.addWidget(display_group)

        # ========== 5. 模型 ==========
        model_group = QGroupBox("📦 模型")
        model_layout = QVBoxLayout()
        load_btn = QPushButton("导入 GLB...")
        load_btn.clicked.connect(self.load_glb)
        model_layout.addWidget(load_btn)
        builtin_btn = QPushButton("编辑内置人体")
        builtin_btn.clicked.connect(self.use_builtin)
        model_layout.addWidget(builtin_btn)
        model_group.setLayout(model_layout)
        layout.addWidget(model_group)

        layout.addStretch()
        scroll_area.setWidget(panel)
        return scroll_area

    # ========== 场景 ==========

    def rebuild_scene(self):
        """当前骨架切换或显示选项变化后重建所有 actor"""
        for actor in list(self.joint_actors.values()) + list(self.body_actors.values()) \
                + self.imported_actors + self.ring_actors:
            self.plotter.remove_actor(actor)
        if self.bone_actor is not None:
            self.plotter.remove_actor(self.bone_actor)

        self.joint_actors, self.joint_styles, self.body_actors = {}, {}, {}
        self.imported_actors, self.ring_actors, self.ring_polys = [], [], {}
        self.bone_poly = self.bone_actor = None

        skeleton = self.ctx.skeleton
        global_T = skeleton.global_transforms()

        # 1. 导入模型网格（不可拾取）
        for model in self.ctx.imported:
            if model.mesh is None:
                continue
            actor = self.plotter.add_mesh(pv.wrap(model.mesh.mesh), color='lightblue',
                                          opacity=0.6, smooth_shading=True, pickable=False)
            actor.user_matrix = model.model_matrix
            self.imported_actors.append(actor)

        # 2. 人体部件
        if self.show_body_checkbox.isChecked():
            for part in self.ctx.body_parts:
                actor = self.plotter.add_mesh(pv.wrap(part.mesh.mesh),
                                              color=self.ctx.settings.viewport.body_color,
                                              smooth_shading=True, pickable=False)
                actor.user_matrix = part.world_matrix(skeleton)
                self.body_actors[part.name] = actor

        # 3. 骨骼连线
        if self.show_bones_checkbox.isChecked() and skeleton.bones():
            index = {name: i for i, name in enumerate(skeleton.names)}
            lines = np.array([[2, index[p], index[c]] for p, c in skeleton.bones()]).ravel()
            self.bone_poly = pv.PolyData(skeleton.positions(), lines=lines)
            self.bone_actor = self.plotter.add_mesh(self.bone_poly, color='darkred',
                                                    line_width=4, pickable=False)

        # 4. 关节球
        if self.show_joints_checkbox.isChecked():
            for name, joint in skeleton.joints.items():
                sphere = pv.Sphere(radius=joint.proxy.radius, theta_resolution=16, phi_resolution=16)
                actor = self.plotter.add_mesh(sphere, color=self.style_colors['default'],
                                              opacity=0.9, pickable=False)
                actor.user_matrix = _translation(global_T[name][:3, 3])
                self.joint_actors[name] = actor
                self.joint_styles[name] = 'default'

        if self.ctx.gizmo.attached:
            self.create_gizmo_rings()

        self.update_joint_list()
        skeleton.consume_stale()

    def create_gizmo_rings(self):
        for axis, color in _RING_COLORS.items():
            poly = pv.lines_from_points(self.ctx.gizmo.ring_points(axis))
            self.ring_polys[axis] = poly
            self.ring_actors.append(self.plotter.add_mesh(poly, color=color, line_width=5, pickable=False))

    def remove_gizmo_rings(self):
        for actor in self.ring_actors:
            self.plotter.remove_actor(actor)
        self.ring_actors, self.ring_polys = [], {}

    def sync_actors(self):
        """只更新变换过期的关节"""
        skeleton = self.ctx.skeleton
        stale = skeleton.consume_stale()
        if stale:
            global_T = skeleton.global_transforms()
            for name in stale:
                actor = self.joint_actors.get(name)
                if actor is not None:
                    actor.user_matrix = _translation(global_T[name][:3, 3])
            for part in self.ctx.body_parts:
                actor = self.body_actors.get(part.name)
                if actor is not None and part.joint in stale:
                    actor.user_matrix = part.world_matrix(skeleton)
            if self.bone_poly is not None:
                self.bone_poly.points = skeleton.positions()
            for axis, poly in self.ring_polys.items():
                poly.points = self.ctx.gizmo.ring_points(axis)

        # 高亮：选中优先于悬停
        for name, actor in self.joint_actors.items():
            style = self.ctx.interaction.style_for(name)
            if style != self.joint_styles.get(name):
                actor.prop.color = self.style_colors[style]
                self.joint_styles[name] = style

    def sync_camera(self):
        cam = self.ctx.camera
        vtk_cam = self.plotter.camera
        vtk_cam.position = tuple(cam.position)
        vtk_cam.focal_point = tuple(cam.target)
        vtk_cam.up = (0.0, 1.0, 0.0)
        vtk_cam.view_angle = cam.fov
        vtk_cam.clipping_range = (cam.near, cam.far)

        # 滚轮、预设视角和重置都会改变距离，滑块跟随但不回写
        if self.zoom_slider.value() != cam.zoom_level:
            self.zoom_slider.blockSignals(True)
            self.zoom_slider.setValue(cam.zoom_level)
            self.zoom_slider.blockSignals(False)

    def on_frame(self):
        now = time.perf_counter()
        dt, self._last_frame = now - self._last_frame, now

        w = self.plotter.interactor.width()
        h = self.plotter.interactor.height()
        if (w, h) != (self.ctx.camera.width, self.ctx.camera.height):
            self.ctx.camera.resize(w, h)

        self.ctx.tick(dt)
        self.sync_actors()
        self.sync_camera()
        self.plotter.render()

    # ========== 鼠标事件 ==========

    def eventFilter(self, obj, event):
        """事件过滤器"""
        if obj == self.plotter.interactor:
            interaction = self.ctx.interaction
            etype = event.type()
            if etype == QEvent.MouseButtonPress:
                interaction.on_pointer_down(event.x(), event.y(), _BUTTONS.get(event.button(), 'other'))
                return True
            elif etype == QEvent.MouseMove:
                interaction.on_pointer_move(event.x(), event.y())
                self.plotter.interactor.setCursor(_CURSORS[interaction.cursor])
                return True
            elif etype == QEvent.MouseButtonRelease:
                interaction.on_pointer_up(event.x(), event.y(), _BUTTONS.get(event.button(), 'other'))
                return True
            elif etype == QEvent.Wheel:
                # Qt 向上滚为正；向上滚 = 拉近
                interaction.on_wheel(-event.angleDelta().y())
                return True

        return super().eventFilter(obj, event)

    # ========== 选择与姿态 ==========

    def on_joint_selected(self, name):
        self.remove_gizmo_rings()
        self.create_gizmo_rings()
        self.update_selected_joint_info()
        items = self.joint_list.findItems(name, Qt.MatchExactly)
        if items:
            self.joint_list.setCurrentItem(items[0])
        self.statusBar().showMessage(f"✅ 选中关节 {name}")

    def on_joint_deselected(self, name):
        self.remove_gizmo_rings()
        self.joint_list.clearSelection()
        self.update_selected_joint_info()
        self.statusBar().showMessage("💡 点击红色关节球选择关节")

    def on_rotation_changed(self, name, rotation):
        if name == self.ctx.interaction.selected:
            self.update_selected_joint_info()

    def on_joint_list_clicked(self, item):
        self.ctx.interaction.select(item.text())

    def update_joint_list(self):
        self.joint_list.clear()
        for name in self.ctx.skeleton.names:
            self.joint_list.addItem(name)

    def update_selected_joint_info(self):
        name = self.ctx.interaction.selected
        if name is None:
            self.selected_joint_label.setText("<i>未选中关节</i>")
            return
        deg = self.ctx.pose.rotation_degrees(name)
        self.selected_joint_label.setText(
            f"<b>{name}</b><br>"
            f"X: {deg.x:.1f}°<br>Y: {deg.y:.1f}°<br>Z: {deg.z:.1f}°"
        )

    def reset_current_joint(self):
        name = self.ctx.interaction.selected
        if name is None:
            QMessageBox.information(self, "提示", "请先选择关节")
            return
        self.ctx.pose.reset_joint(name)
        self.statusBar().showMessage(f"✅ 关节 [{name}] 已重置")

    def reset_all_joints(self):
        reply = QMessageBox.question(
            self, "确认", "确定要重置所有关节吗？",
            QMessageBox.Yes | QMessageBox.No
        )
        if reply == QMessageBox.Yes:
            self.ctx.pose.reset_all()
            self.statusBar().showMessage("✅ 所有关节已重置")

    # ========== 相机 ==========

    def on_preset_clicked(self, name):
        if self.ctx.camera.set_preset_view(name, animate=True):
            self.statusBar().showMessage(f"📷 视角: {name}")

    def reset_camera(self):
        self.ctx.camera.reset()
        self.statusBar().showMessage("📷 相机已重置")

    def on_zoom_changed(self, value):
        self.ctx.camera.set_zoom_level(value)

    def on_display_changed(self):
        self.rebuild_scene()

    # ========== 模型 ==========

    def load_glb(self):
        path, _ = QFileDialog.getOpenFileName(self, "导入模型", "", "GLB 文件 (*.glb *.gltf)")
        if not path:
            return
        try:
            model = self.ctx.load_imported_model(path)
        except ValueError as e:
            logger.error("导入失败: %s", e)
            QMessageBox.critical(self, "错误", f"加载失败：{e}")
            self.ctx.activate(None)
            self.rebuild_scene()
            return

        self.rebuild_scene()
        if model.skeleton is None:
            self.statusBar().showMessage(f"⚠️ {model.name} 已加载，但没有骨骼数据")
        else:
            self.statusBar().showMessage(f"✅ {model.name} 加载完成: {model.skeleton.n} 个关节")

    def use_builtin(self):
        self.ctx.activate(None)
        self.rebuild_scene()
        self.statusBar().showMessage("✅ 正在编辑内置人体")

    def closeEvent(self, event):
        self.frame_timer.stop()
        self.ctx.interaction.dispose()
        self.plotter.close()
        super().closeEvent(event)


def main(settings=None):
    """主函数"""
    app = QApplication(sys.argv)
    app.setStyle('Fusion')
    window = PoseEditorUI(create_app(settings))
    window.show()
    sys.exit(app.exec_())


if __name__ == '__main__':
    main()
