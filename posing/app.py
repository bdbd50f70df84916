# posing/app.py
"""
应用上下文：一次性创建骨架、姿态控制器、相机、Gizmo 与交互控制器，
显式传给需要它们的组件（查看器、测试）。
"""

import logging
import os
from dataclasses import dataclass, field
from typing import List, Optional

import numpy as np
import trimesh

from .camera import OrbitCameraController
from .gizmo import RotationGizmo
from .humanoid import build_humanoid
from .interaction import FocusArbiter, InteractionController
from .mesh_io import Mesh
from .picking import Picker
from .pose import PoseController
from .settings import Settings
from .skeleton_loader import (Bone, bones_from_scene, build_proxy_skeleton,
                              mesh_from_scene, placement_matrix)

logger = logging.getLogger(__name__)


@dataclass
class ImportedModel:
    name: str
    model_matrix: np.ndarray
    mesh: Optional[Mesh] = None        # 资源坐标系，渲染时施加 model_matrix
    skeleton: Optional[object] = None  # 无骨骼时为 None（不可摆姿势）


@dataclass
class AppContext:
    settings: Settings
    skeleton: object
    body_parts: list
    pose: PoseController
    camera: OrbitCameraController
    gizmo: RotationGizmo
    picker: Picker
    arbiter: FocusArbiter
    interaction: InteractionController
    builtin_skeleton: object = None
    builtin_body_parts: list = field(default_factory=list)
    imported: List[ImportedModel] = field(default_factory=list)

    def tick(self, dt):
        """一帧：推进相机过渡，再积分轨道输入；返回相机位置"""
        self.camera.step(dt)
        return self.camera.update()

    # ========== 目标切换 ==========

    def activate(self, model=None):
        """切换可摆姿势的骨架；None 表示内置人体"""
        if model is None:
            skeleton, body_parts = self.builtin_skeleton, self.builtin_body_parts
            radius = self.settings.interaction.gizmo_radius
        else:
            if model.skeleton is None:
                logger.warning("模型 %s 没有骨骼，无法切换", model.name)
                return False
            skeleton, body_parts = model.skeleton, []
            ia = self.settings.interaction
            radius = ia.gizmo_radius * ia.imported_joint_radius / ia.joint_radius

        self.skeleton = skeleton
        self.body_parts = body_parts
        self.pose.skeleton = skeleton
        self.interaction.set_targets(skeleton, body_parts, gizmo_radius=radius)
        logger.info("当前骨架: %s (%d 关节)", model.name if model else "内置人体", skeleton.n)
        return True

    # ========== 导入模型 ==========

    def load_imported_model(self, path):
        """读取 GLB 并摆放到场景中；文件没有场景图时抛 ValueError"""
        scene = trimesh.load(path, process=False)
        if not isinstance(scene, trimesh.Scene):
            raise ValueError("GLB 文件中未找到场景图结构")
        return self.add_imported_scene(scene, os.path.basename(path))

    def add_imported_scene(self, scene, name):
        bones = bones_from_scene(scene)

        mesh = None
        if scene.geometry:
            vertices, faces = mesh_from_scene(scene)
            mesh = Mesh().set_vertices_faces(vertices, faces)
            bounds = mesh.bounds
        elif bones:
            pts = np.stack([b.world_position for b in bones])
            bounds = np.stack([pts.min(axis=0), pts.max(axis=0)])
        else:
            raise ValueError(f"模型为空: {name}")

        vs = self.settings.viewport
        M = placement_matrix(bounds, vs.imported_target_height,
                             offset_x=len(self.imported) * vs.imported_spacing)

        placed = [Bone(b.name, b.parent, (M @ np.append(b.world_position, 1.0))[:3]) for b in bones]
        skeleton = build_proxy_skeleton(placed, M, self.settings.interaction.imported_joint_radius)

        model = ImportedModel(name=name, model_matrix=M, mesh=mesh, skeleton=skeleton)
        self.imported.append(model)
        logger.info("已导入模型 %s (%d 根骨骼)", name, len(bones))

        if skeleton is not None:
            self.activate(model)
        self.camera.reset()
        return model


def create_app(settings=None, skeleton=None, body_parts=None):
    """
    创建应用上下文

    Parameters:
    -----------
    settings : Settings or None
    skeleton : Skeleton or None
        为 None 时使用内置人体
    body_parts : list of BodyPart or None
    """
    settings = settings or Settings()
    ia = settings.interaction

    if skeleton is None:
        skeleton, body_parts = build_humanoid(joint_radius=ia.joint_radius)
    body_parts = list(body_parts or [])

    pose = PoseController(skeleton)
    camera = OrbitCameraController(settings.camera, settings.viewport.width, settings.viewport.height)
    gizmo = RotationGizmo(skeleton, radius=ia.gizmo_radius, tolerance=ia.gizmo_tolerance)
    gizmo.add_change_listener(pose.on_gizmo_change)
    picker = Picker(skeleton, body_parts)
    arbiter = FocusArbiter(camera)
    interaction = InteractionController(camera, picker, gizmo, arbiter,
                                        click_tolerance=ia.click_tolerance)

    return AppContext(
        settings=settings,
        skeleton=skeleton,
        body_parts=body_parts,
        pose=pose,
        camera=camera,
        gizmo=gizmo,
        picker=picker,
        arbiter=arbiter,
        interaction=interaction,
        builtin_skeleton=skeleton,
        builtin_body_parts=body_parts,
    )
