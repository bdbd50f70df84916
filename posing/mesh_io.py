# posing/mesh_io.py
import trimesh
import numpy as np
from trimesh import creation as tc

# trimesh 的圆柱沿 Z 轴，人体部件沿 Y 轴（Y 向上）
_Z_TO_Y = trimesh.transformations.rotation_matrix(-np.pi / 2, [1, 0, 0])


class Mesh:
    def __init__(self, path=None):
        """
        初始化Mesh对象

        Parameters:
        -----------
        path : str, optional
            模型文件路径。如果为None,创建空的Mesh对象
        """
        self.v = None  # 顶点数组
        self.f = None  # 面片数组
        self.mesh = None  # trimesh对象

        if path is not None:
            self.load_from_file(path)

    def load_from_file(self, path: str):
        """从文件加载网格"""
        m = trimesh.load(path, force='mesh')
        if not isinstance(m, trimesh.Trimesh):
            m = m.to_mesh()
        m.merge_vertices()
        m.remove_unreferenced_vertices()
        return self._set_trimesh(m)

    def set_vertices_faces(self, vertices, faces):
        """直接设置顶点和面片"""
        m = trimesh.Trimesh(vertices=np.asarray(vertices, dtype=np.float64),
                            faces=np.asarray(faces, dtype=np.int64), process=False)
        return self._set_trimesh(m)

    def _set_trimesh(self, m):
        self.mesh = m
        self.v = np.asarray(m.vertices, dtype=np.float64)  # (N,3)
        self.f = np.asarray(m.faces, dtype=np.int32)       # (M,3)
        return self

    @property
    def bounds(self):
        return self.mesh.bounds

    def transformed(self, matrix):
        """返回施加 4x4 变换后的 trimesh 副本（原网格不变）"""
        m = self.mesh.copy()
        m.apply_transform(matrix)
        return m

    # ========== 基本体（占位人体部件）==========

    @classmethod
    def sphere(cls, radius, subdivisions=2):
        return cls()._set_trimesh(tc.icosphere(subdivisions=subdivisions, radius=radius))

    @classmethod
    def box(cls, extents):
        return cls()._set_trimesh(tc.box(extents=extents))

    @classmethod
    def cylinder(cls, radius_top, radius_bottom, height, sections=12):
        """沿 Y 轴的圆台，上下半径可不同"""
        m = tc.cylinder(radius=radius_bottom, height=height, sections=sections)
        top = m.vertices[:, 2] > 0
        if radius_bottom > 0:
            m.vertices[top, :2] *= radius_top / radius_bottom
        m.apply_transform(_Z_TO_Y)
        return cls()._set_trimesh(m)


class BodyPart:
    """
    挂在某个关节上的可见网格（占位人体部件）

    随关节的世界变换一起运动；不是关节拾取目标，
    但点击到它视为"未命中关节"，会取消选择。
    """

    def __init__(self, name, joint, mesh, offset=(0.0, 0.0, 0.0)):
        self.name = name
        self.joint = joint
        self.mesh = mesh
        self.offset = np.asarray(offset, dtype=np.float64)

    def __repr__(self):
        return f"BodyPart({self.name!r} -> {self.joint!r})"

    def world_matrix(self, skeleton):
        T = skeleton.world_transform(self.joint)
        if T is None:
            return None
        offset = np.eye(4)
        offset[:3, 3] = self.offset
        return T @ offset

    def world_mesh(self, skeleton):
        """当前姿态下的世界坐标网格（trimesh）"""
        M = self.world_matrix(skeleton)
        if M is None:
            return None
        return self.mesh.transformed(M)
