# posing/skeleton.py
"""
关节层级（JointHierarchy）

按名称索引的关节树。父节点以名称弱引用，局部变换按根到叶的顺序折叠得到世界变换。
世界变换每次调用都重新计算，不做跨帧缓存。
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import numpy as np
from scipy.spatial.transform import Rotation as R

logger = logging.getLogger(__name__)

AXES = ('x', 'y', 'z')


class SkeletonError(ValueError):
    """层级构建错误（重名、第二个根、父节点不存在）"""


@dataclass
class JointProxy:
    """可拾取的关节球，只保存名字和半径，位置随关节世界变换"""
    name: str
    radius: float = 0.1


@dataclass
class Joint:
    name: str
    parent: Optional[str]          # None 表根
    local_position: np.ndarray     # (3,) 相对父关节的偏移
    rotation: np.ndarray = field(default_factory=lambda: np.zeros(3))  # XYZ 欧拉角（弧度）
    children: List[str] = field(default_factory=list)
    constraint: Optional[dict] = None   # {'x': (min, max), ...}
    proxy: Optional[JointProxy] = None

    def local_matrix(self):
        T = np.eye(4)
        T[:3, :3] = euler_to_matrix(self.rotation)
        T[:3, 3] = self.local_position
        return T


def euler_to_matrix(rotation):
    """内旋 XYZ 欧拉角 -> 3x3 旋转矩阵（R = Rx @ Ry @ Rz）"""
    return R.from_euler('XYZ', np.asarray(rotation, dtype=np.float64)).as_matrix()


class Skeleton:
    def __init__(self, model_matrix=None):
        self.joints: Dict[str, Joint] = {}
        self.root: Optional[str] = None
        # 模型摆放矩阵（导入模型的缩放与平移），内置人体为单位阵
        self.model_matrix = np.eye(4) if model_matrix is None else np.asarray(model_matrix, dtype=np.float64)
        self._stale = set()

    def __len__(self):
        return len(self.joints)

    def __contains__(self, name):
        return name in self.joints

    @property
    def n(self):
        return len(self.joints)

    @property
    def names(self):
        return list(self.joints.keys())

    def get(self, name):
        joint = self.joints.get(name)
        if joint is None:
            logger.warning("关节不存在: %s", name)
        return joint

    # ========== 构建 ==========

    def create_joint(self, name, position, parent=None, constraint=None, proxy_radius=0.1):
        """
        注册关节

        Parameters:
        -----------
        name : str
            关节名称，在模型内唯一
        position : array-like (3,)
            模型坐标系下的位置；有父节点时换算为相对父节点当前位置的偏移
        parent : str or None
            父关节名称；为 None 时该关节成为根
        constraint : dict or None
            每轴旋转范围 {'x': (min, max), ...}
        proxy_radius : float
            拾取球半径
        """
        if name in self.joints:
            raise SkeletonError(f"关节重名: {name}")

        position = np.asarray(position, dtype=np.float64).reshape(3)

        if parent is None:
            if self.root is not None:
                raise SkeletonError(f"已存在根关节 {self.root}，不能再创建根 {name}")
            local = position.copy()
            self.root = name
        else:
            if parent not in self.joints:
                raise SkeletonError(f"父关节不存在: {parent} (子关节 {name})")
            parent_pos = self._model_transform(parent)[:3, 3]
            local = position - parent_pos
            self.joints[parent].children.append(name)

        joint = Joint(
            name=name,
            parent=parent,
            local_position=local,
            constraint=constraint,
            proxy=JointProxy(name, proxy_radius),
        )
        self.joints[name] = joint
        self._stale.add(name)

        logger.debug("创建关节 %s <- %s, 局部位置 %s", name, parent or "Root", np.round(local, 3))
        return joint

    # ========== 遍历 ==========

    def path_to_root(self, name):
        """从 name 到根的关节名列表（含两端），name 在前"""
        if name not in self.joints:
            logger.warning("关节不存在: %s", name)
            return []
        path = []
        current = name
        while current is not None:
            path.append(current)
            current = self.joints[current].parent
        return path

    def descendants(self, name):
        """所有后代关节（深度优先，不含自身）"""
        if name not in self.joints:
            return []
        out = []
        stack = list(reversed(self.joints[name].children))
        while stack:
            child = stack.pop()
            out.append(child)
            stack.extend(reversed(self.joints[child].children))
        return out

    def bones(self):
        """骨骼连接关系 [(parent_name, child_name), ...]"""
        return [(j.parent, j.name) for j in self.joints.values() if j.parent is not None]

    def depth(self, name):
        path = self.path_to_root(name)
        return len(path) - 1 if path else None

    # ========== 变换 ==========

    def _model_transform(self, name):
        T = np.eye(4)
        for joint_name in reversed(self.path_to_root(name)):
            T = T @ self.joints[joint_name].local_matrix()
        return T

    def world_transform(self, name):
        """FK：从根到 name 折叠局部变换，O(depth)，每次调用重新计算"""
        if name not in self.joints:
            logger.warning("关节不存在: %s", name)
            return None
        return self.model_matrix @ self._model_transform(name)

    def world_position(self, name):
        T = self.world_transform(name)
        return None if T is None else T[:3, 3].copy()

    def global_transforms(self):
        """一次性计算所有关节的世界矩阵；插入顺序保证父节点在前"""
        global_T = {}
        for name, joint in self.joints.items():
            if joint.parent is None:
                global_T[name] = self.model_matrix @ joint.local_matrix()
            else:
                global_T[name] = global_T[joint.parent] @ joint.local_matrix()
        return global_T

    def positions(self):
        """(J,3) 当前关节世界位置，顺序同 names"""
        global_T = self.global_transforms()
        return np.stack([global_T[n][:3, 3] for n in self.joints], axis=0)

    # ========== 失效标记 ==========

    def mark_stale(self, name):
        """标记关节及其全部后代的派生变换已过期"""
        if name not in self.joints:
            return
        self._stale.add(name)
        self._stale.update(self.descendants(name))

    def consume_stale(self):
        """返回并清空过期集合（渲染端按需更新 actor）"""
        stale, self._stale = self._stale, set()
        return stale
