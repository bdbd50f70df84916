# posing/skeleton_loader.py
"""
GLB 骨架加载模块
从带骨骼的 GLB 文件中提取骨骼（名称、父骨骼、世界位置）和网格，
并为每根骨骼生成可拾取的关节代理。
"""

import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np
import trimesh

from .constraints import ROTATION_CONSTRAINTS
from .skeleton import Skeleton

logger = logging.getLogger(__name__)

_NAME_PREFIXES = ('mixamorig:', 'mixamorig_', 'Armature|', 'Skeleton|')

_EXCLUDE_KEYWORDS = ('camera', 'light')

_JOINT_KEYWORDS = (
    'mixamorig', 'rig', 'bone', 'joint', 'armature',
    'hips', 'spine', 'neck', 'head', 'shoulder', 'arm', 'hand',
    'leg', 'foot', 'toe', 'knee', 'ankle', 'elbow', 'wrist',
)


@dataclass
class Bone:
    name: str                  # 已去掉 mixamorig: 等前缀
    parent: Optional[str]      # 父骨骼（同样清理过），根为 None
    world_position: np.ndarray  # (3,) 资源坐标系下的位置


def load_bones_from_glb(glb_path):
    """
    从 GLB 文件读取骨骼

    Parameters:
    -----------
    glb_path : str
        GLB 文件路径

    Returns:
    --------
    bones : list of Bone
        父骨骼在前；文件中没有骨骼时返回空列表
    """
    logger.info("正在加载 GLB 骨架: %s", glb_path)
    scene = trimesh.load(glb_path, process=False)

    if not hasattr(scene, 'graph'):
        raise ValueError("GLB 文件中未找到场景图结构")

    return bones_from_scene(scene)


def bones_from_scene(scene):
    """从 trimesh.Scene 提取骨骼"""
    graph = scene.graph

    # 第一步：识别所有骨骼节点
    joint_nodes = _extract_joint_nodes(scene)
    if not joint_nodes:
        logger.warning("场景中未找到骨骼节点，跳过关节代理生成")
        return []

    # 第二步：父子关系（向上跳过非骨骼节点）
    parent_map = _build_parent_map(graph, joint_nodes)

    # 第三步：拓扑排序（确保父节点在前）
    sorted_nodes = _topological_sort(joint_nodes, parent_map)

    bones = []
    for node in sorted_nodes:
        transform, _ = graph.get(node)
        parent = parent_map.get(node)
        bones.append(Bone(
            name=_clean_name(node),
            parent=_clean_name(parent) if parent else None,
            world_position=np.asarray(transform[:3, 3], dtype=np.float64),
        ))
        logger.debug("骨骼 %-25s <- %s", bones[-1].name, bones[-1].parent or "Root")

    logger.info("加载完成: %d 根骨骼", len(bones))
    return bones


def _extract_joint_nodes(scene):
    """非几何体、非相机/灯光、名字像骨骼的节点"""
    graph = scene.graph
    geometry_nodes = set(graph.nodes_geometry)
    base = graph.base_frame

    joint_nodes = []
    for node in graph.nodes:
        if node == base or node in geometry_nodes:
            continue
        lower = str(node).lower()
        if any(kw in lower for kw in _EXCLUDE_KEYWORDS):
            continue
        if any(kw in lower for kw in _JOINT_KEYWORDS):
            joint_nodes.append(node)

    # graph.nodes 是集合，排序保证结果稳定
    return sorted(joint_nodes)


def _build_parent_map(graph, joint_nodes):
    parents = graph.transforms.parents
    joint_set = set(joint_nodes)
    parent_map = {}
    for node in joint_nodes:
        p = parents.get(node)
        while p is not None and p not in joint_set:
            p = parents.get(p)
        parent_map[node] = p
    return parent_map


def _topological_sort(nodes, parent_map):
    """BFS：父节点在子节点之前"""
    children = {n: [] for n in nodes}
    for child, parent in parent_map.items():
        if parent is not None:
            children[parent].append(child)

    queue = [n for n in nodes if parent_map.get(n) is None]
    sorted_nodes = []
    while queue:
        node = queue.pop(0)
        sorted_nodes.append(node)
        queue.extend(children[node])
    return sorted_nodes


def _clean_name(name):
    """清理节点名称"""
    if not name:
        return ""
    for prefix in _NAME_PREFIXES:
        if name.startswith(prefix):
            return name[len(prefix):]
    return name


# ========== 摆放与关节代理 ==========

def placement_matrix(bounds, target_height=2.0, offset_x=0.0):
    """
    导入模型的摆放矩阵：缩放到目标高度、居中、沿 X 平移

    Parameters:
    -----------
    bounds : array-like (2, 3)
        模型包围盒 [min, max]
    target_height : float
    offset_x : float
        已加载模型数 * 间距
    """
    bounds = np.asarray(bounds, dtype=np.float64)
    size = bounds[1] - bounds[0]
    center = bounds.mean(axis=0)
    scale = target_height / size[1] if size[1] > 0 else 1.0

    M = np.eye(4)
    M[:3, :3] *= scale
    M[:3, 3] = np.array([offset_x, 0.0, 0.0]) - center * scale
    return M


def build_proxy_skeleton(bones, model_matrix=None, radius=0.05, constraints=None):
    """
    为每根骨骼生成一个关节代理

    Parameters:
    -----------
    bones : list of Bone
        世界坐标（已摆放）下的骨骼
    model_matrix : (4,4) or None
        模型摆放矩阵，骨骼世界位置经其逆变换回模型局部空间
    radius : float
        关节球的显示/拾取半径（世界单位）

    Returns:
    --------
    skeleton : Skeleton or None
        没有骨骼时返回 None
    """
    if not bones:
        logger.warning("导入模型没有骨骼数据，不生成关节代理")
        return None

    table = ROTATION_CONSTRAINTS if constraints is None else constraints
    skeleton = Skeleton(model_matrix=model_matrix)
    inv = np.linalg.inv(skeleton.model_matrix)

    for bone in bones:
        if bone.name in skeleton:
            logger.warning("重复的骨骼名，跳过: %s", bone.name)
            continue
        local = (inv @ np.append(bone.world_position, 1.0))[:3]

        parent = bone.parent if bone.parent in skeleton else None
        if parent is None and skeleton.root is not None:
            # 多个根：挂到第一个根下面
            parent = skeleton.root

        skeleton.create_joint(bone.name, local, parent=parent,
                              constraint=table.get(bone.name), proxy_radius=radius)

    logger.info("生成 %d 个关节代理", skeleton.n)
    return skeleton


# ========== 网格加载 ==========

def load_mesh_from_glb(glb_path, scale=1.0):
    """
    从 GLB 文件加载网格

    Returns:
    --------
    vertices : np.ndarray (N, 3)
    faces : np.ndarray (M, 3)
    """
    scene = trimesh.load(glb_path)
    return mesh_from_scene(scene, scale)


def mesh_from_scene(scene, scale=1.0):
    if isinstance(scene, trimesh.Trimesh):
        return scene.vertices * scale, scene.faces

    if isinstance(scene, trimesh.Scene):
        # 合并所有网格（带节点变换）
        combined = scene.to_mesh()
        if not isinstance(combined, trimesh.Trimesh) or len(combined.faces) == 0:
            raise ValueError("场景中无网格数据")
        return combined.vertices * scale, combined.faces

    raise ValueError(f"未知的场景类型: {type(scene)}")


# ========== 可视化 ==========

def skeleton_tree_lines(skeleton):
    """骨架树形结构（文本行），根在前、深度优先"""
    lines = []
    if skeleton is None or skeleton.root is None:
        return lines

    def walk(name, depth):
        joint = skeleton.joints[name]
        indent = "  " * depth
        symbol = "├─" if depth > 0 else "●"
        limits = " [约束]" if joint.constraint else ""
        lines.append(f"{indent}{symbol} {name}{limits}")
        for child in joint.children:
            walk(child, depth + 1)

    walk(skeleton.root, 0)
    return lines


def visualize_skeleton_structure(skeleton):
    """打印骨架树形结构"""
    print("\n📊 骨架层级结构:")
    print("=" * 60)
    for line in skeleton_tree_lines(skeleton):
        print(line)
    print("=" * 60)
