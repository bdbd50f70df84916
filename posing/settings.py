# posing/settings.py
"""
视图与交互参数

所有常量集中在这里，默认值与网页版编辑器保持一致；
可以用 JSON 文件覆盖其中一部分字段。
"""

import json
import logging
import math
import os
from dataclasses import dataclass, field, fields

logger = logging.getLogger(__name__)


@dataclass
class CameraSettings:
    fov: float = 75.0                  # 垂直视场角（度）
    near: float = 0.1
    far: float = 1000.0
    position: tuple = (5.0, 5.0, 5.0)  # 初始相机位置
    target: tuple = (0.0, 0.0, 0.0)
    min_distance: float = 2.0
    max_distance: float = 50.0
    enable_damping: bool = True
    damping_factor: float = 0.05
    rotate_speed: float = 0.8 * math.pi  # 除以视口高度后得到每像素弧度
    pan_speed: float = 0.8
    zoom_in_scale: float = 0.95
    zoom_out_scale: float = 1.05
    polar_epsilon: float = 0.1         # 极角离开两极的最小距离
    transition_duration: float = 1.0   # 预设视角动画时长（秒）


@dataclass
class InteractionSettings:
    click_tolerance: float = 4.0        # 像素，小于此位移视为点击
    joint_radius: float = 0.1           # 关节球半径
    imported_joint_radius: float = 0.05 # 导入模型（缩放后）的关节球半径
    gizmo_radius: float = 0.45
    gizmo_tolerance: float = 0.15       # 环半径的相对容差


@dataclass
class ViewportSettings:
    width: int = 1200
    height: int = 800
    frame_interval_ms: int = 16
    background: str = '#2c3e50'
    body_color: str = '#ffdbac'
    joint_color: str = '#ff4444'
    hover_color: str = '#ff8a8a'
    selected_color: str = '#ffff00'
    imported_target_height: float = 2.0
    imported_spacing: float = 3.0


@dataclass
class Settings:
    camera: CameraSettings = field(default_factory=CameraSettings)
    interaction: InteractionSettings = field(default_factory=InteractionSettings)
    viewport: ViewportSettings = field(default_factory=ViewportSettings)


def _overlay(section, values, section_name):
    """把 dict 中的值写入 dataclass，未知键直接报错"""
    known = {f.name: f for f in fields(section)}
    for key, value in values.items():
        if key not in known:
            raise ValueError(f"未知配置项: {section_name}.{key}")
        if isinstance(getattr(section, key), tuple):
            value = tuple(float(v) for v in value)
        setattr(section, key, value)


def load_settings(path=None):
    """
    读取 JSON 配置文件

    Parameters:
    -----------
    path : str or None
        配置文件路径。为 None 或文件不存在时返回默认配置

    Returns:
    --------
    settings : Settings
    """
    settings = Settings()
    if path is None:
        return settings

    if not os.path.exists(path):
        logger.warning("配置文件不存在，使用默认配置: %s", path)
        return settings

    with open(path, 'r', encoding='utf-8') as f:
        data = json.load(f)

    for section_name, values in data.items():
        if not hasattr(settings, section_name):
            raise ValueError(f"未知配置段: {section_name}")
        _overlay(getattr(settings, section_name), values, section_name)

    logger.info("已加载配置: %s", path)
    return settings
