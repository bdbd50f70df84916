#!/usr/bin/env python3
"""
人体姿态编辑器 - 主程序
功能：启动带约束关节旋转和轨道相机的姿态编辑界面

使用方法：
    python main.py                 # 默认配置
    python main.py --config x.json # 覆盖部分参数
    python main.py --verbose       # 输出调试日志
"""

import argparse
import logging
import sys

logger = logging.getLogger("anypose")


def check_dependencies():
    """检查依赖项"""
    missing_deps = []

    for module, package in (("PyQt5", "PyQt5"), ("pyvista", "pyvista"),
                            ("pyvistaqt", "pyvistaqt"), ("numpy", "numpy"),
                            ("scipy", "scipy"), ("trimesh", "trimesh")):
        try:
            __import__(module)
        except ImportError:
            missing_deps.append(package)

    if missing_deps:
        print("❌ 缺少依赖项:")
        for dep in missing_deps:
            print(f"   - {dep}")
        print("\n请使用以下命令安装缺失的依赖项:")
        print(f"   pip install {' '.join(missing_deps)}")
        return False

    return True


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Anypose 人体姿态编辑器")
    parser.add_argument("--config", default=None, help="JSON 配置文件路径")
    parser.add_argument("--verbose", action="store_true", help="输出调试日志")
    return parser.parse_args(argv)


def main(argv=None):
    """主函数 - 启动姿态编辑器"""
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if not check_dependencies():
        sys.exit(1)

    from posing.settings import load_settings
    from pose_editor import main as run_ui

    settings = load_settings(args.config)
    logger.info("正在启动 UI 界面...")
    run_ui(settings)


if __name__ == "__main__":
    main()
