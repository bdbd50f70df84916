# tools/print_skeleton.py
"""打印内置人体或 GLB 文件的关节树：python -m tools.print_skeleton [model.glb]"""
import sys

from posing.humanoid import build_humanoid
from posing.skeleton_loader import build_proxy_skeleton, load_bones_from_glb, visualize_skeleton_structure


if __name__ == '__main__':
    if len(sys.argv) > 1:
        skeleton = build_proxy_skeleton(load_bones_from_glb(sys.argv[1]))
    else:
        skeleton, _ = build_humanoid(with_body=False)
    visualize_skeleton_structure(skeleton)
    if skeleton is not None:
        print(f"关节数: {skeleton.n}, 骨骼数: {len(skeleton.bones())}")
