"""位姿融合估计器的配置。

约定：
    - 坐标系：场地系右手、+Z 竖直向上；长度单位米，角度单位弧度。
    - 姿态统一用 (roll, pitch, yaw)，R = Rz(yaw) @ Ry(pitch) @ Rx(roll)。
    - robot_to_camera_* 描述相机在机器人坐标系下的安装位姿（robot<-camera）。
"""

from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np

from fiducial_fusion.strategies import PoseStrategy
from fiducial_fusion.transforms import pose_from_xyz_rpy


def _check_vec3(name: str, v: tuple[float, ...]) -> None:
    if len(v) != 3:
        raise ValueError(f"{name} 需要 3 个元素，实际为 {len(v)}")
    if not all(math.isfinite(float(x)) for x in v):
        raise ValueError(f"{name} 必须是有限值：{v}")


@dataclass(frozen=True)
class EstimatorConfig:
    """PoseFusionEngine 配置。

    属性说明：
        strategy: 融合策略名（见 `PoseStrategy`）。
        robot_to_camera_xyz_m / robot_to_camera_rpy_rad: 相机安装位姿。
        camera_height_m: CLOSEST_TO_CAMERA_HEIGHT 使用的相机离地高度；
            None 表示取 robot_to_camera_xyz_m 的 z（机器人原点在地面）。
        reference_pose_*: CLOSEST_TO_REFERENCE_POSE 的初始参考位姿。
        initial_last_pose_*: CLOSEST_TO_LAST_POSE 的初始 last pose。
    """

    strategy: str = PoseStrategy.LOWEST_AMBIGUITY.value

    robot_to_camera_xyz_m: tuple[float, float, float] = (0.0, 0.0, 0.0)
    robot_to_camera_rpy_rad: tuple[float, float, float] = (0.0, 0.0, 0.0)

    camera_height_m: float | None = None

    reference_pose_xyz_m: tuple[float, float, float] = (0.0, 0.0, 0.0)
    reference_pose_rpy_rad: tuple[float, float, float] = (0.0, 0.0, 0.0)

    initial_last_pose_xyz_m: tuple[float, float, float] = (0.0, 0.0, 0.0)
    initial_last_pose_rpy_rad: tuple[float, float, float] = (0.0, 0.0, 0.0)

    def __post_init__(self) -> None:
        # 说明：YAML 里的序列会解析成 list，这里统一转为 tuple 以保持 frozen 语义。
        for name in (
            "robot_to_camera_xyz_m",
            "robot_to_camera_rpy_rad",
            "reference_pose_xyz_m",
            "reference_pose_rpy_rad",
            "initial_last_pose_xyz_m",
            "initial_last_pose_rpy_rad",
        ):
            v = tuple(float(x) for x in getattr(self, name))
            _check_vec3(name, v)
            object.__setattr__(self, name, v)

        object.__setattr__(self, "strategy", PoseStrategy.parse(self.strategy).value)

        if self.camera_height_m is not None:
            h = float(self.camera_height_m)
            if not math.isfinite(h):
                raise ValueError(f"camera_height_m 必须是有限值：{self.camera_height_m}")
            object.__setattr__(self, "camera_height_m", h)

    @property
    def pose_strategy(self) -> PoseStrategy:
        return PoseStrategy.parse(self.strategy)

    def T_robot_from_cam(self) -> np.ndarray:
        return pose_from_xyz_rpy(self.robot_to_camera_xyz_m, self.robot_to_camera_rpy_rad)

    def reference_pose(self) -> np.ndarray:
        return pose_from_xyz_rpy(self.reference_pose_xyz_m, self.reference_pose_rpy_rad)

    def initial_last_pose(self) -> np.ndarray:
        return pose_from_xyz_rpy(self.initial_last_pose_xyz_m, self.initial_last_pose_rpy_rad)
