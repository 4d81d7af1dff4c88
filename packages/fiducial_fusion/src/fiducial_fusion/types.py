"""数据结构：单个 Tag 观测 / 单帧结果 / 融合输出。

说明：
- 本包只负责“多 Tag 观测 -> 机器人场地位姿”的融合，不依赖采集链路与 Tag 检测器。
- 上游（检测 + PnP）需要给出每个 Tag 的 camera<-tag 变换与 ambiguity。
- 所有位姿/变换均为 4x4 齐次矩阵，命名 T_dst_from_src（见 `transforms`）。
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable

import numpy as np

from fiducial_fusion.transforms import yaw_from_R


def is_known_ambiguity(ambiguity: float | None) -> bool:
    """ambiguity 是否可用。

    约定：
    - None 表示上游未给出（未知）。
    - 上游的 wire 格式用 -1 表示未知；任何不在 [0,1] 内的值同样按未知处理。
    """

    if ambiguity is None:
        return False
    a = float(ambiguity)
    return math.isfinite(a) and 0.0 <= a <= 1.0


@dataclass(frozen=True, slots=True)
class TargetObservation:
    """单个 Tag 的检测结果（只保留融合所需的最小信息）。

    Attributes:
        tag_id: Tag 编号。
        ambiguity: 单 Tag PnP 的二义性分数，[0,1]，越小越可信；None 表示未知。
        T_cam_from_tag: 最优解（tag->camera）。
        T_cam_from_tag_alt: 平面 PnP 的另一个解；上游没有给出时为 None。
    """

    tag_id: int
    ambiguity: float | None
    T_cam_from_tag: np.ndarray  # (4,4)
    T_cam_from_tag_alt: np.ndarray | None = None  # (4,4)

    @property
    def has_known_ambiguity(self) -> bool:
        return is_known_ambiguity(self.ambiguity)


@dataclass(frozen=True, slots=True)
class FrameResult:
    """单帧检测结果：所有 Tag 共享同一个采集时间戳。"""

    targets: tuple[TargetObservation, ...]
    timestamp_s: float

    @staticmethod
    def of(targets: Iterable[TargetObservation], timestamp_s: float) -> "FrameResult":
        return FrameResult(targets=tuple(targets), timestamp_s=float(timestamp_s))

    @property
    def has_targets(self) -> bool:
        return len(self.targets) > 0


@dataclass(frozen=True, slots=True)
class RobotPose:
    """机器人位姿摘要（场地坐标系）。

    Attributes:
        x_m, y_m, z_m: 场地坐标（米）。
        yaw_rad: 绕场地 Z 轴的偏航角（弧度）。
    """

    x_m: float
    y_m: float
    z_m: float
    yaw_rad: float


@dataclass(frozen=True, slots=True)
class PoseCandidate:
    """由单个观测推得的候选机器人位姿。"""

    T_field_from_robot: np.ndarray  # (4,4)
    ambiguity: float | None
    tag_id: int
    is_alternate: bool = False


@dataclass(frozen=True, slots=True)
class EstimatedRobotPose:
    """一次融合的输出。

    Attributes:
        T_field_from_robot: 机器人在场地坐标系下的位姿（只读数组）。
        timestamp_s: 该位姿对应的采集时间（与 FrameResult 同一时间基）。
        strategy: 产生该结果的策略名（`PoseStrategy.value`）。
        tag_ids: 参与得到该结果的 Tag 编号。
    """

    T_field_from_robot: np.ndarray  # (4,4)
    timestamp_s: float
    strategy: str
    tag_ids: tuple[int, ...]

    @property
    def pose(self) -> RobotPose:
        T = self.T_field_from_robot
        return RobotPose(
            x_m=float(T[0, 3]),
            y_m=float(T[1, 3]),
            z_m=float(T[2, 3]),
            yaw_rad=yaw_from_R(T[:3, :3]),
        )
