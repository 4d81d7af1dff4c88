"""候选位姿生成：每个已知 Tag 的观测 -> 一个（或两个）机器人场地位姿候选。

坐标系链条：
- 布局给出 field<-tag（T_field_from_tag）。
- 上游 PnP 给出 tag->camera（T_cam_from_tag）。
- 安装偏置给出 robot<-camera（T_robot_from_cam）。

目标：
- 计算 field<-robot：
  T_field_from_robot = T_field_from_tag @ inv(T_cam_from_tag) @ inv(T_robot_from_cam)

说明：
- 所有策略共用这一条链，保证数值口径一致。
- 布局里查不到的 tag 直接跳过，不报错（这是最常见的情况）。
- 含 NaN/Inf 的候选直接丢弃。
"""

from __future__ import annotations

import numpy as np

from fiducial_fusion.field_layout import FieldLayout
from fiducial_fusion.transforms import compose_T, invert_T
from fiducial_fusion.types import FrameResult, PoseCandidate


def field_to_robot(
    *,
    T_field_from_tag: np.ndarray,
    T_cam_from_tag: np.ndarray,
    T_robot_from_cam: np.ndarray,
) -> np.ndarray:
    """单个观测的变换链条，返回 T_field_from_robot。"""

    T_field_from_cam = compose_T(T_field_from_tag, invert_T(T_cam_from_tag))
    return compose_T(T_field_from_cam, invert_T(T_robot_from_cam))


def generate_candidates(
    *,
    result: FrameResult,
    field_layout: FieldLayout,
    T_robot_from_cam: np.ndarray,
    include_alternates: bool = True,
) -> list[PoseCandidate]:
    """为一帧中的每个已知 Tag 生成候选位姿。

    Args:
        result: 单帧检测结果。
        field_layout: Tag 布局（只读）。
        T_robot_from_cam: 相机安装偏置（robot<-camera）。
        include_alternates: 观测带有备选解时，是否也为备选解生成候选。

    Returns:
        候选列表，保持观测顺序；同一观测的最优解排在备选解之前。
        没有任何已知 Tag 时返回空列表。
    """

    out: list[PoseCandidate] = []
    for target in result.targets:
        T_field_from_tag = field_layout.lookup(target.tag_id)
        if T_field_from_tag is None:
            continue

        solutions = [(target.T_cam_from_tag, False)]
        if include_alternates and target.T_cam_from_tag_alt is not None:
            solutions.append((target.T_cam_from_tag_alt, True))

        for T_cam_from_tag, is_alternate in solutions:
            T_field_from_robot = field_to_robot(
                T_field_from_tag=T_field_from_tag,
                T_cam_from_tag=T_cam_from_tag,
                T_robot_from_cam=T_robot_from_cam,
            )
            # NaN/Inf 解不进入任何策略，同帧其它观测照常参与。
            if not bool(np.all(np.isfinite(T_field_from_robot))):
                continue
            out.append(
                PoseCandidate(
                    T_field_from_robot=T_field_from_robot,
                    ambiguity=target.ambiguity,
                    tag_id=int(target.tag_id),
                    is_alternate=is_alternate,
                )
            )

    return out
