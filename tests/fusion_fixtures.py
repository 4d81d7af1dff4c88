"""测试辅助：按“期望的机器人位姿”反推 Tag 观测。

给定 T_field_from_tag、期望的 T_field_from_robot 与安装偏置 T_robot_from_cam，
PnP 应该给出的 tag->camera 为：
    T_cam_from_tag = inv(T_field_from_robot @ T_robot_from_cam) @ T_field_from_tag
"""

from __future__ import annotations

import numpy as np

from fiducial_fusion import (
    FieldLayout,
    TargetObservation,
    compose_T,
    invert_T,
    pose_from_xyz_rpy,
)

# 相机装在机器人中心前方 0.2m、离地 0.5m，平视。
T_ROBOT_FROM_CAM = pose_from_xyz_rpy((0.2, 0.0, 0.5), (0.0, 0.0, 0.0))

LAYOUT = FieldLayout(
    {
        1: pose_from_xyz_rpy((5.0, 0.0, 0.5), (0.0, 0.0, np.pi)),
        2: pose_from_xyz_rpy((5.0, 2.0, 0.5), (0.0, 0.0, np.pi)),
        3: pose_from_xyz_rpy((5.0, -2.0, 0.5), (0.0, 0.0, np.pi)),
        4: pose_from_xyz_rpy((0.0, 4.0, 1.0), (0.0, 0.0, -np.pi / 2)),
    }
)


def robot_pose(x: float, y: float, z: float = 0.0, yaw: float = 0.0) -> np.ndarray:
    return pose_from_xyz_rpy((x, y, z), (0.0, 0.0, yaw))


def cam_from_tag_for(
    *,
    tag_id: int,
    T_field_from_robot: np.ndarray,
    layout: FieldLayout = LAYOUT,
    T_robot_from_cam: np.ndarray = T_ROBOT_FROM_CAM,
) -> np.ndarray:
    T_field_from_tag = layout.lookup(tag_id)
    if T_field_from_tag is None:
        # 未知 tag：随便给一个合法变换。
        return pose_from_xyz_rpy((0.0, 0.0, 2.0))
    return compose_T(invert_T(compose_T(T_field_from_robot, T_robot_from_cam)), T_field_from_tag)


def observe(
    tag_id: int,
    ambiguity: float | None,
    T_field_from_robot: np.ndarray,
    *,
    alt_robot_pose: np.ndarray | None = None,
    T_robot_from_cam: np.ndarray = T_ROBOT_FROM_CAM,
) -> TargetObservation:
    alt = None
    if alt_robot_pose is not None:
        alt = cam_from_tag_for(tag_id=tag_id, T_field_from_robot=alt_robot_pose, T_robot_from_cam=T_robot_from_cam)
    return TargetObservation(
        tag_id=tag_id,
        ambiguity=ambiguity,
        T_cam_from_tag=cam_from_tag_for(tag_id=tag_id, T_field_from_robot=T_field_from_robot, T_robot_from_cam=T_robot_from_cam),
        T_cam_from_tag_alt=alt,
    )
