"""FrameResult / EstimatedRobotPose 与 JSON 字典之间的转换。

用于离线回放（见 `tools/replay_fiducial_fusion.py`）与跨进程传递检测结果。

输入帧格式：

    {
      "timestamp_s": 12.345,
      "targets": [
        {"tag_id": 3, "ambiguity": 0.12,
         "cam_from_tag": {"t": [x, y, z], "quat_wxyz": [w, x, y, z]},
         "cam_from_tag_alt": {"T": [[...4x4...]]}}
      ]
    }

说明：
- 变换可写成 `{"t", "quat_wxyz"}` 或完整的 `{"T": 4x4}`。
- ambiguity 缺省或为 null / -1 表示未知。
- cam_from_tag_alt 可省略。
"""

from __future__ import annotations

from typing import Any, Mapping

import numpy as np

from fiducial_fusion.transforms import R_from_quat_wxyz, make_T, rpy_from_R
from fiducial_fusion.types import EstimatedRobotPose, FrameResult, TargetObservation


def _to_float(x: Any, name: str) -> float:
    try:
        return float(x)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{name} 应为数值，实际为 {x!r}") from exc


def _to_int(x: Any, name: str) -> int:
    if isinstance(x, bool):
        raise ValueError(f"{name} 应为整数，实际为 {x!r}")
    try:
        return int(x)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{name} 应为整数，实际为 {x!r}") from exc


def _transform_from_dict(obj: Any, name: str) -> np.ndarray:
    if not isinstance(obj, Mapping):
        raise ValueError(f"{name} 必须是对象（dict），实际为 {type(obj).__name__}")

    if "T" in obj:
        try:
            T = np.asarray(obj["T"], dtype=np.float64)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"{name}.T 不是数值矩阵") from exc
        if T.shape != (4, 4):
            raise ValueError(f"{name}.T 形状应为 (4,4)，实际为 {T.shape}")
        return T

    try:
        t = np.asarray(obj["t"], dtype=np.float64).reshape(3)
        q = np.asarray(obj["quat_wxyz"], dtype=np.float64).reshape(4)
    except KeyError as exc:
        raise ValueError(f"{name} 缺少字段 {exc.args[0]!r}") from exc
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{name} 的 t/quat_wxyz 形状不正确") from exc

    return make_T(R=R_from_quat_wxyz(q), t=t)


def target_observation_from_dict(obj: Any, idx: int = 0) -> TargetObservation:
    name = f"targets[{idx}]"
    if not isinstance(obj, Mapping):
        raise ValueError(f"{name} 必须是对象（dict）")
    if "tag_id" not in obj:
        raise ValueError(f"{name} 缺少字段 'tag_id'")
    if "cam_from_tag" not in obj:
        raise ValueError(f"{name} 缺少字段 'cam_from_tag'")

    amb_raw = obj.get("ambiguity")
    ambiguity = None if amb_raw is None else _to_float(amb_raw, f"{name}.ambiguity")

    alt_raw = obj.get("cam_from_tag_alt")
    alt = None if alt_raw is None else _transform_from_dict(alt_raw, f"{name}.cam_from_tag_alt")

    return TargetObservation(
        tag_id=_to_int(obj["tag_id"], f"{name}.tag_id"),
        ambiguity=ambiguity,
        T_cam_from_tag=_transform_from_dict(obj["cam_from_tag"], f"{name}.cam_from_tag"),
        T_cam_from_tag_alt=alt,
    )


def frame_result_from_dict(data: Mapping[str, Any]) -> FrameResult:
    """从 dict 构造 FrameResult。

    Raises:
        ValueError: 缺字段或字段形状不正确。
    """

    if not isinstance(data, Mapping):
        raise ValueError("frame 必须是对象（dict）")
    if "timestamp_s" not in data:
        raise ValueError("frame 缺少字段 'timestamp_s'")

    targets_raw = data.get("targets")
    if targets_raw is None:
        targets_raw = []
    if not isinstance(targets_raw, list):
        raise ValueError("frame.targets 必须是列表")

    return FrameResult.of(
        (target_observation_from_dict(t, i) for i, t in enumerate(targets_raw)),
        timestamp_s=_to_float(data["timestamp_s"], "frame.timestamp_s"),
    )


def estimated_pose_to_dict(est: EstimatedRobotPose) -> dict[str, Any]:
    """把融合结果转为可直接 json.dumps 的 dict。"""

    T = np.asarray(est.T_field_from_robot, dtype=np.float64)
    roll, pitch, yaw = rpy_from_R(T[:3, :3])
    return {
        "timestamp_s": float(est.timestamp_s),
        "strategy": str(est.strategy),
        "tag_ids": [int(x) for x in est.tag_ids],
        "xyz_m": [float(T[0, 3]), float(T[1, 3]), float(T[2, 3])],
        "rpy_rad": [float(roll), float(pitch), float(yaw)],
        "T_field_from_robot": T.tolist(),
    }
