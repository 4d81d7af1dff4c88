"""场地 Tag 布局：tag_id -> 场地坐标系下的 Tag 位姿。

背景：
- 融合只需要一个只读查表 `lookup(tag_id)`；布局在启动时加载一次，运行期不变。
- 文件格式沿用 WPILib AprilTag field layout JSON：

    {
      "tags": [
        {"ID": 1,
         "pose": {"translation": {"x": 1.0, "y": 2.0, "z": 0.5},
                  "rotation": {"quaternion": {"W": 1.0, "X": 0.0, "Y": 0.0, "Z": 0.0}}}}
      ],
      "field": {"length": 16.54, "width": 8.02}
    }

注意：
- 查不到的 tag_id 是常态（场地外的 Tag、误检），`lookup()` 返回 None，不抛异常。
- 文件本身有问题则在加载时直接报错：这属于启动期配置错误。
"""

from __future__ import annotations

import json
import operator
from pathlib import Path
from types import MappingProxyType
from typing import Any, Iterator, Mapping

import numpy as np

from fiducial_fusion.transforms import R_from_quat_wxyz, as_T, make_T


def _tag_key(tag_id: object) -> int | None:
    """整数类 tag_id（含 numpy 整数）归一为 int；bool 与非整数返回 None。"""

    if isinstance(tag_id, bool):
        return None
    try:
        return operator.index(tag_id)  # type: ignore[arg-type]
    except TypeError:
        return None


class FieldLayout:
    """不可变的 Tag 布局。"""

    __slots__ = ("_poses", "_field_length_m", "_field_width_m")

    def __init__(
        self,
        tag_poses: Mapping[int, np.ndarray],
        *,
        field_length_m: float | None = None,
        field_width_m: float | None = None,
    ) -> None:
        poses = {int(k): as_T(v, name=f"tag {k} pose") for k, v in tag_poses.items()}
        self._poses: Mapping[int, np.ndarray] = MappingProxyType(poses)
        self._field_length_m = None if field_length_m is None else float(field_length_m)
        self._field_width_m = None if field_width_m is None else float(field_width_m)

    def lookup(self, tag_id: int) -> np.ndarray | None:
        """返回 T_field_from_tag；未知 tag 返回 None。"""

        key = _tag_key(tag_id)
        return None if key is None else self._poses.get(key)

    @property
    def tag_ids(self) -> tuple[int, ...]:
        return tuple(sorted(self._poses.keys()))

    @property
    def field_length_m(self) -> float | None:
        return self._field_length_m

    @property
    def field_width_m(self) -> float | None:
        return self._field_width_m

    def __contains__(self, tag_id: object) -> bool:
        key = _tag_key(tag_id)
        return key is not None and key in self._poses

    def __len__(self) -> int:
        return len(self._poses)

    def __iter__(self) -> Iterator[int]:
        return iter(self.tag_ids)

    def __repr__(self) -> str:
        return f"FieldLayout(tags={list(self.tag_ids)})"


def _require(d: Mapping[str, Any], key: str, where: str) -> Any:
    if key not in d:
        raise RuntimeError(f"{where} 缺少字段 {key!r}")
    return d[key]


def _as_float(x: Any, name: str) -> float:
    try:
        v = float(x)
    except (TypeError, ValueError) as exc:
        raise RuntimeError(f"{name} 应为数值，实际为 {x!r}") from exc
    if not np.isfinite(v):
        raise RuntimeError(f"{name} 必须是有限值，实际为 {v}")
    return v


def _tag_pose_from_dict(entry: Any, idx: int) -> tuple[int, np.ndarray]:
    where = f"tags[{idx}]"
    if not isinstance(entry, Mapping):
        raise RuntimeError(f"{where} 必须是对象（dict）")

    tag_id_raw = _require(entry, "ID", where)
    try:
        tag_id = int(tag_id_raw)
    except (TypeError, ValueError) as exc:
        raise RuntimeError(f"{where}.ID 应为整数，实际为 {tag_id_raw!r}") from exc

    pose = _require(entry, "pose", where)
    if not isinstance(pose, Mapping):
        raise RuntimeError(f"{where}.pose 必须是对象（dict）")

    tr = _require(pose, "translation", f"{where}.pose")
    t = np.array(
        [_as_float(_require(tr, k, f"{where}.pose.translation"), f"{where}.translation.{k}") for k in ("x", "y", "z")],
        dtype=np.float64,
    )

    rot = _require(pose, "rotation", f"{where}.pose")
    q = _require(rot, "quaternion", f"{where}.pose.rotation")
    wxyz = [_as_float(_require(q, k, f"{where}.pose.rotation.quaternion"), f"{where}.quaternion.{k}") for k in ("W", "X", "Y", "Z")]
    try:
        R = R_from_quat_wxyz(wxyz)
    except ValueError as exc:
        raise RuntimeError(f"{where} 的四元数非法：{wxyz}") from exc

    return tag_id, make_T(R=R, t=t)


def field_layout_from_dict(data: Mapping[str, Any]) -> FieldLayout:
    """从 dict（通常来自 JSON）构造 FieldLayout。

    Raises:
        RuntimeError: schema 不符合预期，或出现重复的 tag ID。
    """

    if not isinstance(data, Mapping):
        raise RuntimeError("field layout 顶层必须是对象（dict）")

    tags = data.get("tags")
    if not isinstance(tags, list):
        raise RuntimeError("field layout 缺少 tags 列表")

    poses: dict[int, np.ndarray] = {}
    for i, entry in enumerate(tags):
        tag_id, T = _tag_pose_from_dict(entry, i)
        if tag_id in poses:
            raise RuntimeError(f"field layout 中 tag ID 重复：{tag_id}")
        poses[tag_id] = T

    length = width = None
    field = data.get("field")
    if isinstance(field, Mapping):
        if "length" in field:
            length = _as_float(field["length"], "field.length")
        if "width" in field:
            width = _as_float(field["width"], "field.width")

    return FieldLayout(poses, field_length_m=length, field_width_m=width)


def load_field_layout_json(path: str | Path) -> FieldLayout:
    """从 JSON 文件加载 FieldLayout。

    Raises:
        RuntimeError: 文件缺失、JSON 解析失败、或 schema 不符合预期。
    """

    p = Path(path)
    if not p.exists():
        raise RuntimeError(f"找不到 field layout 文件: {p}")

    try:
        data = json.loads(p.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise RuntimeError(f"无法读取 field layout JSON: {p}") from exc

    return field_layout_from_dict(data)
