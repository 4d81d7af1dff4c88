"""多 Tag 融合策略：把一帧的候选位姿压缩成单一机器人位姿。

五种策略是一个封闭集合：
- LOWEST_AMBIGUITY：选 ambiguity 最小的观测。
- CLOSEST_TO_CAMERA_HEIGHT：选“推得的相机高度”最接近标称高度的候选。
- CLOSEST_TO_REFERENCE_POSE：选平移上最接近外部参考位姿的候选。
- CLOSEST_TO_LAST_POSE：同上，但参考的是上一次输出（由估计器负责回写）。
- AVERAGE_BEST_TARGETS：按 (1 - ambiguity) 加权平均所有候选。

约定：
- 每个策略是 `(candidates, ctx) -> PoseSelection | None` 的纯函数，不修改任何状态。
- 平局时保留先出现的候选（观测顺序；同一观测中最优解先于备选解）。
- 备选解只参与三种 closest-to 策略；按 ambiguity 的两种策略只看最优解。
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Sequence

import numpy as np

from fiducial_fusion.transforms import compose_T, make_T, translation_distance, weighted_average_rotation
from fiducial_fusion.types import PoseCandidate, is_known_ambiguity


class PoseStrategy(str, Enum):
    LOWEST_AMBIGUITY = "lowest_ambiguity"
    CLOSEST_TO_CAMERA_HEIGHT = "closest_to_camera_height"
    CLOSEST_TO_REFERENCE_POSE = "closest_to_reference_pose"
    CLOSEST_TO_LAST_POSE = "closest_to_last_pose"
    AVERAGE_BEST_TARGETS = "average_best_targets"

    @classmethod
    def parse(cls, name: "str | PoseStrategy") -> "PoseStrategy":
        """按 value 或成员名解析（大小写不敏感）。"""

        if isinstance(name, PoseStrategy):
            return name
        key = str(name).strip().lower()
        for s in cls:
            if key == s.value or key == s.name.lower():
                return s
        choices = ", ".join(s.value for s in cls)
        raise ValueError(f"未知的 pose strategy：{name!r}（可选：{choices}）")


@dataclass(frozen=True, slots=True)
class StrategyContext:
    """策略运行时需要读取的估计器状态快照。

    Attributes:
        T_robot_from_cam: 相机安装偏置（robot<-camera）。
        camera_height_m: 相机离地的标称高度（米，场地 +Z）。
        reference_pose: 外部参考位姿 T_field_from_robot。
        last_pose: 上一次输出的位姿 T_field_from_robot。
    """

    T_robot_from_cam: np.ndarray
    camera_height_m: float
    reference_pose: np.ndarray
    last_pose: np.ndarray


@dataclass(frozen=True, slots=True)
class PoseSelection:
    """策略输出：选中/融合得到的位姿，以及参与的 Tag。"""

    T_field_from_robot: np.ndarray
    tag_ids: tuple[int, ...]


StrategyFn = Callable[[Sequence[PoseCandidate], StrategyContext], "PoseSelection | None"]


def _select(c: PoseCandidate) -> PoseSelection:
    return PoseSelection(T_field_from_robot=c.T_field_from_robot, tag_ids=(int(c.tag_id),))


def _argmin(candidates: Sequence[PoseCandidate], key: Callable[[PoseCandidate], float]) -> PoseCandidate | None:
    """返回 key 最小的候选；严格小于才替换，保证平局取先出现者。"""

    best: PoseCandidate | None = None
    best_v = math.inf
    for c in candidates:
        v = float(key(c))
        if not math.isfinite(v):
            continue
        if v < best_v:
            best, best_v = c, v
    return best


def lowest_ambiguity(candidates: Sequence[PoseCandidate], ctx: StrategyContext) -> PoseSelection | None:
    """选 ambiguity 最小的观测（ambiguity 未知的观测不参与）。"""

    usable = [c for c in candidates if not c.is_alternate and is_known_ambiguity(c.ambiguity)]
    best = _argmin(usable, lambda c: float(c.ambiguity))  # type: ignore[arg-type]
    return None if best is None else _select(best)


def camera_height_of(candidate: PoseCandidate, T_robot_from_cam: np.ndarray) -> float:
    """由候选机器人位姿与安装偏置推得的相机离地高度（场地 z）。"""

    T_field_from_cam = compose_T(candidate.T_field_from_robot, T_robot_from_cam)
    return float(T_field_from_cam[2, 3])


def closest_to_camera_height(candidates: Sequence[PoseCandidate], ctx: StrategyContext) -> PoseSelection | None:
    h = float(ctx.camera_height_m)
    best = _argmin(candidates, lambda c: abs(camera_height_of(c, ctx.T_robot_from_cam) - h))
    return None if best is None else _select(best)


def closest_to_reference_pose(candidates: Sequence[PoseCandidate], ctx: StrategyContext) -> PoseSelection | None:
    best = _argmin(candidates, lambda c: translation_distance(c.T_field_from_robot, ctx.reference_pose))
    return None if best is None else _select(best)


def closest_to_last_pose(candidates: Sequence[PoseCandidate], ctx: StrategyContext) -> PoseSelection | None:
    # 说明：回写 last_pose 由估计器在成功分支里完成，这里保持纯函数。
    best = _argmin(candidates, lambda c: translation_distance(c.T_field_from_robot, ctx.last_pose))
    return None if best is None else _select(best)


def average_best_targets(candidates: Sequence[PoseCandidate], ctx: StrategyContext) -> PoseSelection | None:
    """按 w = 1 - ambiguity 对最优解做加权平均。

    - 平移：加权算术平均。
    - 旋转：四元数加权平均（见 `weighted_average_rotation`）。
    - ambiguity 未知的观测完全不参与；权重和为 0 时返回 None。
    """

    used: list[PoseCandidate] = []
    weights: list[float] = []
    for c in candidates:
        if c.is_alternate or not is_known_ambiguity(c.ambiguity):
            continue
        w = 1.0 - float(c.ambiguity)  # type: ignore[arg-type]
        if w <= 0.0:
            continue
        used.append(c)
        weights.append(w)

    if not used:
        return None

    tag_ids = tuple(int(c.tag_id) for c in used)
    if len(used) == 1:
        return PoseSelection(T_field_from_robot=used[0].T_field_from_robot, tag_ids=tag_ids)

    w = np.asarray(weights, dtype=np.float64)
    total = float(np.sum(w))
    ts = np.stack([np.asarray(c.T_field_from_robot, dtype=np.float64)[:3, 3] for c in used], axis=0)
    t_mean = (w[:, None] * ts).sum(axis=0) / total

    R_mean = weighted_average_rotation([np.asarray(c.T_field_from_robot)[:3, :3] for c in used], weights)

    return PoseSelection(T_field_from_robot=make_T(R=R_mean, t=t_mean), tag_ids=tag_ids)


STRATEGY_FUNCTIONS: dict[PoseStrategy, StrategyFn] = {
    PoseStrategy.LOWEST_AMBIGUITY: lowest_ambiguity,
    PoseStrategy.CLOSEST_TO_CAMERA_HEIGHT: closest_to_camera_height,
    PoseStrategy.CLOSEST_TO_REFERENCE_POSE: closest_to_reference_pose,
    PoseStrategy.CLOSEST_TO_LAST_POSE: closest_to_last_pose,
    PoseStrategy.AVERAGE_BEST_TARGETS: average_best_targets,
}

_missing = sorted(s.value for s in PoseStrategy if s not in STRATEGY_FUNCTIONS)
if _missing:
    raise RuntimeError(f"PoseStrategy 未注册实现：{_missing}")
