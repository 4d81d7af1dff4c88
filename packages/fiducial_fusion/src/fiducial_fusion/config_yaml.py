"""fiducial_fusion 的 YAML 配置加载入口。

约定：
    - YAML 顶层为 mapping，字段名与 `EstimatorConfig` 一致。
    - 未知字段会报错，避免拼写错误静默失效。
    - 所有字段都有默认值；空文件等价于默认配置。

依赖：
    - 本模块依赖 PyYAML（`pyyaml`）。
"""

from __future__ import annotations

import logging
from dataclasses import fields
from pathlib import Path
from typing import Any, Mapping

import yaml

from fiducial_fusion.camera import FrameSource
from fiducial_fusion.config import EstimatorConfig
from fiducial_fusion.estimator import PoseFusionEngine
from fiducial_fusion.field_layout import FieldLayout


def _as_mapping(x: Any) -> Mapping[str, Any]:
    if x is None:
        return {}
    if isinstance(x, Mapping):
        return x
    raise TypeError(f"YAML 根节点必须是 mapping，实际是：{type(x).__name__}")


def estimator_config_from_dict(data: Mapping[str, Any]) -> EstimatorConfig:
    """从 dict（通常来自 YAML）构造 `EstimatorConfig`。"""

    allowed = {f.name for f in fields(EstimatorConfig)}
    unknown = sorted(set(data.keys()) - allowed)
    if unknown:
        raise KeyError(f"EstimatorConfig 出现未知字段：{unknown}")

    try:
        return EstimatorConfig(**dict(data))
    except TypeError as e:
        raise ValueError(f"EstimatorConfig 构造失败：{e}") from e


def load_estimator_config_yaml(path: str | Path) -> EstimatorConfig:
    """从 YAML 文件加载 `EstimatorConfig`。"""

    p = Path(path)
    text = p.read_text(encoding="utf-8")
    payload = yaml.safe_load(text)
    return estimator_config_from_dict(_as_mapping(payload))


def build_engine(
    cfg: EstimatorConfig,
    *,
    field_layout: FieldLayout,
    camera: FrameSource | None = None,
    logger: logging.Logger | None = None,
) -> PoseFusionEngine:
    """按配置构造估计器。"""

    return PoseFusionEngine(
        field_layout=field_layout,
        strategy=cfg.pose_strategy,
        T_robot_from_cam=cfg.T_robot_from_cam(),
        camera=camera,
        camera_height_m=cfg.camera_height_m,
        reference_pose=cfg.reference_pose(),
        last_pose=cfg.initial_last_pose(),
        logger=logger,
    )
