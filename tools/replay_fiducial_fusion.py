"""离线回放：把逐帧 Tag 观测（JSONL）喂给 PoseFusionEngine，输出逐帧位姿。

使用场景：
- 你已经有上游检测 + PnP 的逐帧结果（每行一个 frame，格式见 `fiducial_fusion.frame_io`）。
- 想对比不同融合策略、安装偏置或标称相机高度下的输出。

示例：
    uv run python tools/replay_fiducial_fusion.py \
        --layout data/field/layout.json --frames data/frames.jsonl \
        --config configs/fusion.yaml --strategy average_best_targets --out-jsonl out.jsonl

说明：
- 每个输入帧对应一行输出；本帧无结果时输出 {"timestamp_s": ..., "pose": null}。
- 解析失败的行会跳过并计数，不中断回放。
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Iterator

from fiducial_fusion import (
    EstimatorConfig,
    PoseStrategy,
    default_logger,
    estimated_pose_to_dict,
    frame_result_from_dict,
    load_field_layout_json,
)
from fiducial_fusion.config_yaml import build_engine, load_estimator_config_yaml


def _iter_jsonl(path: Path) -> Iterator[tuple[int, Any]]:
    """逐行读取 JSONL，返回 (行号, 解析结果)；空行跳过，坏行返回 (行号, None)。"""

    with path.open("r", encoding="utf-8") as f:
        for lineno, line in enumerate(f, start=1):
            s = line.strip()
            if not s:
                continue
            try:
                yield lineno, json.loads(s)
            except json.JSONDecodeError:
                yield lineno, None


def build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Replay per-frame AprilTag observations through the pose fusion engine")
    p.add_argument("--layout", required=True, help="field layout JSON（WPILib AprilTag layout 格式）")
    p.add_argument("--frames", required=True, help="逐帧观测 JSONL")
    p.add_argument("--config", default=None, help="EstimatorConfig YAML（可选）")
    p.add_argument(
        "--strategy",
        default=None,
        choices=[s.value for s in PoseStrategy],
        help="覆盖配置中的融合策略",
    )
    p.add_argument("--out-jsonl", default=None, help="输出 JSONL 路径；缺省写到 stdout")
    p.add_argument("--verbose", action="store_true", help="输出 DEBUG 日志")
    return p


def main(argv: list[str] | None = None) -> int:
    args = build_arg_parser().parse_args(argv)

    logger = default_logger()
    if args.verbose:
        logger.setLevel(logging.DEBUG)

    frames_path = Path(args.frames).resolve()
    if not frames_path.exists():
        raise RuntimeError(f"找不到 frames 输入文件：{frames_path}")

    layout = load_field_layout_json(Path(args.layout).resolve())
    cfg = load_estimator_config_yaml(Path(args.config).resolve()) if args.config else EstimatorConfig()
    engine = build_engine(cfg, field_layout=layout, logger=logger)
    if args.strategy is not None:
        engine.strategy = args.strategy

    out_f = Path(args.out_jsonl).open("w", encoding="utf-8") if args.out_jsonl else sys.stdout

    n_frames = 0
    n_poses = 0
    n_bad = 0
    try:
        for lineno, obj in _iter_jsonl(frames_path):
            if obj is None:
                n_bad += 1
                logger.warning("%s:%d: invalid JSON, skipped", frames_path.name, lineno)
                continue
            try:
                frame = frame_result_from_dict(obj)
            except ValueError as exc:
                n_bad += 1
                logger.warning("%s:%d: %s, skipped", frames_path.name, lineno, exc)
                continue

            n_frames += 1
            est = engine.update(frame)
            rec: dict[str, Any] = {"timestamp_s": float(frame.timestamp_s), "pose": None}
            if est is not None:
                n_poses += 1
                rec["pose"] = estimated_pose_to_dict(est)
            out_f.write(json.dumps(rec, ensure_ascii=False) + "\n")
    finally:
        if out_f is not sys.stdout:
            out_f.close()

    logger.info(
        "replay done: frames=%d poses=%d skipped=%d strategy=%s",
        n_frames,
        n_poses,
        n_bad,
        engine.strategy.value,
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
