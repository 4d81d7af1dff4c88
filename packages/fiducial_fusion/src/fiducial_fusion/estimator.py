"""PoseFusionEngine：多 Tag 观测 -> 单一机器人场地位姿。

一次 `update()` 的流程：
    1) 取得 FrameResult（参数传入，或从相机协作者拉取最新一帧）；
    2) 用当前安装偏置生成候选（见 `candidates`）；
    3) 按当前策略压缩成一个位姿（见 `strategies`）；
    4) 与帧时间戳一起返回；无结果返回 None。

状态：
- strategy / T_robot_from_cam / camera_height_m / reference_pose / last_pose 均可随时修改，
  下一次 `update()` 生效；不需要重建估计器。
- last_pose 只在 CLOSEST_TO_LAST_POSE 策略成功输出时被回写；无结果时保持不变。
- reference_pose / last_pose 未设置时为单位位姿（场地原点）。是否设置过由调用方负责，
  估计器不做校验。

线程：
- 设计为单线程控制循环内调用；跨线程共享时由调用方串行化所有修改与 `update()`。
"""

from __future__ import annotations

import logging

import numpy as np

from fiducial_fusion.camera import FrameSource
from fiducial_fusion.candidates import generate_candidates
from fiducial_fusion.field_layout import FieldLayout
from fiducial_fusion.logging_utils import default_logger
from fiducial_fusion.strategies import STRATEGY_FUNCTIONS, PoseStrategy, StrategyContext
from fiducial_fusion.transforms import as_T
from fiducial_fusion.types import EstimatedRobotPose, FrameResult


_IDENTITY = as_T(np.eye(4, dtype=np.float64), name="identity")


class PoseFusionEngine:
    """按可切换策略融合单相机单帧内的多个 Tag 观测。"""

    def __init__(
        self,
        *,
        field_layout: FieldLayout,
        strategy: PoseStrategy | str,
        T_robot_from_cam: np.ndarray,
        camera: FrameSource | None = None,
        camera_height_m: float | None = None,
        reference_pose: np.ndarray | None = None,
        last_pose: np.ndarray | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        """
        Args:
            field_layout: Tag 布局（只读，生命周期内不变）。
            strategy: 融合策略。
            T_robot_from_cam: 相机安装偏置（robot<-camera）。云台/转塔可在运行期更新。
            camera: 相机协作者；仅无参 `update()` 需要。
            camera_height_m: CLOSEST_TO_CAMERA_HEIGHT 使用的相机离地高度（米）。
                None 表示取 T_robot_from_cam 的 z 平移（即假设机器人原点在地面上）。
            reference_pose: CLOSEST_TO_REFERENCE_POSE 使用的外部参考位姿。
            last_pose: CLOSEST_TO_LAST_POSE 的初始值。
            logger: 可选 logger。
        """

        self._field_layout = field_layout
        self._camera = camera
        self._logger = logger or default_logger()

        self._strategy = PoseStrategy.parse(strategy)
        self._T_robot_from_cam = as_T(T_robot_from_cam, name="T_robot_from_cam")
        self._camera_height_m: float | None = None
        self.camera_height_m = camera_height_m
        self._reference_pose = _IDENTITY if reference_pose is None else as_T(reference_pose, name="reference_pose")
        self._last_pose = _IDENTITY if last_pose is None else as_T(last_pose, name="last_pose")

    # ---------- 只读属性 ----------

    @property
    def field_layout(self) -> FieldLayout:
        return self._field_layout

    @property
    def camera(self) -> FrameSource | None:
        return self._camera

    # ---------- 可变配置 ----------

    @property
    def strategy(self) -> PoseStrategy:
        return self._strategy

    @strategy.setter
    def strategy(self, value: PoseStrategy | str) -> None:
        new = PoseStrategy.parse(value)
        if new is not self._strategy:
            self._logger.debug("pose strategy: %s -> %s", self._strategy.value, new.value)
        self._strategy = new

    @property
    def T_robot_from_cam(self) -> np.ndarray:
        return self._T_robot_from_cam

    @T_robot_from_cam.setter
    def T_robot_from_cam(self, value: np.ndarray) -> None:
        self._T_robot_from_cam = as_T(value, name="T_robot_from_cam")

    @property
    def camera_height_m(self) -> float:
        """当前生效的相机标称高度（未显式设置时取安装偏置的 z）。"""

        if self._camera_height_m is None:
            return float(self._T_robot_from_cam[2, 3])
        return self._camera_height_m

    @camera_height_m.setter
    def camera_height_m(self, value: float | None) -> None:
        if value is None:
            self._camera_height_m = None
            return
        h = float(value)
        if not np.isfinite(h):
            raise ValueError(f"camera_height_m must be finite, got {value}")
        self._camera_height_m = h

    @property
    def reference_pose(self) -> np.ndarray:
        return self._reference_pose

    @reference_pose.setter
    def reference_pose(self, value: np.ndarray) -> None:
        self._reference_pose = as_T(value, name="reference_pose")

    @property
    def last_pose(self) -> np.ndarray:
        return self._last_pose

    @last_pose.setter
    def last_pose(self, value: np.ndarray) -> None:
        self._last_pose = as_T(value, name="last_pose")

    # ---------- 主入口 ----------

    def update(self, result: FrameResult | None = None) -> EstimatedRobotPose | None:
        """融合一帧。

        Args:
            result: 单帧检测结果；为 None 时从 camera 拉取最新一帧。

        Returns:
            EstimatedRobotPose；没有可用观测（空帧、全是未知 Tag、权重和为 0 等）时返回 None。
        """

        if result is None:
            if self._camera is None:
                return None
            result = self._camera.latest_result()
            if result is None:
                return None

        return self._fuse(result)

    def _fuse(self, result: FrameResult) -> EstimatedRobotPose | None:
        strategy = self._strategy

        if not result.has_targets:
            return None

        candidates = generate_candidates(
            result=result,
            field_layout=self._field_layout,
            T_robot_from_cam=self._T_robot_from_cam,
        )
        if not candidates:
            self._logger.debug("t=%.6f: no known tags among %d targets", float(result.timestamp_s), len(result.targets))
            return None

        ctx = StrategyContext(
            T_robot_from_cam=self._T_robot_from_cam,
            camera_height_m=self.camera_height_m,
            reference_pose=self._reference_pose,
            last_pose=self._last_pose,
        )
        selection = STRATEGY_FUNCTIONS[strategy](candidates, ctx)
        if selection is None:
            self._logger.debug("t=%.6f: %s produced no pose", float(result.timestamp_s), strategy.value)
            return None
        if not bool(np.all(np.isfinite(selection.T_field_from_robot))):
            # 上游给出 NaN/Inf 变换时按“本帧无结果”处理，不中断控制循环。
            self._logger.warning("t=%.6f: %s produced a non-finite pose", float(result.timestamp_s), strategy.value)
            return None

        pose = as_T(selection.T_field_from_robot, name="T_field_from_robot")
        if strategy is PoseStrategy.CLOSEST_TO_LAST_POSE:
            self._last_pose = pose

        return EstimatedRobotPose(
            T_field_from_robot=pose,
            timestamp_s=float(result.timestamp_s),
            strategy=strategy.value,
            tag_ids=selection.tag_ids,
        )
