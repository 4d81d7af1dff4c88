"""fiducial_fusion：把单帧内多个 AprilTag 观测融合为机器人场地位姿。

说明：
- 对外 API 从包顶层暴露，避免下游耦合内部模块结构。
- YAML 配置加载属于 IO 边界，单独放在 `fiducial_fusion.config_yaml`。
"""

from fiducial_fusion.camera import FrameSource, LatestFrameBuffer
from fiducial_fusion.candidates import field_to_robot, generate_candidates
from fiducial_fusion.config import EstimatorConfig
from fiducial_fusion.contours import ContourFilterParams, filter_contours, keep_contour, sigmoid
from fiducial_fusion.estimator import PoseFusionEngine
from fiducial_fusion.field_layout import FieldLayout, field_layout_from_dict, load_field_layout_json
from fiducial_fusion.frame_io import estimated_pose_to_dict, frame_result_from_dict
from fiducial_fusion.logging_utils import default_logger
from fiducial_fusion.strategies import STRATEGY_FUNCTIONS, PoseSelection, PoseStrategy, StrategyContext
from fiducial_fusion.transforms import (
    as_T,
    compose_T,
    invert_T,
    make_T,
    pose_from_xyz_rpy,
    rotation_from_rpy,
    translation_distance,
    weighted_average_rotation,
)
from fiducial_fusion.types import (
    EstimatedRobotPose,
    FrameResult,
    PoseCandidate,
    RobotPose,
    TargetObservation,
    is_known_ambiguity,
)

__all__ = [
    "ContourFilterParams",
    "EstimatedRobotPose",
    "EstimatorConfig",
    "FieldLayout",
    "FrameResult",
    "FrameSource",
    "LatestFrameBuffer",
    "PoseCandidate",
    "PoseFusionEngine",
    "PoseSelection",
    "PoseStrategy",
    "RobotPose",
    "STRATEGY_FUNCTIONS",
    "StrategyContext",
    "TargetObservation",
    "as_T",
    "compose_T",
    "default_logger",
    "estimated_pose_to_dict",
    "field_layout_from_dict",
    "field_to_robot",
    "filter_contours",
    "frame_result_from_dict",
    "generate_candidates",
    "invert_T",
    "is_known_ambiguity",
    "keep_contour",
    "load_field_layout_json",
    "make_T",
    "pose_from_xyz_rpy",
    "rotation_from_rpy",
    "sigmoid",
    "translation_distance",
    "weighted_average_rotation",
]
