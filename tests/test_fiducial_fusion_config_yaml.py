from __future__ import annotations

import textwrap

import numpy as np
import pytest

from fiducial_fusion import EstimatorConfig, FrameResult, PoseStrategy
from fiducial_fusion.config_yaml import build_engine, load_estimator_config_yaml
from fusion_fixtures import LAYOUT, observe, robot_pose


def test_load_estimator_config_yaml_ok(tmp_path):
    p = tmp_path / "cfg.yaml"
    p.write_text(
        textwrap.dedent(
            """
            strategy: CLOSEST_TO_REFERENCE_POSE
            robot_to_camera_xyz_m: [0.2, 0.0, 0.5]
            robot_to_camera_rpy_rad: [0.0, -0.1, 0.0]
            camera_height_m: 0.52
            reference_pose_xyz_m: [1.0, 2.0, 0.0]
            """
        ).strip()
        + "\n",
        encoding="utf-8",
    )

    cfg = load_estimator_config_yaml(p)
    assert cfg.pose_strategy is PoseStrategy.CLOSEST_TO_REFERENCE_POSE
    assert cfg.strategy == "closest_to_reference_pose"
    assert cfg.robot_to_camera_xyz_m == (0.2, 0.0, 0.5)
    assert float(cfg.camera_height_m) == pytest.approx(0.52)
    np.testing.assert_allclose(cfg.reference_pose()[:3, 3], [1.0, 2.0, 0.0])
    np.testing.assert_allclose(cfg.initial_last_pose(), np.eye(4))


def test_load_estimator_config_yaml_empty_file_is_default(tmp_path):
    p = tmp_path / "cfg.yaml"
    p.write_text("", encoding="utf-8")
    assert load_estimator_config_yaml(p) == EstimatorConfig()


def test_load_estimator_config_yaml_unknown_key_raises(tmp_path):
    p = tmp_path / "cfg.yaml"
    p.write_text("strategy: lowest_ambiguity\nnope: 1\n", encoding="utf-8")

    with pytest.raises(KeyError):
        _ = load_estimator_config_yaml(p)


def test_load_estimator_config_yaml_bad_values_raise(tmp_path):
    p = tmp_path / "cfg.yaml"
    p.write_text("strategy: median_filter\n", encoding="utf-8")
    with pytest.raises(ValueError):
        _ = load_estimator_config_yaml(p)

    p.write_text("robot_to_camera_xyz_m: [0.1, 0.2]\n", encoding="utf-8")
    with pytest.raises(ValueError):
        _ = load_estimator_config_yaml(p)


def test_load_estimator_config_yaml_non_mapping_root_raises(tmp_path):
    p = tmp_path / "cfg.yaml"
    p.write_text("- 1\n- 2\n", encoding="utf-8")
    with pytest.raises(TypeError):
        _ = load_estimator_config_yaml(p)


def test_build_engine_applies_config():
    cfg = EstimatorConfig(
        strategy="closest_to_last_pose",
        robot_to_camera_xyz_m=(0.2, 0.0, 0.5),
        initial_last_pose_xyz_m=(1.0, 0.0, 0.0),
    )
    eng = build_engine(cfg, field_layout=LAYOUT)

    assert eng.strategy is PoseStrategy.CLOSEST_TO_LAST_POSE
    assert eng.camera_height_m == pytest.approx(0.5)
    np.testing.assert_allclose(eng.last_pose[:3, 3], [1.0, 0.0, 0.0])

    est = eng.update(
        FrameResult.of((observe(1, 0.0, robot_pose(3.0, 0.0)), observe(2, 0.5, robot_pose(1.2, 0.0))), timestamp_s=0.0)
    )
    assert est is not None and est.tag_ids == (2,)
