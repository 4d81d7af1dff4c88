from __future__ import annotations

import logging

import numpy as np
import pytest

from fiducial_fusion import ContourFilterParams, filter_contours, keep_contour, sigmoid
from fiducial_fusion.contours import contour_from_points


def _params(**kw) -> ContourFilterParams:
    base = dict(
        area=(-5.0, -1.0),  # 约 0.0067 .. 0.269
        ratio=(0.5, 2.0),
        extent=(60.0, 101.0),
        image_area_px=100.0 * 100.0,
    )
    base.update(kw)
    return ContourFilterParams(**base)


SQUARE = contour_from_points([(10, 10), (30, 10), (30, 30), (10, 30)])
WIDE = contour_from_points([(10, 10), (70, 10), (70, 20), (10, 20)])
TINY = contour_from_points([(10, 10), (13, 10), (13, 13), (10, 13)])
TRIANGLE = contour_from_points([(10, 10), (50, 10), (10, 50)])


def test_sigmoid() -> None:
    assert sigmoid(0.0) == pytest.approx(0.5)
    assert sigmoid(40.0) == pytest.approx(1.0)
    assert sigmoid(-800.0) == pytest.approx(0.0)
    assert sigmoid(-2.0) == pytest.approx(1.0 - sigmoid(2.0))


def test_keep_contour_each_gate() -> None:
    p = _params()
    assert keep_contour(SQUARE, p)
    assert not keep_contour(WIDE, p)  # 宽高比
    assert not keep_contour(TINY, p)  # 面积比
    assert not keep_contour(TRIANGLE, p)  # 填充度约 50%


def test_keep_contour_accepts_plain_point_arrays() -> None:
    pts = np.array([(10, 10), (30, 10), (30, 30), (10, 30)], dtype=np.float64)
    assert keep_contour(pts, _params())


def test_extent_upper_bound_rejects_solid_shapes() -> None:
    # 正方形的填充度为 100%。
    assert not keep_contour(SQUARE, _params(extent=(60.0, 99.0)))
    assert keep_contour(TRIANGLE, _params(extent=(40.0, 60.0)))


def test_filter_contours_keeps_order_and_skips_failures(caplog) -> None:
    log = logging.getLogger("test.contours")
    with caplog.at_level(logging.ERROR, logger="test.contours"):
        out = filter_contours([SQUARE, "not a contour", WIDE, SQUARE], _params(), logger=log)

    assert len(out) == 2
    assert out[0] is SQUARE and out[1] is SQUARE
    assert any("contour #1" in r.getMessage() for r in caplog.records)


def test_params_validation() -> None:
    with pytest.raises(ValueError):
        _params(image_area_px=0.0)
    with pytest.raises(ValueError):
        _params(ratio=(1.0,))


# 以下用例把轮廓放在各门的边界上。SQUARE：面积 400，最小外接矩形 20x20，外接正矩形 21x21。


def test_area_bounds_are_inclusive() -> None:
    # 面积比恰为 0.5 == sigmoid(0)。
    assert keep_contour(SQUARE, _params(area=(0.0, 5.0), image_area_px=800.0))
    assert keep_contour(SQUARE, _params(area=(-5.0, 0.0), image_area_px=800.0))
    assert not keep_contour(SQUARE, _params(area=(0.01, 5.0), image_area_px=800.0))


def test_extent_bounds_are_exclusive() -> None:
    assert not keep_contour(SQUARE, _params(extent=(100.0, 101.0)))
    assert not keep_contour(SQUARE, _params(extent=(60.0, 100.0)))
    assert keep_contour(SQUARE, _params(extent=(99.5, 100.5)))


def test_ratio_bounds_are_inclusive() -> None:
    assert keep_contour(SQUARE, _params(ratio=(1.0, 2.0)))
    assert keep_contour(SQUARE, _params(ratio=(0.5, 1.0)))

    # WIDE 外接正矩形 61x11。
    assert keep_contour(WIDE, _params(ratio=(0.5, 61.0 / 11.0)))
    assert not keep_contour(WIDE, _params(ratio=(0.5, 61.0 / 11.0 - 1e-9)))
