"""轮廓几何过滤：Tag 检测之前的候选形状筛选。

每个轮廓独立判定，三道门依次检查：
1) 面积比：contour 面积 / 图像面积，需落在 [sigmoid(area[0]), sigmoid(area[1])]（闭区间）。
2) 填充度（extent）：contour 面积需严格落在
   (extent[0] * 最小外接矩形面积 / 100, extent[1] * 最小外接矩形面积 / 100) 内。
3) 宽高比：外接正矩形 w / h，需落在 [ratio[0], ratio[1]]（闭区间）。

说明：
- area 的两个端点是 logit 空间的滑块值，经 `sigmoid()` 映射到 (0,1) 的面积比。
- extent 端点单位是百分比。
- 单个轮廓处理失败（例如退化轮廓）只记日志并跳过，不影响同批其它轮廓。
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Iterable, Sequence

import cv2
import numpy as np

from fiducial_fusion.logging_utils import default_logger


def sigmoid(x: float) -> float:
    """logistic 函数：1 / (1 + exp(-x))。"""

    v = float(x)
    # 说明：分两支计算，避免 exp 溢出。
    if v >= 0.0:
        return 1.0 / (1.0 + math.exp(-v))
    e = math.exp(v)
    return e / (1.0 + e)


@dataclass(frozen=True, slots=True)
class ContourFilterParams:
    """轮廓过滤阈值。

    Attributes:
        area: 面积比上下界（logit 空间，经 sigmoid 映射）。
        ratio: 宽高比上下界（w/h）。
        extent: 填充度上下界（百分比，0..100）。
        image_area_px: 图像面积（像素²），即 width * height。
    """

    area: tuple[float, float]
    ratio: tuple[float, float]
    extent: tuple[float, float]
    image_area_px: float

    def __post_init__(self) -> None:
        if not (float(self.image_area_px) > 0.0):
            raise ValueError(f"image_area_px must be positive, got {self.image_area_px}")
        for name in ("area", "ratio", "extent"):
            pair = getattr(self, name)
            if len(pair) != 2:
                raise ValueError(f"{name} must be a (min, max) pair, got {pair}")


def _as_contour(contour: np.ndarray) -> np.ndarray:
    c = np.asarray(contour)
    if c.ndim == 2 and c.shape[1] == 2:
        c = c.reshape(-1, 1, 2)
    if c.dtype not in (np.int32, np.float32):
        c = c.astype(np.float32)
    return c


def keep_contour(contour: np.ndarray, params: ContourFilterParams) -> bool:
    """判断单个轮廓是否通过三道几何门。

    Args:
        contour: OpenCV 轮廓，(N,1,2) 或 (N,2)。
        params: 过滤阈值。

    Returns:
        是否保留。
    """

    c = _as_contour(contour)
    contour_area = float(cv2.contourArea(c))

    area_ratio = contour_area / float(params.image_area_px)
    min_area = sigmoid(params.area[0])
    max_area = sigmoid(params.area[1])
    if area_ratio < min_area or area_ratio > max_area:
        return False

    (_, _), (rw, rh), _ = cv2.minAreaRect(c)
    rect_area = float(rw) * float(rh)
    min_extent = float(params.extent[0]) * rect_area / 100.0
    max_extent = float(params.extent[1]) * rect_area / 100.0
    if contour_area <= min_extent or contour_area >= max_extent:
        return False

    _, _, bw, bh = cv2.boundingRect(c)
    aspect = float(bw) / float(bh)
    if aspect < float(params.ratio[0]) or aspect > float(params.ratio[1]):
        return False

    return True


def filter_contours(
    contours: Iterable[np.ndarray],
    params: ContourFilterParams,
    *,
    logger: logging.Logger | None = None,
) -> list[np.ndarray]:
    """批量过滤轮廓，保持输入顺序。

    单个轮廓抛出的异常会被记录并跳过（该轮廓不进入输出）。
    """

    log = logger or default_logger()
    out: list[np.ndarray] = []
    for i, contour in enumerate(contours):
        try:
            if keep_contour(contour, params):
                out.append(contour)
        except Exception:  # noqa: BLE001
            log.exception("contour #%d: filtering failed, skipped", i)
    return out


def contour_from_points(points: Sequence[Sequence[float]]) -> np.ndarray:
    """把 [(x,y), ...] 转为 OpenCV 轮廓 (N,1,2) int32。"""

    return np.asarray(points, dtype=np.int32).reshape(-1, 1, 2)
