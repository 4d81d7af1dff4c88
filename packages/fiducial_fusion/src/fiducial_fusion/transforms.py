"""坐标变换工具：4x4 齐次矩阵 + 旋转表示互转。

约定：
- 用 4x4 矩阵表示刚体变换，记作 T_dst_from_src。
- 点从 src 坐标系变换到 dst：X_dst = T_dst_from_src @ X_src（X 为齐次坐标 (4,)）。
- 位姿与变换共用同一表示：field 系下的位姿 = T_field_from_xxx。
- 四元数统一使用 wxyz 顺序。

注意：
- 场地坐标系默认右手系、Z 轴竖直向上，场地平面为 z=0。
  `yaw_from_R()` / `rpy_from_R()` 依赖该约定。
"""

from __future__ import annotations

import math
from typing import Sequence

import numpy as np


def make_T(*, R: np.ndarray, t: np.ndarray) -> np.ndarray:
    """由 R,t 构造 4x4 齐次矩阵。"""

    R = np.asarray(R, dtype=np.float64).reshape(3, 3)
    t = np.asarray(t, dtype=np.float64).reshape(3)
    T = np.eye(4, dtype=np.float64)
    T[:3, :3] = R
    T[:3, 3] = t
    return T


def as_T(T: np.ndarray, *, name: str = "T") -> np.ndarray:
    """校验并拷贝为只读的 (4,4) float64 矩阵。

    说明：
    - 估计器内部保存的位姿都经过这里，调用方之后修改原数组不会影响内部状态。
    """

    a = np.array(T, dtype=np.float64, copy=True)
    if a.shape != (4, 4):
        raise ValueError(f"{name} must be (4,4), got {a.shape}")
    if not bool(np.all(np.isfinite(a))):
        raise ValueError(f"{name} must be finite")
    a.flags.writeable = False
    return a


def invert_T(T: np.ndarray) -> np.ndarray:
    """求刚体变换的逆。"""

    T = np.asarray(T, dtype=np.float64)
    if T.shape != (4, 4):
        raise ValueError(f"T must be (4,4), got {T.shape}")

    R = T[:3, :3]
    t = T[:3, 3]
    R_inv = R.T
    t_inv = -R_inv @ t
    out = np.eye(4, dtype=np.float64)
    out[:3, :3] = R_inv
    out[:3, 3] = t_inv
    return out


def compose_T(A: np.ndarray, B: np.ndarray) -> np.ndarray:
    """复合变换：先 B 再 A（即 A @ B）。"""

    A = np.asarray(A, dtype=np.float64)
    B = np.asarray(B, dtype=np.float64)
    if A.shape != (4, 4) or B.shape != (4, 4):
        raise ValueError(f"A,B must be (4,4), got {A.shape} and {B.shape}")
    return (A @ B).astype(np.float64)


def translation_distance(A: np.ndarray, B: np.ndarray) -> float:
    """两个位姿平移部分的欧氏距离（米）。"""

    a = np.asarray(A, dtype=np.float64)[:3, 3]
    b = np.asarray(B, dtype=np.float64)[:3, 3]
    return float(np.linalg.norm(a - b))


def rotation_from_rpy(roll: float, pitch: float, yaw: float) -> np.ndarray:
    """由 roll/pitch/yaw（弧度）构造旋转矩阵：R = Rz(yaw) @ Ry(pitch) @ Rx(roll)。"""

    cr, sr = math.cos(float(roll)), math.sin(float(roll))
    cp, sp = math.cos(float(pitch)), math.sin(float(pitch))
    cy, sy = math.cos(float(yaw)), math.sin(float(yaw))

    Rx = np.array([[1.0, 0.0, 0.0], [0.0, cr, -sr], [0.0, sr, cr]], dtype=np.float64)
    Ry = np.array([[cp, 0.0, sp], [0.0, 1.0, 0.0], [-sp, 0.0, cp]], dtype=np.float64)
    Rz = np.array([[cy, -sy, 0.0], [sy, cy, 0.0], [0.0, 0.0, 1.0]], dtype=np.float64)
    return Rz @ Ry @ Rx


def pose_from_xyz_rpy(xyz: Sequence[float], rpy: Sequence[float] = (0.0, 0.0, 0.0)) -> np.ndarray:
    """由平移 (x,y,z) 与 (roll,pitch,yaw) 构造 4x4 位姿。"""

    r = [float(v) for v in rpy]
    if len(r) != 3:
        raise ValueError(f"rpy must have 3 elements, got {len(r)}")
    return make_T(R=rotation_from_rpy(*r), t=np.asarray(xyz, dtype=np.float64))


def yaw_from_R(R: np.ndarray) -> float:
    """从 field<-body 的旋转矩阵提取 yaw（绕场地 Z 轴）。

    yaw 定义为 body 的 x 轴在场地 x-y 平面内的朝向：
    $yaw = atan2(R[1,0], R[0,0])$。
    """

    R = np.asarray(R, dtype=np.float64).reshape(3, 3)
    return float(math.atan2(float(R[1, 0]), float(R[0, 0])))


def rpy_from_R(R: np.ndarray) -> tuple[float, float, float]:
    """`rotation_from_rpy()` 的逆（pitch 取值范围 [-pi/2, pi/2]）。"""

    R = np.asarray(R, dtype=np.float64).reshape(3, 3)
    sp = min(1.0, max(-1.0, -float(R[2, 0])))
    pitch = math.asin(sp)
    roll = math.atan2(float(R[2, 1]), float(R[2, 2]))
    yaw = math.atan2(float(R[1, 0]), float(R[0, 0]))
    return float(roll), float(pitch), float(yaw)


def quat_wxyz_from_R(R: np.ndarray) -> np.ndarray:
    """旋转矩阵转单位四元数（wxyz，w >= 0）。"""

    m = np.asarray(R, dtype=np.float64).reshape(3, 3)
    trace = float(np.trace(m))
    if trace > 0.0:
        s = math.sqrt(trace + 1.0) * 2.0
        w = 0.25 * s
        x = (m[2, 1] - m[1, 2]) / s
        y = (m[0, 2] - m[2, 0]) / s
        z = (m[1, 0] - m[0, 1]) / s
    else:
        idx = int(np.argmax(np.diag(m)))
        if idx == 0:
            s = math.sqrt(1.0 + m[0, 0] - m[1, 1] - m[2, 2]) * 2.0
            w = (m[2, 1] - m[1, 2]) / s
            x = 0.25 * s
            y = (m[0, 1] + m[1, 0]) / s
            z = (m[0, 2] + m[2, 0]) / s
        elif idx == 1:
            s = math.sqrt(1.0 + m[1, 1] - m[0, 0] - m[2, 2]) * 2.0
            w = (m[0, 2] - m[2, 0]) / s
            x = (m[0, 1] + m[1, 0]) / s
            y = 0.25 * s
            z = (m[1, 2] + m[2, 1]) / s
        else:
            s = math.sqrt(1.0 + m[2, 2] - m[0, 0] - m[1, 1]) * 2.0
            w = (m[1, 0] - m[0, 1]) / s
            x = (m[0, 2] + m[2, 0]) / s
            y = (m[1, 2] + m[2, 1]) / s
            z = 0.25 * s

    q = np.array([w, x, y, z], dtype=np.float64)
    q = q / float(np.linalg.norm(q))
    if q[0] < 0.0:
        q = -q
    return q


def R_from_quat_wxyz(q: np.ndarray | Sequence[float]) -> np.ndarray:
    """单位四元数（wxyz）转旋转矩阵；输入会先归一化。"""

    a = np.asarray(q, dtype=np.float64).reshape(4)
    n = float(np.linalg.norm(a))
    if not math.isfinite(n) or n <= 1e-12:
        raise ValueError(f"quaternion must be non-zero, got {a.tolist()}")
    w, x, y, z = (a / n).tolist()
    return np.array(
        [
            [1.0 - 2.0 * (y * y + z * z), 2.0 * (x * y - z * w), 2.0 * (x * z + y * w)],
            [2.0 * (x * y + z * w), 1.0 - 2.0 * (x * x + z * z), 2.0 * (y * z - x * w)],
            [2.0 * (x * z - y * w), 2.0 * (y * z + x * w), 1.0 - 2.0 * (x * x + y * y)],
        ],
        dtype=np.float64,
    )


def weighted_average_rotation(Rs: Sequence[np.ndarray], weights: Sequence[float]) -> np.ndarray:
    """旋转的加权平均（在旋转群上，而不是逐轴平均欧拉角）。

    做法（Markley 等，2007）：
    - 把每个旋转转成四元数 q_i，累加 M = sum(w_i * q_i q_i^T)；
    - 取 M 最大特征值对应的特征向量作为平均四元数。
    - q 与 -q 表示同一旋转，外积 q q^T 对符号不敏感，因此无需先对齐半球。

    Args:
        Rs: 旋转矩阵序列，每个 (3,3)。
        weights: 与 Rs 等长的非负权重。

    Returns:
        平均旋转矩阵 (3,3)。

    Raises:
        ValueError: 输入为空、长度不一致，或权重和不为正。
    """

    if len(Rs) == 0:
        raise ValueError("Rs must not be empty")
    if len(Rs) != len(weights):
        raise ValueError(f"Rs/weights length mismatch: {len(Rs)} vs {len(weights)}")

    w = np.asarray(weights, dtype=np.float64).reshape(-1)
    if bool(np.any(w < 0.0)) or not bool(np.all(np.isfinite(w))):
        raise ValueError("weights must be finite and non-negative")
    total = float(np.sum(w))
    if total <= 0.0:
        raise ValueError("sum of weights must be positive")

    M = np.zeros((4, 4), dtype=np.float64)
    for R, wi in zip(Rs, w):
        q = quat_wxyz_from_R(R)
        M += float(wi) * np.outer(q, q)
    M /= total

    # eigh 返回升序特征值，最后一列即最大特征值对应的特征向量。
    _, vecs = np.linalg.eigh(M)
    q_mean = vecs[:, -1]
    return R_from_quat_wxyz(q_mean)
