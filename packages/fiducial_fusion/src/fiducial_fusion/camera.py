"""相机/流水线侧的协作接口：估计器只“拉取最新一帧”。

说明：
- 估计器不管理相机的生命周期、连接状态与重试；它只调用 `latest_result()`。
- `latest_result()` 是轮询语义：没有新帧时返回 None，不阻塞控制循环。
- `LatestFrameBuffer` 是一个 latest-only 的容量=1 交接点：采集/检测线程 `publish()`，
  控制循环线程 `latest_result()`，旧帧直接被覆盖。
"""

from __future__ import annotations

import threading
from typing import Protocol, runtime_checkable

from fiducial_fusion.types import FrameResult


@runtime_checkable
class FrameSource(Protocol):
    def latest_result(self) -> FrameResult | None: ...


class LatestFrameBuffer:
    """线程安全的“只保留最新一帧”缓冲。

    用法：
        buf = LatestFrameBuffer()
        # 检测线程
        buf.publish(frame)
        # 控制循环
        est = engine.update()   # engine 构造时传入 camera=buf
    """

    def __init__(self, *, consume: bool = False) -> None:
        """
        Args:
            consume: True 时 `latest_result()` 取走该帧，同一帧只会被融合一次；
                False 时保留，重复轮询会得到同一帧。
        """

        self._lock = threading.Lock()
        self._latest: FrameResult | None = None
        self._consume = bool(consume)
        self._publish_count = 0

    def publish(self, result: FrameResult) -> None:
        with self._lock:
            self._latest = result
            self._publish_count += 1

    def latest_result(self) -> FrameResult | None:
        with self._lock:
            out = self._latest
            if self._consume:
                self._latest = None
            return out

    def clear(self) -> None:
        with self._lock:
            self._latest = None

    @property
    def publish_count(self) -> int:
        with self._lock:
            return self._publish_count
