"""fiducial_fusion 的默认 logger。

本包记录的内容：
- DEBUG：策略切换；某帧没有产出位姿（全是未知 Tag、策略无可用候选）。
- WARNING：策略输出含 NaN/Inf，本帧按无结果处理；回放工具跳过的坏行。
- ERROR（带 traceback）：轮廓过滤中单个轮廓处理失败。

各入口都接受 `logger=` 注入；未注入时使用这里的包级 logger。
"""

from __future__ import annotations

import logging


LOGGER_NAME = "fiducial_fusion"
_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def default_logger() -> logging.Logger:
    """返回包级 logger；首次调用时挂一个 stderr handler，避免脚本/单测环境下日志静默。"""

    logger = logging.getLogger(LOGGER_NAME)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_FORMAT))
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)
    return logger
