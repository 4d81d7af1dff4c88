"""pytest 运行期配置。

代码位于 `packages/fiducial_fusion/src/`，测试应基于已安装到当前环境的包
（例如 `pip install -e ".[test]"` 后再执行 `python -m pytest`）。

注意：请不要在测试侧把 `packages/*/src` 注入 sys.path。
一旦出现“源码目录 + 已安装包”双来源，`import fiducial_fusion` 会出现歧义，
进而引入难以排查的不一致问题。

测试辅助函数放在同目录的 `fusion_fixtures.py`，由 pytest 的 rootdir 导入机制直接可见。
"""

from __future__ import annotations
