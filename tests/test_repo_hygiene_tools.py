"""仓库约束：tools/ 只放可执行脚本。

- 脚本名不得匹配 pytest 默认收集模式（`test_*.py` / `*_test.py`）。
- tools/ 下不得出现 `__init__.py` 或 `conftest.py`：它不是可 import 的包，也不是 pytest 插件目录。
- 每个脚本都应提供 `main()` 入口，便于测试以 importlib 加载后直接调用。
"""

from __future__ import annotations

import ast
import fnmatch
from pathlib import Path


def _tool_files() -> tuple[Path, list[Path]]:
    repo_root = Path(__file__).resolve().parents[1]
    tools_dir = repo_root / "tools"
    assert tools_dir.exists(), "预期仓库根目录存在 tools/ 目录。"
    files = sorted(p for p in tools_dir.rglob("*.py") if "__pycache__" not in p.parts)
    return repo_root, files


def test_tools_scripts_are_plain_scripts() -> None:
    repo_root, files = _tool_files()

    bad: list[str] = []
    for p in files:
        if p.name in ("__init__.py", "conftest.py"):
            bad.append(p.relative_to(repo_root).as_posix())
        elif any(fnmatch.fnmatch(p.name, pat) for pat in ("test_*.py", "*_test.py")):
            bad.append(p.relative_to(repo_root).as_posix())

    assert bad == [], "tools/ 下发现不应存在的文件（请改名或移动到 tests/）：\n" + "\n".join(
        f"- {x}" for x in bad
    )


def test_tools_scripts_define_main() -> None:
    repo_root, files = _tool_files()

    missing: list[str] = []
    for p in files:
        tree = ast.parse(p.read_text(encoding="utf-8"), filename=str(p))
        names = {n.name for n in tree.body if isinstance(n, ast.FunctionDef)}
        if "main" not in names:
            missing.append(p.relative_to(repo_root).as_posix())

    assert missing == [], f"tools/ 脚本缺少 main() 入口：{missing}"
