"""单测：约束工具脚本只依赖 fiducial_fusion 的“稳定 Public API”。

目标：
- `tools/` 下的脚本代表真实的集成侧用法，只允许从包顶层导入；
  少量 IO 边界模块（`fiducial_fusion.config_yaml`）在 allowlist 中放行。
- 防止脚本直接依赖内部模块路径（例如 `fiducial_fusion.strategies`），
  否则一旦包内重构目录结构，集成侧会被非预期破坏。

说明：
- 不检查 tests/：单测可以为了覆盖内部细节而导入内部模块，这是合理的。
"""

from __future__ import annotations

import ast
from dataclasses import dataclass
from pathlib import Path


_ALLOWED_SUBMODULES = {"config_yaml"}


@dataclass(frozen=True, slots=True)
class _BadImport:
    file: str
    lineno: int
    module: str


def _iter_tool_py_files(repo_root: Path) -> list[Path]:
    tools_dir = repo_root / "tools"
    if not tools_dir.exists():
        return []
    return sorted(p for p in tools_dir.rglob("*.py") if "__pycache__" not in p.parts)


def _is_disallowed(module: str) -> bool:
    if not module.startswith("fiducial_fusion."):
        return False
    seg = module.split(".")[1]
    return seg not in _ALLOWED_SUBMODULES


def _check_import_boundary(*, repo_root: Path) -> list[_BadImport]:
    bad: list[_BadImport] = []

    for p in _iter_tool_py_files(repo_root):
        rel = p.relative_to(repo_root).as_posix()
        src = p.read_text(encoding="utf-8")

        try:
            tree = ast.parse(src, filename=rel)
        except SyntaxError as e:
            raise AssertionError(f"无法解析 Python 语法：{rel}:{e.lineno}:{e.offset}") from e

        for node in ast.walk(tree):
            if isinstance(node, ast.Import):
                for alias in node.names:
                    if _is_disallowed(alias.name):
                        bad.append(_BadImport(rel, node.lineno, alias.name))
            elif isinstance(node, ast.ImportFrom):
                if node.level and node.level > 0:
                    continue
                if node.module and _is_disallowed(node.module):
                    bad.append(_BadImport(rel, node.lineno, node.module))

    return bad


def test_tools_import_public_api_only() -> None:
    """确保 tools/ 不耦合内部模块路径。"""

    repo_root = Path(__file__).resolve().parents[1]
    bad = _check_import_boundary(repo_root=repo_root)

    assert bad == [], (
        "发现工具脚本导入了 fiducial_fusion 的内部模块路径（请改为从包顶层导入；"
        "允许 fiducial_fusion.config_yaml）：\n"
        + "\n".join(f"- {b.file}:{b.lineno} import {b.module}" for b in bad)
    )


def test_public_api_exports_resolve() -> None:
    import fiducial_fusion

    missing = [name for name in fiducial_fusion.__all__ if not hasattr(fiducial_fusion, name)]
    assert missing == []
