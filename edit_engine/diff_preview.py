"""Unified diff 预览（带截断）"""

from __future__ import annotations

import difflib
from dataclasses import dataclass
from typing import List

# Diff 预览的最大行数（超过此行数会截断 diff 预览）
MAX_DIFF_LINES = 100

# Diff 预览的最大字节数（10KB，超过此大小会截断 diff 预览）
MAX_DIFF_BYTES = 10240


@dataclass(frozen=True)
class DiffPreview:
    preview: str
    truncated: bool
    lines_added: int
    lines_removed: int


def compute_diff(
    old_content: str,
    new_content: str,
    file_path: str,
    max_lines: int = MAX_DIFF_LINES,
    max_bytes: int = MAX_DIFF_BYTES,
) -> DiffPreview:
    """
    计算 Unified Diff 并处理截断

    增删行数统计覆盖整个 diff，不受预览截断影响。
    """
    old_lines = old_content.splitlines(keepends=True)
    new_lines = new_content.splitlines(keepends=True)

    diff_gen = difflib.unified_diff(
        old_lines,
        new_lines,
        fromfile=f"a/{file_path}",
        tofile=f"b/{file_path}",
        lineterm="",
    )

    preview_lines: List[str] = []
    preview_bytes = 0
    truncated = False
    lines_added = 0
    lines_removed = 0

    for line in diff_gen:
        # 统计增删行数（排除 header 行）
        if line.startswith("+") and not line.startswith("+++"):
            lines_added += 1
        elif line.startswith("-") and not line.startswith("---"):
            lines_removed += 1

        if truncated:
            continue
        line = line.rstrip("\r\n")
        line_bytes = len(line.encode("utf-8", errors="surrogateescape"))
        if len(preview_lines) >= max_lines or preview_bytes + line_bytes > max_bytes:
            truncated = True
        else:
            preview_lines.append(line)
            preview_bytes += line_bytes

    preview = "\n".join(preview_lines)
    if truncated:
        preview += "\n... (truncated)"

    return DiffPreview(
        preview=preview,
        truncated=truncated,
        lines_added=lines_added,
        lines_removed=lines_removed,
    )
