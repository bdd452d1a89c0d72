"""按行号编辑（replace / insert / delete）

只依赖行号，不做任何文本匹配。行号为 1 起始、闭区间。
"""

from __future__ import annotations

from typing import List, Optional, Tuple

from edit_engine.errors import EditValidationError, RangeError
from edit_engine.models import LineEditCommand, LineEditMode
from edit_engine.text_utils import detect_newline, split_lines, split_new_text, strip_eol

PREVIEW_RULE = "=" * 60
PANE_RULE = "-" * 60


def coerce_mode(mode) -> LineEditMode:
    """把字符串/枚举统一为 LineEditMode"""
    if isinstance(mode, LineEditMode):
        return mode
    try:
        return LineEditMode(str(mode).lower())
    except ValueError:
        raise EditValidationError(
            f"Mode must be 'replace', 'insert', or 'delete', got {mode!r}.",
            details={"mode": mode},
        ) from None


def validate_command(command: LineEditCommand, line_count: int) -> int:
    """
    校验行号范围

    Returns:
        规范化后的 end_line（insert 模式返回 start_line - 1，表示不覆盖任何旧行）

    Raises:
        RangeError: 行号越界或倒置
    """
    start = command.start_line
    end = command.end_line

    if start < 1:
        raise RangeError(
            f"start_line must be >= 1 (1-indexed), got {start}.",
            start_line=start, end_line=end, line_count=line_count,
        )

    if command.mode == LineEditMode.INSERT:
        if start > line_count + 1:
            raise RangeError(
                f"start_line ({start}) exceeds file length + 1 ({line_count + 1}). "
                f"Use start_line={line_count + 1} to append.",
                start_line=start, end_line=end, line_count=line_count,
            )
        return start - 1

    if end is None:
        end = start
    if end < start:
        raise RangeError(
            f"end_line ({end}) must be >= start_line ({start}).",
            start_line=start, end_line=end, line_count=line_count,
        )
    if end > line_count:
        raise RangeError(
            f"end_line ({end}) exceeds file length ({line_count} lines). Read the file to check line numbers.",
            start_line=start, end_line=end, line_count=line_count,
        )
    return end


def apply_line_edit(content: str, command: LineEditCommand) -> Tuple[str, int]:
    """
    执行行编辑

    Returns:
        (新内容, 受影响行数)
    """
    lines = split_lines(content)
    newline = detect_newline(content)
    end = validate_command(command, len(lines))
    start_idx = command.start_line - 1

    new_texts: List[str] = []
    if command.mode != LineEditMode.DELETE:
        new_texts = split_new_text(command.new_lines)
    inserted = [text + newline for text in new_texts]

    # 原文件末行无换行且本次编辑触及末行时，保持“无结尾换行”
    touches_end = end >= len(lines) if command.mode != LineEditMode.INSERT else start_idx >= len(lines)
    had_trailing_newline = not lines or lines[-1].endswith("\n")

    before = lines[:start_idx]
    after = lines[end:] if command.mode != LineEditMode.INSERT else lines[start_idx:]
    if command.mode == LineEditMode.INSERT and before and not before[-1].endswith("\n"):
        before[-1] += newline

    result = before + inserted + after
    if touches_end and not had_trailing_newline and result and result[-1].endswith("\n"):
        result[-1] = strip_eol(result[-1])

    if command.mode == LineEditMode.INSERT:
        affected = len(inserted)
    else:
        affected = end - command.start_line + 1
    return "".join(result), affected


def render_excerpt(
    original: str,
    updated: str,
    command: LineEditCommand,
    context_lines: int = 3,
) -> str:
    """
    生成可读的前后对比片段（目标区域 + 上下文窗口）

    BEFORE 面板用 "-" 标记将被替换/删除的旧行，AFTER 面板用 "+" 标记新写入的行。
    """
    old_lines = [strip_eol(line) for line in split_lines(original)]
    new_lines = [strip_eol(line) for line in split_lines(updated)]
    start = command.start_line
    mode = command.mode

    if mode == LineEditMode.INSERT:
        old_end: Optional[int] = start - 1
        new_count = len(split_new_text(command.new_lines))
    else:
        old_end = command.end_line if command.end_line is not None else start
        new_count = 0 if mode == LineEditMode.DELETE else len(split_new_text(command.new_lines))
    new_end = start + new_count - 1

    window_start = max(1, start - context_lines)
    label_end = old_end if mode != LineEditMode.INSERT else start
    out: List[str] = [
        f"Preview of {mode.value} operation on lines {start}-{label_end}:",
        PREVIEW_RULE,
        "",
        "BEFORE:",
        PANE_RULE,
    ]
    for number in range(window_start, min(len(old_lines), old_end + context_lines) + 1):
        marker = "-" if mode != LineEditMode.INSERT and start <= number <= old_end else " "
        out.append(f"{marker} {number:3d}: {old_lines[number - 1]}")

    out.extend(["", "AFTER:", PANE_RULE])
    for number in range(window_start, min(len(new_lines), max(new_end, start - 1) + context_lines) + 1):
        marker = "+" if start <= number <= new_end else " "
        out.append(f"{marker} {number:3d}: {new_lines[number - 1]}")

    return "\n".join(out) + "\n"
