"""Unified diff 解析与应用

hunk 按内容定位而不是严格按行号定位：声明的起始行只是提示，内容匹配但行号不同时照样应用，
并把实际定位位置返回给调用方。任一 hunk 定位失败则整个补丁作废，不产生部分修改。
"""

from __future__ import annotations

import logging
import re
from typing import List, Optional, Sequence, Tuple

from edit_engine.errors import HunkNotFound, ParseError
from edit_engine.models import Hunk, HunkLine, HunkLineKind, HunkResolution, Patch
from edit_engine.text_utils import detect_newline, ensure_terminated, split_lines, strip_eol

logger = logging.getLogger(__name__)

HUNK_HEADER_RE = re.compile(r"^@@+\s*-(\d+)(?:,(\d+))?\s+\+(\d+)(?:,(\d+))?\s*@@+")
NO_NEWLINE_MARKER = "\\"
_HEADER_PATH_PREFIXES = ("a/", "b/", "/dev/null")

_BODY_KINDS = {
    " ": HunkLineKind.CONTEXT,
    "-": HunkLineKind.REMOVED,
    "+": HunkLineKind.ADDED,
}


# =============================================================================
# 解析
# =============================================================================

class _HunkBuilder:
    """解析过程中累积单个 hunk 的状态"""

    def __init__(self, index: int, header: str):
        self.index = index
        self.hunk = _parse_header(header, index)
        self.old_count = 0
        self.new_count = 0
        self.pending_blank = 0

    @property
    def declared(self) -> bool:
        return self.hunk.declared_old_length is not None

    @property
    def satisfied(self) -> bool:
        if not self.declared:
            return False
        return (
            self.old_count >= (self.hunk.declared_old_length or 0)
            and self.new_count >= (self.hunk.declared_new_length or 0)
        )

    def add(self, kind: HunkLineKind, text: str) -> None:
        self._flush_blank(self.pending_blank)
        self._append(kind, text)

    def mark_no_newline(self) -> None:
        if self.hunk.lines:
            self.hunk.lines[-1].no_newline = True

    def finish(self, near_text: str) -> Hunk:
        # 结尾的空行只补足声明的旧侧行数，多余的视为 diff 之后的空白
        if self.declared:
            needed = max(0, (self.hunk.declared_old_length or 0) - self.old_count)
            self._flush_blank(min(self.pending_blank, needed))
        self.pending_blank = 0
        if not self.hunk.lines:
            raise ParseError(
                f"Hunk {self.index} has no body lines.",
                index=self.index,
                near_text=near_text,
                kind="hunk",
            )
        if self.declared and (
            self.old_count != self.hunk.declared_old_length
            or self.new_count != self.hunk.declared_new_length
        ):
            logger.debug(
                "hunk %d line counts differ from header (old %d/%s, new %d/%s)",
                self.index, self.old_count, self.hunk.declared_old_length,
                self.new_count, self.hunk.declared_new_length,
            )
        return self.hunk

    def _flush_blank(self, count: int) -> None:
        for _ in range(count):
            self._append(HunkLineKind.CONTEXT, "")
        self.pending_blank = 0

    def _append(self, kind: HunkLineKind, text: str) -> None:
        self.hunk.lines.append(HunkLine(kind=kind, text=text))
        if kind != HunkLineKind.ADDED:
            self.old_count += 1
        if kind != HunkLineKind.REMOVED:
            self.new_count += 1


def _parse_header(header: str, index: int) -> Hunk:
    m = HUNK_HEADER_RE.match(header)
    if m:
        old_start, old_len, new_start, new_len = m.groups()
        return Hunk(
            declared_old_start=int(old_start),
            declared_old_length=int(old_len) if old_len is not None else 1,
            declared_new_start=int(new_start),
            declared_new_length=int(new_len) if new_len is not None else 1,
        )
    if re.search(r"[-+]\d", header):
        raise ParseError(
            f"Invalid hunk header for hunk {index}: {header!r}. Expected '@@ -a,b +c,d @@'.",
            index=index,
            near_text=header,
            kind="hunk",
        )
    # 无行号的 "@@" / "@@ ... @@"：纯内容定位
    return Hunk()


def _is_file_header(lines: Sequence[str], i: int) -> bool:
    return (
        lines[i].startswith("--- ")
        and i + 1 < len(lines)
        and lines[i + 1].startswith("+++ ")
    )


def _looks_like_file_header(lines: Sequence[str], i: int) -> bool:
    """hunk 体内的 ---/+++ 行对：带 a/ b/ 或 /dev/null 路径，或紧跟下一个 hunk / diff 头，才视为文件头"""
    if not _is_file_header(lines, i):
        return False
    old_path = lines[i][4:]
    new_path = lines[i + 1][4:]
    if old_path.startswith(_HEADER_PATH_PREFIXES) and new_path.startswith(_HEADER_PATH_PREFIXES):
        return True
    following = lines[i + 2] if i + 2 < len(lines) else ""
    return following.startswith("@@") or following.startswith("diff ")


def parse_unified_diff(diff_text: str) -> Patch:
    """
    解析 unified diff 文本

    Args:
        diff_text: diff 文本（可包含 ---/+++ 文件头、diff --git/index 行）

    Returns:
        Patch 对象（hunk 按出现顺序排列）

    Raises:
        ParseError: hunk 头非法、hunk 体出现未知前缀或没有任何 hunk
    """
    lines = [line[:-1] if line.endswith("\r") else line for line in diff_text.split("\n")]
    hunks: List[Hunk] = []
    current: Optional[_HunkBuilder] = None

    def close(at: int) -> None:
        nonlocal current
        if current is not None:
            hunks.append(current.finish("\n".join(lines[max(0, at - 3):at])))
            current = None

    for i, line in enumerate(lines):
        if line.startswith("@@"):
            close(i)
            current = _HunkBuilder(len(hunks), line)
            continue

        if current is None:
            # hunk 之外：文件头、diff --git、index 行以及说明文字
            continue

        if line.startswith("diff ") or line.startswith("index "):
            close(i)
            continue

        if _is_file_header(lines, i) and (current.satisfied or _looks_like_file_header(lines, i)):
            close(i)
            continue

        if line == "":
            current.pending_blank += 1
            continue

        prefix = line[0]
        if prefix in _BODY_KINDS:
            current.add(_BODY_KINDS[prefix], line[1:])
        elif prefix == NO_NEWLINE_MARKER:
            current.mark_no_newline()
        elif current.satisfied:
            # 行数已满足，后续是 diff 之外的说明文字
            close(i)
        else:
            raise ParseError(
                f"Hunk {current.index}: unexpected line {i + 1} {line!r}. Hunk body lines must start "
                "with ' ', '-', '+' or '\\'.",
                index=current.index,
                near_text="\n".join(lines[i:i + 3]),
                kind="hunk",
            )

    close(len(lines))

    if not hunks:
        raise ParseError(
            "No hunks found in diff. Provide a unified diff with at least one '@@ -a,b +c,d @@' hunk.",
            index=0,
            near_text="\n".join(lines[:3]),
            kind="hunk",
        )
    return Patch(source_diff_text=diff_text, hunks=hunks)


# =============================================================================
# 应用
# =============================================================================

def _matches_at(file_lines: Sequence[str], old: Sequence[str], pos: int, trimmed: bool) -> bool:
    if pos < 0 or pos + len(old) > len(file_lines):
        return False
    for offset, expected in enumerate(old):
        actual = strip_eol(file_lines[pos + offset])
        if trimmed:
            if actual.strip() != expected.strip():
                return False
        elif actual != expected:
            return False
    return True


def locate_hunk(
    file_lines: Sequence[str],
    old: Sequence[str],
    floor: int,
    hint: Optional[int],
    strict: bool = False,
) -> Optional[Tuple[int, bool]]:
    """
    在 floor 及之后定位旧侧行序列

    顺序：提示位置精确匹配 → 从 floor 开始第一个精确匹配 → 提示位置去空白匹配 → 第一个去空白匹配。
    strict 为真时只做前两步。

    Returns:
        (0 起始行索引, 是否为去空白匹配) 或 None
    """
    last_start = len(file_lines) - len(old)
    for trimmed in ((False,) if strict else (False, True)):
        if hint is not None and hint >= floor and _matches_at(file_lines, old, hint, trimmed):
            return hint, trimmed
        for pos in range(floor, last_start + 1):
            if _matches_at(file_lines, old, pos, trimmed):
                return pos, trimmed
    return None


def apply_patch(content: str, patch: Patch, strict: bool = False) -> Tuple[str, List[HunkResolution]]:
    """
    把补丁应用到内容上（纯函数，dry-run 与真实应用共用，保证结果一致）

    Args:
        content: 当前文件内容
        patch: 解析后的补丁
        strict: 只接受精确匹配，不回退到去空白匹配

    Returns:
        (新内容, 每个 hunk 的定位结果)

    Raises:
        HunkNotFound: 某个 hunk 无法定位
    """
    file_lines = split_lines(content)
    newline = detect_newline(content)
    floor = 0
    line_delta = 0  # 前序 hunk 造成的行数变化
    drift = 0  # 前一个 hunk 实际位置与提示位置之差
    resolutions: List[HunkResolution] = []

    for index, hunk in enumerate(patch.hunks):
        old = [line.text for line in hunk.old_lines]
        hint: Optional[int] = None
        if hunk.declared_old_start is not None:
            # "-N,0" 表示在第 N 行之后插入，其余情况 N 为旧侧第一行
            base = hunk.declared_old_start if not old else hunk.declared_old_start - 1
            hint = base + line_delta + drift

        fuzzy = False
        if old:
            located = locate_hunk(file_lines, old, floor, hint, strict)
            if located is None:
                raise HunkNotFound(index, hunk.declared_old_start, "\n".join(old), floor + 1)
            pos, fuzzy = located
        else:
            pos = len(file_lines) if hint is None else hint
            pos = max(floor, min(pos, len(file_lines)))

        chunk: List[str] = []
        cursor = pos
        for line in hunk.lines:
            if line.kind == HunkLineKind.CONTEXT:
                chunk.append(file_lines[cursor])
                cursor += 1
            elif line.kind == HunkLineKind.REMOVED:
                cursor += 1
            else:
                chunk.append(line.text + ("" if line.no_newline else newline))

        file_lines = file_lines[:pos] + chunk + file_lines[cursor:]

        removed = len(hunk.removed_lines)
        added = len(hunk.added_lines)
        offset = None if hint is None else pos - hint
        resolutions.append(
            HunkResolution(
                index=index,
                declared_start=hunk.declared_old_start,
                resolved_start=pos if not old else pos + 1,
                offset=offset,
                lines_removed=removed,
                lines_added=added,
                fuzzy=fuzzy,
            )
        )
        if offset:
            logger.debug("hunk %d applied %+d lines from its declared position", index, offset)

        line_delta += added - removed
        if offset is not None:
            drift += offset
        floor = pos + len(chunk)

    return "".join(ensure_terminated(file_lines, newline)), resolutions
