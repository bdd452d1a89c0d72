"""SEARCH/REPLACE 块解析器

把模型输出的多块变更文本解析为有序的 EditBlock 列表。纯函数，无副作用。

块格式::

    ------- SEARCH
    [要查找的原文]
    =======
    [替换后的内容]
    +++++++ REPLACE

标记行按去除首尾空白后匹配，标记字符数量 >= 3 即可，允许末尾多一个 ">"；
同时兼容 "<<<<<<< SEARCH" / ">>>>>>> REPLACE" 旧写法。块之外的文本（说明文字、代码围栏）被忽略。
"""

from __future__ import annotations

import re
from typing import List

from edit_engine.errors import EditValidationError, ParseError
from edit_engine.models import EditBlock

SEARCH_START_RE = re.compile(r"^(?:-{3,}|<{3,}) SEARCH>?\s*$")
DIVIDER_RE = re.compile(r"^={3,}\s*$")
REPLACE_END_RE = re.compile(r"^(?:\+{3,}|>{3,}) REPLACE>?\s*$")

# 报错时附带的“最近未解析文本”行数
NEAR_TEXT_LINES = 3

_IDLE = "idle"
_IN_SEARCH = "in_search"
_IN_REPLACE = "in_replace"


def is_search_start(line: str) -> bool:
    return bool(SEARCH_START_RE.match(line.strip()))


def is_divider(line: str) -> bool:
    return bool(DIVIDER_RE.match(line.strip()))


def is_replace_end(line: str) -> bool:
    return bool(REPLACE_END_RE.match(line.strip()))


def _near(lines: List[str], index: int) -> str:
    return "\n".join(lines[index:index + NEAR_TEXT_LINES])


def _join_section(lines: List[str]) -> str:
    # 段内行保留各自的 \r；最后一行的 \r 属于段结束的换行
    text = "\n".join(lines)
    return text[:-1] if text.endswith("\r") else text


def make_block(search_text: str, replace_text: str, ordinal: int) -> EditBlock:
    """构造 EditBlock，空的或只含空白的 search 文本以 EditValidationError 报告"""
    if not isinstance(search_text, str) or not isinstance(replace_text, str):
        raise EditValidationError(
            f"Block {ordinal}: search and replace text must be strings.",
            details={"block_index": ordinal},
        )
    if not search_text.strip():
        raise EditValidationError(
            f"Block {ordinal}: SEARCH section cannot be empty or whitespace-only. Provide the exact text to replace.",
            details={"block_index": ordinal},
        )
    return EditBlock(search_text=search_text, replace_text=replace_text, ordinal=ordinal)


def parse_blocks(text: str) -> List[EditBlock]:
    """
    解析 SEARCH/REPLACE 块

    Args:
        text: 包含一个或多个块的原始文本

    Returns:
        按出现顺序排列的 EditBlock 列表

    Raises:
        ParseError: 缺少分隔标记、块未闭合或没有任何块
        EditValidationError: 某个块的 SEARCH 段为空
    """
    lines = text.split("\n")
    blocks: List[EditBlock] = []
    search_lines: List[str] = []
    replace_lines: List[str] = []
    state = _IDLE
    block_start = 0

    for i, line in enumerate(lines):
        if state == _IDLE:
            if is_search_start(line):
                state = _IN_SEARCH
                block_start = i
                search_lines = []
                replace_lines = []
            elif is_replace_end(line):
                raise ParseError(
                    f"Block {len(blocks)}: found REPLACE marker at line {i + 1} without a preceding "
                    "SEARCH marker. Start each block with '------- SEARCH'.",
                    index=len(blocks),
                    near_text=_near(lines, i),
                )

        elif state == _IN_SEARCH:
            if is_divider(line):
                state = _IN_REPLACE
            elif is_search_start(line) or is_replace_end(line):
                raise ParseError(
                    f"Block {len(blocks)}: missing '=======' divider before line {i + 1}. "
                    "Each block needs SEARCH, '=======' and REPLACE markers in that order.",
                    index=len(blocks),
                    near_text=_near(lines, i),
                )
            else:
                search_lines.append(line)

        else:
            if is_replace_end(line):
                blocks.append(make_block(_join_section(search_lines), _join_section(replace_lines), len(blocks)))
                state = _IDLE
            elif is_search_start(line):
                raise ParseError(
                    f"Block {len(blocks)}: missing '+++++++ REPLACE' marker before line {i + 1}. "
                    "Close every block before starting the next one.",
                    index=len(blocks),
                    near_text=_near(lines, i),
                )
            else:
                replace_lines.append(line)

    if state != _IDLE:
        missing = "'=======' divider" if state == _IN_SEARCH else "'+++++++ REPLACE' marker"
        raise ParseError(
            f"Block {len(blocks)}: block opened at line {block_start + 1} is never closed (missing {missing}).",
            index=len(blocks),
            near_text=_near(lines, block_start),
        )

    if not blocks:
        raise ParseError(
            "No valid SEARCH/REPLACE blocks found. Use the '------- SEARCH' / '=======' / "
            "'+++++++ REPLACE' format.",
            index=0,
            near_text=_near(lines, 0),
        )

    return blocks
