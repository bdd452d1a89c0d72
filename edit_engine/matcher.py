"""分级匹配器

对一个块编辑请求，在 *原始* 内容上定位每个块的 search 文本，并在一次前向扫描中生成结果内容。

匹配策略（逐块，游标单调递增）：
1. exact：从游标开始查找 search 原文，第一个出现位置即为匹配，不回溯、不看游标之前。
2. line_trimmed：exact 失败时，把 search 与游标之后的内容按行切分，寻找第一段
   逐行 strip() 后完全相同的连续行，再映射回原始偏移。

所有偏移都基于原始内容计算，替换文本长度的变化不会影响后续块的定位；替换文本原样插入，不做缩进调整。
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence, Tuple

from edit_engine.errors import NoMatchFound
from edit_engine.models import BlockMatch, EditBlock, MatchTier

logger = logging.getLogger(__name__)

Span = Tuple[int, int]


def find_exact(content: str, search: str, cursor: int = 0) -> Optional[Span]:
    """在 cursor 及之后查找 search 原文，返回 [start, end) 或 None"""
    idx = content.find(search, cursor)
    if idx < 0:
        return None
    return idx, idx + len(search)


def find_line_trimmed(content: str, search: str, cursor: int = 0) -> Optional[Span]:
    """
    行级去空白匹配

    search 末尾换行产生的空行不参与比较；若 search 以换行结尾，匹配区间包含最后一行的换行符。
    只含空白的 search 不匹配任何位置，匹配区间不会为空。
    匹配区间从首行行首开始，到末行行尾结束（末行的 \\r 不计入，以保留原文件的 CRLF）。
    """
    search_lines = search.split("\n")
    ends_with_newline = len(search_lines) > 1 and search_lines[-1] == ""
    if ends_with_newline:
        search_lines.pop()
    targets = [line.strip() for line in search_lines]
    if not any(targets):
        return None

    region = content[cursor:]
    content_lines = region.split("\n")
    trimmed = [line.strip() for line in content_lines]

    # 每行在 region 中的起始偏移
    starts: List[int] = []
    pos = 0
    for line in content_lines:
        starts.append(pos)
        pos += len(line) + 1

    # 末尾换行之后的空串不是一行，不参与匹配
    usable = len(content_lines)
    if content_lines[-1] == "":
        usable -= 1

    count = len(targets)
    for i in range(usable - count + 1):
        if trimmed[i:i + count] != targets:
            continue
        last = i + count - 1
        start = cursor + starts[i]
        end = cursor + starts[last] + len(content_lines[last])
        if ends_with_newline:
            if end < len(content):
                end += 1
        elif content_lines[last].endswith("\r"):
            end -= 1
        return start, end
    return None


def locate_block(content: str, block: EditBlock, cursor: int) -> Optional[BlockMatch]:
    """按 exact → line_trimmed 的顺序定位单个块"""
    span = find_exact(content, block.search_text, cursor)
    tier = MatchTier.EXACT
    if span is None:
        span = find_line_trimmed(content, block.search_text, cursor)
        tier = MatchTier.LINE_TRIMMED
    if span is None:
        return None
    return BlockMatch(index=block.ordinal, start=span[0], end=span[1], tier=tier)


def apply_blocks(content: str, blocks: Sequence[EditBlock]) -> Tuple[str, List[BlockMatch]]:
    """
    按顺序把所有块应用到原始内容

    Args:
        content: 原始文件内容
        blocks: 有序的 EditBlock 列表

    Returns:
        (新内容, 每个块的匹配信息)

    Raises:
        NoMatchFound: 任一块两级匹配都失败（整个请求作废，不产生任何输出）
    """
    cursor = 0
    output: List[str] = []
    matches: List[BlockMatch] = []

    for position, block in enumerate(blocks):
        match = locate_block(content, block, cursor)
        if match is None:
            raise NoMatchFound(position, block.search_text, cursor)
        if match.index != position:
            match = match.model_copy(update={"index": position})

        logger.debug(
            "block %d matched [%d, %d) via %s",
            position, match.start, match.end, match.tier.value,
        )
        output.append(content[cursor:match.start])
        output.append(block.replace_text)
        cursor = match.end
        matches.append(match)

    output.append(content[cursor:])
    return "".join(output), matches
