"""编辑引擎数据模型

所有实体都是单次调用内的临时对象，调用返回后即丢弃，不在操作之间共享。
"""

from __future__ import annotations

from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator


# =============================================================================
# 块编辑
# =============================================================================

class EditBlock(BaseModel):
    """一个 (search, replace) 文本对"""

    search_text: str
    replace_text: str = ""
    ordinal: int = 0

    @field_validator("search_text")
    @classmethod
    def _search_not_empty(cls, value: str) -> str:
        if not value:
            raise ValueError("search_text cannot be empty")
        return value


class EditRequest(BaseModel):
    """对单个文件的有序块编辑请求"""

    file_path: str
    blocks: List[EditBlock] = Field(min_length=1)


class MatchTier(str, Enum):
    EXACT = "exact"
    LINE_TRIMMED = "line_trimmed"


class BlockMatch(BaseModel):
    """块在原始内容中的解析位置 [start, end)"""

    index: int
    start: int
    end: int
    tier: MatchTier


# =============================================================================
# Unified diff
# =============================================================================

class HunkLineKind(str, Enum):
    CONTEXT = "context"
    REMOVED = "removed"
    ADDED = "added"


class HunkLine(BaseModel):
    kind: HunkLineKind
    text: str
    no_newline: bool = False  # 后跟 "\ No newline at end of file"


class Hunk(BaseModel):
    """unified diff 中的一个变更单元

    lines 保留 hunk 体的原始顺序（上下文可能夹在变更之间），
    context_before/context_after 为首尾连续的上下文行。
    """

    declared_old_start: Optional[int] = None
    declared_old_length: Optional[int] = None
    declared_new_start: Optional[int] = None
    declared_new_length: Optional[int] = None
    lines: List[HunkLine] = Field(default_factory=list)

    @property
    def context_before(self) -> List[str]:
        result: List[str] = []
        for line in self.lines:
            if line.kind != HunkLineKind.CONTEXT:
                break
            result.append(line.text)
        return result

    @property
    def context_after(self) -> List[str]:
        if all(line.kind == HunkLineKind.CONTEXT for line in self.lines):
            return []
        result: List[str] = []
        for line in reversed(self.lines):
            if line.kind != HunkLineKind.CONTEXT:
                break
            result.append(line.text)
        return list(reversed(result))

    @property
    def removed_lines(self) -> List[str]:
        return [line.text for line in self.lines if line.kind == HunkLineKind.REMOVED]

    @property
    def added_lines(self) -> List[str]:
        return [line.text for line in self.lines if line.kind == HunkLineKind.ADDED]

    @property
    def old_lines(self) -> List[HunkLine]:
        """旧侧序列：上下文 + 删除行（保持顺序）"""
        return [line for line in self.lines if line.kind != HunkLineKind.ADDED]

    @property
    def new_lines(self) -> List[HunkLine]:
        """新侧序列：上下文 + 新增行（保持顺序）"""
        return [line for line in self.lines if line.kind != HunkLineKind.REMOVED]


class Patch(BaseModel):
    source_diff_text: str
    hunks: List[Hunk] = Field(default_factory=list)


class HunkResolution(BaseModel):
    """hunk 的实际定位结果（行号为 1 起始，基于应用该 hunk 时的内容）"""

    index: int
    declared_start: Optional[int] = None
    resolved_start: int
    offset: Optional[int] = None  # resolved_start 与声明位置（含前序 hunk 偏移）的差
    lines_removed: int = 0
    lines_added: int = 0
    fuzzy: bool = False


# =============================================================================
# 行编辑
# =============================================================================

class LineEditMode(str, Enum):
    REPLACE = "replace"
    INSERT = "insert"
    DELETE = "delete"


class LineEditCommand(BaseModel):
    start_line: int
    end_line: Optional[int] = None  # insert 模式忽略
    new_lines: str = ""
    mode: LineEditMode = LineEditMode.REPLACE


# =============================================================================
# 写入保护
# =============================================================================

class WriteGuardDecision(BaseModel):
    allowed: bool
    old_size: int
    new_size: int
    ratio: Optional[float] = None
    threshold: float
    reason: str


# =============================================================================
# 操作结果
# =============================================================================

class BlockEditResult(BaseModel):
    kind: Literal["block_edit"] = "block_edit"
    path: str
    applied: bool
    blocks_applied: int
    total_blocks: int
    matches: List[BlockMatch] = Field(default_factory=list)
    original_content: str = ""
    new_content: str = ""
    original_size: int = 0
    new_size: int = 0

    @property
    def fallback_used(self) -> bool:
        return any(m.tier == MatchTier.LINE_TRIMMED for m in self.matches)


class PatchApplyResult(BaseModel):
    kind: Literal["patch_apply"] = "patch_apply"
    path: str
    applied: bool
    dry_run: bool
    original_content: str = ""
    content: str
    hunks: List[HunkResolution] = Field(default_factory=list)
    lines_added: int = 0
    lines_removed: int = 0

    @property
    def fuzzy_used(self) -> bool:
        return any(h.fuzzy for h in self.hunks)


class LineEditResult(BaseModel):
    kind: Literal["line_edit"] = "line_edit"
    path: str
    applied: bool
    mode: LineEditMode
    start_line: int
    end_line: Optional[int] = None
    lines_affected: int
    excerpt: str
    original_content: str = ""
    new_content: str = ""
    line_count_before: int = 0
    line_count_after: int = 0


class OverwriteResult(BaseModel):
    kind: Literal["guarded_overwrite"] = "guarded_overwrite"
    path: str
    applied: bool
    created: bool
    decision: WriteGuardDecision
    original_content: str = ""
    bytes_written: int = 0
