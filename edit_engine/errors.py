"""编辑引擎错误类型

所有失败都以带稳定 code 的异常抛给直接调用方，details 中携带足以智能重试的结构化信息
（失败块序号、内容预览、声明位置与实际位置等）。
"""

from __future__ import annotations

from typing import Any, Dict, Optional


PREVIEW_CHARS = 200


def preview_text(text: str, limit: int = PREVIEW_CHARS) -> str:
    """截取用于错误信息的文本预览"""
    if len(text) <= limit:
        return text
    return text[:limit] + "..."


class EditError(Exception):
    """Typed error carrying a stable code for tool-level mapping."""

    code = "INTERNAL_ERROR"

    def __init__(
        self,
        message: str,
        *,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.code = str(code or self.code)
        self.message = str(message or "")
        self.details: Dict[str, Any] = dict(details or {})

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": dict(self.details)}


class EditValidationError(EditError):
    """输入为空或非法（空 search 文本、未知 mode、二进制文件等）"""

    code = "INVALID_PARAM"


class ParseError(EditError):
    """块文本或 diff 语法错误"""

    code = "PARSE_ERROR"

    def __init__(self, message: str, *, index: Optional[int] = None, near_text: str = "", kind: str = "block"):
        details: Dict[str, Any] = {"kind": kind, "near_text": preview_text(near_text)}
        if index is not None:
            details[f"{kind}_index"] = index
        super().__init__(message, details=details)
        self.index = index
        self.near_text = near_text


class NoMatchFound(EditError):
    """search 文本在文件内容中找不到"""

    code = "NO_MATCH"

    def __init__(
        self,
        block_index: int,
        search_text: str,
        cursor: int = 0,
        *,
        message: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.block_index = block_index
        self.search_preview = preview_text(search_text)
        if message is None:
            message = (
                f"Block {block_index}: SEARCH content not found at or after offset {cursor}. "
                "Check that blocks are listed in file order and that the SEARCH text is copied "
                "exactly from the current file."
            )
        if details is None:
            details = {"block_index": block_index, "cursor": cursor}
        details["search_preview"] = self.search_preview
        super().__init__(message, details=details)


class HunkNotFound(NoMatchFound):
    """diff hunk 的上下文/删除行无法在内容中定位"""

    def __init__(self, hunk_index: int, declared_start: Optional[int], old_lines_text: str, search_from_line: int):
        self.hunk_index = hunk_index
        self.declared_start = declared_start
        declared = f"line {declared_start}" if declared_start is not None else "no declared line"
        super().__init__(
            hunk_index,
            old_lines_text,
            message=(
                f"Hunk {hunk_index} (declared at {declared}) could not be located at or after "
                f"line {search_from_line}. Regenerate the diff against the current file content."
            ),
            details={
                "hunk_index": hunk_index,
                "declared_start": declared_start,
                "search_from_line": search_from_line,
            },
        )


class RangeError(EditError):
    """行号范围非法"""

    code = "RANGE_ERROR"

    def __init__(self, message: str, *, start_line: int, end_line: Optional[int], line_count: int):
        super().__init__(
            message,
            details={"start_line": start_line, "end_line": end_line, "line_count": line_count},
        )
        self.start_line = start_line
        self.end_line = end_line
        self.line_count = line_count


class SizeGuardTriggered(EditError):
    """全量覆盖写入触发了体积骤减保护"""

    code = "SIZE_GUARD"

    def __init__(self, old_size: int, new_size: int, threshold: float):
        self.old_size = old_size
        self.new_size = new_size
        self.threshold = threshold
        reduction = (old_size - new_size) / old_size * 100 if old_size else 0.0
        super().__init__(
            f"SAFETY CHECK FAILED: refusing to reduce file size from {old_size} to {new_size} bytes "
            f"({reduction:.1f}% reduction, threshold ratio {threshold}). This might be accidental data loss. "
            "If this is intentional, retry with allow_size_reduce=true; otherwise Read the file and use "
            "SearchReplace or EditLines for targeted changes.",
            details={"old_size": old_size, "new_size": new_size, "threshold": threshold},
        )


class EditIOError(EditError):
    """与匹配逻辑无关的文件系统失败"""

    code = "IO_ERROR"

    def __init__(self, message: str, *, path: str = "", cause: Optional[BaseException] = None):
        super().__init__(message, details={"path": path, "cause": repr(cause) if cause else None})
        self.path = path


class ConflictError(EditError):
    """文件在读取之后被外部修改（乐观锁校验失败）"""

    code = "CONFLICT"
