"""四种公开编辑操作

block_edit / patch_apply / line_edit / guarded_overwrite 都是同步阻塞调用：读取文件、在内存中
完成全部计算、最后一次原子写入。任何失败都在写入之前抛出，文件保持原样。

编排层也可以构造 EditOperation（按 kind 区分的封闭联合类型）交给 execute()，
由 functools.singledispatch 按静态类型分派，不做字符串查找。
"""

from __future__ import annotations

import logging
import time
from functools import singledispatch
from pathlib import Path
from typing import Annotated, Any, Callable, Dict, List, Literal, Optional, Sequence, Tuple, Union

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from edit_engine import write_guard
from edit_engine.atomic_writer import atomic_write, encode_text, read_source, ENCODING, ENCODING_ERRORS
from edit_engine.block_parser import make_block, parse_blocks
from edit_engine.config import EditEngineConfig, resolve_config
from edit_engine.errors import EditError, EditIOError, EditValidationError
from edit_engine.line_editor import apply_line_edit, coerce_mode, render_excerpt
from edit_engine.matcher import apply_blocks
from edit_engine.models import (
    BlockEditResult,
    EditBlock,
    EditRequest,
    LineEditCommand,
    LineEditMode,
    LineEditResult,
    OverwriteResult,
    PatchApplyResult,
)
from edit_engine.patch_applier import apply_patch, parse_unified_diff
from edit_engine.text_utils import split_lines
from edit_engine.trace_logger import EditTraceLogger

logger = logging.getLogger(__name__)

BlocksInput = Union[str, Sequence[EditBlock], Sequence[Tuple[str, str]], Sequence[Dict[str, str]]]

# 写入前回调（如乐观锁二次校验），抛出 EditError 即中止写入
BeforeWrite = Callable[[Path], None]


# =============================================================================
# 内部辅助
# =============================================================================

def _elapsed_ms(start_time: float) -> int:
    return int((time.monotonic() - start_time) * 1000)


def _trace(trace: Optional[EditTraceLogger], event: str, payload: Dict[str, Any]) -> None:
    if trace is not None:
        trace.log_event(event, payload)


def _record_failure(
    trace: Optional[EditTraceLogger],
    operation: str,
    path: str,
    error: EditError,
    start_time: float,
) -> None:
    logger.warning("%s on %s failed [%s]: %s", operation, path, error.code, error.message)
    _trace(trace, "edit_failed", {
        "operation": operation,
        "path": path,
        "error": error.to_dict(),
        "time_ms": _elapsed_ms(start_time),
    })


def _record_success(
    trace: Optional[EditTraceLogger],
    operation: str,
    path: str,
    applied: bool,
    start_time: float,
    extra: Dict[str, Any],
) -> None:
    if applied:
        logger.info("%s applied to %s %s", operation, path, extra)
    else:
        logger.debug("%s previewed for %s %s", operation, path, extra)
    payload = {"operation": operation, "path": path, "applied": applied, "time_ms": _elapsed_ms(start_time)}
    payload.update(extra)
    _trace(trace, "edit_applied" if applied else "edit_previewed", payload)


def _run_before_write(before_write: Optional[BeforeWrite], path: Path) -> None:
    if before_write is not None:
        before_write(path)


def coerce_blocks(blocks: BlocksInput) -> List[EditBlock]:
    """把原始块文本 / EditBlock 列表 / (search, replace) 对 / dict 统一为有序 EditBlock 列表"""
    if isinstance(blocks, str):
        return parse_blocks(blocks)

    result: List[EditBlock] = []
    for ordinal, item in enumerate(blocks or []):
        if isinstance(item, EditBlock):
            result.append(make_block(item.search_text, item.replace_text, ordinal))
        elif isinstance(item, dict):
            search = item.get("search_text", item.get("search"))
            replace = item.get("replace_text", item.get("replace", ""))
            result.append(make_block(search, replace, ordinal))
        elif isinstance(item, (tuple, list)) and len(item) == 2:
            result.append(make_block(item[0], item[1], ordinal))
        else:
            raise EditValidationError(
                f"Block {ordinal} must be an EditBlock, a (search, replace) pair or a dict.",
                details={"block_index": ordinal},
            )
    if not result:
        raise EditValidationError("At least one edit block is required.")
    return result


# =============================================================================
# 公开操作
# =============================================================================

def block_edit(
    path: Union[str, Path],
    blocks: BlocksInput,
    *,
    preview: bool = False,
    config: Optional[EditEngineConfig] = None,
    trace: Optional[EditTraceLogger] = None,
    before_write: Optional[BeforeWrite] = None,
) -> BlockEditResult:
    """
    按顺序应用 SEARCH/REPLACE 块

    Args:
        path: 已存在的文件
        blocks: 原始块文本，或有序的块列表
        preview: True 时只计算结果，不写入

    Raises:
        ParseError / EditValidationError / NoMatchFound / EditIOError
    """
    config = resolve_config(config)
    start_time = time.monotonic()
    path_str = str(path)
    try:
        request = EditRequest(file_path=path_str, blocks=coerce_blocks(blocks))
        source = read_source(path, config.binary_check_size)
        new_content, matches = apply_blocks(source.text, request.blocks)
        applied = False
        if not preview:
            if new_content != source.text:
                _run_before_write(before_write, source.path)
                atomic_write(source.path, new_content, mode=source.mode)
            applied = True
    except EditError as e:
        _record_failure(trace, "block_edit", path_str, e, start_time)
        raise

    result = BlockEditResult(
        path=path_str,
        applied=applied,
        blocks_applied=len(matches),
        total_blocks=len(request.blocks),
        matches=matches,
        original_content=source.text,
        new_content=new_content,
        original_size=source.size,
        new_size=len(encode_text(new_content)),
    )
    _record_success(trace, "block_edit", path_str, applied, start_time, {
        "blocks_applied": result.blocks_applied,
        "fallback_used": result.fallback_used,
    })
    return result


def patch_apply(
    path: Union[str, Path],
    diff_text: str,
    *,
    dry_run: bool = False,
    strict: bool = False,
    config: Optional[EditEngineConfig] = None,
    trace: Optional[EditTraceLogger] = None,
    before_write: Optional[BeforeWrite] = None,
) -> PatchApplyResult:
    """
    应用 unified diff

    dry_run 与真实应用走同一个纯函数，对未改动的内容两者结果一致。
    strict 为真时 hunk 必须精确匹配，不回退到去空白匹配。

    Raises:
        ParseError / EditValidationError / HunkNotFound / EditIOError
    """
    config = resolve_config(config)
    start_time = time.monotonic()
    path_str = str(path)
    try:
        if not isinstance(diff_text, str) or not diff_text.strip():
            raise EditValidationError("Patch text cannot be empty. Provide a unified diff.")
        patch = parse_unified_diff(diff_text)
        source = read_source(path, config.binary_check_size)
        new_content, resolutions = apply_patch(source.text, patch, strict=strict)
        applied = False
        if not dry_run:
            if new_content != source.text:
                _run_before_write(before_write, source.path)
                atomic_write(source.path, new_content, mode=source.mode)
            applied = True
    except EditError as e:
        _record_failure(trace, "patch_apply", path_str, e, start_time)
        raise

    result = PatchApplyResult(
        path=path_str,
        applied=applied,
        dry_run=dry_run,
        original_content=source.text,
        content=new_content,
        hunks=resolutions,
        lines_added=sum(h.lines_added for h in resolutions),
        lines_removed=sum(h.lines_removed for h in resolutions),
    )
    _record_success(trace, "patch_apply", path_str, applied, start_time, {
        "hunks": [h.model_dump() for h in resolutions],
    })
    return result


def line_edit(
    path: Union[str, Path],
    start_line: int,
    end_line: Optional[int] = None,
    new_lines: str = "",
    mode: Union[str, LineEditMode] = LineEditMode.REPLACE,
    *,
    preview: bool = False,
    config: Optional[EditEngineConfig] = None,
    trace: Optional[EditTraceLogger] = None,
    before_write: Optional[BeforeWrite] = None,
) -> LineEditResult:
    """
    按行号替换 / 插入 / 删除

    Raises:
        RangeError / EditValidationError / EditIOError
    """
    config = resolve_config(config)
    start_time = time.monotonic()
    path_str = str(path)
    try:
        command = _build_command(start_line, end_line, new_lines, mode)
        source = read_source(path, config.binary_check_size)
        new_content, affected = apply_line_edit(source.text, command)
        excerpt = render_excerpt(source.text, new_content, command, config.preview_context_lines)
        applied = False
        if not preview:
            if new_content != source.text:
                _run_before_write(before_write, source.path)
                atomic_write(source.path, new_content, mode=source.mode)
            applied = True
    except EditError as e:
        _record_failure(trace, "line_edit", path_str, e, start_time)
        raise

    result = LineEditResult(
        path=path_str,
        applied=applied,
        mode=command.mode,
        start_line=command.start_line,
        end_line=command.end_line,
        lines_affected=affected,
        excerpt=excerpt,
        original_content=source.text,
        new_content=new_content,
        line_count_before=len(split_lines(source.text)),
        line_count_after=len(split_lines(new_content)),
    )
    _record_success(trace, "line_edit", path_str, applied, start_time, {
        "mode": command.mode.value,
        "start_line": command.start_line,
        "end_line": command.end_line,
        "lines_affected": affected,
    })
    return result


def _build_command(start_line: Any, end_line: Any, new_lines: Any, mode: Any) -> LineEditCommand:
    mode = coerce_mode(mode)
    for name, value in (("start_line", start_line), ("end_line", end_line)):
        if value is None and name == "end_line":
            continue
        if isinstance(value, bool) or not isinstance(value, int):
            raise EditValidationError(f"Parameter '{name}' must be an integer.", details={name: value})
    if new_lines is None:
        new_lines = ""
    if not isinstance(new_lines, str):
        raise EditValidationError("Parameter 'new_lines' must be a string.")
    if end_line is None and mode != LineEditMode.INSERT:
        end_line = start_line
    return LineEditCommand(start_line=start_line, end_line=end_line, new_lines=new_lines, mode=mode)


def guarded_overwrite(
    path: Union[str, Path],
    content: str,
    *,
    allow_size_reduce: bool = False,
    create_dirs: bool = True,
    dry_run: bool = False,
    config: Optional[EditEngineConfig] = None,
    trace: Optional[EditTraceLogger] = None,
    before_write: Optional[BeforeWrite] = None,
) -> OverwriteResult:
    """
    全量覆盖写入（带体积骤减保护）

    Raises:
        SizeGuardTriggered / EditValidationError / EditIOError
    """
    config = resolve_config(config)
    start_time = time.monotonic()
    target = Path(path)
    path_str = str(path)
    try:
        if not isinstance(content, str):
            raise EditValidationError("Parameter 'content' must be a string.")
        if target.is_dir():
            raise EditValidationError(
                f"Path '{path_str}' is a directory, not a file.",
                code="IS_DIRECTORY",
                details={"path": path_str},
            )

        created = not target.exists()
        old_size: Optional[int] = None
        original = ""
        if not created:
            try:
                raw = target.read_bytes()
            except OSError as e:
                raise EditIOError(f"Failed to read original file '{path_str}': {e}", path=path_str, cause=e) from e
            old_size = len(raw)
            original = raw.decode(ENCODING, errors=ENCODING_ERRORS)

        data = encode_text(content)
        decision = write_guard.check(old_size, len(data), config, allow_size_reduce)

        bytes_written = 0
        applied = False
        if not dry_run:
            _run_before_write(before_write, target)
            bytes_written = atomic_write(target, data, create_dirs=create_dirs)
            applied = True
    except EditError as e:
        _record_failure(trace, "guarded_overwrite", path_str, e, start_time)
        raise

    result = OverwriteResult(
        path=path_str,
        applied=applied,
        created=created,
        decision=decision,
        original_content=original,
        bytes_written=bytes_written,
    )
    _record_success(trace, "guarded_overwrite", path_str, applied, start_time, {
        "created": created,
        "old_size": decision.old_size,
        "new_size": decision.new_size,
    })
    return result


# =============================================================================
# 封闭联合类型与静态分派
# =============================================================================

class BlockEdit(BaseModel):
    kind: Literal["block_edit"] = "block_edit"
    path: str
    blocks: List[EditBlock] = Field(default_factory=list)
    diff: Optional[str] = None  # 原始块文本，与 blocks 二选一
    preview: bool = False


class PatchApply(BaseModel):
    kind: Literal["patch_apply"] = "patch_apply"
    path: str
    diff_text: str
    dry_run: bool = False
    strict: bool = False


class LineEdit(BaseModel):
    kind: Literal["line_edit"] = "line_edit"
    path: str
    start_line: int
    end_line: Optional[int] = None
    new_lines: str = ""
    mode: LineEditMode = LineEditMode.REPLACE
    preview: bool = False


class GuardedOverwrite(BaseModel):
    kind: Literal["guarded_overwrite"] = "guarded_overwrite"
    path: str
    content: str
    allow_size_reduce: bool = False
    create_dirs: bool = True
    dry_run: bool = False


EditOperation = Annotated[
    Union[BlockEdit, PatchApply, LineEdit, GuardedOverwrite],
    Field(discriminator="kind"),
]

_operation_adapter = TypeAdapter(EditOperation)


def parse_operation(data: Dict[str, Any]) -> Union[BlockEdit, PatchApply, LineEdit, GuardedOverwrite]:
    """从 JSON 字典构造操作（按 kind 区分）"""
    try:
        return _operation_adapter.validate_python(data)
    except ValidationError as e:
        raise EditValidationError(f"Invalid edit operation: {e}", details={"errors": e.errors()}) from e


@singledispatch
def execute(operation, config: Optional[EditEngineConfig] = None, trace: Optional[EditTraceLogger] = None):
    """按操作的静态类型分派到对应的编辑操作"""
    raise EditValidationError(f"Unsupported edit operation type: {type(operation).__name__}")


@execute.register
def _(operation: BlockEdit, config: Optional[EditEngineConfig] = None, trace: Optional[EditTraceLogger] = None):
    blocks: BlocksInput = operation.blocks if operation.blocks else (operation.diff or "")
    return block_edit(operation.path, blocks, preview=operation.preview, config=config, trace=trace)


@execute.register
def _(operation: PatchApply, config: Optional[EditEngineConfig] = None, trace: Optional[EditTraceLogger] = None):
    return patch_apply(
        operation.path, operation.diff_text,
        dry_run=operation.dry_run, strict=operation.strict, config=config, trace=trace,
    )


@execute.register
def _(operation: LineEdit, config: Optional[EditEngineConfig] = None, trace: Optional[EditTraceLogger] = None):
    return line_edit(
        operation.path,
        operation.start_line,
        operation.end_line,
        operation.new_lines,
        operation.mode,
        preview=operation.preview,
        config=config,
        trace=trace,
    )


@execute.register
def _(operation: GuardedOverwrite, config: Optional[EditEngineConfig] = None, trace: Optional[EditTraceLogger] = None):
    return guarded_overwrite(
        operation.path,
        operation.content,
        allow_size_reduce=operation.allow_size_reduce,
        create_dirs=operation.create_dirs,
        dry_run=operation.dry_run,
        config=config,
        trace=trace,
    )
