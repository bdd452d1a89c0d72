"""多块查找替换工具 (SearchReplace)

遵循《通用工具响应协议》，返回标准化结构。
解析 SEARCH/REPLACE 块文本，按顺序单调匹配并一次原子写入；任一块匹配失败则整体不写入。
"""

from pathlib import Path
from typing import Any, Dict, List, Optional

from edit_engine.config import EditEngineConfig
from edit_engine.models import MatchTier
from edit_engine.operations import block_edit
from edit_engine.trace_logger import EditTraceLogger
from edit_prompts.search_replace_prompt import search_replace_prompt
from ..base import FileEditTool, ToolParameter


class SearchReplaceTool(FileEditTool):
    """多块查找替换工具，支持空白容错匹配、diff 预览、preview 模式"""

    def __init__(
        self,
        name: str = "SearchReplace",
        project_root: Optional[Path] = None,
        working_dir: Optional[Path] = None,
        config: Optional[EditEngineConfig] = None,
        trace: Optional[EditTraceLogger] = None,
    ):
        super().__init__(
            name=name,
            description=search_replace_prompt,
            project_root=project_root,
            working_dir=working_dir,
            config=config,
            trace=trace,
        )

    def execute(self, parameters: Dict[str, Any], params_input: Dict[str, Any], start_time: float) -> str:
        """
        执行多块替换

        Args:
            parameters: 包含以下键的字典：
                - path: 要编辑的文件路径（必填，相对路径）
                - diff: SEARCH/REPLACE 块文本（必填）
                - preview: 是否仅预览不写入（默认为 False）
                - expected_mtime_ms / expected_size_bytes: 可选乐观锁
        """
        abs_path, rel_path = self.resolve_path(parameters.get("path"))
        diff_text = self.require_string(parameters, "diff", allow_empty=False)
        preview = self.optional_bool(parameters, "preview")
        before_write = self.conflict_guard(parameters, abs_path, rel_path)

        result = block_edit(
            abs_path,
            diff_text,
            preview=preview,
            config=self.config,
            trace=self.trace,
            before_write=before_write,
        )
        diff = self.diff_preview(result.original_content, result.new_content, rel_path)

        data: Dict[str, Any] = {
            "applied": result.applied,
            "blocks_applied": result.blocks_applied,
            "total_blocks": result.total_blocks,
            "matches": [m.model_dump(mode="json") for m in result.matches],
            "fallback_used": result.fallback_used,
            "diff_preview": diff.preview,
            "diff_truncated": diff.truncated,
        }
        if preview:
            data["preview"] = True

        text_parts: List[str] = []
        summary = f"{result.blocks_applied}/{result.total_blocks} blocks, +{diff.lines_added}/-{diff.lines_removed} lines"
        if preview:
            text_parts.append(f"[Preview] Would edit '{rel_path}' ({summary}).")
        else:
            text_parts.append(f"Edited '{rel_path}' ({summary}, {result.new_size} bytes).")
        if result.fallback_used:
            fallback_blocks = [str(m.index) for m in result.matches if m.tier == MatchTier.LINE_TRIMMED]
            text_parts.append(
                f"(Blocks {', '.join(fallback_blocks)} matched only after ignoring surrounding whitespace. "
                "Check the diff to confirm the intended lines were changed.)"
            )
        if diff.truncated:
            text_parts.append("(Diff preview truncated. Use Read to verify full content.)")

        return self.respond(
            is_partial=preview or diff.truncated or result.fallback_used,
            data=data,
            text="\n".join(text_parts),
            params_input=params_input,
            start_time=start_time,
            extra_stats={
                "original_size": result.original_size,
                "new_size": result.new_size,
                "lines_added": diff.lines_added,
                "lines_removed": diff.lines_removed,
            },
            path_resolved=rel_path,
        )

    def get_parameters(self) -> List[ToolParameter]:
        return [
            ToolParameter(
                name="path",
                type="string",
                description="Path to the file (relative to project root, POSIX style). Required.",
                required=True,
            ),
            ToolParameter(
                name="diff",
                type="string",
                description="One or more SEARCH/REPLACE blocks "
                            "('------- SEARCH' / '=======' / '+++++++ REPLACE'), in file order.",
                required=True,
            ),
            ToolParameter(
                name="preview",
                type="boolean",
                description="If true, compute the result and diff but do not write. Default is false.",
                required=False,
                default=False,
            ),
            *self.OPTIMISTIC_LOCK_PARAMETERS,
        ]
