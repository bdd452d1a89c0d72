"""补丁应用工具 (ApplyPatch)

遵循《通用工具响应协议》，返回标准化结构。
按内容定位 unified diff 的各个 hunk，dry_run 返回补丁后的内容但不写入。
"""

from pathlib import Path
from typing import Any, Dict, List, Optional

from edit_engine.config import EditEngineConfig
from edit_engine.operations import patch_apply
from edit_engine.trace_logger import EditTraceLogger
from edit_prompts.apply_patch_prompt import apply_patch_prompt
from ..base import FileEditTool, ToolParameter


class ApplyPatchTool(FileEditTool):
    """Unified diff 补丁工具，支持行号漂移、空白容错定位、dry_run"""

    def __init__(
        self,
        name: str = "ApplyPatch",
        project_root: Optional[Path] = None,
        working_dir: Optional[Path] = None,
        config: Optional[EditEngineConfig] = None,
        trace: Optional[EditTraceLogger] = None,
    ):
        super().__init__(
            name=name,
            description=apply_patch_prompt,
            project_root=project_root,
            working_dir=working_dir,
            config=config,
            trace=trace,
        )

    def execute(self, parameters: Dict[str, Any], params_input: Dict[str, Any], start_time: float) -> str:
        abs_path, rel_path = self.resolve_path(parameters.get("path"))
        patch_text = self.require_string(parameters, "patch", allow_empty=False)
        dry_run = self.optional_bool(parameters, "dry_run")
        strict = self.optional_bool(parameters, "strict")
        before_write = self.conflict_guard(parameters, abs_path, rel_path)

        result = patch_apply(
            abs_path,
            patch_text,
            dry_run=dry_run,
            strict=strict,
            config=self.config,
            trace=self.trace,
            before_write=before_write,
        )
        diff = self.diff_preview(result.original_content, result.content, rel_path)

        data: Dict[str, Any] = {
            "applied": result.applied,
            "hunks": [h.model_dump(mode="json") for h in result.hunks],
            "diff_preview": diff.preview,
            "diff_truncated": diff.truncated,
        }
        if dry_run:
            data["dry_run"] = True
            data["preview_content"] = result.content

        hunk_count = len(result.hunks)
        summary = f"{hunk_count} hunk{'s' if hunk_count != 1 else ''}, +{result.lines_added}/-{result.lines_removed} lines"
        text_parts: List[str] = []
        if dry_run:
            text_parts.append(f"[Dry Run] Would patch '{rel_path}' ({summary}).")
        else:
            text_parts.append(f"Patched '{rel_path}' ({summary}).")
        for hunk in result.hunks:
            if hunk.offset:
                text_parts.append(
                    f"Hunk {hunk.index} applied at line {hunk.resolved_start} (offset {hunk.offset:+d} lines)."
                )
            if hunk.fuzzy:
                text_parts.append(f"Hunk {hunk.index} matched only after ignoring surrounding whitespace.")
        if diff.truncated:
            text_parts.append("(Diff preview truncated. Use Read to verify full content.)")

        return self.respond(
            is_partial=dry_run or diff.truncated or result.fuzzy_used,
            data=data,
            text="\n".join(text_parts),
            params_input=params_input,
            start_time=start_time,
            extra_stats={
                "hunks": hunk_count,
                "lines_added": result.lines_added,
                "lines_removed": result.lines_removed,
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
                name="patch",
                type="string",
                description="Unified diff text with one or more '@@ -a,b +c,d @@' hunks.",
                required=True,
            ),
            ToolParameter(
                name="dry_run",
                type="boolean",
                description="If true, return the patched content without writing. Default is false.",
                required=False,
                default=False,
            ),
            ToolParameter(
                name="strict",
                type="boolean",
                description="If true, every hunk must match exactly; no whitespace-insensitive fallback. Default is false.",
                required=False,
                default=False,
            ),
            *self.OPTIMISTIC_LOCK_PARAMETERS,
        ]
