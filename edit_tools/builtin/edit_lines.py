"""行号编辑工具 (EditLines)

遵循《通用工具响应协议》，返回标准化结构。
按 1 起始的行号范围执行 replace / insert / delete，返回 BEFORE/AFTER 对比片段。
"""

from pathlib import Path
from typing import Any, Dict, List, Optional

from edit_engine.config import EditEngineConfig
from edit_engine.models import LineEditMode
from edit_engine.operations import line_edit
from edit_engine.trace_logger import EditTraceLogger
from edit_prompts.edit_lines_prompt import edit_lines_prompt
from ..base import ErrorCode, FileEditTool, ToolInputError, ToolParameter


class EditLinesTool(FileEditTool):
    """行号编辑工具"""

    def __init__(
        self,
        name: str = "EditLines",
        project_root: Optional[Path] = None,
        working_dir: Optional[Path] = None,
        config: Optional[EditEngineConfig] = None,
        trace: Optional[EditTraceLogger] = None,
    ):
        super().__init__(
            name=name,
            description=edit_lines_prompt,
            project_root=project_root,
            working_dir=working_dir,
            config=config,
            trace=trace,
        )

    def execute(self, parameters: Dict[str, Any], params_input: Dict[str, Any], start_time: float) -> str:
        abs_path, rel_path = self.resolve_path(parameters.get("path"))

        start_line = parameters.get("start_line")
        end_line = parameters.get("end_line")
        for name, value, required in (("start_line", start_line, True), ("end_line", end_line, False)):
            if value is None and not required:
                continue
            if isinstance(value, bool) or not isinstance(value, int):
                raise ToolInputError(ErrorCode.INVALID_PARAM, f"Parameter '{name}' must be an integer.", rel_path)

        new_lines = parameters.get("new_lines", "")
        if new_lines is None:
            new_lines = ""
        if not isinstance(new_lines, str):
            raise ToolInputError(ErrorCode.INVALID_PARAM, "Parameter 'new_lines' must be a string.", rel_path)

        mode = parameters.get("mode") or LineEditMode.REPLACE.value
        preview = self.optional_bool(parameters, "preview")
        before_write = self.conflict_guard(parameters, abs_path, rel_path)

        result = line_edit(
            abs_path,
            start_line,
            end_line,
            new_lines,
            mode,
            preview=preview,
            config=self.config,
            trace=self.trace,
            before_write=before_write,
        )
        diff = self.diff_preview(result.original_content, result.new_content, rel_path)

        data: Dict[str, Any] = {
            "applied": result.applied,
            "mode": result.mode.value,
            "start_line": result.start_line,
            "end_line": result.end_line,
            "lines_affected": result.lines_affected,
            "excerpt": result.excerpt,
            "line_count_before": result.line_count_before,
            "line_count_after": result.line_count_after,
            "diff_preview": diff.preview,
            "diff_truncated": diff.truncated,
        }
        if preview:
            data["preview"] = True

        if result.mode == LineEditMode.INSERT:
            target = f"before line {result.start_line}"
        else:
            target = f"lines {result.start_line}-{result.end_line}"
        verb = {
            LineEditMode.REPLACE: "Replaced",
            LineEditMode.INSERT: "Inserted",
            LineEditMode.DELETE: "Deleted",
        }[result.mode]
        if preview:
            text = f"[Preview] {result.mode.value} {target} in '{rel_path}' ({result.lines_affected} lines).\n{result.excerpt}"
        else:
            text = (
                f"{verb} {result.lines_affected} lines ({target}) in '{rel_path}'. "
                f"File now has {result.line_count_after} lines."
            )
        if diff.truncated:
            text += "\n(Diff preview truncated. Use Read to verify full content.)"

        return self.respond(
            is_partial=preview or diff.truncated,
            data=data,
            text=text,
            params_input=params_input,
            start_time=start_time,
            extra_stats={
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
                name="start_line",
                type="integer",
                description="First line of the range (1-indexed).",
                required=True,
            ),
            ToolParameter(
                name="end_line",
                type="integer",
                description="Last line of the range, inclusive. Defaults to start_line. Ignored for insert.",
                required=False,
            ),
            ToolParameter(
                name="new_lines",
                type="string",
                description="Text to write (replace/insert). Ignored for delete.",
                required=False,
                default="",
            ),
            ToolParameter(
                name="mode",
                type="string",
                description="'replace' (default), 'insert' or 'delete'.",
                required=False,
                default="replace",
            ),
            ToolParameter(
                name="preview",
                type="boolean",
                description="If true, return a BEFORE/AFTER excerpt without writing. Default is false.",
                required=False,
                default=False,
            ),
            *self.OPTIMISTIC_LOCK_PARAMETERS,
        ]
