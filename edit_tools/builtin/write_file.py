"""文件写入工具 (Write)

遵循《通用工具响应协议》，返回标准化结构。
提供全量覆盖写入能力，带体积骤减保护、自动目录创建、Unified Diff 预览、dry_run 模式。
"""

from pathlib import Path
from typing import Any, Dict, List, Optional

from edit_engine.config import EditEngineConfig
from edit_engine.operations import guarded_overwrite
from edit_engine.trace_logger import EditTraceLogger
from edit_prompts.write_prompt import write_prompt
from ..base import FileEditTool, ToolParameter


class WriteTool(FileEditTool):
    """文件写入工具，支持全量覆盖、体积骤减保护、自动创建目录、diff 预览、dry_run"""

    def __init__(
        self,
        name: str = "Write",
        project_root: Optional[Path] = None,
        working_dir: Optional[Path] = None,
        config: Optional[EditEngineConfig] = None,
        trace: Optional[EditTraceLogger] = None,
    ):
        super().__init__(
            name=name,
            description=write_prompt,
            project_root=project_root,
            working_dir=working_dir,
            config=config,
            trace=trace,
        )

    def execute(self, parameters: Dict[str, Any], params_input: Dict[str, Any], start_time: float) -> str:
        """
        执行文件写入操作

        Args:
            parameters: 包含以下键的字典：
                - path: 要写入的文件路径（必填，相对路径）
                - content: 要写入的完整内容（必填，允许空字符串）
                - allow_size_reduce: 是否放行体积骤减（默认为 False）
                - create_dirs: 是否自动创建父目录（默认为 True）
                - dry_run: 是否仅预览不写入（默认为 False）
        """
        abs_path, rel_path = self.resolve_path(parameters.get("path"))
        content = self.require_string(parameters, "content")
        allow_size_reduce = self.optional_bool(parameters, "allow_size_reduce")
        create_dirs = self.optional_bool(parameters, "create_dirs", default=True)
        dry_run = self.optional_bool(parameters, "dry_run")
        before_write = self.conflict_guard(parameters, abs_path, rel_path)

        # 记录需要新建的目录（用于响应提示）
        dir_created: Optional[str] = None
        if create_dirs and not dry_run and not abs_path.parent.exists():
            try:
                dir_created = abs_path.parent.relative_to(self._root).as_posix()
            except ValueError:
                dir_created = None

        result = guarded_overwrite(
            abs_path,
            content,
            allow_size_reduce=allow_size_reduce,
            create_dirs=create_dirs,
            dry_run=dry_run,
            config=self.config,
            trace=self.trace,
            before_write=before_write,
        )
        diff = self.diff_preview(result.original_content, content, rel_path)
        operation = "create" if result.created else "update"

        data: Dict[str, Any] = {
            "applied": result.applied,
            "operation": operation,
            "diff_preview": diff.preview,
            "diff_truncated": diff.truncated,
            "guard": result.decision.model_dump(mode="json"),
        }
        if dry_run:
            data["dry_run"] = True

        content_bytes = result.decision.new_size
        text_parts: List[str] = []
        if dry_run:
            if result.created:
                text_parts.append(f"[Dry Run] Would create '{rel_path}' (+{diff.lines_added} lines).")
            else:
                text_parts.append(
                    f"[Dry Run] Would update '{rel_path}' (+{diff.lines_added}/-{diff.lines_removed} lines)."
                )
        elif result.created:
            content_lines = len(content.splitlines()) if content else 0
            text_parts.append(f"Created '{rel_path}' ({content_lines} lines, {content_bytes} bytes).")
        else:
            text_parts.append(
                f"Updated '{rel_path}' (+{diff.lines_added}/-{diff.lines_removed} lines, {content_bytes} bytes)."
            )
        if dir_created:
            text_parts.append(f"(Created directory: {dir_created}/)")
        if "allow_size_reduce" in result.decision.reason:
            text_parts.append(f"(Size guard overridden: {result.decision.reason}.)")
        if diff.truncated:
            text_parts.append("(Diff preview truncated. Use Read to verify full content.)")

        return self.respond(
            is_partial=dry_run or diff.truncated,
            data=data,
            text="\n".join(text_parts),
            params_input=params_input,
            start_time=start_time,
            extra_stats={
                "bytes_written": result.bytes_written,
                "original_size": result.decision.old_size,
                "new_size": content_bytes,
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
                name="content",
                type="string",
                description="The FULL content to write to the file.",
                required=True,
            ),
            ToolParameter(
                name="allow_size_reduce",
                type="boolean",
                description="Set true to confirm an intentional large size reduction. Default is false.",
                required=False,
                default=False,
            ),
            ToolParameter(
                name="create_dirs",
                type="boolean",
                description="Create missing parent directories. Default is true.",
                required=False,
                default=True,
            ),
            ToolParameter(
                name="dry_run",
                type="boolean",
                description="If true, compute diff but do not write to disk. Default is false.",
                required=False,
                default=False,
            ),
            *self.OPTIMISTIC_LOCK_PARAMETERS,
        ]
