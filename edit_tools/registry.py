"""编辑工具装配

框架按 project_root 构造四个编辑工具，并统一注入配置与轨迹记录器。
"""

import logging
from pathlib import Path
from typing import Dict, List, Optional

from edit_engine.config import EditEngineConfig
from edit_engine.logging_utils import setup_logger
from edit_engine.trace_logger import EditTraceLogger
from .base import FileEditTool
from .builtin.apply_patch import ApplyPatchTool
from .builtin.edit_lines import EditLinesTool
from .builtin.search_replace import SearchReplaceTool
from .builtin.write_file import WriteTool

logger = logging.getLogger(__name__)


def build_edit_tools(
    project_root: Path,
    working_dir: Optional[Path] = None,
    config: Optional[EditEngineConfig] = None,
    trace: Optional[EditTraceLogger] = None,
) -> List[FileEditTool]:
    """
    构造 SearchReplace / ApplyPatch / EditLines / Write 四个工具

    Args:
        project_root: 项目根目录（沙箱边界）
        working_dir: 工作目录（默认等于 project_root）
        config: 引擎配置（默认从环境变量读取）
        trace: 轨迹记录器（默认按配置决定是否启用）
    """
    if config is None:
        config = EditEngineConfig.from_env()
    if trace is None and config.trace_enabled:
        trace = EditTraceLogger.from_config(config)

    setup_logger("edit_engine", config.log_level)
    setup_logger("edit_tools", config.log_level)

    tools: List[FileEditTool] = [
        SearchReplaceTool(project_root=project_root, working_dir=working_dir, config=config, trace=trace),
        ApplyPatchTool(project_root=project_root, working_dir=working_dir, config=config, trace=trace),
        EditLinesTool(project_root=project_root, working_dir=working_dir, config=config, trace=trace),
        WriteTool(project_root=project_root, working_dir=working_dir, config=config, trace=trace),
    ]
    logger.debug("built edit tools %s for %s", [t.name for t in tools], project_root)
    return tools


def tools_by_name(tools: List[FileEditTool]) -> Dict[str, FileEditTool]:
    """按工具名建立索引（同名时后者覆盖前者）"""
    index: Dict[str, FileEditTool] = {}
    for tool in tools:
        if tool.name in index:
            logger.warning("tool '%s' registered twice, keeping the last one", tool.name)
        index[tool.name] = tool
    return index
