"""编辑工具基类与响应协议支持

遵循《通用工具响应协议》，所有工具返回必须使用标准信封结构。
编辑引擎抛出的 EditError 在这里统一映射为 error.code。
"""

import json
import logging
import time
from abc import ABC, abstractmethod
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

from pydantic import BaseModel

from edit_engine.config import EditEngineConfig
from edit_engine.diff_preview import DiffPreview, compute_diff
from edit_engine.errors import ConflictError, EditError
from edit_engine.trace_logger import EditTraceLogger

logger = logging.getLogger(__name__)


# =============================================================================
# 响应协议枚举与常量
# =============================================================================

class ToolStatus(str, Enum):
    """
    工具运行状态枚举（遵循《通用工具响应协议》）

    - SUCCESS: 变更完全按预期写入，无截断、无回退
    - PARTIAL: 结果可用但有"折扣"（预览/dry_run、diff 截断、空白容错匹配）
    - ERROR: 无法提供有效结果（致命错误）
    """
    SUCCESS = "success"
    PARTIAL = "partial"
    ERROR = "error"


class ErrorCode(str, Enum):
    """
    标准错误码枚举（遵循《通用工具响应协议》）
    """
    NOT_FOUND = "NOT_FOUND"           # 文件/路径不存在
    ACCESS_DENIED = "ACCESS_DENIED"   # 路径不在 project root 内
    INVALID_PARAM = "INVALID_PARAM"   # 参数校验失败
    INTERNAL_ERROR = "INTERNAL_ERROR" # 未分类的内部异常
    IS_DIRECTORY = "IS_DIRECTORY"     # 路径是目录而非文件
    BINARY_FILE = "BINARY_FILE"       # 文件是二进制格式
    CONFLICT = "CONFLICT"             # 文件在读取后被修改
    PARSE_ERROR = "PARSE_ERROR"       # 块文本 / diff 语法错误
    NO_MATCH = "NO_MATCH"             # search 文本或 hunk 无法定位
    RANGE_ERROR = "RANGE_ERROR"       # 行号越界
    SIZE_GUARD = "SIZE_GUARD"         # 覆盖写入触发体积骤减保护
    IO_ERROR = "IO_ERROR"             # 读写失败（权限、磁盘等）


def error_code_for(error: EditError) -> ErrorCode:
    """EditError.code -> ErrorCode（未知 code 归为 INTERNAL_ERROR）"""
    try:
        return ErrorCode(error.code)
    except ValueError:
        return ErrorCode.INTERNAL_ERROR


# =============================================================================
# 工具参数定义
# =============================================================================

class ToolParameter(BaseModel):
    """工具参数定义"""
    name: str
    type: str
    description: str
    required: bool = True
    default: Any = None


# =============================================================================
# 工具基类
# =============================================================================

class Tool(ABC):
    """
    工具基类（遵循《通用工具响应协议》）

    Attributes:
        name: 工具名称
        description: 工具描述（给 LLM 的提示词）
        _project_root: 项目根目录（沙箱边界）
        _working_dir: 工作目录（用于填充 context.cwd）
    """

    def __init__(
        self,
        name: str,
        description: str,
        project_root: Optional[Path] = None,
        working_dir: Optional[Path] = None,
    ):
        self.name = name
        self.description = description

        # 路径注入（框架统一管理，避免工具自行猜测）
        if project_root is not None:
            self._project_root = Path(project_root).resolve()
        else:
            self._project_root = None

        if working_dir is not None:
            self._working_dir = Path(working_dir).resolve()
        elif self._project_root is not None:
            self._working_dir = self._project_root
        else:
            self._working_dir = None

    # -------------------------------------------------------------------------
    # 抽象方法
    # -------------------------------------------------------------------------

    @abstractmethod
    def run(self, parameters: Dict[str, Any]) -> str:
        """
        执行工具（必须实现）

        Returns:
            JSON 格式的响应字符串（必须符合《通用工具响应协议》）
        """
        pass

    @abstractmethod
    def get_parameters(self) -> List[ToolParameter]:
        """获取工具参数定义（必须实现）"""
        pass

    # -------------------------------------------------------------------------
    # 路径辅助方法
    # -------------------------------------------------------------------------

    def get_cwd_rel(self) -> str:
        """
        获取工作目录相对于项目根目录的路径（用于填充 context.cwd）

        Returns:
            相对路径字符串（失败时返回 "."）
        """
        if self._working_dir is None or self._project_root is None:
            return "."
        try:
            rel = self._working_dir.relative_to(self._project_root)
            return str(rel) if str(rel) else "."
        except ValueError:
            return "."

    # -------------------------------------------------------------------------
    # 响应构建辅助方法（遵循《通用工具响应协议》）
    # -------------------------------------------------------------------------

    def create_success_response(
        self,
        data: Dict[str, Any],
        text: str,
        params_input: Dict[str, Any],
        time_ms: int,
        extra_stats: Optional[Dict[str, Any]] = None,
        path_resolved: Optional[str] = None,
    ) -> str:
        """创建成功响应（status="success"）"""
        return self._build_response(
            status=ToolStatus.SUCCESS,
            data=data,
            text=text,
            params_input=params_input,
            time_ms=time_ms,
            extra_stats=extra_stats,
            path_resolved=path_resolved,
        )

    def create_partial_response(
        self,
        data: Dict[str, Any],
        text: str,
        params_input: Dict[str, Any],
        time_ms: int,
        extra_stats: Optional[Dict[str, Any]] = None,
        path_resolved: Optional[str] = None,
    ) -> str:
        """
        创建部分成功响应（status="partial"）

        注意：data 中应包含 dry_run / diff_truncated / fallback_used 等标记说明原因。
        """
        return self._build_response(
            status=ToolStatus.PARTIAL,
            data=data,
            text=text,
            params_input=params_input,
            time_ms=time_ms,
            extra_stats=extra_stats,
            path_resolved=path_resolved,
        )

    def create_error_response(
        self,
        error_code: ErrorCode,
        message: str,
        params_input: Dict[str, Any],
        time_ms: int = 0,
        path_resolved: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> str:
        """
        创建错误响应（status="error"）

        error 字段仅在此情况下存在；details 为引擎给出的结构化重试信息。
        """
        context: Dict[str, Any] = {
            "cwd": self.get_cwd_rel(),
            "params_input": params_input,
        }
        if path_resolved is not None:
            context["path_resolved"] = path_resolved

        error: Dict[str, Any] = {
            "code": error_code.value,
            "message": message,
        }
        if details:
            error["details"] = details

        payload = {
            "status": ToolStatus.ERROR.value,
            "data": {},
            "text": message,
            "error": error,
            "stats": {"time_ms": time_ms},
            "context": context,
        }
        return json.dumps(payload, ensure_ascii=False, indent=2, default=str)

    def _build_response(
        self,
        status: ToolStatus,
        data: Dict[str, Any],
        text: str,
        params_input: Dict[str, Any],
        time_ms: int,
        extra_stats: Optional[Dict[str, Any]] = None,
        path_resolved: Optional[str] = None,
    ) -> str:
        """
        内部方法：构建标准响应信封

        顶层字段严格限制为：status, data, text, stats, context
        """
        context: Dict[str, Any] = {
            "cwd": self.get_cwd_rel(),
            "params_input": params_input,
        }
        if path_resolved is not None:
            context["path_resolved"] = path_resolved

        stats: Dict[str, Any] = {"time_ms": time_ms}
        if extra_stats:
            stats.update(extra_stats)

        payload = {
            "status": status.value,
            "data": data,
            "text": text,
            "stats": stats,
            "context": context,
        }
        return json.dumps(payload, ensure_ascii=False, indent=2, default=str)

    # -------------------------------------------------------------------------
    # 其他辅助方法
    # -------------------------------------------------------------------------

    def validate_parameters(self, parameters: Dict[str, Any]) -> bool:
        """验证参数完整性"""
        required_params = [p.name for p in self.get_parameters() if p.required]
        return all(param in parameters for param in required_params)

    def to_dict(self) -> Dict[str, Any]:
        """转换为字典格式"""
        return {
            "name": self.name,
            "description": self.description,
            "parameters": [param.model_dump() for param in self.get_parameters()],
        }

    def __str__(self) -> str:
        return f"Tool(name={self.name})"

    def __repr__(self) -> str:
        return self.__str__()


# =============================================================================
# 文件编辑工具基类
# =============================================================================

class ToolInputError(Exception):
    """工具层参数/路径错误（直接转为 error 响应）"""

    def __init__(self, code: ErrorCode, message: str, path_resolved: Optional[str] = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.path_resolved = path_resolved


class FileEditTool(Tool):
    """
    四个编辑工具的公共骨架

    子类实现 execute(parameters, params_input, start_time)；
    本类负责沙箱路径解析、乐观锁、diff 预览以及把 EditError 映射为错误响应。
    """

    OPTIMISTIC_LOCK_PARAMETERS = [
        ToolParameter(
            name="expected_mtime_ms",
            type="integer",
            description="File mtime in milliseconds (from Read response stats.file_mtime_ms). "
                        "Optional; auto-injected by the framework after Read.",
            required=False,
        ),
        ToolParameter(
            name="expected_size_bytes",
            type="integer",
            description="File size in bytes (from Read response stats.file_size_bytes). "
                        "Optional; auto-injected by the framework after Read.",
            required=False,
        ),
    ]

    def __init__(
        self,
        name: str,
        description: str,
        project_root: Optional[Path] = None,
        working_dir: Optional[Path] = None,
        config: Optional[EditEngineConfig] = None,
        trace: Optional[EditTraceLogger] = None,
    ):
        if project_root is None:
            raise ValueError("project_root must be provided by the framework")

        super().__init__(
            name=name,
            description=description,
            project_root=project_root,
            working_dir=working_dir if working_dir else project_root,
        )
        self._root = self._project_root
        self.config = config if config is not None else EditEngineConfig()
        self.trace = trace

    # -------------------------------------------------------------------------
    # 执行模板
    # -------------------------------------------------------------------------

    def run(self, parameters: Dict[str, Any]) -> str:
        start_time = time.monotonic()
        params_input = dict(parameters)
        path_resolved: Optional[str] = None
        try:
            return self.execute(parameters, params_input, start_time)
        except ToolInputError as e:
            return self.create_error_response(
                error_code=e.code,
                message=e.message,
                params_input=params_input,
                time_ms=self.elapsed_ms(start_time),
                path_resolved=e.path_resolved,
            )
        except EditError as e:
            path_resolved = self._safe_rel(parameters.get("path"))
            return self.create_error_response(
                error_code=error_code_for(e),
                message=e.message,
                params_input=params_input,
                time_ms=self.elapsed_ms(start_time),
                path_resolved=path_resolved,
                details=e.details,
            )
        except Exception as e:
            logger.exception("%s failed with an unexpected error", self.name)
            return self.create_error_response(
                error_code=ErrorCode.INTERNAL_ERROR,
                message=f"Unexpected error: {e}",
                params_input=params_input,
                time_ms=self.elapsed_ms(start_time),
                path_resolved=path_resolved,
            )

    @abstractmethod
    def execute(self, parameters: Dict[str, Any], params_input: Dict[str, Any], start_time: float) -> str:
        """执行具体的编辑（可抛出 EditError，由 run 统一映射）"""
        pass

    @staticmethod
    def elapsed_ms(start_time: float) -> int:
        return int((time.monotonic() - start_time) * 1000)

    def respond(
        self,
        is_partial: bool,
        data: Dict[str, Any],
        text: str,
        params_input: Dict[str, Any],
        start_time: float,
        extra_stats: Optional[Dict[str, Any]] = None,
        path_resolved: Optional[str] = None,
    ) -> str:
        """按 is_partial 选择 partial / success 响应"""
        build = self.create_partial_response if is_partial else self.create_success_response
        return build(
            data=data,
            text=text,
            params_input=params_input,
            time_ms=self.elapsed_ms(start_time),
            extra_stats=extra_stats,
            path_resolved=path_resolved,
        )

    # -------------------------------------------------------------------------
    # 参数校验
    # -------------------------------------------------------------------------

    @staticmethod
    def require_string(parameters: Dict[str, Any], name: str, allow_empty: bool = True) -> str:
        value = parameters.get(name)
        if value is None or not isinstance(value, str):
            raise ToolInputError(ErrorCode.INVALID_PARAM, f"Parameter '{name}' must be a string.")
        if not allow_empty and not value:
            raise ToolInputError(ErrorCode.INVALID_PARAM, f"Parameter '{name}' cannot be empty.")
        return value

    @staticmethod
    def optional_bool(parameters: Dict[str, Any], name: str, default: bool = False) -> bool:
        value = parameters.get(name, default)
        if value is None:
            return default
        if not isinstance(value, bool):
            raise ToolInputError(ErrorCode.INVALID_PARAM, f"Parameter '{name}' must be a boolean.")
        return value

    # -------------------------------------------------------------------------
    # 路径解析与沙箱校验
    # -------------------------------------------------------------------------

    def resolve_path(self, path: Any) -> Tuple[Path, str]:
        """
        解析相对路径并做沙箱检查

        Returns:
            (绝对路径, 相对项目根目录的路径)
        """
        if not path or not isinstance(path, str):
            raise ToolInputError(ErrorCode.INVALID_PARAM, "Parameter 'path' must be a non-empty string.")

        input_path = Path(path)
        # 拒绝绝对路径（只允许相对路径）
        if input_path.is_absolute():
            raise ToolInputError(ErrorCode.INVALID_PARAM, "Absolute path not allowed. Use relative path.")

        try:
            abs_path = (self._root / input_path).resolve()
        except OSError as e:
            raise ToolInputError(ErrorCode.IO_ERROR, f"Path resolution failed: {e}") from e

        # 沙箱检查：确保路径在项目根目录内（防止路径遍历）
        try:
            rel = abs_path.relative_to(self._root)
        except ValueError:
            raise ToolInputError(ErrorCode.ACCESS_DENIED, "Path must be within project root.") from None

        rel_path = str(rel.as_posix()) or "."
        return abs_path, rel_path

    def _safe_rel(self, path: Any) -> Optional[str]:
        try:
            return self.resolve_path(path)[1]
        except ToolInputError:
            return None

    # -------------------------------------------------------------------------
    # 乐观锁
    # -------------------------------------------------------------------------

    def conflict_guard(
        self,
        parameters: Dict[str, Any],
        abs_path: Path,
        rel_path: str,
    ) -> Optional[Callable[[Path], None]]:
        """
        校验 expected_mtime_ms / expected_size_bytes（两者都给出时才启用）

        立即做一次校验，并返回写入前再次校验用的回调；未启用时返回 None。
        """
        expected_mtime_ms = parameters.get("expected_mtime_ms")
        expected_size_bytes = parameters.get("expected_size_bytes")

        if expected_mtime_ms is None and expected_size_bytes is None:
            return None
        if expected_mtime_ms is None or expected_size_bytes is None:
            raise ToolInputError(
                ErrorCode.INVALID_PARAM,
                "Both expected_mtime_ms and expected_size_bytes must be provided together.",
                rel_path,
            )
        for name, value in (("expected_mtime_ms", expected_mtime_ms), ("expected_size_bytes", expected_size_bytes)):
            if isinstance(value, bool) or not isinstance(value, int):
                raise ToolInputError(ErrorCode.INVALID_PARAM, f"Parameter '{name}' must be an integer.", rel_path)

        def check(path: Path, stage: str = "before write") -> None:
            try:
                current = path.stat()
            except FileNotFoundError:
                raise ConflictError(
                    f"File '{rel_path}' was removed since you read it. Please Read the file again.",
                    details={"expected_mtime_ms": expected_mtime_ms, "expected_size_bytes": expected_size_bytes},
                ) from None
            current_mtime_ms = current.st_mtime_ns // 1_000_000
            current_size_bytes = current.st_size
            if current_mtime_ms != expected_mtime_ms or current_size_bytes != expected_size_bytes:
                raise ConflictError(
                    f"File has been modified since you read it (detected {stage}). "
                    f"Expected mtime={expected_mtime_ms}, size={expected_size_bytes}; "
                    f"Current mtime={current_mtime_ms}, size={current_size_bytes}. "
                    "Please Read the file again to get the latest content.",
                    details={
                        "expected_mtime_ms": expected_mtime_ms,
                        "expected_size_bytes": expected_size_bytes,
                        "current_mtime_ms": current_mtime_ms,
                        "current_size_bytes": current_size_bytes,
                    },
                )

        if abs_path.exists() and not abs_path.is_dir():
            check(abs_path, "before read")
        return check

    # -------------------------------------------------------------------------
    # Diff 预览
    # -------------------------------------------------------------------------

    def diff_preview(self, old_content: str, new_content: str, rel_path: str) -> DiffPreview:
        return compute_diff(
            old_content,
            new_content,
            rel_path,
            max_lines=self.config.max_diff_lines,
            max_bytes=self.config.max_diff_bytes,
        )

