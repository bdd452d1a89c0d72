"""编辑引擎配置"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from edit_engine.env import getenv


class EditEngineConfig(BaseModel):
    """编辑引擎配置类

    所有阈值都作为配置暴露，不作为硬编码不变量。
    """

    # 全量覆盖写入的体积骤减保护
    size_guard_min_bytes: int = Field(default=1000, ge=0)  # 小于等于该大小的文件不做检查
    size_guard_ratio: float = Field(default=0.10, ge=0.0, le=1.0)  # new/old 低于该比例即拒绝

    # 预览
    preview_context_lines: int = Field(default=3, ge=0)
    max_diff_lines: int = Field(default=100, ge=1)
    max_diff_bytes: int = Field(default=10240, ge=1)

    # 二进制检测采样大小
    binary_check_size: int = Field(default=8192, ge=1)

    # 日志与轨迹
    log_level: str = "INFO"
    trace_enabled: bool = False
    trace_dir: str = "memory/traces"

    @classmethod
    def from_env(cls) -> "EditEngineConfig":
        """从环境变量创建配置"""
        return cls(
            size_guard_min_bytes=int(getenv("EDIT_SIZE_GUARD_MIN_BYTES", "1000")),
            size_guard_ratio=float(getenv("EDIT_SIZE_GUARD_RATIO", "0.10")),
            preview_context_lines=int(getenv("EDIT_PREVIEW_CONTEXT_LINES", "3")),
            max_diff_lines=int(getenv("EDIT_MAX_DIFF_LINES", "100")),
            max_diff_bytes=int(getenv("EDIT_MAX_DIFF_BYTES", "10240")),
            log_level=getenv("LOG_LEVEL", "INFO"),
            trace_enabled=str(getenv("EDIT_TRACE_ENABLED", "false")).lower() in {"1", "true", "yes", "y", "on"},
            trace_dir=getenv("EDIT_TRACE_DIR", "memory/traces"),
        )

    def to_dict(self) -> Dict[str, Any]:
        """转换为字典"""
        return self.model_dump()


def resolve_config(config: Optional[EditEngineConfig]) -> EditEngineConfig:
    """调用方未传入配置时使用默认值（不读取全局状态）"""
    return config if config is not None else EditEngineConfig()
