"""Edit Trace Logger - 记录文件变更操作的结果轨迹

职责：
- 每个编辑操作的结果（applied / previewed / failed）写一行 JSONL
- 线程安全的文件写入
- 记录失败永远不影响编辑操作本身
"""

import json
import logging
import threading
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from edit_engine.config import EditEngineConfig

logger = logging.getLogger(__name__)


def new_session_id() -> str:
    """生成会话 ID（格式：s-YYYYMMDD-HHMMSS-{随机}）"""
    now = datetime.now(timezone.utc)
    return f"s-{now.strftime('%Y%m%d-%H%M%S')}-{uuid.uuid4().hex[:4]}"


class EditTraceLogger:
    """
    编辑轨迹记录器

    使用方式：
    1. 创建实例：trace = EditTraceLogger(session_id, trace_dir)
    2. 记录事件：trace.log_event("edit_applied", {...})
    3. 结束会话：trace.close()
    """

    def __init__(
        self,
        session_id: str,
        trace_dir: Path,
        enabled: bool = True,
    ):
        """
        初始化 EditTraceLogger

        Args:
            session_id: 会话唯一标识
            trace_dir: 轨迹文件目录
            enabled: 是否启用记录
        """
        self.session_id = session_id
        self.trace_dir = Path(trace_dir)
        self.enabled = enabled
        self.events_logged = 0

        # 线程锁（保证文件写入安全）
        self._lock = threading.Lock()
        self._filepath: Optional[Path] = None
        self._file_handle = None

        if self.enabled:
            self._init_file()

    @classmethod
    def from_config(cls, config: EditEngineConfig, session_id: Optional[str] = None) -> "EditTraceLogger":
        return cls(
            session_id=session_id or new_session_id(),
            trace_dir=Path(config.trace_dir),
            enabled=config.trace_enabled,
        )

    @property
    def filepath(self) -> Optional[Path]:
        return self._filepath

    def _init_file(self):
        """初始化 JSONL 文件"""
        try:
            self.trace_dir.mkdir(parents=True, exist_ok=True)
            self._filepath = self.trace_dir / f"edit-trace-{self.session_id}.jsonl"
            self._file_handle = open(self._filepath, "a", encoding="utf-8")
        except OSError as e:
            logger.warning("EditTraceLogger init failed: %s", e)
            self.enabled = False

    def log_event(self, event: str, payload: Dict[str, Any]):
        """
        记录单个事件

        Args:
            event: 事件类型（edit_applied / edit_previewed / edit_failed）
            payload: 事件数据体
        """
        if not self.enabled or self._file_handle is None:
            return

        event_obj = {
            "ts": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "session_id": self.session_id,
            "event": event,
            "payload": payload,
        }
        try:
            line = json.dumps(event_obj, ensure_ascii=False, default=str)
            with self._lock:
                self._file_handle.write(line + "\n")
                self._file_handle.flush()
            self.events_logged += 1
        except (OSError, ValueError, TypeError) as e:
            logger.warning("EditTraceLogger log_event failed: %s", e)

    def close(self):
        """关闭文件句柄"""
        with self._lock:
            if self._file_handle is not None:
                self._file_handle.close()
                self._file_handle = None
        self.enabled = False

    def __enter__(self) -> "EditTraceLogger":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
