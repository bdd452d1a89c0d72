"""源文件读取与原子写入

读取：以二进制读取并用 UTF-8 + surrogateescape 解码，无法解码的字节与原始换行符都能原样写回。
写入：先在目标所在目录（同一存储卷）写完临时文件并 fsync，再用 os.replace 一步换入目标路径。
换入之前的任何失败都会删除临时文件，目标文件保持调用前的字节内容。
"""

from __future__ import annotations

import logging
import os
import stat
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from edit_engine.errors import EditIOError, EditValidationError

logger = logging.getLogger(__name__)

ENCODING = "utf-8"
ENCODING_ERRORS = "surrogateescape"

# 二进制检测的采样大小（读取前 8KB 检测是否包含 null byte）
BINARY_CHECK_SIZE = 8192


@dataclass(frozen=True)
class SourceFile:
    """一次调用内读取到的文件快照"""

    path: Path
    text: str
    size: int
    mode: int


def encode_text(text: str) -> bytes:
    return text.encode(ENCODING, errors=ENCODING_ERRORS)


def is_binary_bytes(raw: bytes, sample_size: int = BINARY_CHECK_SIZE) -> bool:
    return b"\x00" in raw[:sample_size]


def read_source(path: Union[str, Path], binary_check_size: int = BINARY_CHECK_SIZE) -> SourceFile:
    """
    读取已存在的文本文件

    Raises:
        EditValidationError: 文件不存在 (NOT_FOUND)、是目录 (IS_DIRECTORY) 或是二进制文件 (BINARY_FILE)
        EditIOError: 其他读取失败
    """
    path = Path(path)
    if not path.exists():
        raise EditValidationError(
            f"File '{path}' does not exist. Use Write to create new files.",
            code="NOT_FOUND",
            details={"path": str(path)},
        )
    if path.is_dir():
        raise EditValidationError(
            f"Path '{path}' is a directory, not a file.",
            code="IS_DIRECTORY",
            details={"path": str(path)},
        )
    try:
        raw = path.read_bytes()
        mode = stat.S_IMODE(path.stat().st_mode)
    except OSError as e:
        raise EditIOError(f"Failed to read file '{path}': {e}", path=str(path), cause=e) from e

    if is_binary_bytes(raw, binary_check_size):
        raise EditValidationError(
            f"File '{path}' appears to be binary. Cannot edit binary files.",
            code="BINARY_FILE",
            details={"path": str(path)},
        )
    return SourceFile(path=path, text=raw.decode(ENCODING, errors=ENCODING_ERRORS), size=len(raw), mode=mode)


def _temp_path_for(target: Path) -> Path:
    # 使用 PID + 时间戳确保临时文件名唯一
    return target.with_name(f".{target.name}.tmp.{os.getpid()}.{int(time.time() * 1000000)}")


def atomic_write(
    path: Union[str, Path],
    content: Union[str, bytes],
    mode: Optional[int] = None,
    create_dirs: bool = False,
) -> int:
    """
    原子写入文件

    Args:
        path: 目标路径
        content: 完整新内容（str 会按 UTF-8 + surrogateescape 编码）
        mode: 文件权限；None 时沿用现有文件权限，新文件使用 0o644
        create_dirs: 是否自动创建父目录

    Returns:
        写入的字节数

    Raises:
        EditIOError: 任一步骤失败（临时文件已清理，目标文件未被改动）
    """
    target = Path(path)
    if target.is_symlink():
        # 写穿符号链接，替换其指向的文件而不是链接本身
        target = target.resolve()
    data = encode_text(content) if isinstance(content, str) else content

    if mode is None:
        try:
            mode = stat.S_IMODE(target.stat().st_mode)
        except FileNotFoundError:
            mode = 0o644
        except OSError as e:
            raise EditIOError(f"Failed to stat '{target}': {e}", path=str(target), cause=e) from e

    if create_dirs:
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise EditIOError(f"Failed to create directories for '{target}': {e}", path=str(target), cause=e) from e

    temp_path = _temp_path_for(target)
    try:
        fd = os.open(temp_path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
        try:
            try:
                f = os.fdopen(fd, "wb")
            except BaseException:
                os.close(fd)
                raise
            with f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.chmod(temp_path, mode)
            os.replace(temp_path, target)
        finally:
            if temp_path.exists():
                temp_path.unlink()
    except PermissionError as e:
        raise EditIOError(f"Permission denied writing to '{target}'.", path=str(target), cause=e) from e
    except OSError as e:
        raise EditIOError(f"Disk full or IO error writing '{target}': {e}", path=str(target), cause=e) from e

    logger.debug("atomically wrote %d bytes to %s", len(data), target)
    return len(data)
