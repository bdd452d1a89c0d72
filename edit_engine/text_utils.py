"""文本处理辅助函数（换行符探测、行切分）"""

from __future__ import annotations

from typing import List


def detect_newline(content: str) -> str:
    """探测主导换行符：CRLF 多于纯 LF 时返回 "\\r\\n"，否则返回 "\\n" """
    crlf_count = content.count("\r\n")
    lf_count = content.count("\n") - crlf_count  # 纯 LF 数量
    return "\r\n" if crlf_count > lf_count else "\n"


def split_lines(content: str) -> List[str]:
    """按 \\n 切分并保留行尾（只认 \\n / \\r\\n，不把其他控制字符当作换行）"""
    if not content:
        return []
    lines = content.split("\n")
    result = [line + "\n" for line in lines[:-1]]
    if lines[-1]:
        result.append(lines[-1])
    return result


def strip_eol(line: str) -> str:
    """去掉行尾的 \\n 或 \\r\\n"""
    if line.endswith("\r\n"):
        return line[:-2]
    if line.endswith("\n"):
        return line[:-1]
    return line


def ensure_terminated(lines: List[str], newline: str) -> List[str]:
    """除最后一行外，保证每一行都以换行结尾"""
    fixed = list(lines)
    for i in range(len(fixed) - 1):
        if not fixed[i].endswith("\n"):
            fixed[i] += newline
    return fixed


def split_new_text(text: str) -> List[str]:
    """把调用方给出的新文本切成行（不含行尾），单个结尾换行不产生额外空行"""
    if text == "":
        return []
    parts = text.replace("\r\n", "\n").split("\n")
    if parts[-1] == "":
        parts.pop()
    return parts
