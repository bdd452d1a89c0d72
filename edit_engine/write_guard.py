"""全量覆盖写入的体积骤减保护

仅用于 guarded overwrite；块编辑、补丁、行编辑的影响范围本身已明确有界，不经过此检查。
"""

from __future__ import annotations

from typing import Optional

from edit_engine.config import EditEngineConfig, resolve_config
from edit_engine.errors import SizeGuardTriggered
from edit_engine.models import WriteGuardDecision


def evaluate(
    old_size: Optional[int],
    new_size: int,
    config: Optional[EditEngineConfig] = None,
    allow_size_reduce: bool = False,
) -> WriteGuardDecision:
    """
    计算覆盖写入是否允许

    Args:
        old_size: 现有文件字节数（None 表示新建文件）
        new_size: 新内容字节数
        config: 阈值配置
        allow_size_reduce: 调用方显式放行

    Returns:
        WriteGuardDecision
    """
    config = resolve_config(config)
    threshold = config.size_guard_ratio

    if old_size is None:
        return WriteGuardDecision(
            allowed=True, old_size=0, new_size=new_size, threshold=threshold,
            reason="new file",
        )
    if old_size <= 0:
        return WriteGuardDecision(
            allowed=True, old_size=old_size, new_size=new_size, threshold=threshold,
            reason="existing file is empty",
        )

    ratio = new_size / old_size
    if old_size <= config.size_guard_min_bytes:
        reason = f"file size {old_size} is within the {config.size_guard_min_bytes}-byte minimum, check skipped"
        allowed = True
    elif ratio >= threshold:
        reason = f"size ratio {ratio:.3f} is at or above threshold {threshold}"
        allowed = True
    elif allow_size_reduce:
        reason = f"size ratio {ratio:.3f} is below threshold {threshold}, allowed by allow_size_reduce"
        allowed = True
    else:
        reason = f"size ratio {ratio:.3f} is below threshold {threshold}"
        allowed = False

    return WriteGuardDecision(
        allowed=allowed, old_size=old_size, new_size=new_size, ratio=ratio,
        threshold=threshold, reason=reason,
    )


def check(
    old_size: Optional[int],
    new_size: int,
    config: Optional[EditEngineConfig] = None,
    allow_size_reduce: bool = False,
) -> WriteGuardDecision:
    """同 evaluate，但在拒绝时抛出 SizeGuardTriggered"""
    decision = evaluate(old_size, new_size, config, allow_size_reduce)
    if not decision.allowed:
        raise SizeGuardTriggered(decision.old_size, decision.new_size, decision.threshold)
    return decision
