"""
多文件聚合与超时守卫

文件按发现顺序逐个处理，以便在全局上限达到后立即停止，不再读取后续文件。
"""

import asyncio
from typing import Any, Awaitable, Callable, TypeVar

from loguru import logger

from ..model.errors import OperationTimeoutError
from ..model.regex import AggregateResult, FileResult


R = TypeVar("R")

FileRunner = Callable[[str, int | None], Awaitable[FileResult[Any]]]
"""按文件执行的回调：(文件路径, 本文件结果上限) -> FileResult"""


def file_limit(global_cap: int, accumulated: int, per_operation_cap: int | None) -> int | None:
    """计算当前文件允许产出的结果数

    Args:
        global_cap: 全局上限，<=0 表示不限制
        accumulated: 已累计的结果数
        per_operation_cap: 调用方指定的单文件上限，None 或 0 表示不限制

    Returns:
        int | None: 本文件上限，None 表示不限制
    """
    remaining = global_cap - accumulated if global_cap > 0 else None
    if not per_operation_cap:
        return remaining
    if remaining is None:
        return per_operation_cap
    return min(per_operation_cap, remaining)


async def aggregate(
    files: list[str],
    run_file: FileRunner,
    global_cap: int,
    per_operation_cap: int | None = None,
) -> AggregateResult[Any]:
    """按顺序在文件集合上执行操作并累积结果

    每个文件处理前重新计算 min(单文件上限, 全局剩余额度)；累计数达到全局上限后
    停止访问后续文件。单个文件失败只记录，不中断遍历。

    Args:
        files: 有序的文件路径列表
        run_file: 单文件执行回调
        global_cap: 全局上限，<=0 表示不限制
        per_operation_cap: 单文件上限

    Returns:
        AggregateResult: 保持文件顺序与文件内顺序的聚合结果
    """
    result: AggregateResult[Any] = AggregateResult()

    for file in files:
        if global_cap > 0 and len(result.items) >= global_cap:
            logger.debug(f"🛑 已达到全局上限 {global_cap}，剩余文件不再处理")
            break

        limit = file_limit(global_cap, len(result.items), per_operation_cap)
        file_result = await run_file(file, limit)
        result.files_visited += 1

        if file_result.failed:
            result.failures.append(file_result)
            continue

        items = file_result.items if limit is None else file_result.items[:limit]
        result.items.extend(items)

    return result


async def with_deadline(operation: Awaitable[R], timeout: float | None) -> R:
    """在截止时间内等待整个操作完成

    超时后整体失败，已累积的部分结果被丢弃。工作线程中正在进行的文件IO
    不会被打断，只是不再等待它们。

    Args:
        operation: 待等待的操作
        timeout: 超时时间（秒），None 或 <=0 表示不限制

    Returns:
        操作的返回值

    Raises:
        OperationTimeoutError: 超过截止时间
    """
    if timeout is None or timeout <= 0:
        return await operation

    try:
        return await asyncio.wait_for(operation, timeout=timeout)
    except asyncio.TimeoutError as e:
        logger.error(f"⏱️ 操作超时：超过 {timeout:g} 秒")
        raise OperationTimeoutError(timeout) from e
