"""
单文件操作执行器

run_operation 是纯函数：给定一个文件的文本和编译好的模式，执行
search / replace / extract / filter_lines / split 之一并返回 FileResult。
FileOperationRunner 负责读取、二进制跳过、写回以及把文件级错误收敛到 FileResult.error。
"""

import re
from typing import Any, Callable

from asyncer import asyncify
from loguru import logger

from ..model.errors import FileAccessError
from ..model.regex import (
    Extraction,
    FileResult,
    MatchedLine,
    OperationKind,
    OperationParams,
    Replacement,
    SearchMatch,
    Segment,
)
from ..utils.pattern import find_all, iter_matches
from ..utils.position import context_around, line_span, position_of, split_lines
from ..utils.template import expand_replacement
from .filesystem import IFileSystem


def _search(
    file: str, text: str, compiled: re.Pattern[str], params: OperationParams, limit: int | None
) -> FileResult[SearchMatch]:
    lines = split_lines(text)
    items: list[SearchMatch] = []
    for match in find_all(compiled, text, limit):
        position = position_of(text, match.offset)
        context = context_around(lines, position.line - 1, params.context_before, params.context_after)
        items.append(SearchMatch(
            file=file,
            line=position.line,
            column=position.column,
            match=match.text,
            groups=list(match.groups),
            context_before=context.before,
            context_after=context.after,
        ))
    return FileResult(file=file, items=items)


def _extract(
    file: str, text: str, compiled: re.Pattern[str], params: OperationParams, limit: int | None
) -> FileResult[Extraction]:
    items: list[Extraction] = []
    for match in find_all(compiled, text, limit):
        items.append(Extraction(
            file=file,
            line=position_of(text, match.offset).line,
            groups=list(match.groups[1:]),
        ))
    return FileResult(file=file, items=items)


def _replace(
    file: str, text: str, compiled: re.Pattern[str], params: OperationParams, limit: int | None
) -> FileResult[Replacement]:
    """按偏移升序逐个替换

    行列位置与上下文始终基于原文计算；拼接发生在逐步修改的副本上，
    位置为 原始偏移 + 累计长度差。
    """
    matches = find_all(compiled, text, limit)
    if not matches:
        return FileResult(file=file)

    original_lines = split_lines(text)
    items: list[Replacement] = []
    modified = text
    delta = 0

    for match in matches:
        adjusted = match.offset + delta
        position = position_of(text, match.offset)
        context = context_around(original_lines, position.line - 1, params.context_before, params.context_after)

        if params.literal_replacement:
            replacement = params.replacement
        else:
            replacement = expand_replacement(params.replacement, match)

        items.append(Replacement(
            file=file,
            line=position.line,
            column=position.column,
            original=match.text,
            replacement=replacement,
            groups=list(match.groups),
            context_before=context.before,
            context_after=context.after,
        ))

        modified = modified[:adjusted] + replacement + modified[adjusted + len(match.text):]
        delta += len(replacement) - len(match.text)

    return FileResult(file=file, items=items, new_text=modified)


def _filter_lines(
    file: str, text: str, compiled: re.Pattern[str], params: OperationParams, limit: int | None
) -> FileResult[MatchedLine]:
    items: list[MatchedLine] = []
    for index, line in enumerate(split_lines(text)):
        # 每一行都是独立的一次 search，不携带上一行的扫描位置
        matched = compiled.search(line) is not None
        if matched != params.invert:
            items.append(MatchedLine(file=file, line=index + 1, content=line))
            if limit and len(items) >= limit:
                break
    return FileResult(file=file, items=items)


def _split(
    file: str, text: str, compiled: re.Pattern[str], params: OperationParams, limit: int | None
) -> FileResult[Segment]:
    """以模式为分隔符切分

    紧贴上一个分隔符末尾的空匹配、以及文本末尾的空匹配不产生切分点。
    分隔符中的捕获组按顺序作为独立片段输出在两段之间，计入 max_splits + 1 的片段上限。
    """
    max_segments = params.max_splits + 1 if params.max_splits else None
    # (内容, 起始偏移, 结束偏移)
    pieces: list[tuple[str, int, int]] = []
    start = 0

    for match in iter_matches(compiled, text):
        if max_segments and len(pieces) >= max_segments:
            break
        if match.offset >= len(text):
            break
        if match.end == start:
            continue
        pieces.append((text[start:match.offset], start, match.offset))
        for value, (group_start, group_end) in zip(match.groups[1:], match.spans[1:]):
            # 未参与匹配的组输出为空片段，位置取分隔符起点
            if value is None:
                pieces.append(("", match.offset, match.offset))
            else:
                pieces.append((value, group_start, group_end))
        start = match.end

    if not max_segments or len(pieces) < max_segments:
        pieces.append((text[start:], start, len(text)))
    if max_segments:
        pieces = pieces[:max_segments]
    if limit:
        pieces = pieces[:limit]

    items: list[Segment] = []
    for index, (content, seg_start, seg_end) in enumerate(pieces):
        line_start, line_end = line_span(text, seg_start, seg_end)
        items.append(Segment(
            file=file,
            segment=index + 1,
            content=content,
            line_start=line_start,
            line_end=line_end,
        ))
    return FileResult(file=file, items=items)


_HANDLERS: dict[OperationKind, Callable[..., FileResult[Any]]] = {
    OperationKind.SEARCH: _search,
    OperationKind.REPLACE: _replace,
    OperationKind.EXTRACT: _extract,
    OperationKind.FILTER_LINES: _filter_lines,
    OperationKind.SPLIT: _split,
}


def run_operation(
    kind: OperationKind,
    file: str,
    text: str,
    compiled: re.Pattern[str],
    params: OperationParams,
    limit: int | None = None,
) -> FileResult[Any]:
    """在单个文件的文本上执行一次操作

    Args:
        kind: 操作类型
        file: 文件路径（写入结果记录）
        text: 文件文本
        compiled: 编译后的模式，只读共享
        params: 操作参数
        limit: 本文件最多产出的结果数，None 或 0 表示不限制

    Returns:
        FileResult: 本文件的结果
    """
    return _HANDLERS[kind](file, text, compiled, params, limit)


class FileOperationRunner:
    """按文件执行操作，文件级失败不会向上抛出"""

    def __init__(self, file_system: IFileSystem, binary_check_size: int, encoding: str = "utf-8") -> None:
        """初始化执行器

        Args:
            file_system: 文件读写实现
            binary_check_size: 二进制嗅探长度
            encoding: 文件编码
        """
        self._file_system = file_system
        self._binary_check_size = binary_check_size
        self._encoding = encoding

    async def run_file(
        self,
        file: str,
        kind: OperationKind,
        compiled: re.Pattern[str],
        params: OperationParams,
        limit: int | None = None,
    ) -> FileResult[Any]:
        """读取文件、执行操作，replace 非预览模式下一次性写回"""
        try:
            text = await self._file_system.read_text(file, self._binary_check_size, self._encoding)
        except UnicodeDecodeError:
            logger.warning(f"⚠️ 文件无法按 {self._encoding} 解码，跳过：{file}")
            return FileResult(file=file, error=f"文件无法按 {self._encoding} 解码：{file}")
        except (FileAccessError, OSError) as e:
            logger.warning(f"⚠️ 读取文件失败，跳过：{file}，错误：{e}")
            return FileResult(file=file, error=str(e))

        if text is None:
            return FileResult(file=file, skipped=True)

        # 匹配计算放到工作线程，超时守卫在事件循环上才能按时触发
        result = await asyncify(run_operation, abandon_on_cancel=True)(kind, file, text, compiled, params, limit)

        if kind is OperationKind.REPLACE and not params.dry_run and result.items and result.new_text is not None:
            try:
                await self._file_system.write_text(file, result.new_text, self._encoding)
            except (FileAccessError, OSError) as e:
                logger.warning(f"⚠️ 写入文件失败：{file}，错误：{e}")
                return FileResult(file=file, error=str(e))
            logger.info(f"✏️ 已替换 {len(result.items)} 处：{file}")

        return result
