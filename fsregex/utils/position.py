"""Offset to line/column mapping and context extraction"""

from ..model.regex import ContextWindow, Position


def split_lines(text: str) -> list[str]:
    """按 '\\n' 切分文本，CRLF 文件中的 '\\r' 保留在行尾"""
    return text.split("\n")


def position_of(text: str, offset: int) -> Position:
    """把字符偏移量转换为行号（从1开始）与列号（从0开始）

    Args:
        text: 完整文本
        offset: 字符偏移量

    Returns:
        Position: 行列位置
    """
    line = text.count("\n", 0, offset) + 1
    column = offset - (text.rfind("\n", 0, offset) + 1)
    return Position(line=line, column=column)


def line_span(text: str, start: int, end: int) -> tuple[int, int]:
    """返回偏移区间 [start, end) 起止所在的行号"""
    line_start = text.count("\n", 0, start) + 1
    line_end = line_start + text.count("\n", start, end)
    return line_start, line_end


def context_around(lines: list[str], line_index: int, before: int = 0, after: int = 0) -> ContextWindow:
    """获取目标行前后的上下文行

    窗口被限制在文件范围内，边界处返回更少的行，不做填充。

    Args:
        lines: 文件的全部行
        line_index: 目标行下标（从0开始）
        before: 前置行数
        after: 后置行数

    Returns:
        ContextWindow: 上下文窗口
    """
    first = max(0, line_index - max(before, 0))
    last = min(len(lines) - 1, line_index + max(after, 0))
    return ContextWindow(
        before=lines[first:line_index],
        after=lines[line_index + 1:last + 1],
    )
