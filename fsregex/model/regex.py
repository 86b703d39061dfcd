"""
Regex operation data models.

This module provides the data models shared by the pattern helpers, the
per-file operation runner and the multi-file aggregator, including the
JSON-facing result records emitted by every tool.
"""

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Generic, TypeVar


class OperationKind(Enum):
    """单文件操作类型"""

    SEARCH = "search"
    """搜索匹配，带行列位置与上下文"""
    REPLACE = "replace"
    """替换匹配内容"""
    EXTRACT = "extract"
    """仅提取捕获组"""
    FILTER_LINES = "filter_lines"
    """按行过滤（类似 grep / grep -v）"""
    SPLIT = "split"
    """按分隔模式切分文本"""


@dataclass(frozen=True)
class PatternSpec:
    """规范化后的模式：可直接交给正则编译器的 body 与 flags"""
    body: str
    flags: str = ""


@dataclass
class RegexMatch:
    """单次匹配

    groups[0] 为完整匹配，groups[1:] 为捕获组，未参与匹配的组为 None。
    spans 与 groups 一一对应，未参与匹配的组为 (-1, -1)。
    """
    offset: int
    groups: list[str | None]
    named: dict[str, str | None] = field(default_factory=dict)
    spans: list[tuple[int, int]] = field(default_factory=list)

    @property
    def text(self) -> str:
        return self.groups[0] or ""

    @property
    def end(self) -> int:
        return self.offset + len(self.text)


@dataclass(frozen=True)
class Position:
    """行号从1开始，列号从0开始"""
    line: int
    column: int


@dataclass
class ContextWindow:
    """匹配行前后的上下文行，靠近文件边界时会变短"""
    before: list[str] = field(default_factory=list)
    after: list[str] = field(default_factory=list)


@dataclass
class OperationParams:
    """单文件操作的参数集合，各操作只读取与自身相关的字段"""
    context_before: int = 0  # 匹配前上下文行数
    context_after: int = 0  # 匹配后上下文行数
    replacement: str = ""  # 替换模板
    literal_replacement: bool = False  # 替换模板按字面使用，不展开组引用
    dry_run: bool = False  # 仅预览不写入
    invert: bool = False  # 返回不匹配的行
    max_splits: int | None = None  # 最大切分次数


class ResultItem:
    """所有输出记录的公共基类"""

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)  # pyright: ignore[reportArgumentType]


@dataclass
class SearchMatch(ResultItem):
    """搜索结果"""
    file: str
    line: int
    column: int
    match: str
    groups: list[str | None]
    context_before: list[str]
    context_after: list[str]


@dataclass
class Replacement(ResultItem):
    """替换结果，位置与上下文均基于替换前的原文"""
    file: str
    line: int
    column: int
    original: str
    replacement: str
    groups: list[str | None]
    context_before: list[str]
    context_after: list[str]


@dataclass
class Extraction(ResultItem):
    """提取结果，仅包含捕获组（不含完整匹配）"""
    file: str
    line: int
    groups: list[str | None]


@dataclass
class MatchedLine(ResultItem):
    """行过滤结果"""
    file: str
    line: int
    content: str


@dataclass
class Segment(ResultItem):
    """切分结果"""
    file: str
    segment: int
    content: str
    line_start: int
    line_end: int


T = TypeVar("T", bound=ResultItem)


@dataclass
class FileResult(Generic[T]):
    """单个文件的处理结果，文件级失败只记录在 error 中，不影响其他文件"""
    file: str
    items: list[T] = field(default_factory=list)
    error: str | None = None
    skipped: bool = False  # 二进制文件被跳过
    new_text: str | None = None  # replace 操作的修改后内容

    @property
    def failed(self) -> bool:
        return self.error is not None


@dataclass
class AggregateResult(Generic[T]):
    """多文件聚合结果"""
    items: list[T] = field(default_factory=list)
    failures: list[FileResult[T]] = field(default_factory=list)
    files_visited: int = 0

    def to_list(self) -> list[dict[str, Any]]:
        return [item.to_dict() for item in self.items]
