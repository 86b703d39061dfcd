"""
MCP 服务入口

把 LocalRegexTool 的五个入口注册为 FastMCP 工具，通过 stdio 对外提供。
成功时返回 JSON 文本，失败时返回单条错误描述。
"""

import json
import sys
from typing import Annotated

from fastmcp import FastMCP
from fastmcp.tools import Tool
from loguru import logger
from pydantic import Field

from . import __version__
from .model.setting import Settings, get_settings
from .tool.filesystem import IFileSystem
from .tool.regex_tool import IRegexTool, LocalRegexTool, ToolResult


SERVER_NAME = "fs-regex-mcp"

PathPattern = Annotated[str, Field(description='Glob pattern selecting files (e.g., "src/**/*.js")')]
Pattern = Annotated[str, Field(description="Regex pattern or /pattern/flags format")]
Flags = Annotated[str | None, Field(description="Optional regex flags (g, i, m, s, u); overrides embedded flags")]
LiteralMode = Annotated[bool, Field(description="Treat pattern as a literal string (matches LF and CRLF line breaks)")]
Exclude = Annotated[list[str] | None, Field(description="Glob patterns to exclude")]
BinaryCheck = Annotated[int | None, Field(description="Bytes to check for binary (default: 8192, <=0: treat as text)")]
MaxResults = Annotated[int | None, Field(description="Maximum total results across all files (default: 100)")]
Timeout = Annotated[float | None, Field(description="Operation timeout in seconds (default: 30)")]
ContextBefore = Annotated[int, Field(description="Lines before match (default: 0)")]
ContextAfter = Annotated[int, Field(description="Lines after match (default: 0)")]


def to_text(result: ToolResult) -> str:
    """把工具返回值编码为 MCP 文本内容"""
    if isinstance(result, str):
        return result
    return json.dumps(result, indent=2, ensure_ascii=False)


class RegexToolServer:
    """MCP 工具函数集合，每个方法对应一个对外工具"""

    def __init__(self, tool: IRegexTool) -> None:
        self._tool = tool

    async def regex_search(
        self,
        path_pattern: PathPattern,
        pattern: Pattern,
        flags: Flags = None,
        literal: LiteralMode = False,
        context_before: ContextBefore = 0,
        context_after: ContextAfter = 0,
        max_matches: Annotated[int | None, Field(description="Maximum matches per file")] = None,
        exclude: Exclude = None,
        binary_check_buffer_size: BinaryCheck = None,
        max_results: MaxResults = None,
        timeout: Timeout = None,
    ) -> str:
        """Search for pattern matches in files matching a glob pattern. Returns array of matches with line/column positions, capture groups, and context lines."""
        return to_text(await self._tool.search(
            path_pattern, pattern, flags=flags, literal=literal,
            context_before=context_before, context_after=context_after, max_matches=max_matches,
            exclude=exclude, binary_check_buffer_size=binary_check_buffer_size,
            max_results=max_results, timeout=timeout,
        ))

    async def regex_replace(
        self,
        path_pattern: PathPattern,
        pattern: Pattern,
        replacement: Annotated[str, Field(description="Replacement string (supports $1, \\1, ${name}, \\g<name>, $$)")],
        flags: Flags = None,
        literal: LiteralMode = False,
        literal_replacement: Annotated[bool, Field(description="Use replacement verbatim, no group expansion")] = False,
        context_before: ContextBefore = 0,
        context_after: ContextAfter = 0,
        dry_run: Annotated[bool, Field(description="Preview without writing (default: false)")] = False,
        max_replacements: Annotated[int | None, Field(description="Maximum replacements per file")] = None,
        exclude: Exclude = None,
        binary_check_buffer_size: BinaryCheck = None,
        max_results: MaxResults = None,
        timeout: Timeout = None,
    ) -> str:
        """Replace pattern matches in files matching a glob pattern. Supports capture groups ($1, ${name}). Returns array of replacements made."""
        return to_text(await self._tool.replace(
            path_pattern, pattern, replacement, flags=flags, literal=literal,
            literal_replacement=literal_replacement, context_before=context_before,
            context_after=context_after, dry_run=dry_run, max_replacements=max_replacements,
            exclude=exclude, binary_check_buffer_size=binary_check_buffer_size,
            max_results=max_results, timeout=timeout,
        ))

    async def regex_extract(
        self,
        path_pattern: PathPattern,
        pattern: Annotated[str, Field(description="Regex pattern WITH capture groups")],
        flags: Flags = None,
        literal: LiteralMode = False,
        max_matches: Annotated[int | None, Field(description="Maximum matches per file")] = None,
        exclude: Exclude = None,
        binary_check_buffer_size: BinaryCheck = None,
        max_results: MaxResults = None,
        timeout: Timeout = None,
    ) -> str:
        """Extract only capture groups from pattern matches (excludes full match). Useful for parsing structured data."""
        return to_text(await self._tool.extract(
            path_pattern, pattern, flags=flags, literal=literal, max_matches=max_matches,
            exclude=exclude, binary_check_buffer_size=binary_check_buffer_size,
            max_results=max_results, timeout=timeout,
        ))

    async def regex_match_lines(
        self,
        path_pattern: PathPattern,
        pattern: Pattern,
        flags: Flags = None,
        literal: LiteralMode = False,
        invert: Annotated[bool, Field(description="Return non-matching lines (default: false)")] = False,
        max_lines: Annotated[int | None, Field(description="Maximum lines per file")] = None,
        exclude: Exclude = None,
        binary_check_buffer_size: BinaryCheck = None,
        max_results: MaxResults = None,
        timeout: Timeout = None,
    ) -> str:
        """Filter lines that match (or don't match) a pattern. Like grep/grep -v."""
        return to_text(await self._tool.match_lines(
            path_pattern, pattern, flags=flags, literal=literal, invert=invert, max_lines=max_lines,
            exclude=exclude, binary_check_buffer_size=binary_check_buffer_size,
            max_results=max_results, timeout=timeout,
        ))

    async def regex_split(
        self,
        path_pattern: PathPattern,
        pattern: Annotated[str, Field(description="Regex delimiter pattern")],
        flags: Flags = None,
        literal: LiteralMode = False,
        max_splits: Annotated[int | None, Field(description="Maximum number of splits per file")] = None,
        exclude: Exclude = None,
        binary_check_buffer_size: BinaryCheck = None,
        max_results: MaxResults = None,
        timeout: Timeout = None,
    ) -> str:
        """Split file content by regex delimiter pattern. Returns array of segments with line ranges."""
        return to_text(await self._tool.split(
            path_pattern, pattern, flags=flags, literal=literal, max_splits=max_splits,
            exclude=exclude, binary_check_buffer_size=binary_check_buffer_size,
            max_results=max_results, timeout=timeout,
        ))


def build_server(settings: Settings | None = None, file_system: IFileSystem | None = None) -> FastMCP:
    """创建并注册全部工具的 FastMCP 服务

    Args:
        settings: 默认参数来源
        file_system: 文件系统实现

    Returns:
        FastMCP: 服务实例
    """
    handlers = RegexToolServer(LocalRegexTool(file_system, settings or get_settings()))
    mcp = FastMCP(SERVER_NAME)

    tools = [
        ("regex_search", handlers.regex_search, None),
        ("regex_replace", handlers.regex_replace, None),
        ("regex_extract", handlers.regex_extract, None),
        ("regex_match_lines", handlers.regex_match_lines, None),
        ("regex_split", handlers.regex_split, None),
        # 兼容旧工具名，行为与单入口一致（入口本身已支持 glob）
        ("regex_search_multi", handlers.regex_search,
         "Search for pattern matches across multiple files using glob patterns. Returns flat array of all matches."),
        ("regex_replace_multi", handlers.regex_replace,
         "Replace pattern matches across multiple files using glob patterns. Returns flat array of all replacements."),
    ]
    for name, fn, description in tools:
        mcp.add_tool(Tool.from_function(fn=fn, name=name, description=description))

    return mcp


def configure_logging(settings: Settings) -> None:
    """配置 loguru 输出

    stdout 承载 MCP 协议，日志只写 stderr 与可选的日志文件。
    """
    logger.remove()
    logger.add(sys.stderr, level=settings.log_level)
    if settings.log_file:
        logger.add(settings.log_file, level=settings.log_level, rotation="10 MB", encoding="utf-8")


def main() -> None:
    """以 stdio 方式运行 MCP 服务"""
    settings = get_settings()
    configure_logging(settings)
    logger.info(f"🚀 {SERVER_NAME} {__version__} running on stdio")
    build_server(settings).run()
