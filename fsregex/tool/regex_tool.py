"""
正则文件工具

对外提供 search / replace / extract / match_lines / split 五个入口，每个入口：
1. 解析并编译模式（extract 额外校验捕获组），失败时在读取任何文件之前返回错误
2. 展开路径模式
3. 在截止时间内按文件顺序聚合结果

入口的返回值要么是有序的结果列表（可为空），要么是单条错误描述字符串。
"""

import re
import time
from abc import ABC, abstractmethod
from typing import Any

from loguru import logger

from ..model.errors import NoCaptureGroupsError, RegexToolError
from ..model.regex import AggregateResult, FileResult, OperationKind, OperationParams
from ..model.setting import Settings, get_settings
from ..utils.pattern import compile_pattern, has_capture_groups, parse_pattern
from .aggregator import aggregate, with_deadline
from .filesystem import IFileSystem, LocalFileSystem
from .runner import FileOperationRunner


ToolResult = list[dict[str, Any]] | str


class IRegexTool(ABC):
    """正则文件工具接口"""

    @abstractmethod
    async def search(
        self,
        path_pattern: str,
        pattern: str,
        flags: str | None = None,
        literal: bool = False,
        context_before: int = 0,
        context_after: int = 0,
        max_matches: int | None = None,
        exclude: list[str] | None = None,
        binary_check_buffer_size: int | None = None,
        max_results: int | None = None,
        timeout: float | None = None,
    ) -> ToolResult:
        """搜索匹配，返回行列位置、捕获组与上下文

        Args:
            path_pattern: glob 路径模式
            pattern: 正则模式或 /pattern/flags 形式
            flags: 可选标志，覆盖内嵌标志
            literal: 按字面文本匹配
            context_before: 匹配前上下文行数
            context_after: 匹配后上下文行数
            max_matches: 每个文件的最大匹配数
            exclude: 排除模式列表
            binary_check_buffer_size: 二进制嗅探长度，<=0 视为文本
            max_results: 全局结果上限
            timeout: 超时时间（秒）

        Returns:
            结果列表或错误描述
        """

    @abstractmethod
    async def replace(
        self,
        path_pattern: str,
        pattern: str,
        replacement: str,
        flags: str | None = None,
        literal: bool = False,
        literal_replacement: bool = False,
        context_before: int = 0,
        context_after: int = 0,
        dry_run: bool = False,
        max_replacements: int | None = None,
        exclude: list[str] | None = None,
        binary_check_buffer_size: int | None = None,
        max_results: int | None = None,
        timeout: float | None = None,
    ) -> ToolResult:
        """替换匹配，非预览模式下每个文件只写回一次

        Args:
            replacement: 替换模板（支持 $1、\\1、${name}、\\g<name>、$$）
            literal_replacement: 替换模板按字面使用
            dry_run: 仅预览不写入
            max_replacements: 每个文件的最大替换数
            其余参数同 search

        Returns:
            结果列表或错误描述
        """

    @abstractmethod
    async def extract(
        self,
        path_pattern: str,
        pattern: str,
        flags: str | None = None,
        literal: bool = False,
        max_matches: int | None = None,
        exclude: list[str] | None = None,
        binary_check_buffer_size: int | None = None,
        max_results: int | None = None,
        timeout: float | None = None,
    ) -> ToolResult:
        """仅提取捕获组（不含完整匹配），模式必须包含捕获组

        Returns:
            结果列表或错误描述
        """

    @abstractmethod
    async def match_lines(
        self,
        path_pattern: str,
        pattern: str,
        flags: str | None = None,
        literal: bool = False,
        invert: bool = False,
        max_lines: int | None = None,
        exclude: list[str] | None = None,
        binary_check_buffer_size: int | None = None,
        max_results: int | None = None,
        timeout: float | None = None,
    ) -> ToolResult:
        """过滤匹配（或不匹配）模式的行

        Returns:
            结果列表或错误描述
        """

    @abstractmethod
    async def split(
        self,
        path_pattern: str,
        pattern: str,
        flags: str | None = None,
        literal: bool = False,
        max_splits: int | None = None,
        exclude: list[str] | None = None,
        binary_check_buffer_size: int | None = None,
        max_results: int | None = None,
        timeout: float | None = None,
    ) -> ToolResult:
        """以模式为分隔符切分文件内容，返回带行号范围的片段

        Returns:
            结果列表或错误描述
        """


class LocalRegexTool(IRegexTool):
    """基于本地文件系统的正则文件工具"""

    def __init__(self, file_system: IFileSystem | None = None, settings: Settings | None = None) -> None:
        """初始化工具

        Args:
            file_system: 文件系统实现，默认使用当前工作目录下的 LocalFileSystem
            settings: 默认参数来源，默认使用全局 Settings
        """
        self._file_system = file_system or LocalFileSystem()
        self._settings = settings or get_settings()

    def get_settings(self) -> Settings:
        """获取默认参数来源"""
        return self._settings

    async def search(
        self,
        path_pattern: str,
        pattern: str,
        flags: str | None = None,
        literal: bool = False,
        context_before: int = 0,
        context_after: int = 0,
        max_matches: int | None = None,
        exclude: list[str] | None = None,
        binary_check_buffer_size: int | None = None,
        max_results: int | None = None,
        timeout: float | None = None,
    ) -> ToolResult:
        params = OperationParams(context_before=context_before, context_after=context_after)
        return await self._execute(
            OperationKind.SEARCH, path_pattern, pattern, flags, literal, params,
            max_matches, exclude, binary_check_buffer_size, max_results, timeout,
        )

    async def replace(
        self,
        path_pattern: str,
        pattern: str,
        replacement: str,
        flags: str | None = None,
        literal: bool = False,
        literal_replacement: bool = False,
        context_before: int = 0,
        context_after: int = 0,
        dry_run: bool = False,
        max_replacements: int | None = None,
        exclude: list[str] | None = None,
        binary_check_buffer_size: int | None = None,
        max_results: int | None = None,
        timeout: float | None = None,
    ) -> ToolResult:
        params = OperationParams(
            context_before=context_before,
            context_after=context_after,
            replacement=replacement,
            literal_replacement=literal_replacement,
            dry_run=dry_run,
        )
        return await self._execute(
            OperationKind.REPLACE, path_pattern, pattern, flags, literal, params,
            max_replacements, exclude, binary_check_buffer_size, max_results, timeout,
        )

    async def extract(
        self,
        path_pattern: str,
        pattern: str,
        flags: str | None = None,
        literal: bool = False,
        max_matches: int | None = None,
        exclude: list[str] | None = None,
        binary_check_buffer_size: int | None = None,
        max_results: int | None = None,
        timeout: float | None = None,
    ) -> ToolResult:
        return await self._execute(
            OperationKind.EXTRACT, path_pattern, pattern, flags, literal, OperationParams(),
            max_matches, exclude, binary_check_buffer_size, max_results, timeout,
        )

    async def match_lines(
        self,
        path_pattern: str,
        pattern: str,
        flags: str | None = None,
        literal: bool = False,
        invert: bool = False,
        max_lines: int | None = None,
        exclude: list[str] | None = None,
        binary_check_buffer_size: int | None = None,
        max_results: int | None = None,
        timeout: float | None = None,
    ) -> ToolResult:
        return await self._execute(
            OperationKind.FILTER_LINES, path_pattern, pattern, flags, literal, OperationParams(invert=invert),
            max_lines, exclude, binary_check_buffer_size, max_results, timeout,
        )

    async def split(
        self,
        path_pattern: str,
        pattern: str,
        flags: str | None = None,
        literal: bool = False,
        max_splits: int | None = None,
        exclude: list[str] | None = None,
        binary_check_buffer_size: int | None = None,
        max_results: int | None = None,
        timeout: float | None = None,
    ) -> ToolResult:
        return await self._execute(
            OperationKind.SPLIT, path_pattern, pattern, flags, literal, OperationParams(max_splits=max_splits),
            None, exclude, binary_check_buffer_size, max_results, timeout,
        )

    def _compile(self, kind: OperationKind, pattern: str, flags: str | None, literal: bool) -> re.Pattern[str]:
        """解析、校验并编译模式，任何文件被访问之前完成

        Raises:
            NoCaptureGroupsError: extract 的模式中没有捕获组
            InvalidPatternError: 模式无法编译
        """
        spec = parse_pattern(pattern, flags, literal)
        if kind is OperationKind.EXTRACT and not has_capture_groups(spec.body):
            raise NoCaptureGroupsError(pattern)
        return compile_pattern(spec)

    async def _execute(
        self,
        kind: OperationKind,
        path_pattern: str,
        pattern: str,
        flags: str | None,
        literal: bool,
        params: OperationParams,
        per_operation_cap: int | None,
        exclude: list[str] | None,
        binary_check_buffer_size: int | None,
        max_results: int | None,
        timeout: float | None,
    ) -> ToolResult:
        start_time = time.time()
        settings = self._settings
        check_size = settings.binary_check_size if binary_check_buffer_size is None else binary_check_buffer_size
        global_cap = settings.max_results if max_results is None else max_results
        deadline = settings.timeout_seconds if timeout is None else timeout

        try:
            compiled = self._compile(kind, pattern, flags, literal)
            result = await with_deadline(
                self._walk(kind, path_pattern, exclude or [], compiled, params, check_size, global_cap, per_operation_cap),
                deadline,
            )
        except RegexToolError as e:
            logger.error(f"❌ {kind.value} 失败：{e}")
            return str(e)
        except Exception as e:
            logger.exception(f"❌ {kind.value} 执行异常：{e}")
            return str(e)

        logger.info(
            f"🔍 {kind.value} 完成：{len(result.items)} 条结果，访问 {result.files_visited} 个文件，"
            f"{len(result.failures)} 个文件失败，耗时 {time.time() - start_time:.2f} 秒"
        )
        return result.to_list()

    async def _walk(
        self,
        kind: OperationKind,
        path_pattern: str,
        exclude: list[str],
        compiled: re.Pattern[str],
        params: OperationParams,
        check_size: int,
        global_cap: int,
        per_operation_cap: int | None,
    ) -> AggregateResult[Any]:
        files = await self._file_system.expand(path_pattern, exclude)
        if not files:
            return AggregateResult()

        runner = FileOperationRunner(self._file_system, check_size, self._settings.encoding)

        async def run_file(file: str, limit: int | None) -> FileResult[Any]:
            return await runner.run_file(file, kind, compiled, params, limit)

        return await aggregate(files, run_file, global_cap, per_operation_cap)
