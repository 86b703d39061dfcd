"""
文件系统工具实现

为正则操作提供两类外部能力：
1. glob 展开：把路径模式展开为确定顺序的绝对路径列表
2. 字节读写：读取文件并做二进制嗅探，替换完成后一次性写回
"""

import errno
import glob
import os
from abc import ABC, abstractmethod

import aiofiles
from asyncer import asyncify
from loguru import logger
from pathspec import PathSpec

from ..model.errors import NotFoundError, PermissionDeniedError


class IFileSystem(ABC):
    """文件系统接口"""

    @abstractmethod
    async def expand(self, path_pattern: str, exclude: list[str] | None = None) -> list[str]:
        """展开路径模式。

        Args:
            path_pattern: glob 路径模式（如 "src/**/*.py"）。
            exclude: 排除模式列表（gitwildmatch 语法）。

        Returns:
            list[str]: 排序后的绝对文件路径列表，只包含普通文件，不跟随符号链接。
        """

    @abstractmethod
    async def read_text(self, file_path: str, binary_check_size: int, encoding: str = "utf-8") -> str | None:
        """读取文本文件。

        Args:
            file_path: 目标文件路径。
            binary_check_size: 检查零字节的前缀长度，<=0 时不检查。
            encoding: 文件编码格式。

        Returns:
            str | None: 文件文本；判定为二进制文件时返回 None。

        Raises:
            NotFoundError: 文件不存在。
            PermissionDeniedError: 没有读取权限。
            OSError: 其他读取错误。
            UnicodeDecodeError: 内容无法按编码解码。
        """

    @abstractmethod
    async def write_text(self, file_path: str, content: str, encoding: str = "utf-8") -> int:
        """写入文本文件（覆盖）。

        Args:
            file_path: 目标文件路径。
            content: 文件内容。
            encoding: 文件编码格式。

        Returns:
            int: 写入的字节数。

        Raises:
            NotFoundError: 文件所在目录不存在。
            PermissionDeniedError: 没有写入权限。
            OSError: 其他写入错误。
        """


def is_binary(data: bytes, check_size: int) -> bool:
    """检查前 check_size 个字节中是否出现零字节

    Args:
        data: 文件内容
        check_size: 检查长度，<=0 时视为文本

    Returns:
        bool: 判定为二进制返回 True
    """
    if check_size <= 0:
        return False
    return b"\x00" in data[:check_size]


def _translate_os_error(error: OSError, file_path: str) -> Exception:
    if isinstance(error, FileNotFoundError) or error.errno == errno.ENOENT:
        return NotFoundError(file_path)
    if isinstance(error, PermissionError) or error.errno in (errno.EACCES, errno.EPERM):
        return PermissionDeniedError(file_path)
    return error


class LocalFileSystem(IFileSystem):
    """本地文件系统实现

    核心功能：
    1. glob 展开与排除过滤（pathspec）
    2. aiofiles 异步读写，保留原始换行符
    3. 二进制嗅探
    """

    def __init__(self, root_dir: str | None = None) -> None:
        """初始化文件系统工具

        Args:
            root_dir: 相对路径模式的解析基准目录，默认为当前工作目录
        """
        self._root_dir = os.path.abspath(root_dir or os.getcwd())

    def get_root_dir(self) -> str:
        """获取相对路径的解析基准目录"""
        return self._root_dir

    async def expand(self, path_pattern: str, exclude: list[str] | None = None) -> list[str]:
        """展开路径模式，glob 遍历在工作线程中执行"""
        return await asyncify(self._expand_sync, abandon_on_cancel=True)(path_pattern, exclude or [])

    def _expand_sync(self, path_pattern: str, exclude: list[str]) -> list[str]:
        # Windows 风格的反斜杠统一为正斜杠
        normalized = path_pattern.replace("\\", "/")
        base_dir = self._static_base(normalized)
        if not os.path.isabs(normalized):
            normalized = os.path.join(glob.escape(self._root_dir), normalized)

        exclude_spec = PathSpec.from_lines("gitwildmatch", exclude) if exclude else None

        files: list[str] = []
        for candidate in glob.glob(normalized, recursive=True):
            file_abs = os.path.normpath(os.path.abspath(candidate))
            if os.path.islink(file_abs) or not os.path.isfile(file_abs):
                continue
            if self._through_link(file_abs, base_dir):
                continue
            if exclude_spec is not None and self._is_excluded(exclude_spec, file_abs):
                continue
            files.append(file_abs)

        files = sorted(set(files))
        logger.debug(f"📂 路径模式 {path_pattern} 展开为 {len(files)} 个文件")
        return files

    def _static_base(self, pattern: str) -> str:
        """路径模式中第一个通配段之前的目录（绝对路径）"""
        static: list[str] = []
        for part in pattern.split("/")[:-1]:
            if glob.has_magic(part):
                break
            static.append(part)
        base = "/".join(static)
        if os.path.isabs(pattern):
            return os.path.normpath(base or "/")
        return os.path.normpath(os.path.join(self._root_dir, base))

    def _through_link(self, file_abs: str, base_dir: str) -> bool:
        """通配段匹配到的目录中是否有符号链接，显式写出的目录不受限制"""
        rel_dir = os.path.relpath(os.path.dirname(file_abs), base_dir)
        if rel_dir == "." or rel_dir.startswith(".."):
            return False
        current = base_dir
        for part in rel_dir.split(os.sep):
            current = os.path.join(current, part)
            if os.path.islink(current):
                return True
        return False

    def _is_excluded(self, spec: PathSpec, file_abs: str) -> bool:
        """分别用相对于基准目录的路径和绝对路径匹配排除模式"""
        candidates: list[str] = []
        rel_path = os.path.relpath(file_abs, self._root_dir)
        if not rel_path.startswith(".."):
            candidates.append(rel_path.replace(os.sep, "/"))
        _, tail = os.path.splitdrive(file_abs)
        candidates.append(tail.replace(os.sep, "/").lstrip("/"))
        return any(spec.match_file(candidate) for candidate in candidates)

    async def read_text(self, file_path: str, binary_check_size: int, encoding: str = "utf-8") -> str | None:
        """读取文件内容（异步IO），二进制文件返回 None"""
        try:
            async with aiofiles.open(file_path, "rb") as f:
                file_content = await f.read()
        except OSError as e:
            translated = _translate_os_error(e, file_path)
            if translated is e:
                raise
            raise translated from e

        if is_binary(file_content, binary_check_size):
            logger.debug(f"📄 检测到二进制文件，跳过：{file_path}")
            return None

        return file_content.decode(encoding)

    async def write_text(self, file_path: str, content: str, encoding: str = "utf-8") -> int:
        """写入文件内容（异步IO），按字节写入以保留原始换行符"""
        file_bytes = content.encode(encoding)
        try:
            async with aiofiles.open(file_path, "wb") as f:
                await f.write(file_bytes)
        except OSError as e:
            translated = _translate_os_error(e, file_path)
            if translated is e:
                raise
            raise translated from e

        logger.debug(f"📄 文件保存成功：{file_path}，大小：{len(file_bytes)} 字节")
        return len(file_bytes)
