"""
错误类型定义

所有工具层面的异常都继承自 RegexToolError，入口层据此把异常转换为单条错误描述。
"""


class RegexToolError(Exception):
    """正则文件工具的基础异常"""


class InvalidPatternError(RegexToolError):
    """正则表达式语法错误或包含不支持的标志"""


class NoCaptureGroupsError(RegexToolError):
    """extract 操作要求模式至少包含一个捕获组"""

    def __init__(self, pattern: str):
        super().__init__(f"模式中没有捕获组：{pattern}")
        self.pattern = pattern


class FileAccessError(RegexToolError):
    """文件访问失败"""

    def __init__(self, message: str, path: str):
        super().__init__(message)
        self.path = path


class NotFoundError(FileAccessError):
    """文件不存在"""

    def __init__(self, path: str):
        super().__init__(f"文件不存在：{path}", path)


class PermissionDeniedError(FileAccessError):
    """文件权限不足"""

    def __init__(self, path: str):
        super().__init__(f"权限不足：{path}", path)


class OperationTimeoutError(RegexToolError):
    """整体操作超过截止时间"""

    def __init__(self, timeout: float):
        super().__init__(f"操作超时：超过 {timeout:g} 秒")
        self.timeout = timeout
