from .filesystem import IFileSystem, LocalFileSystem, is_binary
from .runner import FileOperationRunner, run_operation
from .aggregator import aggregate, file_limit, with_deadline
from .regex_tool import IRegexTool, LocalRegexTool


__all__ = [
    # Interfaces
    "IFileSystem", "IRegexTool",
    # Implementations
    "LocalFileSystem", "LocalRegexTool", "FileOperationRunner",
    # Functions
    "is_binary", "run_operation", "aggregate", "file_limit", "with_deadline",
]
