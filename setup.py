from setuptools import setup, find_packages

setup(
    name="fsregex",
    version="1.0.0",
    description="Regex search, replace, extract, filter and split across files, served over MCP",
    python_requires=">=3.10",
    # 只打包 fsregex 及其子包
    packages=find_packages(include=["fsregex", "fsregex.*"]),
    install_requires=[
        "aiofiles",
        "asyncer>=0.0.8",
        "fastmcp",
        "loguru",
        "pathspec",
        "pydantic",
        "pydantic-settings",
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-asyncio",
        ],
    },
    entry_points={
        "console_scripts": [
            "fs-regex-mcp=fsregex.server:main",
        ],
    },
)
