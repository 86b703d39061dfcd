"""
替换模板展开

支持的引用（按优先级）：
1. $$          字面 '$'
2. $1, $2 ...  编号组
3. \\1, \\2 ...  编号组
4. ${name}     命名组
5. \\g<name>    命名组（\\g<1> 按编号组处理）

模板只扫描一遍，组的取值直接写入输出，不会被后续规则再次解释。
引用不存在或未参与匹配的组时展开为空字符串。
"""

import re

from ..model.regex import RegexMatch


_REFERENCE = re.compile(
    r"(?P<dollar>\$\$)"
    r"|\$(?P<dollar_num>\d+)"
    r"|\\(?P<backslash_num>\d+)"
    r"|\$\{(?P<brace_name>\w+)\}"
    r"|\\g<(?P<g_name>\w+)>"
)


def _numbered(match: RegexMatch, number: str) -> str:
    index = int(number)
    if index < len(match.groups):
        return match.groups[index] or ""
    return ""


def _named(match: RegexMatch, name: str) -> str:
    if name.isdigit():
        return _numbered(match, name)
    return match.named.get(name) or ""


def expand_replacement(template: str, match: RegexMatch) -> str:
    """按匹配的捕获组展开替换模板

    Args:
        template: 替换模板
        match: 当前匹配

    Returns:
        str: 展开后的替换文本
    """
    def _expand(ref: re.Match[str]) -> str:
        if ref.group("dollar") is not None:
            return "$"
        if ref.group("dollar_num") is not None:
            return _numbered(match, ref.group("dollar_num"))
        if ref.group("backslash_num") is not None:
            return _numbered(match, ref.group("backslash_num"))
        if ref.group("brace_name") is not None:
            return _named(match, ref.group("brace_name"))
        return _named(match, ref.group("g_name"))

    return _REFERENCE.sub(_expand, template)
