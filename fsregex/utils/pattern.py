"""
模式解析与匹配工具

负责把调用方传入的模式字符串（普通正则、/pattern/flags 形式或字面量）规范化为
PatternSpec，编译为可复用的模式模板，并在文本上产生有序、可限量的匹配序列。
"""

import re
from typing import Iterator

from ..model.errors import InvalidPatternError
from ..model.regex import PatternSpec, RegexMatch


_SPECIAL_CHARS = re.compile(r"[.*+?^${}()|[\]\\]")
_LINE_BREAK = re.compile(r"\r?\n")
_LINE_BREAK_TOKEN = r"\r?\n"

# g 与 u 被接受但不改变行为：扫描总是全局的，str 本身就是 Unicode
_FLAG_MAP: dict[str, re.RegexFlag | int] = {
    "g": 0,
    "i": re.IGNORECASE,
    "m": re.MULTILINE,
    "s": re.DOTALL,
    "u": 0,
}


def escape_regex(text: str) -> str:
    """转义正则元字符，使文本按字面匹配

    Args:
        text: 原始文本

    Returns:
        str: 转义后的正则片段
    """
    return _SPECIAL_CHARS.sub(lambda m: "\\" + m.group(0), text)


def escape_literal(text: str) -> str:
    """把可能跨行的字面文本转换为正则 body

    逐行转义，再用同时兼容 LF 与 CRLF 的换行片段拼接，
    因此无论目标文件使用哪种换行风格都能匹配。

    Args:
        text: 字面文本

    Returns:
        str: 正则 body
    """
    return _LINE_BREAK_TOKEN.join(escape_regex(line) for line in _LINE_BREAK.split(text))


def parse_pattern(pattern: str, flags: str | None = None, literal: bool = False) -> PatternSpec:
    """解析模式字符串

    支持普通模式与 /pattern/flags 形式；显式传入的 flags 覆盖内嵌 flags。
    这里不校验正则语法，语法错误在编译时报告。

    Args:
        pattern: 模式字符串
        flags: 可选的标志字符串（如 "im"）
        literal: 为 True 时按字面文本处理

    Returns:
        PatternSpec: 规范化后的模式
    """
    body = pattern
    embedded_flags = ""

    if pattern.startswith("/"):
        last_slash = pattern.rfind("/")
        if last_slash > 0:
            body = pattern[1:last_slash]
            embedded_flags = pattern[last_slash + 1:]

    if literal:
        body = escape_literal(body)

    return PatternSpec(body=body, flags=flags or embedded_flags)


def _tokens(body: str) -> Iterator[tuple[int, str, bool]]:
    """逐个产出 (位置, 记号, 是否位于字符类中)，转义序列作为一个两字符记号"""
    i, n = 0, len(body)
    in_class = False
    while i < n:
        ch = body[i]
        if ch == "\\":
            yield i, body[i:i + 2], in_class
            i += 2
            continue
        if in_class:
            if ch == "]":
                in_class = False
            yield i, ch, True
            i += 1
            continue
        if ch == "[":
            in_class = True
            yield i, ch, False
            i += 1
            # 紧跟在 '[' 或 '[^' 之后的 ']' 是字面字符
            if i < n and body[i] == "^":
                yield i, "^", True
                i += 1
            if i < n and body[i] == "]":
                yield i, "]", True
                i += 1
            continue
        yield i, ch, False
        i += 1


def _is_named_group_start(body: str, index: int) -> bool:
    """index 处的 '(' 是否开启一个命名捕获组（(?<name> 或 (?P<name>）"""
    if body.startswith("?P<", index + 1):
        return True
    return body.startswith("?<", index + 1) and body[index + 3:index + 4] not in ("=", "!", "")


def _translate_dialect(body: str) -> str:
    """把 (?<name>...) 与 \\k<name> 改写为 re 模块的 (?P<name>...) 与 (?P=name)"""
    parts: list[str] = []
    last = 0
    skip_to = -1
    for index, token, in_class in _tokens(body):
        if index < skip_to or in_class:
            continue
        if token == "\\k" and body.startswith("<", index + 2):
            close = body.find(">", index + 3)
            if close > index + 3:
                parts.append(body[last:index])
                parts.append(f"(?P={body[index + 3:close]})")
                last = skip_to = close + 1
        elif token == "(" and body.startswith("?<", index + 1) and _is_named_group_start(body, index):
            parts.append(body[last:index])
            parts.append("(?P<")
            last = skip_to = index + 3
    parts.append(body[last:])
    return "".join(parts)


def has_capture_groups(body: str) -> bool:
    """检查模式 body 是否包含至少一个捕获组

    未转义、位于字符类之外、且不是 (?...) 扩展语法的 '(' 视为捕获组；
    命名组语法同样计入。

    Args:
        body: 模式 body

    Returns:
        bool: 包含捕获组返回 True
    """
    for index, token, in_class in _tokens(body):
        if in_class or token != "(":
            continue
        if not body.startswith("?", index + 1):
            return True
        if _is_named_group_start(body, index):
            return True
    return False


def compile_pattern(spec: PatternSpec) -> re.Pattern[str]:
    """编译模式为可复用的模板

    编译结果不可变，可在多个文件之间只读共享；每次扫描的游标由 find_all 内部持有。

    Args:
        spec: 规范化后的模式

    Returns:
        re.Pattern[str]: 编译后的模式

    Raises:
        InvalidPatternError: 语法错误、不支持或重复的标志
    """
    flags = 0
    seen: set[str] = set()
    for flag in spec.flags:
        if flag not in _FLAG_MAP:
            raise InvalidPatternError(f"无效的正则表达式：不支持的标志 '{flag}'")
        if flag in seen:
            raise InvalidPatternError(f"无效的正则表达式：重复的标志 '{flag}'")
        seen.add(flag)
        flags |= _FLAG_MAP[flag]

    try:
        return re.compile(_translate_dialect(spec.body), flags)
    except re.error as e:
        raise InvalidPatternError(f"无效的正则表达式：{e}") from e


def _to_match(match: re.Match[str]) -> RegexMatch:
    return RegexMatch(
        offset=match.start(),
        groups=[match.group(0), *match.groups()],
        named=match.groupdict(),
        spans=[match.span(index) for index in range(len(match.groups()) + 1)],
    )


def iter_matches(compiled: re.Pattern[str], text: str) -> Iterator[RegexMatch]:
    """从左到右逐个产出匹配

    游标是局部变量，每次调用都是独立的扫描；空匹配后游标前进一个字符，
    保证对 (?:) 之类的模式也能终止。
    """
    cursor = 0
    length = len(text)
    while cursor <= length:
        match = compiled.search(text, cursor)
        if match is None:
            return
        yield _to_match(match)
        start, end = match.span()
        cursor = end if end > start else end + 1


def find_all(compiled: re.Pattern[str], text: str, max_matches: int | None = None) -> list[RegexMatch]:
    """查找全部匹配

    Args:
        compiled: 编译后的模式
        text: 目标文本
        max_matches: 最多返回的匹配数，None 或 0 表示不限制

    Returns:
        list[RegexMatch]: 按出现顺序排列的匹配
    """
    matches: list[RegexMatch] = []
    for match in iter_matches(compiled, text):
        matches.append(match)
        if max_matches and len(matches) >= max_matches:
            break
    return matches
