"""
单文件操作执行器测试

覆盖 run_operation 的五种操作语义，以及 FileOperationRunner 的读取、二进制跳过、
写回与文件级错误收敛。
"""

import re
from unittest.mock import AsyncMock

import pytest

from fsregex.model.errors import NotFoundError, PermissionDeniedError
from fsregex.model.regex import OperationKind, OperationParams
from fsregex.tool.filesystem import IFileSystem
from fsregex.tool.runner import FileOperationRunner, run_operation
from fsregex.utils.pattern import compile_pattern, parse_pattern


FILE = "/workspace/sample.txt"


def _compile(pattern: str, flags: str | None = None, literal: bool = False) -> re.Pattern[str]:
    return compile_pattern(parse_pattern(pattern, flags, literal))


def _naive_splice(text: str, pattern: str, replacements: list[str]) -> str:
    """从后往前按原始区间拼接，作为偏移计算的对照"""
    spans = [m.span() for m in re.finditer(pattern, text)]
    out = text
    for (start, end), value in reversed(list(zip(spans, replacements))):
        out = out[:start] + value + out[end:]
    return out


class TestSearch:
    """测试 search"""

    def test_positions_and_groups(self):
        text = "let a = 1\nvar x = 2\nvar y = 3"
        result = run_operation(OperationKind.SEARCH, FILE, text, _compile(r"var (\w+)"), OperationParams())

        assert [(m.line, m.column) for m in result.items] == [(2, 0), (3, 0)]
        assert result.items[0].match == "var x"
        assert result.items[0].groups == ["var x", "x"]
        assert result.items[0].file == FILE

    def test_context_lines(self):
        text = "l1\nl2\nfoo\nl4\nl5"
        params = OperationParams(context_before=1, context_after=1)
        result = run_operation(OperationKind.SEARCH, FILE, text, _compile("foo"), params)

        item = result.items[0]
        assert (item.line, item.column) == (3, 0)
        assert item.context_before == ["l2"]
        assert item.context_after == ["l4"]

    def test_limit(self):
        result = run_operation(OperationKind.SEARCH, FILE, "a a a a", _compile("a"), OperationParams(), 2)
        assert len(result.items) == 2

    def test_no_match(self):
        result = run_operation(OperationKind.SEARCH, FILE, "abc", _compile("z"), OperationParams())
        assert result.items == []
        assert not result.failed

    def test_to_dict_shape(self):
        result = run_operation(OperationKind.SEARCH, FILE, "abc", _compile("b"), OperationParams())
        assert result.items[0].to_dict() == {
            "file": FILE,
            "line": 1,
            "column": 1,
            "match": "b",
            "groups": ["b"],
            "context_before": [],
            "context_after": [],
        }


class TestReplace:
    """测试 replace"""

    def test_var_to_const(self):
        params = OperationParams(replacement="const $1")
        result = run_operation(OperationKind.REPLACE, FILE, "var x = 1;", _compile(r"var (\w+)"), params)

        assert result.new_text == "const x = 1;"
        item = result.items[0]
        assert item.original == "var x"
        assert item.replacement == "const x"
        assert (item.line, item.column) == (1, 0)
        assert item.groups == ["var x", "x"]

    def test_idempotent_when_replacement_does_not_match(self):
        """第二次执行找不到匹配，不产生结果也不产生新文本"""
        compiled = _compile(r"var (\w+)")
        params = OperationParams(replacement="const $1")
        first = run_operation(OperationKind.REPLACE, FILE, "var x = 1;\nvar y = 2;", compiled, params)
        second = run_operation(OperationKind.REPLACE, FILE, first.new_text, compiled, params)

        assert first.new_text == "const x = 1;\nconst y = 2;"
        assert second.items == []
        assert second.new_text is None

    @pytest.mark.parametrize("template", ["X", "<$0>", "$0$0$0", ""])
    @pytest.mark.parametrize(
        "text, pattern",
        [
            ("a1 bb22 ccc333 d4", r"\d+"),
            ("a1 bb22 ccc333 d4", r"[a-z]+"),
            ("αβ 1 € 22 😀 333\nγ 4", r"\d+"),
            ("one\r\ntwo\r\nthree", r"\w+"),
        ],
    )
    def test_offsets_match_naive_splice(self, text, pattern, template):
        """长度变化的替换与从后往前的朴素拼接结果一致"""
        result = run_operation(
            OperationKind.REPLACE, FILE, text, _compile(pattern), OperationParams(replacement=template),
        )
        expected = _naive_splice(text, pattern, [item.replacement for item in result.items])
        assert result.new_text == expected

    def test_positions_refer_to_original_text(self):
        """后续匹配的行列位置不受前面替换长度变化的影响"""
        text = "aa b\naa b"
        result = run_operation(
            OperationKind.REPLACE, FILE, text, _compile("b"), OperationParams(replacement="LONGER"),
        )
        assert [(i.line, i.column) for i in result.items] == [(1, 3), (2, 3)]

    def test_context_from_original_text(self):
        text = "before\nfoo\nafter"
        params = OperationParams(replacement="bar", context_before=1, context_after=1)
        result = run_operation(OperationKind.REPLACE, FILE, text, _compile("foo"), params)

        assert result.items[0].context_before == ["before"]
        assert result.items[0].context_after == ["after"]

    def test_literal_replacement(self):
        params = OperationParams(replacement="$1 and \\1", literal_replacement=True)
        result = run_operation(OperationKind.REPLACE, FILE, "ab", _compile("(a)"), params)
        assert result.new_text == "$1 and \\1b"

    def test_limit_only_replaces_first_matches(self):
        params = OperationParams(replacement="b")
        result = run_operation(OperationKind.REPLACE, FILE, "aaaa", _compile("a"), params, 2)
        assert result.new_text == "bbaa"
        assert len(result.items) == 2

    def test_literal_pattern_across_crlf(self):
        params = OperationParams(replacement="X")
        text = "keep\r\nold.one\r\nold.two\r\nkeep"
        result = run_operation(
            OperationKind.REPLACE, FILE, text, _compile("old.one\nold.two", literal=True), params,
        )
        assert result.new_text == "keep\r\nX\r\nkeep"
        assert (result.items[0].line, result.items[0].column) == (2, 0)


class TestExtract:
    """测试 extract"""

    def test_groups_without_full_match(self):
        text = "name=alice age=30\nname=bob age=25"
        result = run_operation(
            OperationKind.EXTRACT, FILE, text, _compile(r"name=(\w+) age=(\d+)"), OperationParams(),
        )
        assert [(i.line, i.groups) for i in result.items] == [(1, ["alice", "30"]), (2, ["bob", "25"])]

    def test_unmatched_group_is_none(self):
        result = run_operation(OperationKind.EXTRACT, FILE, "b", _compile(r"(a)?(b)"), OperationParams())
        assert result.items[0].groups == [None, "b"]


class TestFilterLines:
    """测试 filter_lines"""

    TEXT = "ERROR: a\nINFO: b\nERROR: c"

    def test_matching_lines(self):
        result = run_operation(OperationKind.FILTER_LINES, FILE, self.TEXT, _compile("ERROR"), OperationParams())
        assert [(i.line, i.content) for i in result.items] == [(1, "ERROR: a"), (3, "ERROR: c")]

    def test_inverted(self):
        params = OperationParams(invert=True)
        result = run_operation(OperationKind.FILTER_LINES, FILE, self.TEXT, _compile("ERROR"), params)
        assert [(i.line, i.content) for i in result.items] == [(2, "INFO: b")]

    def test_limit(self):
        result = run_operation(OperationKind.FILTER_LINES, FILE, self.TEXT, _compile("ERROR"), OperationParams(), 1)
        assert len(result.items) == 1

    def test_anchor_applies_per_line(self):
        """每行独立匹配，^ 锚定在行首"""
        result = run_operation(OperationKind.FILTER_LINES, FILE, "ab\nba\nab", _compile("^a"), OperationParams())
        assert [i.line for i in result.items] == [1, 3]


class TestSplit:
    """测试 split"""

    def test_empty_segments_kept(self):
        result = run_operation(OperationKind.SPLIT, FILE, "a,b,,c", _compile(","), OperationParams())

        assert [s.content for s in result.items] == ["a", "b", "", "c"]
        assert [s.segment for s in result.items] == [1, 2, 3, 4]
        assert all((s.line_start, s.line_end) == (1, 1) for s in result.items)

    def test_line_ranges(self):
        result = run_operation(OperationKind.SPLIT, FILE, "a\nb---c\nd", _compile("---"), OperationParams())
        assert [(s.content, s.line_start, s.line_end) for s in result.items] == [
            ("a\nb", 1, 2),
            ("c\nd", 2, 3),
        ]

    def test_no_delimiter(self):
        result = run_operation(OperationKind.SPLIT, FILE, "abc", _compile(","), OperationParams())
        assert [s.content for s in result.items] == ["abc"]

    def test_max_splits(self):
        params = OperationParams(max_splits=1)
        result = run_operation(OperationKind.SPLIT, FILE, "a,b,c", _compile(","), params)
        assert [s.content for s in result.items] == ["a", "b"]

    def test_empty_delimiter(self):
        result = run_operation(OperationKind.SPLIT, FILE, "abc", _compile("(?:)"), OperationParams())
        assert [s.content for s in result.items] == ["a", "b", "c"]

    def test_trailing_delimiter(self):
        result = run_operation(OperationKind.SPLIT, FILE, "a,b,", _compile(","), OperationParams())
        assert [s.content for s in result.items] == ["a", "b", ""]

    def test_captured_delimiter_emitted(self):
        result = run_operation(OperationKind.SPLIT, FILE, "a1b", _compile(r"(\d)"), OperationParams())
        assert [s.content for s in result.items] == ["a", "1", "b"]
        assert [s.segment for s in result.items] == [1, 2, 3]

    def test_unmatched_delimiter_group_is_empty(self):
        result = run_operation(OperationKind.SPLIT, FILE, "x1y", _compile(r"(\d)|(-)"), OperationParams())
        assert [s.content for s in result.items] == ["x", "1", "", "y"]

    def test_captured_delimiter_counts_toward_max_splits(self):
        params = OperationParams(max_splits=1)
        result = run_operation(OperationKind.SPLIT, FILE, "a1b2c", _compile(r"(\d)"), params)
        assert [s.content for s in result.items] == ["a", "1"]

    def test_captured_delimiter_line_range(self):
        text = "a\n--x--\nb"
        result = run_operation(OperationKind.SPLIT, FILE, text, _compile(r"--(x)--"), OperationParams())
        assert [(s.content, s.line_start, s.line_end) for s in result.items] == [
            ("a\n", 1, 2),
            ("x", 2, 2),
            ("\nb", 2, 3),
        ]

    def test_limit_truncates_segments(self):
        result = run_operation(OperationKind.SPLIT, FILE, "a,b,c,d", _compile(","), OperationParams(), 2)
        assert [s.content for s in result.items] == ["a", "b"]


class TestFileOperationRunner:
    """测试 FileOperationRunner"""

    @pytest.fixture
    def file_system(self):
        fs = AsyncMock(spec=IFileSystem)
        fs.read_text.return_value = "var x = 1;"
        fs.write_text.return_value = 12
        return fs

    @pytest.fixture
    def runner(self, file_system):
        return FileOperationRunner(file_system, binary_check_size=8192)

    @pytest.mark.asyncio
    async def test_search_reads_file(self, runner, file_system):
        result = await runner.run_file(FILE, OperationKind.SEARCH, _compile("x"), OperationParams())

        file_system.read_text.assert_awaited_once_with(FILE, 8192, "utf-8")
        assert len(result.items) == 1
        file_system.write_text.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_binary_file_skipped(self, runner, file_system):
        file_system.read_text.return_value = None
        result = await runner.run_file(FILE, OperationKind.SEARCH, _compile("x"), OperationParams())

        assert result.skipped
        assert result.items == []
        assert not result.failed

    @pytest.mark.asyncio
    async def test_replace_writes_once(self, runner, file_system):
        params = OperationParams(replacement="const $1")
        result = await runner.run_file(FILE, OperationKind.REPLACE, _compile(r"var (\w+)"), params)

        file_system.write_text.assert_awaited_once_with(FILE, "const x = 1;", "utf-8")
        assert len(result.items) == 1

    @pytest.mark.asyncio
    async def test_dry_run_does_not_write(self, runner, file_system):
        params = OperationParams(replacement="const $1", dry_run=True)
        result = await runner.run_file(FILE, OperationKind.REPLACE, _compile(r"var (\w+)"), params)

        file_system.write_text.assert_not_awaited()
        assert result.items[0].replacement == "const x"

    @pytest.mark.asyncio
    async def test_no_matches_does_not_write(self, runner, file_system):
        params = OperationParams(replacement="y")
        await runner.run_file(FILE, OperationKind.REPLACE, _compile("nothing"), params)
        file_system.write_text.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_read_error_becomes_file_error(self, runner, file_system):
        file_system.read_text.side_effect = NotFoundError(FILE)
        result = await runner.run_file(FILE, OperationKind.SEARCH, _compile("x"), OperationParams())

        assert result.failed
        assert result.error == f"文件不存在：{FILE}"
        assert result.items == []

    @pytest.mark.asyncio
    async def test_decode_error_becomes_file_error(self, runner, file_system):
        file_system.read_text.side_effect = UnicodeDecodeError("utf-8", b"\xff", 0, 1, "invalid start byte")
        result = await runner.run_file(FILE, OperationKind.SEARCH, _compile("x"), OperationParams())

        assert result.failed
        assert "解码" in result.error

    @pytest.mark.asyncio
    async def test_write_error_discards_items(self, runner, file_system):
        file_system.write_text.side_effect = PermissionDeniedError(FILE)
        params = OperationParams(replacement="y")
        result = await runner.run_file(FILE, OperationKind.REPLACE, _compile("x"), params)

        assert result.failed
        assert result.error == f"权限不足：{FILE}"
        assert result.items == []
