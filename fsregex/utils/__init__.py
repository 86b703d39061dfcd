"""Pattern, position and replacement helpers"""

from .pattern import (
    escape_regex,
    escape_literal,
    parse_pattern,
    has_capture_groups,
    compile_pattern,
    iter_matches,
    find_all,
)
from .position import split_lines, position_of, line_span, context_around
from .template import expand_replacement

__all__ = [
    # Pattern
    "escape_regex", "escape_literal", "parse_pattern", "has_capture_groups",
    "compile_pattern", "iter_matches", "find_all",
    # Position
    "split_lines", "position_of", "line_span", "context_around",
    # Template
    "expand_replacement",
]
