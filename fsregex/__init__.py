"""fsregex: regex search, replace, extract, filter and split across files"""

__version__ = "1.0.0"
