"""SQL lexer, parsers, statistics, cost model, plan nodes and plan optimizer."""

__version__ = "1.0.0"