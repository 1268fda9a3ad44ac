from src.normalization.parsers import (
    normalize_row,
    parse_count,
    parse_runtime_minutes,
    parse_time_window,
)

__all__ = [
    "normalize_row",
    "parse_count",
    "parse_runtime_minutes",
    "parse_time_window",
]
