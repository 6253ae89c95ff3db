from .generator import DEFAULT_PRECISION, Reading, ReadingPrecision, format_timestamp, generate_reading

__all__ = [
    "DEFAULT_PRECISION",
    "Reading",
    "ReadingPrecision",
    "format_timestamp",
    "generate_reading",
]
