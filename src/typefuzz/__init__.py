"""typefuzz - type-directed fuzzing for Python functions."""

__version__ = "1.0.0"
