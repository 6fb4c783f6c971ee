"""Read several files in one call and pack them into a single framed, bounded text blob."""

from read_many.output_construction import read_many

__version__ = "0.1.0"

__all__ = ["__version__", "read_many"]
