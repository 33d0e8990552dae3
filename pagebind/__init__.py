"""Parse SUMMARY.md outlines, load Markdown books from disk and plan their build pipelines."""

__version__ = "0.1.0"