"""relmap — hybrid relevance mapping between source files and requirement categories."""

__version__ = "0.1.0"
