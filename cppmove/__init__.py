"""cppmove: relocate C++ declarations between source files."""

__version__ = "0.1.0"
