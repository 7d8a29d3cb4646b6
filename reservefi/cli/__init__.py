"""
Command-line tools for reservefi.

    python -m reservefi.cli.inspect --help
"""

__all__ = ["inspect"]
