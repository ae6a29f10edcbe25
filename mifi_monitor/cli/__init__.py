"""
Command Line Interface Package for the MiFi Monitor

This package provides a modular CLI implementation with separated concerns:
- args.py: Argument parsing and validation
- formatters.py: Output formatting for metrics snapshots
- logging_setup.py: Logging configuration
- main.py: Main orchestration and entry point

License: MIT
"""

from .main import main

__all__ = ["main"]
