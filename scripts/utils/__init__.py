# cigaralign pipeline utilities
"""Common utilities for the CIGAR reconstruction scripts."""

from .config_parser import load_config, get_nested, validate_config

__all__ = ["load_config", "get_nested", "validate_config"]
