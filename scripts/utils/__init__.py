# Somatic Pipeline Utilities
"""Common utilities for the somatic variant pipeline."""

from .config_parser import load_config, get_nested, validate_config

__all__ = ["load_config", "get_nested", "validate_config"]
