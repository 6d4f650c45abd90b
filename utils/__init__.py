#!/usr/bin/env python3
"""
Utilities Module

This module provides common utilities for the snow albedo framework,
including configuration management and logging setup.
"""

from .config.helpers import (
    load_config, setup_logging, get_section,
    ensure_directory_exists, validate_file_exists, get_timestamp
)

__all__ = [
    'load_config',
    'setup_logging',
    'get_section',
    'ensure_directory_exists',
    'validate_file_exists',
    'get_timestamp'
]
