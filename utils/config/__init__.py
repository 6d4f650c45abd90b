#!/usr/bin/env python3
"""
Configuration Management Module

This module contains configuration and setup utilities including
YAML loading, logging setup, and filesystem helpers.
"""

from .helpers import (
    load_config,
    setup_logging,
    get_section,
    ensure_directory_exists,
    validate_file_exists,
    get_timestamp
)

__all__ = [
    'load_config',
    'setup_logging',
    'get_section',
    'ensure_directory_exists',
    'validate_file_exists',
    'get_timestamp'
]
