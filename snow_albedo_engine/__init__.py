"""
Snow Albedo Analysis Engine - Core Module

This module contains the batch analysis engine of the MOD10A1 glacier snow
albedo framework: loading, QA filtering, aggregation, trend statistics and export.
"""

from .engine import SnowAlbedoAnalysisEngine

__version__ = "1.0.0"
__author__ = "MOD10A1 Snow Albedo Analysis Framework"

__all__ = ['SnowAlbedoAnalysisEngine']
