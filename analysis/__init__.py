#!/usr/bin/env python3
"""
Analysis Module

Quality filtering, fraction classification, aggregation and trend
statistics for MOD10A1 glacier snow albedo.
"""
