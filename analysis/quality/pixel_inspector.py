#!/usr/bin/env python3
"""
QA Pixel Inspector

Decodes the quality layers of a single observation into a readable report:
basic QA category, each algorithm flag with its severity, an overall
recommendation, and whether the pixel passes the current filter.
"""

import logging
from typing import Dict, Any, List, Optional

from .qa_flags import QAConfig, QA_BIT_TABLE, BASIC_QA_LEVEL_TEXT, basic_qa_text
from .mask_evaluator import QualityMaskEvaluator, _is_missing

logger = logging.getLogger(__name__)


def format_binary(value: int, length: int = 8) -> str:
    """Zero-padded binary representation of a flags byte."""
    return format(int(value), f'0{length}b')


def decode_flags(algorithm_flags: Optional[int]) -> Dict[str, bool]:
    """Map every flag key to whether its bit is set; empty when flags are absent."""
    if _is_missing(algorithm_flags):
        return {}
    flags = int(algorithm_flags)
    return {flag.key: bool(flags & flag.mask) for flag in QA_BIT_TABLE}


def recommend(flag_states: Dict[str, bool]) -> str:
    """Overall usability of a pixel given its decoded flags."""
    if not flag_states:
        return 'NO FLAGS - Algorithm flags unavailable'

    set_severities = {flag.severity for flag in QA_BIT_TABLE if flag_states.get(flag.key)}

    if 'CRITICAL' in set_severities:
        return 'CRITICAL - Avoid for analysis'
    if 'OPTIMAL' in set_severities and 'IMPORTANT' not in set_severities:
        return 'EXCELLENT - Clear sky (v6.1)'
    if 'IMPORTANT' in set_severities:
        return 'ACCEPTABLE - Use with caution'
    if 'OPTIONAL' in set_severities:
        return 'GOOD - Minor flags only'
    return 'GOOD - No critical flags'


class PixelInspector:
    """Builds inspection reports for individual observations."""

    def __init__(self, evaluator: Optional[QualityMaskEvaluator] = None):
        self.evaluator = evaluator or QualityMaskEvaluator()

    def inspect(self, observation: Any, config: QAConfig) -> Dict[str, Any]:
        """
        Inspect one observation.

        Args:
            observation: Object with ``basic_qa``, ``algorithm_flags`` and optionally
                ``ndsi_snow_cover``, ``snow_albedo_raw``, ``glacier_fraction``,
                ``longitude``, ``latitude``
            config: QA configuration currently selected

        Returns:
            Dictionary describing the pixel
        """
        basic_qa = getattr(observation, 'basic_qa', None)
        algorithm_flags = getattr(observation, 'algorithm_flags', None)
        flag_states = decode_flags(algorithm_flags)

        flags: List[Dict[str, Any]] = []
        for flag in QA_BIT_TABLE:
            if not flag_states:
                break
            flags.append({
                'bit': flag.bit,
                'key': flag.key,
                'description': flag.description,
                'severity': flag.severity,
                'set': flag_states[flag.key],
                'excluded_by_config': config.excludes(flag.key),
            })

        passes_basic = self.evaluator.passes_basic_qa(basic_qa, config)
        passes_flags = self.evaluator.passes_algorithm_flags(algorithm_flags, config)
        glacier_fraction = getattr(observation, 'glacier_fraction', None)

        return {
            'longitude': getattr(observation, 'longitude', None),
            'latitude': getattr(observation, 'latitude', None),
            'ndsi_snow_cover': getattr(observation, 'ndsi_snow_cover', None),
            'snow_albedo_raw': getattr(observation, 'snow_albedo_raw', None),
            'glacier_fraction_pct': None if _is_missing(glacier_fraction) else round(float(glacier_fraction) * 100, 1),
            'basic_qa': None if _is_missing(basic_qa) else int(basic_qa),
            'basic_qa_text': basic_qa_text(None if _is_missing(basic_qa) else basic_qa),
            'algorithm_flags': None if _is_missing(algorithm_flags) else int(algorithm_flags),
            'algorithm_flags_binary': None if _is_missing(algorithm_flags) else format_binary(algorithm_flags),
            'flags': flags,
            'recommendation': recommend(flag_states),
            'basic_level': config.basic_level,
            'passes_basic_qa': passes_basic,
            'passes_algorithm_flags': passes_flags,
            'passes_qa': passes_basic and passes_flags,
        }

    def format_report(self, report: Dict[str, Any]) -> str:
        """Render an inspection report as console text."""
        lines = []
        if report['longitude'] is not None and report['latitude'] is not None:
            lines.append(f"=== QA INSPECTOR - Position: {report['longitude']:.4f}, {report['latitude']:.4f} ===")
        else:
            lines.append("=== QA INSPECTOR ===")

        ndsi = report['ndsi_snow_cover']
        albedo = report['snow_albedo_raw']
        lines.append(f"NDSI Snow Cover: {ndsi if not _is_missing(ndsi) else 'No data'} (index 0-100)")
        lines.append(f"Snow Albedo: {albedo if not _is_missing(albedo) else 'No data'} (raw values 0-100)")
        lines.append(f"Basic QA: {report['basic_qa']} -> {report['basic_qa_text']}")

        if report['algorithm_flags'] is None:
            lines.append("Algorithm Flags: No data")
        else:
            lines.append(f"Algorithm Flags: {report['algorithm_flags']} (binary: {report['algorithm_flags_binary']})")
            for flag in report['flags']:
                state = 'SET' if flag['set'] else 'clear'
                lines.append(f"  Bit {flag['bit']} - {flag['description']}: {state}"
                             + (f" [{flag['severity']}]" if flag['set'] else ''))
            lines.append(f"Recommendation: {report['recommendation']}")

        if report['glacier_fraction_pct'] is not None:
            lines.append(f"Glacier fraction: {report['glacier_fraction_pct']:.1f}%")

        level_text = BASIC_QA_LEVEL_TEXT.get(report['basic_level'], report['basic_level'])
        lines.append(f"Passes QA filters: {'YES' if report['passes_qa'] else 'NO'}")
        lines.append(f"  Basic QA ({level_text}): {'PASS' if report['passes_basic_qa'] else 'FAIL'}")
        lines.append(f"  Algorithm Flags: {'PASS' if report['passes_algorithm_flags'] else 'FAIL'}")
        return '\n'.join(lines)
