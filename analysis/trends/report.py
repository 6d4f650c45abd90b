import logging
from typing import Dict, Any, List

from .trend_statistics import STATUS_OK, STATUS_INSUFFICIENT

logger = logging.getLogger(__name__)

BORDER = "=" * 80


def _section_lines(results: Dict[str, Any]) -> List[str]:
    lines = []
    first, last = results['period']

    lines.append("DATASET OVERVIEW:")
    lines.append(f"• Analysis period: {first}-{last} ({results['n_years']} years)")
    lines.append(f"• Mean albedo: {results['mean']:.4f}")
    lines.append("")

    sen = results.get('sens_slope', {})
    lines.append("SEN'S SLOPE ANALYSIS (Robust Trend Detection):")
    if sen.get('status') == STATUS_OK:
        lines.append(f"• Sen's slope: {sen['slope']:.6f} albedo/year")
        lines.append(f"• Decadal change: {sen['decadal_change']:.4f} albedo/decade")
        lines.append(f"• Total change ({sen['span_years']} years): {sen['total_change']:.4f}")
    else:
        lines.append(f"• Not available ({sen.get('status')})")
    lines.append("")

    cp = results.get('change_points', {})
    lines.append("CHANGE POINT DETECTION (Structural Breaks):")
    if cp.get('change_points'):
        for point in cp['change_points']:
            lines.append(f"• {point['year']}: {point['direction']} (Δ={point['magnitude']:.3f})")
    elif cp.get('status') == STATUS_OK:
        lines.append(f"• No significant change points detected (threshold: {cp['threshold']})")
    else:
        lines.append(f"• Not available ({cp.get('status')})")
    lines.append("")

    var = results.get('variability', {})
    lines.append("VARIABILITY ANALYSIS:")
    if var.get('status') == STATUS_OK:
        lines.append(f"• Standard deviation: {var['std_dev']:.4f}")
        if var['cv_percent'] is not None:
            lines.append(f"• Coefficient of variation: {var['cv_percent']:.2f}%")
        if var['most_stable']:
            stable, variable = var['most_stable'], var['most_variable']
            lines.append(f"• Most stable period: {stable['start_year']}-{stable['end_year']} "
                         f"(CV={stable['cv_percent']:.1f}%)")
            lines.append(f"• Most variable period: {variable['start_year']}-{variable['end_year']} "
                         f"(CV={variable['cv_percent']:.1f}%)")
    else:
        lines.append(f"• Not available ({var.get('status')})")
    lines.append("")

    anomalies = results.get('anomalies', {})
    lines.append(f"ANOMALY DETECTION (|z-score| > {anomalies.get('threshold', 2.0)}):")
    if anomalies.get('anomalies'):
        for item in anomalies['anomalies']:
            lines.append(f"• {item['year']}: albedo={item['albedo']:.4f}, "
                         f"z-score={item['z_score']:.2f} ({item['type']})")
    elif anomalies.get('status') == STATUS_OK:
        lines.append("• No statistical anomalies detected")
    else:
        lines.append(f"• Not available ({anomalies.get('status')})")
    lines.append("")

    auto = results.get('autocorrelation', {})
    lines.append("TEMPORAL PERSISTENCE (Lag-1 Autocorrelation):")
    if auto.get('status') == STATUS_OK:
        lines.append(f"• Lag-1 autocorrelation: {auto['autocorrelation']:.3f}")
        lines.append(f"• Persistence level: {auto['level']}")
        lines.append(f"• Interpretation: {auto['interpretation']}")
    else:
        lines.append(f"• Not available ({auto.get('status')})")
    lines.append("")

    split = results.get('split_period', {})
    lines.append("CLIMATE SIGNAL (Early vs Late Period):")
    if split.get('status') == STATUS_OK:
        early, late = split['early_period'], split['late_period']
        lines.append(f"• Early period ({early[0]}-{early[1]}) mean: {split['early_mean']:.4f}")
        lines.append(f"• Late period ({late[0]}-{late[1]}) mean: {split['late_mean']:.4f}")
        lines.append(f"• Period difference: {split['difference']:.4f} albedo units")
        if split['relative_change_percent'] is not None:
            lines.append(f"• Relative change: {split['relative_change_percent']:.2f}%")
        lines.append(f"• Climate signal: {split['signal']}")
    else:
        lines.append(f"• Not available ({split.get('status')}, need >= {split.get('min_years', 10)} years)")

    return lines


def format_trend_report(results: Dict[str, Any]) -> str:
    """Render the output of ``TrendStatistics.analyze`` as a console report."""
    lines = [BORDER, f"TREND STATISTICS - {results.get('class_name', '')}".rstrip(), BORDER]

    if results.get('status') == STATUS_INSUFFICIENT:
        lines.append(f"Insufficient data for trend analysis (need >= {results.get('min_years', 5)} years, "
                     f"have {results.get('n_years', 0)})")
    else:
        lines.extend(_section_lines(results))

    lines.append(BORDER)
    return '\n'.join(lines)
