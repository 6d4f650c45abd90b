#!/usr/bin/env python3
"""
MOD10A1 Quality Flag Tables

Lookup tables for the two MOD10A1.061 quality layers used by the framework:

- NDSI_Snow_Cover_Basic_QA: coarse per-pixel quality category
  (0 best, 1 good, 2 ok, 3 poor, 211 night, 239 ocean)
- NDSI_Snow_Cover_Algorithm_Flags_QA: 8 independent screen results packed
  into one byte

The algorithm flags are described once in ``QA_BIT_TABLE`` and every mask,
export column and inspector line is generated from it, so adding or removing
a flag only touches the table.
"""

from dataclasses import dataclass, field, replace
from typing import Dict, Any, FrozenSet, Iterable, List, Mapping, Optional


@dataclass(frozen=True)
class QAFlagBit:
    """One bit of the algorithm-flags byte."""

    key: str
    bit: int
    column: str
    description: str
    severity: str
    label: str

    @property
    def mask(self) -> int:
        return 1 << self.bit


QA_BIT_TABLE: List[QAFlagBit] = [
    QAFlagBit('inland_water', 0, 'flag_inland_water',
              'Inland water', 'OPTIONAL', 'Bit 0: Inland water'),
    QAFlagBit('visible_screen_fail', 1, 'flag_visible_fail',
              'Low visible screen failure', 'CRITICAL', 'Bit 1: Low visible screen'),
    QAFlagBit('ndsi_screen_fail', 2, 'flag_ndsi_fail',
              'Low NDSI screen failure', 'CRITICAL', 'Bit 2: Low NDSI screen'),
    QAFlagBit('temp_height_fail', 3, 'flag_temp_height_fail',
              'Temperature/height screen failure', 'IMPORTANT', 'Bit 3: Temperature/height screen'),
    QAFlagBit('swir_anomaly', 4, 'flag_swir_anomaly',
              'Shortwave IR reflectance anomaly', 'OPTIONAL', 'Bit 4: Shortwave IR reflectance'),
    QAFlagBit('probably_cloudy', 5, 'flag_probably_cloudy',
              'Probably cloudy (v6.1 cloud detection)', 'CRITICAL', 'Bit 5: Probably cloudy (v6.1)'),
    QAFlagBit('probably_clear', 6, 'flag_probably_clear',
              'Probably clear (v6.1 cloud detection)', 'OPTIMAL', 'Bit 6: Probably clear (v6.1)'),
    QAFlagBit('high_solar_zenith', 7, 'flag_high_solar_zenith',
              'Solar zenith >70°', 'IMPORTANT', 'Bit 7: Solar zenith screen'),
]

QA_FLAG_KEYS: List[str] = [flag.key for flag in QA_BIT_TABLE]
QA_FLAGS_BY_KEY: Dict[str, QAFlagBit] = {flag.key: flag for flag in QA_BIT_TABLE}

# Basic QA
BASIC_QA_NIGHT = 211
BASIC_QA_OCEAN = 239
ALWAYS_REJECTED_BASIC_QA = frozenset({BASIC_QA_NIGHT, BASIC_QA_OCEAN})

BASIC_QA_CEILINGS: Dict[str, int] = {
    'best': 0,
    'good': 1,
    'ok': 2,
    'all': 3,
}

BASIC_QA_LEVEL_TEXT: Dict[str, str] = {
    'best': 'Best only (0)',
    'good': 'Good+ (0-1)',
    'ok': 'OK+ (0-2)',
    'all': 'All levels (0-3)',
}

BASIC_QA_TEXT: Dict[int, str] = {
    0: 'Best',
    1: 'Good',
    2: 'OK',
    3: 'Poor',
    BASIC_QA_NIGHT: 'Night',
    BASIC_QA_OCEAN: 'Ocean',
}


def basic_qa_text(value: Optional[Any]) -> str:
    """Human readable name of a basic QA value ('Unknown' when unmapped)."""
    if value is None:
        return 'Unknown'
    try:
        return BASIC_QA_TEXT.get(int(value), 'Unknown')
    except (TypeError, ValueError):
        return 'Unknown'


@dataclass(frozen=True)
class QAConfig:
    """
    Quality filter configuration.

    Args:
        basic_level: One of 'best', 'good', 'ok', 'all'
        excluded_flags: Keys from ``QA_BIT_TABLE`` whose set bit rejects a pixel
    """

    basic_level: str = 'good'
    excluded_flags: FrozenSet[str] = field(default_factory=frozenset)

    def __post_init__(self):
        if self.basic_level not in BASIC_QA_CEILINGS:
            raise ValueError(f"Unknown basic QA level: {self.basic_level}. "
                             f"Expected one of {list(BASIC_QA_CEILINGS)}")
        unknown = set(self.excluded_flags) - set(QA_FLAG_KEYS)
        if unknown:
            raise ValueError(f"Unknown QA flag(s): {sorted(unknown)}")
        object.__setattr__(self, 'excluded_flags', frozenset(self.excluded_flags))

    @property
    def basic_ceiling(self) -> int:
        return BASIC_QA_CEILINGS[self.basic_level]

    def excludes(self, key: str) -> bool:
        return key in self.excluded_flags

    def with_basic_level(self, level: str) -> 'QAConfig':
        return replace(self, basic_level=level)

    def with_flag(self, key: str, excluded: bool) -> 'QAConfig':
        """Return a copy with one flag toggled on or off."""
        flags = set(self.excluded_flags)
        if excluded:
            flags.add(key)
        else:
            flags.discard(key)
        return replace(self, excluded_flags=frozenset(flags))

    def to_dict(self) -> Dict[str, Any]:
        return {
            'basic_level': self.basic_level,
            'exclude': {key: key in self.excluded_flags for key in QA_FLAG_KEYS},
        }

    @classmethod
    def from_flags(cls, basic_level: str = 'good', flags: Optional[Iterable[str]] = None) -> 'QAConfig':
        return cls(basic_level=basic_level, excluded_flags=frozenset(flags or ()))

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]], default: Optional['QAConfig'] = None) -> 'QAConfig':
        """
        Build a config from a YAML section such as::

            basic_level: good
            exclude:
              inland_water: true
              probably_clear: false

        Flags missing from ``exclude`` keep the value they have in ``default``.
        """
        base = default or cls()
        if not data:
            return base

        config = base.with_basic_level(data.get('basic_level', base.basic_level))
        for key, excluded in (data.get('exclude') or {}).items():
            if key not in QA_FLAGS_BY_KEY:
                raise ValueError(f"Unknown QA flag in configuration: {key}")
            config = config.with_flag(key, bool(excluded))
        return config


# Configuration used for every export (annual, daily, pixel-level)
STANDARD_QA_CONFIG = QAConfig(
    basic_level='good',
    excluded_flags=frozenset(key for key in QA_FLAG_KEYS if key != 'probably_clear'),
)

# Initial state of the interactive checkboxes
INTERACTIVE_DEFAULT_QA_CONFIG = QAConfig(
    basic_level='good',
    excluded_flags=frozenset({
        'visible_screen_fail',
        'ndsi_screen_fail',
        'temp_height_fail',
        'probably_cloudy',
        'high_solar_zenith',
    }),
)
