"""
Quality Control Module

MOD10A1 Basic QA and algorithm-flag decoding, pixel accept/reject
decisions, and single-pixel inspection.
"""

from .qa_flags import (
    QAFlagBit,
    QAConfig,
    QA_BIT_TABLE,
    QA_FLAG_KEYS,
    BASIC_QA_CEILINGS,
    BASIC_QA_TEXT,
    STANDARD_QA_CONFIG,
    INTERACTIVE_DEFAULT_QA_CONFIG,
    basic_qa_text
)
from .mask_evaluator import QualityMaskEvaluator
from .pixel_inspector import PixelInspector, decode_flags

__all__ = [
    'QAFlagBit',
    'QAConfig',
    'QA_BIT_TABLE',
    'QA_FLAG_KEYS',
    'BASIC_QA_CEILINGS',
    'BASIC_QA_TEXT',
    'STANDARD_QA_CONFIG',
    'INTERACTIVE_DEFAULT_QA_CONFIG',
    'basic_qa_text',
    'QualityMaskEvaluator',
    'PixelInspector',
    'decode_flags'
]
