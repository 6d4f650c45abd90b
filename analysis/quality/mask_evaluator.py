import numpy as np
import pandas as pd
import logging
from typing import Dict, Any, Optional

from .qa_flags import QAConfig, QA_BIT_TABLE, ALWAYS_REJECTED_BASIC_QA

logger = logging.getLogger(__name__)


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


class QualityMaskEvaluator:
    """Accept/reject decisions for MOD10A1 observations from Basic QA and algorithm flags."""

    def passes_basic_qa(self, basic_qa: Optional[int], config: QAConfig) -> bool:
        """Basic quality gate; night and ocean are always rejected, missing QA is not."""
        if _is_missing(basic_qa):
            return True
        basic_qa = int(basic_qa)
        if basic_qa in ALWAYS_REJECTED_BASIC_QA:
            return False
        return basic_qa <= config.basic_ceiling

    def passes_algorithm_flags(self, algorithm_flags: Optional[int], config: QAConfig) -> bool:
        """Algorithm-flag gate; an absent flags value triggers nothing."""
        if _is_missing(algorithm_flags):
            return True
        flags = int(algorithm_flags)
        for flag in QA_BIT_TABLE:
            if config.excludes(flag.key) and flags & flag.mask:
                return False
        return True

    def accept(self, observation: Any, config: QAConfig) -> bool:
        """
        Decide whether a single observation passes the quality filter.

        Args:
            observation: Any object exposing ``basic_qa`` and ``algorithm_flags``
                attributes (an ``Observation`` or a pandas row)
            config: Quality configuration

        Returns:
            True when both the basic QA and the algorithm-flag gates pass
        """
        basic_qa = getattr(observation, 'basic_qa', None)
        algorithm_flags = getattr(observation, 'algorithm_flags', None)
        return (self.passes_basic_qa(basic_qa, config) and
                self.passes_algorithm_flags(algorithm_flags, config))

    def basic_qa_mask(self, data: pd.DataFrame, config: QAConfig) -> pd.Series:
        if 'basic_qa' not in data.columns:
            return pd.Series(True, index=data.index)

        basic_qa = pd.to_numeric(data['basic_qa'], errors='coerce')
        missing = basic_qa.isna()
        rejected = basic_qa.isin(list(ALWAYS_REJECTED_BASIC_QA))
        within_level = basic_qa <= config.basic_ceiling
        return missing | (within_level & ~rejected)

    def algorithm_flags_mask(self, data: pd.DataFrame, config: QAConfig) -> pd.Series:
        if 'algorithm_flags' not in data.columns:
            return pd.Series(True, index=data.index)

        flags = pd.to_numeric(data['algorithm_flags'], errors='coerce').fillna(0).astype(np.int64).to_numpy()
        mask = np.ones(len(data), dtype=bool)
        for flag in QA_BIT_TABLE:
            if config.excludes(flag.key):
                mask &= (flags & flag.mask) == 0
        return pd.Series(mask, index=data.index)

    def mask_frame(self, data: pd.DataFrame, config: QAConfig) -> pd.Series:
        """Vectorised ``accept`` over an observation table."""
        return self.basic_qa_mask(data, config) & self.algorithm_flags_mask(data, config)

    def retention(self, data: pd.DataFrame, config: QAConfig) -> Dict[str, Any]:
        """Count how many on-glacier pixels survive the quality filter."""
        if 'glacier_fraction' in data.columns:
            data = data[data['glacier_fraction'] > 0]

        total = len(data)
        retained = int(self.mask_frame(data, config).sum()) if total else 0
        percentage = round(retained / total * 100) if total else None

        logger.debug(f"QA retention: {retained}/{total} pixels")
        return {
            'total_pixels': total,
            'retained_pixels': retained,
            'retention_pct': percentage,
        }
