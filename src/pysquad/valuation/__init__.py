"""Player valuation models."""

from .oracle import (
    FEATURE_NAMES,
    RandomForestValuationOracle,
    ValuationMetrics,
    ValuationOracle,
    ValuationResult,
    feature_matrix,
    train_valuation_model,
)

__all__ = [
    "FEATURE_NAMES",
    "RandomForestValuationOracle",
    "ValuationMetrics",
    "ValuationOracle",
    "ValuationResult",
    "feature_matrix",
    "train_valuation_model",
]
