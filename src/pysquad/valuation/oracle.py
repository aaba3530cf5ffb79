"""Market-value model used to spot undervalued players."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Dict, List, Optional, Protocol, Sequence, Tuple

import numpy as np
from sklearn.ensemble import RandomForestRegressor
from sklearn.metrics import mean_absolute_error, mean_squared_error
from sklearn.model_selection import train_test_split

from pysquad.errors import DataIntegrityError
from pysquad.models import POSITION_ORDER, PlayerProfile


logger = logging.getLogger(__name__)

DEFAULT_N_ESTIMATORS = 200
DEFAULT_RANDOM_SEED = 123
DEFAULT_TEST_SIZE = 0.2

FEATURE_NAMES: Tuple[str, ...] = ("overall", "potential", "age", "wage") + tuple(
    f"position_group_{group.value}" for group in POSITION_ORDER
)


class ValuationOracle(Protocol):
    """Anything that predicts a market value per profile."""

    def predict(self, profiles: Sequence[PlayerProfile]) -> List[float]:
        ...


def feature_matrix(profiles: Sequence[PlayerProfile]) -> np.ndarray:
    """overall, potential, age, wage and a one-hot position group per row."""

    rows = []
    for profile in profiles:
        one_hot = [1.0 if profile.position_group == group else 0.0 for group in POSITION_ORDER]
        rows.append([profile.overall, profile.potential, float(profile.age), profile.wage, *one_hot])
    return np.asarray(rows, dtype=float).reshape(len(rows), len(FEATURE_NAMES))


class RandomForestValuationOracle:
    """Random forest regression of market value on rating, age, wage and role."""

    def __init__(
        self,
        n_estimators: int = DEFAULT_N_ESTIMATORS,
        random_state: int = DEFAULT_RANDOM_SEED,
        n_jobs: Optional[int] = None,
    ) -> None:
        self.n_estimators = n_estimators
        self.random_state = random_state
        self._model = RandomForestRegressor(
            n_estimators=n_estimators,
            random_state=random_state,
            n_jobs=n_jobs,
        )
        self._fitted = False

    @property
    def is_fitted(self) -> bool:
        return self._fitted

    def fit(self, profiles: Sequence[PlayerProfile]) -> "RandomForestValuationOracle":
        if not profiles:
            raise DataIntegrityError("Cannot train a valuation model without players")
        target = np.asarray([profile.value for profile in profiles], dtype=float)
        self._model.fit(feature_matrix(profiles), target)
        self._fitted = True
        logger.info("Trained valuation forest (%s trees) on %s players", self.n_estimators, len(profiles))
        return self

    def predict(self, profiles: Sequence[PlayerProfile]) -> List[float]:
        if not self._fitted:
            raise RuntimeError("Valuation model has not been fitted")
        if not profiles:
            return []
        return [float(value) for value in self._model.predict(feature_matrix(profiles))]

    def feature_importances(self) -> Dict[str, float]:
        """Impurity-based importances, highest first."""

        if not self._fitted:
            raise RuntimeError("Valuation model has not been fitted")
        pairs = zip(FEATURE_NAMES, self._model.feature_importances_)
        return dict(sorted(((name, float(value)) for name, value in pairs), key=lambda item: -item[1]))


@dataclass(frozen=True)
class ValuationMetrics:
    rmse: float
    mae: float
    r_squared: float
    n_train: int
    n_test: int


@dataclass(frozen=True)
class ValuationResult:
    oracle: RandomForestValuationOracle
    metrics: ValuationMetrics
    test_profiles: List[PlayerProfile]
    predictions: List[float]

    def predicted_values(self) -> Dict[str, float]:
        return {profile.player_id: value for profile, value in zip(self.test_profiles, self.predictions)}


def _squared_correlation(actual: np.ndarray, predicted: np.ndarray) -> float:
    if len(actual) < 2 or np.std(actual) == 0 or np.std(predicted) == 0:
        return float("nan")
    return float(np.corrcoef(actual, predicted)[0, 1] ** 2)


def train_valuation_model(
    profiles: Sequence[PlayerProfile],
    *,
    test_size: float = DEFAULT_TEST_SIZE,
    random_state: int = DEFAULT_RANDOM_SEED,
    n_estimators: int = DEFAULT_N_ESTIMATORS,
) -> ValuationResult:
    """Fit on a seeded 80/20 split and score the held-out players.

    The held-out players and their predictions are returned so the shortlist
    is drawn from players the model never saw.
    """

    if len(profiles) < 2:
        raise DataIntegrityError(f"Need at least 2 players to train and test, got {len(profiles)}")
    train, test = train_test_split(list(profiles), test_size=test_size, random_state=random_state)
    oracle = RandomForestValuationOracle(n_estimators=n_estimators, random_state=random_state)
    oracle.fit(train)
    predictions = oracle.predict(test)

    actual = np.asarray([profile.value for profile in test], dtype=float)
    predicted = np.asarray(predictions, dtype=float)
    metrics = ValuationMetrics(
        rmse=float(np.sqrt(mean_squared_error(actual, predicted))),
        mae=float(mean_absolute_error(actual, predicted)),
        r_squared=_squared_correlation(actual, predicted),
        n_train=len(train),
        n_test=len(test),
    )
    logger.info(
        "Valuation model – RMSE %.0f, MAE %.0f, R² %.3f on %s held-out players",
        metrics.rmse,
        metrics.mae,
        metrics.r_squared,
        metrics.n_test,
    )
    return ValuationResult(oracle=oracle, metrics=metrics, test_profiles=list(test), predictions=predictions)
