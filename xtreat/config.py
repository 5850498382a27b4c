"""
Configuration for treatment design.

All defaults live on :class:`TreatmentConfig`; nothing is read from module
level state.
"""

from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, Optional, Sequence, Union

from xtreat.encoders import TREATMENT_REGISTRY, Treatment
from xtreat.exceptions import ConfigurationError

Imputation = Union[str, float, int, Callable]

_NAMED_IMPUTATIONS = ("mean", "median")
_FOLD_STRATEGIES = ("stratified", "simple")


@dataclass
class TreatmentConfig:
    """Options controlling how treatments are designed.

    Parameters
    ----------
    n_folds : int
        Number of cross-validation folds used to build the cross-frame.
    min_fraction : float
        Minimum level frequency for a ``lev`` indicator to be produced.
    code_restriction : sequence of str, optional
        Treatment codes to produce. All known codes when None.
    missingness_imputation : str, float, callable or dict
        How ``clean`` variables fill missing values: ``'mean'``,
        ``'median'``, a constant, a callable ``f(values) -> float``, or a
        dict mapping column names to any of these (unlisted columns use
        the mean).
    custom_encoders : dict
        Extra treatments, mapping a code to a :class:`Treatment` subclass.
    fold_strategy : str or callable
        ``'stratified'``, ``'simple'``, or ``f(n_rows, n_folds, seed, y)``
        returning a fold id per row.
    random_state : int
        Seed for the fold assignment.
    catb_smoothing : float
        Pseudo-count shrinking ``catB``/``catN`` level estimates toward the
        global estimate.
    collar_prob : float
        If positive, ``clean`` values are clipped to the ``collar_prob`` and
        ``1 - collar_prob`` quantiles of the fitting data.
    categorical_columns : sequence of str
        Columns treated as categorical regardless of dtype.
    n_jobs : int
        Threads used to treat columns in parallel.
    """

    n_folds: int = 3
    min_fraction: float = 0.02
    code_restriction: Optional[Sequence[str]] = None
    missingness_imputation: Union[Imputation, Dict[str, Imputation]] = "mean"
    custom_encoders: Dict[str, type] = field(default_factory=dict)
    fold_strategy: Union[str, Callable] = "stratified"
    random_state: int = 42
    catb_smoothing: float = 1.0
    collar_prob: float = 0.0
    categorical_columns: Sequence[str] = ()
    n_jobs: int = 1

    def with_overrides(self, **overrides: Any) -> "TreatmentConfig":
        """Return a copy with some fields replaced."""
        unknown = set(overrides) - set(self.__dataclass_fields__)
        if unknown:
            raise ConfigurationError(
                f"unknown configuration option(s): {sorted(unknown)}"
            )
        return replace(self, **overrides)

    def known_codes(self):
        return list(TREATMENT_REGISTRY) + list(self.custom_encoders)

    def validate(self) -> "TreatmentConfig":
        """Check every option, raising :class:`ConfigurationError` on the first bad one."""
        if isinstance(self.n_folds, bool) or not isinstance(self.n_folds, int):
            raise ConfigurationError(f"n_folds must be an int, got {self.n_folds!r}")
        if self.n_folds < 2:
            raise ConfigurationError(f"n_folds must be >= 2, got {self.n_folds}")
        if not 0.0 <= self.min_fraction < 1.0:
            raise ConfigurationError(
                f"min_fraction must be in [0, 1), got {self.min_fraction}"
            )
        if not 0.0 <= self.collar_prob < 0.5:
            raise ConfigurationError(
                f"collar_prob must be in [0, 0.5), got {self.collar_prob}"
            )
        if self.catb_smoothing < 0:
            raise ConfigurationError(
                f"catb_smoothing must be >= 0, got {self.catb_smoothing}"
            )
        if self.n_jobs == 0:
            raise ConfigurationError("n_jobs must not be 0")

        for code, cls in self.custom_encoders.items():
            if code in TREATMENT_REGISTRY:
                raise ConfigurationError(
                    f"custom encoder '{code}' shadows a built-in treatment"
                )
            if not (isinstance(cls, type) and issubclass(cls, Treatment)):
                raise ConfigurationError(
                    f"custom encoder '{code}' must be a Treatment subclass"
                )

        if self.code_restriction is not None:
            if isinstance(self.code_restriction, str):
                raise ConfigurationError(
                    "code_restriction must be a collection of codes, not a string"
                )
            unknown = set(self.code_restriction) - set(self.known_codes())
            if unknown:
                raise ConfigurationError(
                    f"unknown treatment code(s) in code_restriction: {sorted(unknown)}"
                )

        if isinstance(self.categorical_columns, str):
            raise ConfigurationError(
                "categorical_columns must be a collection of column names, not a string"
            )

        if not callable(self.fold_strategy) and self.fold_strategy not in _FOLD_STRATEGIES:
            raise ConfigurationError(
                f"fold_strategy must be one of {_FOLD_STRATEGIES} or a callable, "
                f"got {self.fold_strategy!r}"
            )

        imputations = (
            self.missingness_imputation.values()
            if isinstance(self.missingness_imputation, dict)
            else [self.missingness_imputation]
        )
        for imp in imputations:
            _check_imputation(imp)
        return self

    def imputation_for(self, col: str) -> Imputation:
        """Imputation strategy for the ``clean`` treatment of ``col``."""
        if isinstance(self.missingness_imputation, dict):
            return self.missingness_imputation.get(col, "mean")
        return self.missingness_imputation


def _check_imputation(imp) -> None:
    if callable(imp) or imp in _NAMED_IMPUTATIONS:
        return
    if isinstance(imp, (int, float)) and not isinstance(imp, bool):
        return
    raise ConfigurationError(
        f"missingness_imputation must be 'mean', 'median', a number or a "
        f"callable, got {imp!r}"
    )
