"""
Cross-validation plans for xtreat.

A plan assigns every design row to exactly one fold. The out-of-fold fitter
fits on the complement of each fold and applies to the fold itself.
"""

from typing import Callable, Iterator, Optional, Tuple, Union

import numpy as np
from sklearn.model_selection import KFold, StratifiedKFold

from xtreat.exceptions import ConfigurationError


class FoldAssignment:
    """Row → fold mapping.

    Parameters
    ----------
    fold_ids : np.ndarray
        Fold id in ``[0, n_folds)`` for each row.
    n_folds : int
        Number of folds.
    """

    def __init__(self, fold_ids: np.ndarray, n_folds: int):
        fold_ids = np.asarray(fold_ids)
        if fold_ids.ndim != 1 or not np.issubdtype(fold_ids.dtype, np.integer):
            raise ConfigurationError("fold ids must be a 1-d integer array")
        if len(fold_ids) and (fold_ids.min() < 0 or fold_ids.max() >= n_folds):
            raise ConfigurationError(f"fold ids must lie in [0, {n_folds})")
        self.fold_ids = fold_ids
        self.n_folds = n_folds

    def __len__(self):
        return len(self.fold_ids)

    def fold_sizes(self) -> np.ndarray:
        return np.bincount(self.fold_ids, minlength=self.n_folds)

    def splits(self) -> Iterator[Tuple[np.ndarray, np.ndarray]]:
        """Yield ``(train_idx, val_idx)`` positional indices, one pair per non-empty fold."""
        for fold in range(self.n_folds):
            in_fold = self.fold_ids == fold
            if not in_fold.any():
                continue
            yield np.flatnonzero(~in_fold), np.flatnonzero(in_fold)


def build_fold_assignment(
    n_rows: int,
    n_folds: int = 3,
    seed: int = 42,
    y: Optional[np.ndarray] = None,
    strategy: Union[str, Callable] = "stratified",
) -> FoldAssignment:
    """Partition ``n_rows`` rows into ``n_folds`` disjoint, balanced folds.

    Parameters
    ----------
    n_rows : int
        Number of rows.
    n_folds : int
        Number of folds.
    seed : int
        Shuffling seed; the same seed always yields the same assignment.
    y : np.ndarray, optional
        Outcome, used by the stratified strategy.
    strategy : str or callable
        ``'stratified'`` balances the classes of ``y`` across folds (falls
        back to ``'simple'`` when ``y`` is missing, not discrete, or some class
        has fewer than ``n_folds`` rows). ``'simple'`` uses shuffled
        K-fold. A callable ``f(n_rows, n_folds, seed, y)`` must return
        one fold id per row.

    Returns
    -------
    FoldAssignment
    """
    if n_folds < 2:
        raise ConfigurationError(f"n_folds must be >= 2, got {n_folds}")
    if n_rows < n_folds:
        raise ConfigurationError(
            f"cannot split {n_rows} rows into {n_folds} folds"
        )

    if callable(strategy):
        fold_ids = np.asarray(strategy(n_rows, n_folds, seed, y))
        if fold_ids.shape != (n_rows,):
            raise ConfigurationError(
                f"custom fold strategy returned shape {fold_ids.shape}, "
                f"expected ({n_rows},)"
            )
        return FoldAssignment(fold_ids.astype(np.int64), n_folds)

    X_dummy = np.zeros((n_rows, 1))
    if strategy == "stratified" and _can_stratify(y, n_folds):
        kf = StratifiedKFold(n_splits=n_folds, shuffle=True, random_state=seed)
        splits = kf.split(X_dummy, y)
    else:
        kf = KFold(n_splits=n_folds, shuffle=True, random_state=seed)
        splits = kf.split(X_dummy)

    fold_ids = np.empty(n_rows, dtype=np.int64)
    for fold, (_, va_idx) in enumerate(splits):
        fold_ids[va_idx] = fold
    return FoldAssignment(fold_ids, n_folds)


def _can_stratify(y, n_folds: int) -> bool:
    if y is None:
        return False
    _, counts = np.unique(np.asarray(y), return_counts=True)
    # Continuous outcomes have (nearly) one row per value.
    if len(counts) > max(2, len(y) // n_folds):
        return False
    return bool(counts.min() >= n_folds)
