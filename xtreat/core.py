"""
Treatment design and application for xtreat.

``TreatmentDesign.fit`` learns treatments twice: once per cross-validation
fold to build a leak-free cross-frame that is scored, and once on all design
rows to produce the production treatments that ``prepare`` applies to new
data. The two sets of fitted treatments are never mixed.
"""

import time
import warnings
from dataclasses import dataclass, replace
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from joblib import Parallel, delayed
from sklearn.base import clone
from sklearn.exceptions import NotFittedError

from xtreat.config import TreatmentConfig
from xtreat.crossfit import cross_fit_column
from xtreat.encoders import Treatment, treatment_classes
from xtreat.exceptions import (
    ConfigurationError,
    InsufficientDataError,
    LeakageWarning,
    UnseenLevelWarning,
)
from xtreat.plan import build_fold_assignment
from xtreat.scoring import scale_parameters, score_variables
from xtreat.utils import as_levels, encode_outcome, frame_fingerprint, infer_column_kind


@dataclass(frozen=True)
class DerivedVariable:
    """Descriptor of one derived variable.

    Attributes
    ----------
    name : str
        Column name in cross-frames and prepared frames.
    orig_variable : str
        Raw column it is derived from.
    code : str
        Treatment code (``'clean'``, ``'isBAD'``, ``'lev'``, ``'catP'``,
        ``'catB'``, ``'catN'`` or a custom code).
    level : str, optional
        Indicated level, for ``lev`` variables only.
    """

    name: str
    orig_variable: str
    code: str
    level: Optional[str] = None


class TreatmentDesign:
    """Design and apply numeric treatments for a raw data frame.

    Parameters
    ----------
    config : TreatmentConfig, optional
        Design options. Defaults to ``TreatmentConfig()``.
    verbose : bool
        Print progress.
    **config_overrides
        Individual :class:`TreatmentConfig` fields overriding ``config``.

    Attributes
    ----------
    variables_ : list of DerivedVariable
        Derived variables, in output order.
    treatments_ : list of (str, Treatment)
        Production treatments with the column each one reads.
    score_frame_ : pd.DataFrame
        Significance and effect size of each variable, from the cross-frame.
    column_kinds_ : dict
        ``'numeric'`` or ``'categorical'`` per treated column.
    outcome_name_ : str
        Outcome column.
    outcome_target_ : object
        Positive class for classification designs, else None.

    Examples
    --------
    >>> from xtreat import TreatmentDesign
    >>> td = TreatmentDesign(n_folds=5, verbose=False)
    >>> cross_frame = td.fit_transform(d, "y", outcome_target=True)
    >>> td.score_frame_[td.score_frame_["recommended"]]
    >>> d_test_treated = td.prepare(d_test)
    """

    def __init__(
        self,
        config: Optional[TreatmentConfig] = None,
        verbose: bool = True,
        **config_overrides: Any,
    ):
        base = config if config is not None else TreatmentConfig()
        self.config = base.with_overrides(**config_overrides) if config_overrides else base
        self.verbose = verbose

        self.variables_: Optional[List[DerivedVariable]] = None
        self.treatments_: List[Tuple[str, Treatment]] = []
        self.score_frame_: Optional[pd.DataFrame] = None
        self.column_kinds_: Dict[str, str] = {}
        self.outcome_name_: Optional[str] = None
        self.outcome_target_ = None
        self.var_list_: List[str] = []

    def _log(self, msg: str):
        if self.verbose:
            print(f"[xtreat] {msg}")

    # ------------------------------------------------------------------
    # design
    # ------------------------------------------------------------------

    def _check_inputs(
        self, frame: pd.DataFrame, outcome_name: str, var_list: Optional[Sequence[str]]
    ) -> List[str]:
        if not isinstance(frame, pd.DataFrame):
            raise ConfigurationError(
                f"design: expected a pandas DataFrame, got {type(frame).__name__}"
            )
        if outcome_name not in frame.columns:
            raise ConfigurationError(
                f"design: outcome column '{outcome_name}' not in frame"
            )
        if var_list is None:
            var_list = [c for c in frame.columns if c != outcome_name]
        elif isinstance(var_list, str):
            raise ConfigurationError("design: var_list must be a list of column names")
        var_list = list(var_list)
        unknown = [c for c in var_list if c not in frame.columns]
        if unknown:
            raise ConfigurationError(f"design: unknown column(s) in var_list: {unknown}")
        if outcome_name in var_list:
            raise ConfigurationError(
                f"design: outcome column '{outcome_name}' must not be a treated variable"
            )
        if len(set(var_list)) != len(var_list):
            raise ConfigurationError("design: var_list contains duplicate columns")
        if frame.columns.duplicated().any():
            raise ConfigurationError("design: frame has duplicate column names")
        unknown = [c for c in self.config.categorical_columns if c not in frame.columns]
        if unknown:
            raise ConfigurationError(
                f"design: unknown column(s) in categorical_columns: {unknown}"
            )
        if outcome_name in self.config.categorical_columns:
            raise ConfigurationError(
                f"design: outcome column '{outcome_name}' listed in categorical_columns"
            )
        return var_list

    def _treat_column(self, col, x, y, plan, outcome_kind):
        """Production treatments and cross-frame columns for one raw column."""
        config = self.config
        kind = (
            "categorical"
            if col in config.categorical_columns
            else infer_column_kind(x)
        )
        results = []
        for code, cls in treatment_classes(config):
            if not cls.accepts(x, kind, outcome_kind):
                continue
            prototype = cls.from_config(col, config)
            try:
                production = clone(prototype).fit(x, y)
            except InsufficientDataError as e:
                self._log(f"column '{col}': skipping {code}: {e}")
                continue
            if not production.names_:
                continue
            cross = cross_fit_column(
                prototype,
                x,
                y,
                plan,
                production,
                log=lambda msg, c=col, k=code: self._log(f"column '{c}' {k} {msg}"),
            )
            results.append((code, production, cross))
        return col, kind, results

    def fit(
        self,
        frame: pd.DataFrame,
        outcome_name: str,
        outcome_target=None,
        var_list: Optional[Sequence[str]] = None,
    ) -> "TreatmentDesign":
        """Design treatments.

        Parameters
        ----------
        frame : pd.DataFrame
            Design data.
        outcome_name : str
            Outcome column.
        outcome_target : object, optional
            Positive-class value for a binary outcome. When None the outcome
            must be numeric and ``catN`` replaces ``catB``.
        var_list : sequence of str, optional
            Columns to treat. All columns except the outcome if None.

        Returns
        -------
        TreatmentDesign
            ``self``.
        """
        self.fit_transform(frame, outcome_name, outcome_target, var_list)
        return self

    def fit_transform(
        self,
        frame: pd.DataFrame,
        outcome_name: str,
        outcome_target=None,
        var_list: Optional[Sequence[str]] = None,
    ) -> pd.DataFrame:
        """Design treatments and return the cross-frame.

        The cross-frame holds out-of-fold values of every derived variable
        for the design rows. Use it (not ``prepare`` on the design frame) to
        fit downstream models on the same rows.

        Parameters
        ----------
        frame, outcome_name, outcome_target, var_list
            As for :meth:`fit`.

        Returns
        -------
        pd.DataFrame
            Cross-frame indexed like the usable design rows, with the outcome
            column appended.
        """
        start_time = time.time()
        config = self.config.validate()
        var_list = self._check_inputs(frame, outcome_name, var_list)

        usable = frame[outcome_name].notna().values
        if outcome_target is None:
            numeric = pd.to_numeric(frame[outcome_name], errors="coerce").astype(float).values
            non_numeric = usable & np.isnan(numeric)
            if non_numeric.any():
                examples = list(frame[outcome_name][non_numeric].unique()[:3])
                raise ConfigurationError(
                    f"design: outcome '{outcome_name}' has {int(non_numeric.sum())} "
                    f"non-numeric value(s), e.g. {examples}; pass outcome_target "
                    f"for a categorical outcome"
                )
            usable = usable & np.isfinite(numeric)
        n_dropped = int((~usable).sum())
        if n_dropped:
            self._log(f"Dropping {n_dropped} row(s) with missing outcome")
        data = frame.loc[usable]
        if len(data) == 0:
            raise InsufficientDataError(
                f"design: no usable rows (outcome '{outcome_name}' is always missing)"
            )

        y = encode_outcome(data[outcome_name], outcome_target)
        if np.all(y == y[0]):
            raise InsufficientDataError(
                f"design: outcome '{outcome_name}' is constant on the design rows"
            )
        outcome_kind = "binary" if outcome_target is not None else "numeric"

        plan = build_fold_assignment(
            len(data),
            n_folds=config.n_folds,
            seed=config.random_state,
            y=y,
            strategy=config.fold_strategy,
        )
        self._log(
            f"Designing {outcome_kind} treatments for {len(var_list)} column(s), "
            f"{len(data)} rows, fold sizes {plan.fold_sizes().tolist()}"
        )

        jobs = (
            delayed(self._treat_column)(col, data[col], y, plan, outcome_kind)
            for col in var_list
        )
        if config.n_jobs == 1:
            per_column = [fn(*args, **kwargs) for fn, args, kwargs in jobs]
        else:
            per_column = Parallel(n_jobs=config.n_jobs, prefer="threads")(jobs)

        variables: List[DerivedVariable] = []
        treatments: List[Tuple[str, Treatment]] = []
        cross_parts: List[pd.DataFrame] = []
        column_kinds: Dict[str, str] = {}
        seen = set()
        for col, kind, results in per_column:
            column_kinds[col] = kind
            if not results:
                self._log(f"column '{col}': no usable treatments")
            for code, production, cross in results:
                for name, level in production.outputs():
                    if name in seen:
                        raise ConfigurationError(
                            f"design: derived variable name '{name}' produced twice; "
                            f"rename column '{col}'"
                        )
                    seen.add(name)
                    variables.append(DerivedVariable(name, col, code, level))
                treatments.append((col, production))
                cross_parts.append(cross)

        if cross_parts:
            cross_frame = pd.concat(cross_parts, axis=1)
        else:
            cross_frame = pd.DataFrame(index=data.index)
        cross_frame = cross_frame[[v.name for v in variables]]

        score_frame = score_variables(cross_frame, y, variables)
        scale = scale_parameters(cross_frame, y)

        self.variables_ = variables
        self.treatments_ = treatments
        self.score_frame_ = score_frame
        self.scale_ = scale
        self.column_kinds_ = column_kinds
        self.outcome_name_ = outcome_name
        self.outcome_target_ = outcome_target
        self.var_list_ = var_list
        self.config_ = replace(config)
        self.fingerprints_ = {
            frame_fingerprint(frame, var_list),
            frame_fingerprint(data, var_list),
        }

        self._log(
            f"{len(variables)} derived variable(s), "
            f"{int(score_frame['recommended'].sum())} recommended, "
            f"{time.time() - start_time:.1f}s"
        )

        cross_frame = cross_frame.copy()
        cross_frame[outcome_name] = data[outcome_name].values
        return cross_frame

    # ------------------------------------------------------------------
    # application
    # ------------------------------------------------------------------

    def _check_fitted(self):
        if self.variables_ is None:
            raise NotFittedError("TreatmentDesign is not fitted yet; call fit first")

    def _unseen_level_counts(self, frame: pd.DataFrame) -> Dict[str, int]:
        known: Dict[str, set] = {}
        for col, treatment in self.treatments_:
            levels = getattr(treatment, "known_levels_", None)
            if levels is not None:
                known.setdefault(col, set()).update(levels)
        counts = {}
        for col, levels in known.items():
            n_unseen = int((~as_levels(frame[col]).isin(levels)).sum())
            if n_unseen:
                counts[col] = n_unseen
        return counts

    def prepare(
        self,
        frame: pd.DataFrame,
        var_restriction: Optional[Sequence[str]] = None,
        prune_sig: Optional[float] = None,
        scale: bool = False,
        include_outcome: bool = False,
    ) -> pd.DataFrame:
        """Apply the production treatments to new data.

        Parameters
        ----------
        frame : pd.DataFrame
            Data containing every treated column.
        var_restriction : sequence of str, optional
            Derived variables to keep. All if None.
        prune_sig : float, optional
            Keep only variables whose significance is below this value.
        scale : bool
            Express each variable in outcome units, ``(v - mean) * slope``,
            using the cross-frame regression from design time.
        include_outcome : bool
            Append the outcome column (must be present in ``frame``).

        Returns
        -------
        pd.DataFrame
            All-numeric frame indexed like ``frame``. Counts of unseen
            categorical levels per column are in ``result.attrs['unseen_levels']``.
        """
        self._check_fitted()
        missing = [c for c in self.var_list_ if c not in frame.columns]
        if missing:
            raise ConfigurationError(f"prepare: frame is missing column(s) {missing}")
        if include_outcome and self.outcome_name_ not in frame.columns:
            raise ConfigurationError(
                f"prepare: outcome column '{self.outcome_name_}' not in frame"
            )

        if frame_fingerprint(frame, self.var_list_) in self.fingerprints_:
            warnings.warn(
                "prepare was called on the frame used to design the treatments; "
                "values of outcome-based variables are biased on these rows. "
                "Use the cross-frame from fit_transform for training-time work.",
                LeakageWarning,
                stacklevel=2,
            )

        names = [v.name for v in self.variables_]
        if var_restriction is not None:
            known = set(names)
            unknown = [nm for nm in var_restriction if nm not in known]
            if unknown:
                raise ConfigurationError(
                    f"prepare: unknown variable(s) in var_restriction: {unknown}"
                )
            wanted = set(var_restriction)
            names = [nm for nm in names if nm in wanted]
        if prune_sig is not None:
            sig = self.score_frame_.set_index("variable")["sig"]
            names = [nm for nm in names if sig[nm] < prune_sig]
        wanted = set(names)

        parts = []
        for col, treatment in self.treatments_:
            if wanted.intersection(treatment.names_):
                parts.append(treatment.apply(frame[col]))
        if parts:
            result = pd.concat(parts, axis=1)[names]
        else:
            result = pd.DataFrame(index=frame.index)

        if scale and names:
            params = self.scale_.loc[names]
            result = (result - params["mean"]) * params["slope"]

        if include_outcome:
            result[self.outcome_name_] = frame[self.outcome_name_].values

        unseen = self._unseen_level_counts(frame)
        if unseen:
            warnings.warn(
                f"prepare: {sum(unseen.values())} value(s) with levels not seen at "
                f"design time, per column: {unseen}",
                UnseenLevelWarning,
                stacklevel=2,
            )
        result.attrs["unseen_levels"] = unseen
        return result

    # ------------------------------------------------------------------
    # inspection
    # ------------------------------------------------------------------

    def get_feature_names(self, recommended_only: bool = False) -> List[str]:
        """Names of derived variables, optionally only the recommended ones."""
        self._check_fitted()
        if not recommended_only:
            return [v.name for v in self.variables_]
        sf = self.score_frame_
        return sf.loc[sf["recommended"], "variable"].tolist()

    def describe(self) -> pd.DataFrame:
        """Treatment summary: one row per derived variable with its column kind and scores."""
        self._check_fitted()
        out = self.score_frame_.copy()
        out.insert(2, "kind", out["orig_variable"].map(self.column_kinds_))
        return out


# ============================================================================
# CONVENIENCE FUNCTIONS
# ============================================================================


def design_treatments_c(
    frame: pd.DataFrame,
    var_list: Optional[Sequence[str]],
    outcome_name: str,
    outcome_target,
    config: Optional[TreatmentConfig] = None,
    verbose: bool = True,
    **config_overrides: Any,
) -> TreatmentDesign:
    """Design treatments for a binary outcome.

    Parameters
    ----------
    frame : pd.DataFrame
        Design data.
    var_list : sequence of str, optional
        Columns to treat; all but the outcome if None.
    outcome_name : str
        Outcome column.
    outcome_target : object
        Value of the outcome counted as the positive class.
    config : TreatmentConfig, optional
        Design options.
    verbose : bool
        Print progress.
    **config_overrides
        Individual :class:`TreatmentConfig` fields.

    Returns
    -------
    TreatmentDesign
    """
    if outcome_target is None:
        raise ConfigurationError("design_treatments_c requires an outcome_target")
    td = TreatmentDesign(config=config, verbose=verbose, **config_overrides)
    return td.fit(frame, outcome_name, outcome_target, var_list)


def design_treatments_n(
    frame: pd.DataFrame,
    var_list: Optional[Sequence[str]],
    outcome_name: str,
    config: Optional[TreatmentConfig] = None,
    verbose: bool = True,
    **config_overrides: Any,
) -> TreatmentDesign:
    """Design treatments for a numeric outcome (``catN`` instead of ``catB``)."""
    td = TreatmentDesign(config=config, verbose=verbose, **config_overrides)
    return td.fit(frame, outcome_name, None, var_list)


def mk_cross_frame_c_experiment(
    frame: pd.DataFrame,
    var_list: Optional[Sequence[str]],
    outcome_name: str,
    outcome_target,
    config: Optional[TreatmentConfig] = None,
    verbose: bool = True,
    **config_overrides: Any,
) -> Dict[str, Any]:
    """Design treatments for a binary outcome and return the realised cross-frame.

    Parameters
    ----------
    frame, var_list, outcome_name, outcome_target, config, verbose, **config_overrides
        As for :func:`design_treatments_c`.

    Returns
    -------
    dict
        Keys: ``'treatments'`` (the fitted :class:`TreatmentDesign`),
        ``'cross_frame'`` and ``'score_frame'``.
    """
    if outcome_target is None:
        raise ConfigurationError("mk_cross_frame_c_experiment requires an outcome_target")
    td = TreatmentDesign(config=config, verbose=verbose, **config_overrides)
    cross_frame = td.fit_transform(frame, outcome_name, outcome_target, var_list)
    return {
        "treatments": td,
        "cross_frame": cross_frame,
        "score_frame": td.score_frame_,
    }
