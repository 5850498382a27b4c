"""
xtreat
Cross-validated variable treatment for supervised learning.

Turn a raw data frame with numeric, categorical and missing values into an
all-numeric frame, scoring every derived variable on out-of-fold values so
the scores are not biased by target leakage.

Quick Start
    from xtreat import mk_cross_frame_c_experiment
    res = mk_cross_frame_c_experiment(d_train, None, "y", outcome_target=True)
    cross_frame = res["cross_frame"]        # fit models on this
    score_frame = res["score_frame"]        # per-variable significance
    d_test_treated = res["treatments"].prepare(d_test)

Class API
    from xtreat import TreatmentDesign
    td = TreatmentDesign(n_folds=5, min_fraction=0.05)
    cross_frame = td.fit_transform(d_train, "y", outcome_target=True)
    d_test_treated = td.prepare(d_test, prune_sig=0.05)

Numeric Outcome
    from xtreat import design_treatments_n
    td = design_treatments_n(d_train, ["x1", "x2"], "y")
"""

from xtreat.config import TreatmentConfig
from xtreat.core import (
    DerivedVariable,
    TreatmentDesign,
    design_treatments_c,
    design_treatments_n,
    mk_cross_frame_c_experiment,
)
from xtreat.encoders import (
    CleanTreatment,
    IsBadTreatment,
    LevelTreatment,
    LogOddsTreatment,
    MeanDeviationTreatment,
    PrevalenceTreatment,
    TREATMENT_REGISTRY,
    Treatment,
)
from xtreat.exceptions import (
    ConfigurationError,
    InsufficientDataError,
    LeakageWarning,
    UnseenLevelWarning,
    XTreatError,
)
from xtreat.plan import FoldAssignment, build_fold_assignment
from xtreat.scoring import adaptive_thresholds, score_variables

__version__ = "0.1.0"

__all__ = [
    # Main API
    "TreatmentDesign",
    "TreatmentConfig",
    "DerivedVariable",
    "design_treatments_c",
    "design_treatments_n",
    "mk_cross_frame_c_experiment",
    # Building blocks
    "FoldAssignment",
    "build_fold_assignment",
    "score_variables",
    "adaptive_thresholds",
    # Treatments
    "Treatment",
    "TREATMENT_REGISTRY",
    "CleanTreatment",
    "IsBadTreatment",
    "LevelTreatment",
    "PrevalenceTreatment",
    "LogOddsTreatment",
    "MeanDeviationTreatment",
    # Errors and warnings
    "XTreatError",
    "ConfigurationError",
    "InsufficientDataError",
    "LeakageWarning",
    "UnseenLevelWarning",
]
