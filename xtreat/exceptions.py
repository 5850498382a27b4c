"""
Errors and warnings raised by xtreat.

Fatal problems (bad options, unknown columns, an unusable outcome) are
exceptions. Advisory conditions met while preparing new data are warnings
issued through the standard :mod:`warnings` machinery.
"""


class XTreatError(Exception):
    """Base class for all xtreat errors."""


class ConfigurationError(XTreatError, ValueError):
    """Invalid option, unknown column, or unknown treatment code."""


class InsufficientDataError(XTreatError, ValueError):
    """Not enough usable data to fit a treatment or score the outcome."""


class LeakageWarning(UserWarning):
    """``prepare`` was called on the frame the treatments were designed on."""


class UnseenLevelWarning(UserWarning):
    """A categorical level not present at design time was encountered."""
