"""
Utility helpers for xtreat.

Functions for missing-value detection, column-kind inference, outcome
encoding, level naming, and frame fingerprinting.
"""

import hashlib
import re

import numpy as np
import pandas as pd

from xtreat.exceptions import InsufficientDataError

NA_LEVEL = "_NA_"

_NAME_SANITIZER = re.compile(r"[^0-9A-Za-z_.]")


def is_bad(x: pd.Series) -> np.ndarray:
    """Flag missing or invalid numeric entries.

    Parameters
    ----------
    x : pd.Series
        Numeric column.

    Returns
    -------
    np.ndarray
        Boolean mask, True for ``NaN``, ``None`` and infinite values.
    """
    vals = pd.to_numeric(x, errors="coerce").astype(float).values
    return ~np.isfinite(vals)


def as_numeric(x: pd.Series) -> np.ndarray:
    """Return a float array where every invalid entry is ``NaN``."""
    vals = pd.to_numeric(x, errors="coerce").astype(float).values.copy()
    vals[~np.isfinite(vals)] = np.nan
    return vals


def _level_string(v) -> str:
    # 1.0 and 1 are the same level whatever the column dtype.
    if isinstance(v, (float, np.floating)) and float(v).is_integer():
        return str(int(v))
    return str(v)


def as_levels(x: pd.Series) -> pd.Series:
    """Convert a categorical column into string levels with an explicit NA level.

    Whole-number floats map to the same level as the equal integer, so a
    numeric code column reads the same whether or not missing values made
    it float.

    Parameters
    ----------
    x : pd.Series
        Raw categorical column.

    Returns
    -------
    pd.Series
        Object series of strings, missing entries replaced by ``NA_LEVEL``.
    """
    missing = x.isna().to_numpy()
    levels = np.array(
        [_level_string(v) for v in x.to_numpy(dtype=object)], dtype=object
    )
    levels[missing] = NA_LEVEL
    return pd.Series(levels, index=x.index, name=x.name, dtype=object)


def infer_column_kind(x: pd.Series) -> str:
    """Infer whether a column is treated as numeric or categorical.

    Parameters
    ----------
    x : pd.Series
        Raw column.

    Returns
    -------
    str
        ``'numeric'`` or ``'categorical'``.
    """
    if x.dtype == "object" or x.dtype.name == "category":
        return "categorical"
    if pd.api.types.is_bool_dtype(x) or pd.api.types.is_numeric_dtype(x):
        return "numeric"
    return "categorical"


def encode_outcome(y: pd.Series, outcome_target=None) -> np.ndarray:
    """Turn the outcome column into the float vector treatments are fit against.

    Parameters
    ----------
    y : pd.Series
        Outcome column with no missing values.
    outcome_target : object, optional
        For classification, the value counted as the positive class. When
        None, the outcome is treated as numeric.

    Returns
    -------
    np.ndarray
        0/1 floats for classification, the raw values otherwise.
    """
    if outcome_target is not None:
        return (y == outcome_target).astype(float).values
    vals = pd.to_numeric(y, errors="coerce").astype(float).values
    if not np.all(np.isfinite(vals)):
        raise InsufficientDataError(
            f"outcome column '{y.name}' has non-numeric or infinite values"
        )
    return vals


def level_name(col: str, level: str) -> str:
    """Build the derived-variable name of a level indicator."""
    return f"{col}_lev_{_NAME_SANITIZER.sub('_', str(level))}"


def frame_fingerprint(df: pd.DataFrame, columns) -> str:
    """Digest of a frame's values restricted to ``columns``.

    Two frames with identical rows (values and order) over ``columns`` share a
    fingerprint; the index is ignored.
    """
    row_hashes = pd.util.hash_pandas_object(
        df[list(columns)], index=False
    )
    digest = hashlib.sha1(row_hashes.values.tobytes())
    digest.update(str(df.shape[0]).encode())
    return digest.hexdigest()
