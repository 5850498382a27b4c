"""
Example: Binary Classification with xtreat

Designs treatments on a synthetic dataset with a noisy numeric column, a
categorical column derived from it, missing values, and a pure-noise column,
then fits a logistic regression on the cross-frame and applies the same
treatments to a fresh test frame.
"""

import numpy as np
import pandas as pd
from sklearn.linear_model import LogisticRegression
from sklearn.metrics import roc_auc_score

from xtreat import mk_cross_frame_c_experiment


def main():
    # -----------------------------------------------------------------------
    # 1. Generate synthetic data
    # -----------------------------------------------------------------------
    rng = np.random.RandomState(2017)

    def make_data(n):
        x = rng.randn(n)
        d = pd.DataFrame(
            {
                "x": x,
                "x2": rng.randn(n),
                "xc": ["level_" + str(v) for v in np.round(x + 0.3 * rng.randn(n), 1)],
            }
        )
        d["y"] = (np.sin(x) + 0.1 * rng.randn(n)) > 0
        d.loc[rng.choice(n, n // 20, replace=False), "x"] = np.nan
        d.loc[rng.choice(n, n // 20, replace=False), "xc"] = None
        return d

    d_train = make_data(500)
    d_test = make_data(100)

    # -----------------------------------------------------------------------
    # 2. Design treatments and build the cross-frame
    # -----------------------------------------------------------------------
    res = mk_cross_frame_c_experiment(
        d_train,
        ["x", "x2", "xc"],
        "y",
        outcome_target=True,
        n_folds=5,
        min_fraction=0.02,
    )
    td = res["treatments"]
    cross_frame = res["cross_frame"]

    # -----------------------------------------------------------------------
    # 3. Inspect scores
    # -----------------------------------------------------------------------
    sf = res["score_frame"]
    print(sf[["variable", "code", "rsq", "sig", "default_threshold", "recommended"]])

    good = td.get_feature_names(recommended_only=True)
    print(f"\nRecommended: {good}")

    # -----------------------------------------------------------------------
    # 4. Fit on the cross-frame, evaluate on prepared test data
    # -----------------------------------------------------------------------
    model = LogisticRegression(max_iter=1000)
    model.fit(cross_frame[good], cross_frame["y"])

    test_treated = td.prepare(d_test, var_restriction=good)
    preds = model.predict_proba(test_treated[good])[:, 1]
    print(f"Test AUC: {roc_auc_score(d_test['y'], preds):.4f}")
    print(f"Unseen levels in test: {test_treated.attrs['unseen_levels']}")


if __name__ == "__main__":
    main()
