"""
Example: Numeric Outcome with xtreat

Designs treatments for a numeric outcome (``catN`` instead of ``catB``) and
prepares a test frame with variables scaled to outcome units.
"""

import numpy as np
import pandas as pd

from xtreat import TreatmentDesign


def main():
    # -----------------------------------------------------------------------
    # 1. Generate synthetic data
    # -----------------------------------------------------------------------
    rng = np.random.RandomState(123)
    n = 3000

    def make_data(n):
        d = pd.DataFrame(
            {
                "region": rng.choice(["north", "south", "east", "west"], n),
                "type": rng.choice(["A", "B", "C"], n),
                "area": rng.rand(n) * 200 + 50,
                "age": rng.randint(1, 50, n).astype(float),
            }
        )
        region_effect = d["region"].map({"north": 40, "south": -20, "east": 0, "west": 10})
        d["price"] = d["area"] * 3 + region_effect + rng.randn(n) * 25
        d.loc[rng.choice(n, n // 10, replace=False), "age"] = np.nan
        return d

    d_train = make_data(n)
    d_test = make_data(500)

    # -----------------------------------------------------------------------
    # 2. Design
    # -----------------------------------------------------------------------
    td = TreatmentDesign(n_folds=5, missingness_imputation="median", collar_prob=0.01)
    cross_frame = td.fit_transform(d_train, "price")

    print(td.describe()[["variable", "kind", "code", "rsq", "sig", "recommended"]])
    print(f"\nCross-frame shape: {cross_frame.shape}")

    # -----------------------------------------------------------------------
    # 3. Prepare test data, keeping significant variables in outcome units
    # -----------------------------------------------------------------------
    test_treated = td.prepare(d_test, prune_sig=0.01, scale=True)
    print(f"Prepared test shape: {test_treated.shape}")
    print(test_treated.head())


if __name__ == "__main__":
    main()
