"""
Repeated Measures Example
=========================

Long data: each id has several rows. A new column is generated with an
AR(1) correlation between the rows of the same id, whatever their number.
"""

import numpy as np
import pandas as pd

import corgen

print("=" * 60)
print("REPEATED MEASURES (LONG DATA)")
print("=" * 60)

# 1. Unbalanced visits: 2 to 5 rows per patient
rng = np.random.default_rng(1)
n_visits = rng.integers(2, 6, size=200)
visits = pd.DataFrame(
    {
        "patient": np.repeat(np.arange(1, 201), n_visits),
        "week": np.concatenate([np.arange(k) for k in n_visits]),
    }
)
visits["p_event"] = 0.2 + 0.05 * visits["week"]

# 2. Binary outcomes with exact pairwise correlation (Emrich-Piedmonte)
events = corgen.add_cor_gen(
    visits,
    idvar="patient",
    rho=0.3,
    corstr="ar1",
    dist="binary",
    param1="p_event",
    method="ep",
    cnames="event",
    seed=2137,
)
print(events.head(10))
print("\nEvent rate by week:")
print(events.groupby("week")["event"].mean().round(3))

# 3. A fresh table: 500 ids x 4 periods of gamma costs
print("\n" + "=" * 60)
print("FRESH TABLE")
print("=" * 60)

costs = corgen.gen_cor_gen(
    500, 4, params1=[100, 120, 140, 160], params2=0.3, dist="gamma", rho=0.6, corstr="ar1", wide=True, seed=2137
)
print(costs.head())
