"""
NYC Property Sales -- Price vs Size by Borough
===============================================

Linear model of log sale price on log gross square footage, then:
  1. diagnostics of the pooled fit,
  2. one model per borough (nested) vs the pooled interaction model,
  3. bootstrap intervals for the size elasticity,
  4. cross-validated comparison of linear, interaction and GAM specs.

Reads a rolling-sales style CSV when given (--csv path or URL) with
columns borough, gross_sqft, land_sqft, year_built, sale_price; falls back
to simulated data otherwise.
"""

import argparse
import os
import sys
from pathlib import Path

import numpy as np

# Add project root to path so appliedstats package is importable
THIS_DIR = Path(__file__).resolve().parent
PROJECT_ROOT = THIS_DIR.parents[1]
sys.path.insert(0, str(PROJECT_ROOT))

from appliedstats import fit_lm, fit_gam, tidy, glance
from appliedstats import diagnostics as m_diag
from appliedstats import nested as m_nest
from appliedstats import bootstrap as m_boot
from appliedstats import crossval as m_cv
from appliedstats import datasets as m_data

REQUIRED_COLUMNS = ["borough", "gross_sqft", "land_sqft", "year_built", "sale_price"]
MIN_SALE_PRICE = 10_000


def prepare_sales(df):
    """
    Clean a property-sales table for modeling.

    Drops nominal transfers (sale price below MIN_SALE_PRICE) and rows with
    zero square footage, then adds log columns.
    """
    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        raise ValueError(f"Sales data is missing columns: {missing}")
    df = df.dropna(subset=REQUIRED_COLUMNS)
    df = df[(df["sale_price"] >= MIN_SALE_PRICE)
            & (df["gross_sqft"] > 0) & (df["land_sqft"] > 0)].copy()
    df["borough"] = df["borough"].astype(str)
    df["log_price"] = np.log(df["sale_price"])
    df["log_sqft"] = np.log(df["gross_sqft"])
    df["log_land_sqft"] = np.log(df["land_sqft"])
    return df.reset_index(drop=True)


def load_sales(csv=None):
    """CSV when given, otherwise simulated sales."""
    if csv is None:
        raise RuntimeError("No sales CSV given")
    try:
        return prepare_sales(m_data.load_csv(csv))
    except (FileNotFoundError, ConnectionError, ValueError) as e:
        raise RuntimeError(f"Could not load sales data from {csv}: {e}") from e


def main():
    parser = argparse.ArgumentParser(
        description="NYC property sales -- nested models, bootstrap, CV"
    )
    parser.add_argument("--csv", default=None,
                        help="Path or URL of a sales CSV (default: simulate)")
    parser.add_argument("--n-boot", type=int, default=m_boot.DEFAULT_N_BOOT,
                        help="Bootstrap replications (default: %(default)s)")
    parser.add_argument("--folds", type=int, default=m_cv.DEFAULT_N_FOLDS,
                        help="Cross-validation folds (default: %(default)s)")
    parser.add_argument("--seed", type=int, default=42)
    parser.add_argument("--outdir", default=None,
                        help="Write figures here (default: no figures)")
    args = parser.parse_args()

    print("=" * 60)
    print("NYC Property Sales -- Price vs Size by Borough")
    print("=" * 60)

    try:
        df = load_sales(args.csv)
    except RuntimeError as e:
        if args.csv is not None:
            print(f"\n[Data] {e}")
        print("\n[Data] Using simulated data")
        df = m_data.simulate_housing(seed=args.seed)
    print(f"[Data] N={len(df)}  boroughs={df['borough'].nunique()}")

    # --- 1) Pooled fit ---
    pooled = fit_lm(df, "log_price", ["log_sqft", "borough"])
    print("\n[OLS pooled] log_price ~ log_sqft + borough")
    print(tidy(pooled).round(4).to_string(index=False))
    g = glance(pooled).iloc[0]
    print(f"  R^2 = {g['r_squared']:.3f}  sigma = {g['sigma']:.3f}")

    # --- 2) Diagnostics ---
    diag = m_diag.diagnose(pooled)
    print(f"\n[Diagnostics] Breusch-Pagan p = {diag['breusch_pagan']['p_value']:.4f}")
    print(f"  Normality ({diag['normality']['test']}) p = "
          f"{diag['normality']['p_value']:.4f}")
    print(f"  Influential rows (Cook's D > 4/n): {len(diag['influential'])}")
    print(f"  Max VIF: {diag['vif']['vif'].max():.2f}")

    # --- 3) Nested: one model per borough ---
    by_borough = m_nest.fit_nested(df, "borough", outcome="log_price",
                                   predictors=["log_sqft"])
    coefs = m_nest.nested_tidy(by_borough)
    slopes = coefs[coefs["term"] == "log_sqft"]
    print("\n[Nested] Size elasticity by borough:")
    for _, row in slopes.iterrows():
        print(f"  {row['borough']:<14s} {row['estimate']:.3f}  "
              f"[{row['conf_low']:.3f}, {row['conf_high']:.3f}]")
    inter = m_nest.fit_interaction_model(df, "borough", "log_price", ["log_sqft"])
    print(f"[Interaction] pooled model with borough slopes: "
          f"R^2 = {glance(inter).iloc[0]['r_squared']:.3f}")

    # --- 4) Bootstrap ---
    simple = fit_lm(df, "log_price", ["log_sqft"])
    boot = m_boot.bootstrap_models(df, fit_lm, times=args.n_boot, seed=args.seed,
                                   outcome="log_price", predictors=["log_sqft"])
    ci = m_boot.bootstrap_intervals(boot)
    row = ci[ci["term"] == "log_sqft"].iloc[0]
    j = simple["terms"].index("log_sqft")
    print(f"\n[Bootstrap] slope SE: {row['std_error']:.4f} "
          f"(analytic {simple['se'][j]:.4f}), "
          f"CI: [{row['conf_low']:.4f}, {row['conf_high']:.4f}]")

    # --- 5) Cross-validation ---
    splits = m_cv.crossv_kfold(df, k=args.folds, seed=args.seed)
    candidates = {
        "size": (fit_lm, dict(outcome="log_price", predictors=["log_sqft"])),
        "size+borough": (fit_lm, dict(outcome="log_price",
                                      predictors=["log_sqft", "borough"])),
        "size*borough": (fit_lm, dict(outcome="log_price",
                                      predictors=["log_sqft", "borough",
                                                  "borough:log_sqft"])),
        "gam": (fit_gam, dict(outcome="log_price", smooth=["year_built"],
                              linear=["log_sqft", "borough", "borough:log_sqft"])),
    }
    results, summary = m_cv.compare_models(df, candidates, splits)
    print(f"\n[CV] {args.folds}-fold RMSE:")
    for _, row in summary.iterrows():
        print(f"  {row['model']:<14s} {row['mean']:.4f}  (SE {row['std_error']:.4f})")

    if args.outdir:
        from appliedstats import plotting
        os.makedirs(args.outdir, exist_ok=True)
        plotting.savefig(plotting.plot_diagnostics(pooled),
                         os.path.join(args.outdir, "diagnostics.png"))
        plotting.savefig(plotting.plot_nested_coefs(coefs, "log_sqft", "borough"),
                         os.path.join(args.outdir, "nested_slopes.png"))
        plotting.savefig(plotting.plot_bootstrap(df, "log_sqft", "log_price",
                                                 boot, simple, "log_sqft"),
                         os.path.join(args.outdir, "bootstrap.png"))
        plotting.savefig(plotting.plot_cv(results),
                         os.path.join(args.outdir, "cv.png"))
        print(f"\n[Figures] written to {args.outdir}")


if __name__ == "__main__":
    main()
