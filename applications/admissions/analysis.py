"""
Graduate Admissions -- Logistic Regression
===========================================

Logit of admission on GRE, GPA and institution rank: coefficient and
odds-ratio tables, average marginal effects, a classification table, and
cross-validated comparison of nested specifications by log loss.

Status: simulated data by default; pass --csv with columns admit, gre,
gpa, rank to use a real extract.
"""

import argparse
import sys
from pathlib import Path

# Add project root to path so appliedstats package is importable
THIS_DIR = Path(__file__).resolve().parent
PROJECT_ROOT = THIS_DIR.parents[1]
sys.path.insert(0, str(PROJECT_ROOT))

from appliedstats import fit_logit, tidy, glance
from appliedstats import logistic as m_logit
from appliedstats import bootstrap as m_boot
from appliedstats import crossval as m_cv
from appliedstats import datasets as m_data


def main():
    parser = argparse.ArgumentParser(
        description="Graduate admissions -- logistic regression"
    )
    parser.add_argument("--csv", default=None,
                        help="Path or URL of an admissions CSV (default: simulate)")
    parser.add_argument("--n-boot", type=int, default=500)
    parser.add_argument("--folds", type=int, default=m_cv.DEFAULT_N_FOLDS)
    parser.add_argument("--seed", type=int, default=42)
    args = parser.parse_args()

    print("=" * 60)
    print("Graduate Admissions -- Logistic Regression")
    print("=" * 60)

    if args.csv is None:
        print("\n[Data] Using simulated data")
        df = m_data.simulate_admissions(seed=args.seed)
    else:
        df = m_data.load_csv(args.csv)
        df["rank"] = df["rank"].astype(str)
    print(f"[Data] N={len(df)}  admitted={int(df['admit'].sum())}")

    # --- 1) Logit fit ---
    fit = fit_logit(df, "admit", ["gre", "gpa", "rank"])
    print("\n[Logit] admit ~ gre + gpa + rank")
    print(tidy(fit).round(4).to_string(index=False))
    print("\n[Odds ratios]")
    print(tidy(fit, exponentiate=True)[["term", "estimate", "conf_low", "conf_high"]]
          .round(3).to_string(index=False))
    g = glance(fit).iloc[0]
    print(f"\n  Deviance {g['deviance']:.1f} on {g['df_residual']} df "
          f"(null {g['null_deviance']:.1f}), AIC {g['aic']:.1f}")

    # --- 2) Marginal effects ---
    j = fit["terms"].index("gpa")
    print(f"\n[AME] one GPA point: {m_logit.logit_ame(fit['X'], fit['beta'], j):+.3f} "
          f"change in admission probability")

    # --- 3) Classification ---
    tab = m_logit.classification_table(fit)
    print(f"\n[Classification @0.5] accuracy {tab['accuracy']:.3f}  "
          f"sensitivity {tab['sensitivity']:.3f}  specificity {tab['specificity']:.3f}")

    # --- 4) Bootstrap the GPA coefficient ---
    boot = m_boot.bootstrap_models(df, fit_logit, times=args.n_boot, seed=args.seed,
                                   strata="admit", outcome="admit",
                                   predictors=["gre", "gpa", "rank"])
    ci = m_boot.bootstrap_intervals(boot, estimates=tidy(fit), method="basic")
    row = ci[ci["term"] == "gpa"].iloc[0]
    print(f"\n[Bootstrap] gpa SE {row['std_error']:.4f} "
          f"(analytic {fit['se'][j]:.4f}), basic CI "
          f"[{row['conf_low']:.3f}, {row['conf_high']:.3f}]")

    # --- 5) Cross-validated model choice ---
    splits = m_cv.crossv_kfold(df, k=args.folds, seed=args.seed)
    candidates = {
        "gpa": (fit_logit, dict(outcome="admit", predictors=["gpa"])),
        "gpa+gre": (fit_logit, dict(outcome="admit", predictors=["gpa", "gre"])),
        "gpa+gre+rank": (fit_logit, dict(outcome="admit",
                                         predictors=["gpa", "gre", "rank"])),
    }
    _, summary = m_cv.compare_models(df, candidates, splits, metric=m_cv.log_loss)
    print(f"\n[CV] {args.folds}-fold log loss:")
    for _, row in summary.iterrows():
        print(f"  {row['model']:<14s} {row['mean']:.4f}  (SE {row['std_error']:.4f})")


if __name__ == "__main__":
    main()
