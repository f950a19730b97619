print("""
=============================================================================
APPLIED STATISTICS WORKFLOWS (WITH VISUALIZATIONS)
=============================================================================
Audience: comfortable with a DataFrame, rusty on regression. Each section
states the question, fits the model with appliedstats, tidies the result
and draws one figure.

Sections
--------
  1.  Linear regression -- fit, tidy, glance
  2.  Diagnosing model fit
  3.  Logistic regression
  4.  Nested data -- one model per borough
  5.  Bootstrap inference
  6.  Cross-validation for model selection
  7.  Generalized additive models


Uses only: numpy, pandas, scipy, matplotlib, PIL, reportlab
=============================================================================
""")
import os
import warnings

import numpy as np
import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt

from appliedstats import fit_lm, fit_logit, fit_gam, tidy, glance, augment
from appliedstats import diagnostics as m_diag
from appliedstats import logistic as m_logit
from appliedstats import nested as m_nest
from appliedstats import bootstrap as m_boot
from appliedstats import crossval as m_cv
from appliedstats import datasets as m_data
from appliedstats import plotting as m_plot
from appliedstats.plotting import CB, CO, CG, CR

warnings.filterwarnings("ignore")
SEED = 42
save = True
make_pdf = True
OUTDIR = os.environ.get("APPLIEDSTATS_OUTDIR",
                        os.path.dirname(os.path.abspath(__file__)))
m_plot.use_style()


def savefig(fig, name):
    if not save:
        plt.close(fig)
        return None
    return m_plot.savefig(fig, os.path.join(OUTDIR, name))


housing = m_data.simulate_housing(n=2000, seed=SEED)
admissions = m_data.simulate_admissions(n=400, seed=SEED)

# =========================================================================
# Each entry: (section_text, figure_filename), interleaved in the PDF.
# =========================================================================
section_contents = []

# =============================================================================
# 1. Linear regression
# =============================================================================
section1_text = """\
Section 1: Linear Regression -- fit, tidy, glance

Question
How much more does a property sell for when it is 10% larger? With
log sale price regressed on log gross square feet, the slope is an
elasticity: a 1% larger home sells for roughly slope% more.

The model
  log_price = b0 + b1 * log_sqft + e,   e ~ N(0, sigma^2)
  b_hat = (X'X)^{-1} X'y,  Var(b_hat) = sigma_hat^2 (X'X)^{-1}

Three views of a fit
  tidy(fit)    one row per coefficient: estimate, SE, t, p, 95% CI
  glance(fit)  one row per model: R^2, sigma, F, AIC, BIC, n
  augment(fit) one row per observation: fitted value, residual, leverage
"""
print(section1_text)

fit1 = fit_lm(housing, "log_price", ["log_sqft"])
t1 = tidy(fit1)
g1 = glance(fit1).iloc[0]
print(t1.round(4).to_string(index=False))
print(f"\n  R^2 = {g1['r_squared']:.3f}   sigma = {g1['sigma']:.3f}   n = {g1['nobs']}")

section1_text += f"""
Results
{t1.round(4).to_string(index=False)}

  R^2 = {g1['r_squared']:.3f}, residual SD = {g1['sigma']:.3f}

Size alone explains only part of the variation: the boroughs have very
different price levels, which the next sections take apart.
"""

fig, ax = plt.subplots(figsize=(7, 5))
m_plot.plot_fit(housing, fit1, "log_sqft", ax=ax)
ax.set_title("log price vs log size, with 95% confidence band")
savefig(fig, "fig1_linear.png")
section_contents.append((section1_text, "fig1_linear.png"))

# =============================================================================
# 2. Diagnostics
# =============================================================================
section2_text = """\
Section 2: Diagnosing Model Fit

What to check after every linear fit
  Residuals vs fitted   -- curvature means a missing term or transform
  Normal Q-Q            -- heavy tails make t-based intervals optimistic
  Scale-location        -- a funnel means heteroskedasticity
  Residuals vs leverage -- points with large Cook's distance drive the fit

Formal companions
  Breusch-Pagan: regress e^2 on X; H0 homoskedastic errors.
  HC1 robust SEs: (n/(n-k)) (X'X)^{-1} [sum e_i^2 x_i x_i'] (X'X)^{-1}
  VIF_j = 1 / (1 - R_j^2): collinearity among predictors.
  Cook's D_i = e_i^2 / (k s^2) * h_i / (1 - h_i)^2, flagged above 4/n.
"""
print(section2_text)

fit2 = fit_lm(housing, "log_price", ["log_sqft", "borough"])
d2 = m_diag.diagnose(fit2)
print(f"  Breusch-Pagan p     : {d2['breusch_pagan']['p_value']:.4f}")
print(f"  Normality p ({d2['normality']['test']}): {d2['normality']['p_value']:.4f}")
print(f"  Influential rows    : {len(d2['influential'])}")
print(f"  Max VIF             : {d2['vif']['vif'].max():.2f}")

section2_text += f"""
Results for log_price ~ log_sqft + borough
  Breusch-Pagan p = {d2['breusch_pagan']['p_value']:.4f}
  Residual normality p ({d2['normality']['test']}) = {d2['normality']['p_value']:.4f}
  Rows with Cook's D > 4/n: {len(d2['influential'])} of {fit2['n']}
  Largest VIF: {d2['vif']['vif'].max():.2f}

The simulated errors are homoskedastic and normal, so the tests should be
quiet; the panels show what "nothing wrong" looks like.
"""
savefig(m_plot.plot_diagnostics(fit2), "fig2_diagnostics.png")
section_contents.append((section2_text, "fig2_diagnostics.png"))

# =============================================================================
# 3. Logistic regression
# =============================================================================
section3_text = """\
Section 3: Logistic Regression

Question
Which applicants are admitted? The outcome is 0/1, so we model the log
odds:  log[p / (1 - p)] = X b,  fitted by maximum likelihood (BFGS).

Reading the table
  estimate     change in log odds per unit of the predictor
  exp(estimate) odds ratio -- tidy(fit, exponentiate=True)
  z, p         Wald test from the inverse Fisher information X'WX

Average marginal effect
  AME_j = mean( b_j * p_i (1 - p_i) ): the average change in probability.
"""
print(section3_text)

fit3 = fit_logit(admissions, "admit", ["gre", "gpa", "rank"])
t3 = tidy(fit3, exponentiate=True)
g3 = glance(fit3).iloc[0]
ame = m_logit.logit_ame(fit3["X"], fit3["beta"], fit3["terms"].index("gpa"))
tab3 = m_logit.classification_table(fit3)
print(t3.round(3).to_string(index=False))
print(f"\n  AME of GPA: {ame:+.3f}   accuracy @0.5: {tab3['accuracy']:.3f}")

section3_text += f"""
Odds ratios
{t3[['term', 'estimate', 'conf_low', 'conf_high']].round(3).to_string(index=False)}

  Deviance {g3['deviance']:.1f} vs null {g3['null_deviance']:.1f}; AIC {g3['aic']:.1f}
  AME of one GPA point: {ame:+.3f}
  Accuracy at 0.5: {tab3['accuracy']:.3f}
"""

fig, axes = plt.subplots(1, 2, figsize=(12, 4.5))
ax = axes[0]
gg = np.linspace(admissions["gpa"].min(), admissions["gpa"].max(), 100)
for r, c in zip(["1", "2", "3", "4"], [CB, CO, CG, CR]):
    grid = admissions.iloc[[0] * 100].copy()
    grid["gpa"], grid["gre"], grid["rank"] = gg, admissions["gre"].mean(), r
    ax.plot(gg, m_logit.predict_logit(fit3, grid), c=c, lw=2, label=f"rank {r}")
ax.set_xlabel("GPA"); ax.set_ylabel("P(admit)"); ax.set_title("A) Predicted probability")
ax.legend(fontsize=9)
ax = axes[1]
rows = t3[t3["term"] != "(Intercept)"].reset_index(drop=True)
ax.errorbar(rows["estimate"], np.arange(len(rows)),
            xerr=[rows["estimate"] - rows["conf_low"], rows["conf_high"] - rows["estimate"]],
            fmt="o", c=CB, ecolor=CO, capsize=4)
ax.axvline(1, color=CR, ls="--", lw=1)
ax.set_yticks(np.arange(len(rows))); ax.set_yticklabels(rows["term"])
ax.set_xscale("log"); ax.set_title("B) Odds ratios (95% CI)")
fig.tight_layout()
savefig(fig, "fig3_logistic.png")
section_contents.append((section3_text, "fig3_logistic.png"))

# =============================================================================
# 4. Nested data
# =============================================================================
section4_text = """\
Section 4: Nested Data -- One Model per Borough

Instead of one pooled model with interaction terms, split the data by
borough and fit the same simple model to each piece:

  nest(data, "borough")        one row per borough, its rows in a column
  fit_nested(data, "borough")  one fitted model per borough
  nested_tidy / nested_glance  stack the per-borough tables

The point estimates equal those of the pooled model
  log_price ~ borough * log_sqft
but each borough gets its own residual variance, and the tables are
ready to sort, filter and plot.
"""
print(section4_text)

nested4 = m_nest.fit_nested(housing, "borough", outcome="log_price",
                            predictors=["log_sqft"])
coefs4 = m_nest.nested_tidy(nested4)
glance4 = m_nest.nested_glance(nested4)
slopes4 = coefs4[coefs4["term"] == "log_sqft"][["borough", "estimate", "conf_low", "conf_high"]]
print(slopes4.round(3).to_string(index=False))
inter4 = m_nest.fit_interaction_model(housing, "borough", "log_price", ["log_sqft"])

section4_text += f"""
Size elasticity by borough
{slopes4.round(3).to_string(index=False)}

R^2 by borough
{glance4[['borough', 'r_squared', 'nobs']].round(3).to_string(index=False)}

Pooled interaction model R^2 = {glance(inter4).iloc[0]['r_squared']:.3f}
"""
savefig(m_plot.plot_nested_coefs(coefs4, "log_sqft", "borough"), "fig4_nested.png")
section_contents.append((section4_text, "fig4_nested.png"))

# =============================================================================
# 5. Bootstrap
# =============================================================================
section5_text = """\
Section 5: Bootstrap Inference

The nonparametric bootstrap algorithm
  For b = 1, ..., B:
    1. Draw n rows *with replacement* from the data.
    2. Refit the model and keep its coefficient table.
  The B tables approximate the sampling distribution of each estimate.

Intervals from the replicates
  percentile : [q(alpha/2), q(1 - alpha/2)]
  normal     : theta_hat -/+ z * SE_boot
  basic      : [2 theta_hat - q(1 - alpha/2), 2 theta_hat - q(alpha/2)]

Each resample contains about 1 - 1/e = 63.2% of the distinct rows; the
rest are "out of bag".
"""
print(section5_text)

sub5 = housing[housing["borough"] == "Manhattan"].reset_index(drop=True)
fit5 = fit_lm(sub5, "log_price", ["log_sqft"])
boot5 = m_boot.bootstrap_models(sub5, fit_lm, times=1000, seed=SEED,
                                outcome="log_price", predictors=["log_sqft"])
ci5 = m_boot.bootstrap_intervals(boot5, estimates=tidy(fit5), method="percentile")
row5 = ci5[ci5["term"] == "log_sqft"].iloc[0]
j5 = fit5["terms"].index("log_sqft")
print(f"Analytic SE      : {fit5['se'][j5]:.4f}")
print(f"Bootstrap SE     : {row5['std_error']:.4f}  ({int(row5['n_boot'])} replications)")
print(f"Percentile 95% CI: [{row5['conf_low']:.4f}, {row5['conf_high']:.4f}]")
print(f"Unique-row share : {m_boot.unique_obs_fraction(len(sub5)):.3f}")

section5_text += f"""
Results (Manhattan, log_price ~ log_sqft)
  Analytic SE       : {fit5['se'][j5]:.4f}
  Bootstrap SE      : {row5['std_error']:.4f}  ({int(row5['n_boot'])} replications)
  Percentile 95% CI : [{row5['conf_low']:.4f}, {row5['conf_high']:.4f}]

With well-behaved errors the two SEs agree; the bootstrap earns its keep
when no formula exists (medians, ratios, nonlinear summaries).
"""
savefig(m_plot.plot_bootstrap(sub5, "log_sqft", "log_price", boot5, fit5, "log_sqft"),
        "fig5_bootstrap.png")
section_contents.append((section5_text, "fig5_bootstrap.png"))

# =============================================================================
# 6. Cross-validation
# =============================================================================
section6_text = """\
Section 6: Cross-Validation for Model Selection

In-sample R^2 always rises with more terms. To compare models on the
error they make on *new* data:
  1. Split the rows into k folds.
  2. For each fold, fit on the other k-1 and predict the held-out fold.
  3. Average the held-out RMSE across folds.

Candidates
  size          log_price ~ log_sqft
  size+borough  log_price ~ log_sqft + borough
  size*borough  log_price ~ log_sqft * borough
"""
print(section6_text)

splits6 = m_cv.crossv_kfold(housing, k=10, seed=SEED)
candidates6 = {
    "size": (fit_lm, dict(outcome="log_price", predictors=["log_sqft"])),
    "size+borough": (fit_lm, dict(outcome="log_price", predictors=["log_sqft", "borough"])),
    "size*borough": (fit_lm, dict(outcome="log_price",
                                  predictors=["log_sqft", "borough", "borough:log_sqft"])),
}
results6, summary6 = m_cv.compare_models(housing, candidates6, splits6)
print(summary6.round(4).to_string(index=False))

section6_text += f"""
10-fold RMSE (best first)
{summary6.round(4).to_string(index=False)}
"""
savefig(m_plot.plot_cv(results6), "fig6_crossval.png")
section_contents.append((section6_text, "fig6_crossval.png"))

# =============================================================================
# 7. GAM
# =============================================================================
section7_text = """\
Section 7: Generalized Additive Models

A straight line in year_built cannot capture prices that rise and fall
with construction era. A GAM replaces the linear term with a smooth:
  log_price = X b + s(year_built) + e

s() is a cubic B-spline with many knots; a penalty lambda * sum (second
differences of the spline coefficients)^2 keeps it smooth. lambda is
chosen by generalized cross-validation
  GCV = n * RSS / (n - edf)^2
and edf, the effective degrees of freedom, says how wiggly the fit is
(edf = 1 is a straight line).
"""
print(section7_text)

lin7 = fit_lm(housing, "log_price", ["log_sqft", "borough", "year_built"])
gam7 = fit_gam(housing, "log_price", smooth=["year_built"],
               linear=["log_sqft", "borough"])
t7 = tidy(gam7)
s7 = t7[t7["term"].str.startswith("s(")]
print(s7.round(4).to_string(index=False))
gcv_lin = glance(lin7).iloc[0]
gcv_gam = glance(gam7).iloc[0]
print(f"\n  AIC linear {gcv_lin['aic']:.1f}   AIC GAM {gcv_gam['aic']:.1f}")

section7_text += f"""
Smooth term
{s7.round(4).to_string(index=False)}

  lambda = {gam7['lam']:.3g}, total edf = {gam7['edf']:.2f}
  AIC linear year_built: {gcv_lin['aic']:.1f}
  AIC smooth year_built: {gcv_gam['aic']:.1f}
"""
fig, axes = plt.subplots(1, 2, figsize=(12, 4.5))
m_plot.plot_smooth(gam7, "year_built", data=housing, ax=axes[0])
aug7 = augment(lin7, housing)
axes[1].scatter(aug7["year_built"], aug7[".resid"], s=8, alpha=.3, c=CB, edgecolors="none")
axes[1].axhline(0, color=CR, ls="--", lw=1)
axes[1].set_xlabel("year_built"); axes[1].set_ylabel("residual")
axes[1].set_title("Linear-model residuals vs year_built")
fig.tight_layout()
savefig(fig, "fig7_gam.png")
section_contents.append((section7_text, "fig7_gam.png"))

summary = """
SUMMARY: WHICH TOOL FOR WHICH QUESTION
======================================

  Continuous outcome, roughly linear       -> fit_lm, tidy, glance
  Is the linear fit trustworthy?           -> diagnose, plot_diagnostics
  0/1 outcome                              -> fit_logit, odds ratios, AME
  Same model, separate groups              -> fit_nested + nested_tidy
  SE/CI without a formula                  -> bootstrap_models + intervals
  Which specification predicts best?       -> crossv_kfold + compare_models
  Nonlinear effect of a continuous input   -> fit_gam, smooth_curve
"""
print(summary)

if save and make_pdf:
    from appliedstats.report import build_pdf
    print("Combining into PDF with interleaved text and figures...")
    pdf_path = os.path.join(OUTDIR, "applied_statistics_primer.pdf")
    build_pdf(
        [(text, os.path.join(OUTDIR, name)) for text, name in section_contents],
        pdf_path,
        title="APPLIED STATISTICS WORKFLOWS",
        subtitle="With Visualizations",
        summary=summary,
    )
    print(f"Done! {len(section_contents)} PNGs + {pdf_path}")
else:
    print("Done!")
