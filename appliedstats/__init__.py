"""
appliedstats -- applied statistics workflows on pandas DataFrames.

Linear, logistic and additive models fitted from scratch with numpy /
scipy, tidy coefficient tables, fit diagnostics, one-model-per-group
fits, bootstrap inference and cross-validation.
"""

from .utils import ols_fit, add_const, design_matrix
from .linear import fit_lm, predict_lm
from .logistic import fit_logit, predict_logit
from .gam import fit_gam, predict_gam
from .tidy import tidy, glance, augment, predict
from . import diagnostics
from . import nested
from . import bootstrap
from . import crossval
from . import datasets
