"""
   derived.py

   Interpretable quantities derived from the SPDE parameters, and their delta-method standard errors.

   The SPDE/Matern correspondence is used with smoothness nu = 1 on a 2D domain (alpha = nu + d/2 = 2):
      Range = sqrt(8 nu) / kappa
      sigma = 1 / sqrt(4 pi tau^2 kappa^2)

"""

#{{{ module imports
import numpy as np

import jax
import jax.numpy as jnp
from jax import config
config.update('jax_enable_x64', True)

from stspde.data import FIXED_EFFECTS
#}}}


MATERN_NU = 1.0
SPATIAL_DIM = 2
RANGE_CONSTANT = np.sqrt(8.0 * MATERN_NU)  # correlation ~0.13 at this distance
FOUR_PI = 4.0 * np.pi

DERIVED = ("Range", "SigmaO", "SigmaE")


def spatial_range(ln_kappa):
    """Distance at which spatial correlation has decayed to about 0.13."""
    return RANGE_CONSTANT / jnp.exp(ln_kappa)


def marginal_sd(ln_tau, ln_kappa):
    """Marginal standard deviation of a field with precision scale exp(ln_tau)."""
    return 1.0 / jnp.sqrt(FOUR_PI * jnp.exp(2.0*ln_tau) * jnp.exp(2.0*ln_kappa))


def derived_quantities(params):
    """Return dict of Range, SigmaO and SigmaE."""

    return {
        "Range": spatial_range(params["ln_kappa"]),
        "SigmaO": marginal_sd(params["ln_tau_O"], params["ln_kappa"]),
        "SigmaE": marginal_sd(params["ln_tau_E"], params["ln_kappa"]),
    }


#{{{ jacobian of derived quantities
def _derived_vector(theta):
    params = dict(zip(FIXED_EFFECTS, theta))
    dq = derived_quantities(params)
    return jnp.stack([dq[k] for k in DERIVED])


def adreport(params):
    """Values of the derived quantities and their Jacobian wrt the fixed effects.

       Returns:
       values -- array (3,) ordered as DERIVED
       J -- array (3, 4), columns ordered as FIXED_EFFECTS

    """

    theta = jnp.array([params[k] for k in FIXED_EFFECTS], dtype = jnp.float64)
    values = _derived_vector(theta)
    J = jax.jacfwd(_derived_vector)(theta)

    return np.asarray(values), np.asarray(J)
#}}}


def sdreport(params, cov):
    """Delta-method standard errors of the derived quantities.

       Arguments:
       params -- parameter dict, fixed effects at their estimates
       cov -- (4, 4) covariance of the fixed effects, ordered as FIXED_EFFECTS (e.g. inverse Hessian from the optimizer)

       Returns dict name -> (estimate, standard error).

    """

    cov = np.asarray(cov, dtype = np.float64)
    if cov.shape != (len(FIXED_EFFECTS), len(FIXED_EFFECTS)):
        raise ValueError("cov must be {0:d} x {0:d}, ordered as {1}".format(len(FIXED_EFFECTS), FIXED_EFFECTS))

    values, J = adreport(params)
    var = np.einsum("ij, jk, ik -> i", J, cov, J)

    return { name: (values[i], np.sqrt(var[i])) for i, name in enumerate(DERIVED) }
