"""Sparse GMRF and Poisson densities, JAX."""

import jax.numpy as jnp
from jax import config
from jax.experimental import sparse
from jax.scipy.special import gammaln
config.update('jax_enable_x64', True)


LOG_2PI = jnp.log(2*jnp.pi)


#{{{ SPDE precision
def precision(ln_kappa, data):
    """Q = kappa^4 M0 + 2 kappa^2 M1 + M2 as BCOO on the union pattern of M0, M1, M2."""

    m0, m1, m2 = data["M_values"]
    kappa2 = jnp.exp(2*ln_kappa)
    values = (kappa2**2)*m0 + (2.0*kappa2)*m1 + m2

    indices = jnp.stack([data["Q_rows"], data["Q_cols"]], axis = 1)
    n = data["n_s"]

    return sparse.BCOO((values, indices), shape = (n, n))
#}}}


#{{{ GMRF
class GMRF:
    """Zero-mean Gaussian Markov random field with sparse precision Q.

       The log determinant comes from a Cholesky factor of Q, computed once here.
       If Q is not positive definite the factor is nan, and so is every density.

       NOTES:
       * Q is materialised dense for the factor: O(n_s^2) memory and O(n_s^3) time per evaluation;
         for large meshes without derivatives use the sparse scipy path in stspde.density
    """

    def __init__(self, Q):
        self.Q = Q
        L = jnp.linalg.cholesky(Q.todense())
        self.logdetQ = 2.0*jnp.sum(jnp.log(jnp.diag(L)))

    def nll_columns(self, X):
        """Negative log-density of every column of X (n x m) -> (m,)"""

        if X.ndim == 1: X = X[:,None]

        quad = jnp.sum(X * (self.Q @ X), axis = 0)  # sparse mat-mat
        n = X.shape[0]

        return 0.5*(quad - self.logdetQ + n*LOG_2PI)

    def nll(self, x):
        return self.nll_columns(jnp.ravel(x))[0]

    def scale(self, sd):
        return ScaledGMRF(self, sd)


class ScaledGMRF:
    """GMRF for x = sd * u with u ~ GMRF(Q); adds the Jacobian n log(sd)."""

    def __init__(self, gmrf, sd):
        self.gmrf = gmrf
        self.sd = sd

    def nll_columns(self, X):
        if X.ndim == 1: X = X[:,None]
        return self.gmrf.nll_columns(X / self.sd) + X.shape[0]*jnp.log(self.sd)

    def nll(self, x):
        return self.nll_columns(jnp.ravel(x))[0]
#}}}


#{{{ Poisson
def dpois(x, log_lambda):
    """Poisson log-mass of counts x given log mean."""
    return x*log_lambda - jnp.exp(log_lambda) - gammaln(x + 1.0)
#}}}
