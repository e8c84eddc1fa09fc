"""
   density.py

   Sparse GMRF and Poisson densities with numpy/scipy (no derivatives).

   Contains:
      precision
      sparse_logdet
      class GMRF
      class ScaledGMRF
      dpois

"""

#{{{ module imports
import numpy as np
from scipy import sparse
from scipy.sparse.linalg import splu
from scipy.special import gammaln
#}}}


LOG_2PI = np.log(2*np.pi)


#{{{ SPDE precision
def precision(ln_kappa, M0, M1, M2):
    """Q = kappa^4 M0 + 2 kappa^2 M1 + M2, kept sparse."""

    kappa2 = np.exp(2*ln_kappa)
    Q = (kappa2**2)*M0 + (2.0*kappa2)*M1 + M2

    return sparse.csc_matrix(Q)
#}}}


#{{{ log determinant by sparse factorization
def sparse_logdet(Q):
    """Return log|Q| for sparse SPD Q, or nan if the factorization shows Q is not positive definite.

       NOTES:
       * symmetric ordering with no pivoting, so diag(U) are the pivots of Q = L D L^T

    """

    try:
        lu = splu(sparse.csc_matrix(Q), permc_spec = "MMD_AT_PLUS_A", diag_pivot_thresh = 0.0,
                  options = dict(SymmetricMode = True, Equil = False))
    except RuntimeError:  # exactly singular
        return np.nan

    pivots = lu.U.diagonal()
    if np.any(pivots <= 0) or np.any(lu.perm_r != lu.perm_c):
        return np.nan

    return np.sum(np.log(pivots))
#}}}


#{{{ GMRF
class GMRF:
    """Zero-mean Gaussian Markov random field with sparse precision Q.

       Q is factorized once at construction and shared by every evaluation.
    """

    def __init__(self, Q):
        self.Q = sparse.csc_matrix(Q)
        self.logdetQ = sparse_logdet(self.Q)

    def nll_columns(self, X):
        """Negative log-density of every column of X (n x m) -> (m,)"""

        X = np.asarray(X, dtype = np.float64)
        if X.ndim == 1: X = X[:,None]

        quad = np.einsum("ij, ij -> j", X, self.Q.dot(X))
        n = X.shape[0]

        return 0.5*(quad - self.logdetQ + n*LOG_2PI)

    def nll(self, x):
        """Negative log-density of vector x."""
        return self.nll_columns(np.ravel(x))[0]

    def scale(self, sd):
        return ScaledGMRF(self, sd)


class ScaledGMRF:
    """GMRF for x = sd * u, where u ~ GMRF(Q).

       -log p(x) = -log p_u(x / sd) + n log(sd), the second term is the Jacobian of the rescaling.
    """

    def __init__(self, gmrf, sd):
        self.gmrf = gmrf
        self.sd = sd

    def nll_columns(self, X):
        X = np.asarray(X, dtype = np.float64)
        if X.ndim == 1: X = X[:,None]

        return self.gmrf.nll_columns(X / self.sd) + X.shape[0]*np.log(self.sd)

    def nll(self, x):
        return self.nll_columns(np.ravel(x))[0]
#}}}


#{{{ Poisson
def dpois(x, log_lambda):
    """Poisson log-mass of counts x given log mean."""
    return x*log_lambda - np.exp(log_lambda) - gammaln(x + 1.0)
#}}}
