"""
   data.py

   Input contract for the space-time SPDE count model.

   Contains:
      make_data
      make_params

   The data dict carries observations with an explicit 'observed' mask, so that
   missing counts never need a sentinel comparison inside the likelihood.

"""

#{{{ module imports
import numpy as np
from scipy import sparse
#}}}


FIXED_EFFECTS = ("beta0", "ln_tau_O", "ln_tau_E", "ln_kappa")
RANDOM_EFFECTS = ("omega_s", "epsilon_st")


#{{{ counts with missing values
def _split_counts(c_i):
    """Return (counts, observed) from counts that may hold None, nan or masked entries."""

    if isinstance(c_i, np.ma.MaskedArray):
        observed = ~np.ma.getmaskarray(c_i)
        counts = np.asarray(c_i.filled(0.0), dtype = np.float64)
    else:
        counts = np.array([np.nan if c is None else c for c in np.ravel(np.asarray(c_i, dtype = object))], dtype = np.float64)
        observed = np.ones(counts.shape[0], dtype = bool)

    observed = observed & ~np.isnan(counts)
    counts = np.where(observed, counts, 0.0)

    if np.any(np.isinf(counts)):
        raise ValueError("counts must be finite")

    if np.any(counts < 0):
        raise ValueError("counts must be non-negative")

    if np.any(counts != np.round(counts)):
        raise ValueError("counts must be integer valued")

    return counts, observed
#}}}


#{{{ union sparsity pattern
def _union_pattern(M0, M1, M2):
    """Row/col indices covering all nonzeros of M0, M1, M2, and the values of each matrix on them."""

    S = (abs(M0) + abs(M1) + abs(M2)).tocoo()
    S.sum_duplicates()
    rows, cols = S.row.astype(np.int32), S.col.astype(np.int32)

    values = [ np.asarray(M.tocsr()[rows, cols], dtype = np.float64).ravel() for M in (M0, M1, M2) ]

    return rows, cols, values
#}}}


def make_data(n_s, n_t, a_s, c_i, s_i, t_i, M0, M1, M2):
    """Validate and collect the data for one model.

       Arguments:
       n_s -- number of mesh nodes
       n_t -- number of time steps
       a_s -- area associated with each mesh node (length n_s)
       c_i -- counts for each observation; None, nan or masked entries are missing
       s_i -- mesh node of each observation (0-based)
       t_i -- time step of each observation (0-based)
       M0, M1, M2 -- SPDE finite-element matrices (n_s x n_s)

       Returns a dict; the sparse matrices are stored as csc and also as values on their union pattern.

    """

    n_s, n_t = int(n_s), int(n_t)
    if n_s < 1 or n_t < 1:
        raise ValueError("n_s and n_t must be positive, got n_s={:d}, n_t={:d}".format(n_s, n_t))

    a_s = np.asarray(a_s, dtype = np.float64)
    if a_s.shape != (n_s,):
        raise ValueError("a_s must have length n_s={:d}, got shape {}".format(n_s, a_s.shape))

    counts, observed = _split_counts(c_i)
    s_i = np.asarray(s_i)
    t_i = np.asarray(t_i)

    n_i = counts.shape[0]
    if s_i.shape != (n_i,) or t_i.shape != (n_i,):
        raise ValueError("c_i, s_i and t_i must share the same length, got {:d}, {}, {}".format(n_i, s_i.shape, t_i.shape))

    if n_i > 0:
        if not (np.issubdtype(s_i.dtype, np.integer) and np.issubdtype(t_i.dtype, np.integer)):
            raise ValueError("s_i and t_i must be integer indices")
        if s_i.min() < 0 or s_i.max() >= n_s:
            raise ValueError("s_i out of range [0, {:d})".format(n_s))
        if t_i.min() < 0 or t_i.max() >= n_t:
            raise ValueError("t_i out of range [0, {:d})".format(n_t))

    mats = []
    for name, M in zip(("M0", "M1", "M2"), (M0, M1, M2)):
        M = sparse.csc_matrix(M, dtype = np.float64)
        if M.shape != (n_s, n_s):
            raise ValueError("{:s} must be {:d} x {:d}, got {}".format(name, n_s, n_s, M.shape))
        mats.append(M)

    rows, cols, values = _union_pattern(*mats)

    return {
        "n_s": n_s,
        "n_t": n_t,
        "a_s": a_s,
        "c_i": counts,
        "observed": observed,
        "s_i": s_i.astype(np.int32),
        "t_i": t_i.astype(np.int32),
        "M0": mats[0],
        "M1": mats[1],
        "M2": mats[2],
        "Q_rows": rows,
        "Q_cols": cols,
        "M_values": values,
    }


def make_params(beta0, ln_tau_O, ln_tau_E, ln_kappa, omega_s, epsilon_st, n_s = None, n_t = None):
    """Collect fixed and random effects into a parameter dict (a valid JAX pytree)."""

    omega_s = np.asarray(omega_s, dtype = np.float64)
    epsilon_st = np.asarray(epsilon_st, dtype = np.float64)

    if epsilon_st.ndim != 2 or omega_s.ndim != 1 or epsilon_st.shape[0] != omega_s.shape[0]:
        raise ValueError("omega_s must be (n_s,) and epsilon_st (n_s, n_t), got {} and {}".format(omega_s.shape, epsilon_st.shape))

    if n_s is not None and omega_s.shape[0] != n_s:
        raise ValueError("omega_s must have length n_s={:d}".format(n_s))

    if n_t is not None and epsilon_st.shape[1] != n_t:
        raise ValueError("epsilon_st must have n_t={:d} columns".format(n_t))

    params = dict(zip(FIXED_EFFECTS, (float(beta0), float(ln_tau_O), float(ln_tau_E), float(ln_kappa))))
    params["omega_s"] = omega_s
    params["epsilon_st"] = epsilon_st

    return params
