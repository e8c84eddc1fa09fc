import numpy as np

from stspde.density import precision, GMRF, dpois
from stspde.derived import derived_quantities


#{{{ log density surface
def log_density_surface(beta0, omega_s, epsilon_st):
    """log_d_st[s,t] = beta0 + omega_s[s] + epsilon_st[s,t]; space by row, time by column."""
    return beta0 + np.asarray(omega_s)[:,None] + np.asarray(epsilon_st)
#}}}


#{{{ data term
def data_nll(data, log_d_st):
    """Poisson negative loglikelihood of the observed counts; missing counts contribute nothing."""

    eta = log_d_st[data["s_i"], data["t_i"]]
    lp = dpois(data["c_i"], eta)

    return -np.sum(lp[data["observed"]])
#}}}


#{{{ random effects
def random_effects_nll(Q, params):
    """Return (spatial, space-time) negative log-densities of omega_s and epsilon_st under Q."""

    gmrf = GMRF(Q)

    nll_omega = gmrf.scale(1.0/np.exp(params["ln_tau_O"])).nll(params["omega_s"])

    # one density per time step, summed in order of t
    nll_eps = gmrf.scale(1.0/np.exp(params["ln_tau_E"])).nll_columns(params["epsilon_st"])
    total = 0.0
    for t in range(nll_eps.shape[0]):
        total += nll_eps[t]

    return nll_omega, total
#}}}


#{{{ negative loglikelihood
def _components(data, params):

    Q = precision(params["ln_kappa"], data["M0"], data["M1"], data["M2"])
    nll_omega, nll_eps = random_effects_nll(Q, params)

    log_d_st = log_density_surface(params["beta0"], params["omega_s"], params["epsilon_st"])

    jnll_comp = np.array([data_nll(data, log_d_st), nll_omega, nll_eps])

    return jnll_comp, log_d_st


def LLH(data, params):
    """Return the joint negative loglikelihood.

       Arguments:
       data -- dict from make_data
       params -- dict from make_params

       NOTES:
       * returns nan if Q(ln_kappa) is not positive definite

    """

    jnll_comp, _ = _components(data, params)

    return jnll_comp.sum()


def report(data, params):
    """Likelihood components, log density surface and derived quantities."""

    jnll_comp, log_d_st = _components(data, params)

    rep = { "jnll_comp": jnll_comp, "jnll": jnll_comp.sum(), "log_d_st": log_d_st }
    rep.update({ k: float(v) for k, v in derived_quantities(params).items() })

    return rep
#}}}
