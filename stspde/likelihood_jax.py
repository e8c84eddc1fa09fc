"""Likelihood, JAX."""

from functools import partial

import jax
import jax.numpy as jnp
from jax import jit, config
config.update('jax_enable_x64', True)

from stspde.density_jax import precision, GMRF, dpois
from stspde.derived import derived_quantities
from stspde.data import FIXED_EFFECTS, RANDOM_EFFECTS


#{{{ log density surface
def log_density_surface(beta0, omega_s, epsilon_st):
    """log_d_st[s,t] = beta0 + omega_s[s] + epsilon_st[s,t]"""
    return beta0 + jnp.asarray(omega_s)[:,None] + jnp.asarray(epsilon_st)
#}}}


#{{{ data term
def data_nll(data, log_d_st):
    """Poisson negative loglikelihood; missing counts are stored as 0 and masked out."""

    eta = log_d_st[data["s_i"], data["t_i"]]
    lp = dpois(data["c_i"], eta)

    return -jnp.sum(jnp.where(data["observed"], lp, 0.0))
#}}}


#{{{ random effects
def random_effects_nll(Q, params):
    """Return (spatial, space-time) negative log-densities; Q is factorized once for both."""

    gmrf = GMRF(Q)

    nll_omega = gmrf.scale(1.0/jnp.exp(params["ln_tau_O"])).nll(params["omega_s"])
    nll_eps = gmrf.scale(1.0/jnp.exp(params["ln_tau_E"])).nll_columns(jnp.asarray(params["epsilon_st"]))

    return nll_omega, jnp.sum(nll_eps)
#}}}


#{{{ negative loglikelihood
def _components(data, params):

    Q = precision(params["ln_kappa"], data)
    nll_omega, nll_eps = random_effects_nll(Q, params)

    log_d_st = log_density_surface(params["beta0"], params["omega_s"], params["epsilon_st"])

    jnll_comp = jnp.stack([data_nll(data, log_d_st), nll_omega, nll_eps])

    return jnll_comp, log_d_st


def LLH(data, params):
    """Return the joint negative loglikelihood.

       Arguments:
       data -- dict from make_data, treated as constant
       params -- dict from make_params; gradients are taken wrt every entry

    """

    jnll_comp, _ = _components(data, params)

    return jnp.sum(jnll_comp)


def report(data, params):
    """Likelihood components, log density surface and derived quantities."""

    jnll_comp, log_d_st = _components(data, params)

    rep = { "jnll_comp": jnll_comp, "jnll": jnp.sum(jnll_comp), "log_d_st": log_d_st }
    rep.update(derived_quantities(params))

    return rep
#}}}


#{{{ compiled functions of params only
def objective(data):
    """Jitted params -> negative loglikelihood, with data closed over."""
    return jit(partial(LLH, data))


def value_and_grad(data):
    """Jitted params -> (negative loglikelihood, gradient dict)."""
    return jit(jax.value_and_grad(partial(LLH, data)))


def hessian(data, keys = FIXED_EFFECTS):
    """Jitted params -> Hessian wrt the scalar parameters in keys, as a (k x k) array.

       The random effects are held at their values in params, so no random-effect block is formed.
    """

    keys = tuple(keys)
    for k in keys:
        if k in RANDOM_EFFECTS:
            raise ValueError("hessian is only assembled for scalar parameters, not '{:s}'".format(k))

    def llh_theta(theta, params):
        return LLH(data, dict(params, **dict(zip(keys, theta))))

    H = jit(jax.hessian(llh_theta))

    return lambda params: H(jnp.array([params[k] for k in keys], dtype = jnp.float64), params)
#}}}
