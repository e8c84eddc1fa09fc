"""
   model.py

   Space-time SPDE model for counts:

      c_i ~ Poisson(exp(log_d_st[s_i, t_i]))
      log_d_st = beta0 + omega_s + epsilon_st
      omega_s ~ GMRF(Q) scaled by 1/tau_O, epsilon_.t ~ GMRF(Q) scaled by 1/tau_E for every t
      Q = kappa^4 M0 + 2 kappa^2 M1 + M2

   Contains:
      class SpaceTimeModel

"""

#{{{ module imports
import numpy as np

from stspde.data import make_data, make_params, FIXED_EFFECTS
from stspde import derived
#}}}


class SpaceTimeModel:
    """Negative loglikelihood of the space-time count model, for an external optimizer."""

    #{{{ init
    def __init__(self, data, JAX = True):
        """Initialize with a data dict from make_data.

           Arguments:
           data -- dict from make_data
           JAX -- if True, use the differentiable JAX backend, else the numpy/scipy backend

        """

        self.data = data

        # choose the backend explicitly
        if JAX == True:
            from stspde import likelihood_jax as backend
            self.JAX = True
            self._objective = backend.objective(data)
            self._value_and_grad = backend.value_and_grad(data)
            self._hessians = {}
        else:
            from stspde import likelihood as backend
            self.JAX = False
            self._objective = lambda params: backend.LLH(data, params)

        self._backend = backend


    @classmethod
    def from_arrays(cls, n_s, n_t, a_s, c_i, s_i, t_i, M0, M1, M2, JAX = True):
        """Validate raw arrays with make_data and construct the model."""
        return cls(make_data(n_s, n_t, a_s, c_i, s_i, t_i, M0, M1, M2), JAX = JAX)
    #}}}

    #{{{ parameters
    def params(self, beta0, ln_tau_O, ln_tau_E, ln_kappa, omega_s = None, epsilon_st = None):
        """Parameter dict with shapes checked against the data; random effects default to zero."""

        n_s, n_t = self.data["n_s"], self.data["n_t"]
        if omega_s is None: omega_s = np.zeros(n_s)
        if epsilon_st is None: epsilon_st = np.zeros((n_s, n_t))

        return make_params(beta0, ln_tau_O, ln_tau_E, ln_kappa, omega_s, epsilon_st, n_s = n_s, n_t = n_t)
    #}}}

    #{{{ negative loglikelihood
    def LLH(self, params):
        """Return the joint negative loglikelihood (nan if Q is not positive definite)."""
        return float(self._objective(params))


    def value_and_grad(self, params):
        """Return the negative loglikelihood and its gradient as a dict like params."""

        if self.JAX == False:
            raise RuntimeError("gradients need the JAX backend, construct with JAX = True")

        val, grad = self._value_and_grad(params)

        return float(val), { k: np.asarray(v) for k, v in grad.items() }


    def hessian(self, params, keys = FIXED_EFFECTS):
        """Hessian of the negative loglikelihood wrt the scalar parameters in keys, as a dense matrix."""

        if self.JAX == False:
            raise RuntimeError("Hessian needs the JAX backend, construct with JAX = True")

        keys = tuple(keys)
        if keys not in self._hessians:
            self._hessians[keys] = self._backend.hessian(self.data, keys)

        return np.asarray(self._hessians[keys](params))


    def report(self, params):
        """Likelihood components, total, log_d_st surface, and Range, SigmaO, SigmaE."""

        rep = self._backend.report(self.data, params)

        return { k: np.asarray(v) for k, v in rep.items() }
    #}}}

    #{{{ derived quantities
    def sdreport(self, params, cov):
        """Delta-method standard errors of Range, SigmaO and SigmaE.

           cov -- covariance of the fixed effects, ordered as FIXED_EFFECTS

        """

        return derived.sdreport(params, cov)
    #}}}

    #{{{ simulate counts
    def simulate(self, params, seed = None):
        """Draw Poisson counts for every observation (s_i, t_i) given the parameters and fields."""

        rng = np.random.default_rng(seed)

        log_d_st = np.asarray(self._backend.log_density_surface(params["beta0"], params["omega_s"], params["epsilon_st"]))
        lam = np.exp(log_d_st[self.data["s_i"], self.data["t_i"]])

        if not np.all(np.isfinite(lam)):
            raise ValueError("non-finite Poisson mean, check beta0 and the random effects")

        return rng.poisson(lam).astype(np.float64)
    #}}}
