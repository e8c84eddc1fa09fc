import numpy as np
import pytest

from stspde import SpaceTimeModel, FIXED_EFFECTS


@pytest.fixture
def models(data):
    return SpaceTimeModel(data, JAX = True), SpaceTimeModel(data, JAX = False)


def test_llh_backends_agree(models, params):
    jx, ref = models
    assert jx.LLH(params) == pytest.approx(ref.LLH(params), rel = 1e-9)


def test_report_contents(models, params):
    jx, _ = models
    rep = jx.report(params)

    assert set(rep) == {"jnll_comp", "jnll", "log_d_st", "Range", "SigmaO", "SigmaE"}
    assert rep["jnll_comp"].shape == (3,)
    assert rep["jnll"] == pytest.approx(rep["jnll_comp"].sum())
    assert rep["Range"] * np.exp(params["ln_kappa"]) == pytest.approx(np.sqrt(8.0))


def test_value_and_grad(models, params):
    jx, ref = models
    val, grad = jx.value_and_grad(params)

    assert val == pytest.approx(ref.LLH(params), rel = 1e-9)
    assert set(grad) == set(params)
    assert grad["omega_s"].shape == params["omega_s"].shape

    with pytest.raises(RuntimeError):
        ref.value_and_grad(params)


def test_hessian_fixed_effects(models, params):
    jx, ref = models
    H = jx.hessian(params)

    assert H.shape == (len(FIXED_EFFECTS), len(FIXED_EFFECTS))
    np.testing.assert_allclose(H, H.T, rtol = 1e-8, atol = 1e-8)

    # d2/dbeta0^2 of the data term is the total expected count over observed points
    rep = jx.report(params)
    lam = np.exp(rep["log_d_st"][jx.data["s_i"], jx.data["t_i"]])
    assert H[0, 0] == pytest.approx(lam[jx.data["observed"]].sum(), rel = 1e-9)

    with pytest.raises(ValueError):
        jx.hessian(params, keys = ("beta0", "omega_s"))

    with pytest.raises(RuntimeError):
        ref.hessian(params)


def test_params_defaults(models):
    jx, _ = models
    p = jx.params(0.0, 0.0, 0.0, 0.0)

    assert p["omega_s"].shape == (jx.data["n_s"],)
    assert p["epsilon_st"].shape == (jx.data["n_s"], jx.data["n_t"])


def test_sdreport(models, params):
    jx, _ = models
    out = jx.sdreport(params, np.eye(len(FIXED_EFFECTS)) * 0.01)

    R, se = out["Range"]
    assert se == pytest.approx(0.1 * R)


def test_simulate(models, params):
    jx, _ = models
    c = jx.simulate(params, seed = 3)

    assert c.shape == jx.data["c_i"].shape
    assert np.all(c >= 0) and np.all(c == np.round(c))
    np.testing.assert_array_equal(c, jx.simulate(params, seed = 3))


def test_from_arrays(matrices):
    M0, M1, M2, a_s = matrices
    model = SpaceTimeModel.from_arrays(a_s.shape[0], 2, a_s, [1.0, None], [0, 3], [1, 0], M0, M1, M2, JAX = False)

    p = model.params(np.log(2.0), 0.0, 0.0, 0.0)
    rep = model.report(p)
    assert rep["jnll_comp"][0] == pytest.approx(-(np.log(2.0) - 2.0))
