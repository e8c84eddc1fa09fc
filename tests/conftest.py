import numpy as np
import pytest

from stspde.data import make_data, make_params
from stspde.fem import spde_matrices


def grid_mesh(n = 4):
    """Unit square, n x n vertices, two triangles per cell."""

    x = np.linspace(0.0, 1.0, n)
    X = np.array([[xi, yj] for yj in x for xi in x])

    Tri = []
    for j in range(n - 1):
        for i in range(n - 1):
            a = j*n + i
            b, c, d = a + 1, a + n, a + n + 1
            Tri.append([a, b, d])
            Tri.append([a, d, c])

    return X, np.array(Tri)


@pytest.fixture
def mesh():
    return grid_mesh(4)


@pytest.fixture
def matrices(mesh):
    return spde_matrices(*mesh)


@pytest.fixture
def data(matrices):
    M0, M1, M2, a_s = matrices
    n_s, n_t = a_s.shape[0], 3

    rng = np.random.default_rng(0)
    n_i = 40
    s_i = rng.integers(0, n_s, size = n_i)
    t_i = rng.integers(0, n_t, size = n_i)
    c_i = rng.poisson(3.0, size = n_i).astype(float)
    c_i[[2, 11, 30]] = np.nan

    return make_data(n_s, n_t, a_s, c_i, s_i, t_i, M0, M1, M2)


@pytest.fixture
def params(data):
    rng = np.random.default_rng(1)
    n_s, n_t = data["n_s"], data["n_t"]

    return make_params(1.1, -0.3, 0.2, 0.5,
                       0.3*rng.standard_normal(n_s),
                       0.2*rng.standard_normal((n_s, n_t)),
                       n_s = n_s, n_t = n_t)


def single_node(c):
    """Degenerate one-node mesh, M0 = M1 = [[0]], M2 = [[1]]."""

    Z = np.zeros((1, 1))
    return make_data(1, 1, [1.0], [c], [0], [0], Z, Z, np.ones((1, 1)))
