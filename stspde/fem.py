"""
   fem.py

   SPDE finite-element matrices on an existing triangle mesh.

   Optional input-preparation helper: the likelihood only needs M0, M1, M2 and a_s,
   which may come from any mesh tool; nothing in the likelihood imports this module.

   Contains:
      stiffness_triplets (numba)
      fem_matrices
      spde_matrices

   For piecewise-linear elements with lumped mass C and stiffness G:
      M0 = C, M1 = G, M2 = G C^-1 G
   so that Q = kappa^4 M0 + 2 kappa^2 M1 + M2 = (kappa^2 C + G) C^-1 (kappa^2 C + G).

"""

#{{{ module imports
import numpy as np
from scipy.sparse import coo_matrix, diags

import trimesh

import numba
#}}}


#{{{ stiffness triplets
@numba.jit(nopython=True)
def stiffness_triplets(faces, cot):
    """COO triplets of the stiffness matrix from per-face cotangents.

       cot[f, k] is the cotangent of the angle at faces[f, k]; it weights the opposite edge.
       Duplicates are summed when converting to csr.
    """

    F = faces.shape[0]
    rows = np.empty(12*F, dtype = np.int64)
    cols = np.empty(12*F, dtype = np.int64)
    vals = np.empty(12*F, dtype = np.float64)

    n = 0
    for f in range(F):
        for k in range(3):

            # edge opposite vertex k
            i = faces[f, (k + 1) % 3]
            j = faces[f, (k + 2) % 3]
            w = 0.5*cot[f, k]

            rows[n] = i; cols[n] = j; vals[n] = -w
            rows[n+1] = j; cols[n+1] = i; vals[n+1] = -w
            rows[n+2] = i; cols[n+2] = i; vals[n+2] = w
            rows[n+3] = j; cols[n+3] = j; vals[n+3] = w
            n += 4

    return rows, cols, vals
#}}}


#{{{ mass and stiffness
def fem_matrices(X, Tri):
    """Lumped mass C (diagonal) and stiffness G for P1 elements.

       Arguments:
       X -- vertex coordinates, (N x 2) or (N x 3)
       Tri -- faces, (F x 3) vertex indices

    """

    X = np.asarray(X, dtype = np.float64)
    Tri = np.asarray(Tri, dtype = np.int64)

    if X.ndim != 2 or X.shape[1] not in (2, 3):
        raise ValueError("X must be (N x 2) or (N x 3), got {}".format(X.shape))
    if Tri.ndim != 2 or Tri.shape[1] != 3:
        raise ValueError("Tri must be (F x 3), got {}".format(Tri.shape))
    if Tri.min() < 0 or Tri.max() >= X.shape[0]:
        raise ValueError("Tri refers to vertices outside X")

    if X.shape[1] == 2: X = np.hstack([X, np.zeros((X.shape[0], 1))])

    mesh = trimesh.Trimesh(vertices = X, faces = Tri, process = False)

    areas = mesh.area_faces
    if np.any(areas <= 0):
        raise ValueError("mesh has {:d} degenerate faces".format(int(np.sum(areas <= 0))))

    angles = mesh.face_angles # angles within each face, ordered same way as vertices are listed in face

    # mass matrix: barycentric area, one third of each adjacent face
    C = np.bincount(Tri.ravel(), weights = np.repeat(areas / 3.0, 3), minlength = X.shape[0])
    if np.any(C <= 0):
        print("[WARNING]: {:d} vertices are not used by any face".format(int(np.sum(C <= 0))))

    rows, cols, vals = stiffness_triplets(Tri, 1.0/np.tan(angles))
    G = coo_matrix((vals, (rows, cols)), shape = (X.shape[0], X.shape[0])).tocsr()

    return C, G
#}}}


def spde_matrices(X, Tri):
    """Return M0, M1, M2 (sparse) and the area vector a_s for the SPDE precision.

       NOTES:
       * a_s is the barycentric area of each vertex, i.e. the diagonal of M0
       * vertices not in any face make M2 undefined, so they are rejected

    """

    print("Calculating SPDE matrices on mesh with {:d} vertices and {:d} faces".format(len(X), len(Tri)))

    C, G = fem_matrices(X, Tri)
    if np.any(C <= 0):
        raise ValueError("every vertex must belong to at least one face")

    M0 = diags(C).tocsc()
    M1 = G.tocsc()
    M2 = (G @ diags(1.0/C) @ G).tocsc()

    return M0, M1, M2, C.copy()
