import numpy as np
import pytest
import scipy.sparse as sp
from lce.model.projection import project, rank
from lce.model.baseline import profile_baseline
from lce.errors import DimensionMismatchError


def test_project_round_trip(rng):
    W = rng.random(size=(8, 3))
    Hs = rng.random(size=(3, 10))
    W_test = project(W @ Hs, Hs)
    assert np.allclose(W_test, W)


def test_project_clips_negative():
    Hs = np.array([[1.0, 0.0], [0.0, 1.0]])
    Xs_test = np.array([[1.0, 0.0]])
    # least squares solution is exactly the row, non-negative
    assert np.allclose(project(Xs_test, Hs), [[1.0, 0.0]])
    Hs = np.array([[1.0, 1.0], [0.0, 1.0]])
    # unconstrained solution is [1, -1]
    W_test = project(np.array([[1.0, 0.0]]), Hs)
    assert np.allclose(W_test, [[1.0, 0.0]])


def test_project_sparse(rng):
    Hs = rng.random(size=(2, 6))
    X = rng.random(size=(5, 6))
    assert np.allclose(project(sp.csr_matrix(X), Hs), project(X, Hs))


def test_project_column_mismatch():
    with pytest.raises(DimensionMismatchError):
        project(np.ones((2, 4)), np.ones((3, 5)))


def test_rank(rng):
    W = rng.random(size=(4, 2))
    Hs = rng.random(size=(2, 5))
    Hu = rng.random(size=(2, 3))
    scores = rank(W @ Hs, Hs, Hu)
    assert scores.shape == (4, 3)
    assert np.allclose(scores, W @ Hu)


def test_profile_baseline():
    Xs_train = np.array([
        [1.0, 0.0, 0.0],
        [0.0, 1.0, 0.0],
        [0.0, 0.0, 1.0],
    ])
    Xu_train = np.array([
        [1.0, 0.0],
        [0.0, 1.0],
        [0.0, 1.0],
    ])
    Xs_test = np.array([
        [2.0, 0.0, 0.0],
        [0.0, 1.0, 1.0],
    ])
    P = profile_baseline(Xs_train, Xu_train, Xs_test)
    assert P.shape == (2, 2)
    assert np.allclose(np.linalg.norm(P, axis=1), 1.0)
    assert np.argmax(P[0]) == 0
    assert np.argmax(P[1]) == 1
    P_sparse = profile_baseline(sp.csr_matrix(Xs_train), sp.csr_matrix(Xu_train), sp.csr_matrix(Xs_test))
    assert np.allclose(P_sparse, P)
