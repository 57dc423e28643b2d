import numpy as np
import pytest
import logging
import scipy.sparse as sp
from lce.data.graph import construct_adjacency, degree_matrix
from lce.errors import HyperparameterError

logger = logging.getLogger(__name__)


class TestGraph:

    X = None

    @classmethod
    def setup_class(cls):
        logger.info("Running Graph Test Setup")
        rng = np.random.default_rng(42)
        cls.X = rng.random(size=(20, 8))

    def test_symmetric_zero_diagonal(self):
        for k in (1, 3, 7):
            for binary in (True, False):
                A = construct_adjacency(self.X, k=k, binary=binary)
                assert sp.issparse(A)
                assert A.shape == (20, 20)
                assert abs(A - A.T).sum() == 0
                assert np.all(A.diagonal() == 0)
                assert A.data.min() >= 0

    def test_binary_weights(self):
        A = construct_adjacency(self.X, k=3, binary=True)
        assert np.all(A.data == 1.0)

    def test_cosine_weights(self):
        A = construct_adjacency(self.X, k=3, binary=False)
        assert np.all(A.data <= 1.0 + 1e-12)
        Xn = self.X / np.linalg.norm(self.X, axis=1, keepdims=True)
        S = Xn @ Xn.T
        rows, cols = A.nonzero()
        assert np.allclose(np.asarray(A[rows, cols]).ravel(), S[rows, cols])

    def test_neighbor_counts(self):
        k = 3
        A = construct_adjacency(self.X, k=k, binary=True)
        row_counts = np.diff(A.indptr)
        assert np.all(row_counts >= k)
        assert A.nnz <= 2 * k * self.X.shape[0]

    def test_nearest_neighbor(self):
        X = np.array([
            [1.0, 0.0, 0.0],
            [0.9, 0.1, 0.0],
            [0.0, 1.0, 0.0],
            [0.0, 0.9, 0.1],
        ])
        A = construct_adjacency(X, k=1, binary=True).toarray()
        expected = np.array([
            [0, 1, 0, 0],
            [1, 0, 0, 0],
            [0, 0, 0, 1],
            [0, 0, 1, 0],
        ], dtype=float)
        assert np.array_equal(A, expected)

    def test_duplicate_rows(self):
        X = np.vstack([self.X[:5], self.X[:5]])
        A = construct_adjacency(X, k=2, binary=False)
        assert np.all(A.diagonal() == 0)
        assert abs(A - A.T).sum() == 0

    def test_sparse_input(self):
        A_dense = construct_adjacency(self.X, k=4, binary=False)
        A_sparse = construct_adjacency(sp.csr_matrix(self.X), k=4, binary=False)
        assert np.allclose(A_dense.toarray(), A_sparse.toarray())

    def test_invalid_k(self):
        with pytest.raises(HyperparameterError):
            construct_adjacency(self.X, k=0)
        with pytest.raises(HyperparameterError):
            construct_adjacency(self.X, k=self.X.shape[0])

    def test_degree_matrix(self):
        A = construct_adjacency(self.X, k=3, binary=True)
        D = degree_matrix(A)
        assert np.allclose(D.diagonal(), np.asarray(A.sum(axis=0)).ravel())
        assert D.nnz <= A.shape[0]
