import numpy as np
import pytest
import scipy.sparse as sp
from lce.data.preprocessing import normalize_rows, tfidf
from lce.errors import DimensionMismatchError


def test_normalize_rows():
    X = np.array([[3.0, 4.0], [0.0, 0.0], [1.0, 0.0]])
    Xn = normalize_rows(X)
    assert np.allclose(np.linalg.norm(Xn[[0, 2]], axis=1), 1.0)
    assert np.all(Xn[1] == 0.0)
    assert np.allclose(Xn[0], [0.6, 0.8])


def test_normalize_rows_sparse():
    X = np.array([[3.0, 4.0, 0.0], [0.0, 0.0, 0.0], [0.0, 2.0, 0.0]])
    Xn = normalize_rows(sp.csr_matrix(X))
    assert sp.issparse(Xn) and Xn.format == "csr"
    assert np.allclose(Xn.toarray(), normalize_rows(X))


def test_tfidf():
    X_train = np.array([
        [1.0, 2.0, 0.0],
        [0.0, 1.0, 1.0],
        [3.0, 1.0, 0.0],
        [0.0, 4.0, 0.0],
    ])
    X_test = np.array([[1.0, 1.0, 1.0]])
    Xw_train, Xw_test = tfidf(X_train, X_test)
    assert Xw_train.shape == X_train.shape
    assert Xw_test.shape == X_test.shape
    # the second term is in every training row, idf ~ log(1) = 0
    assert np.allclose(Xw_train[:, 1], 0.0)
    assert np.allclose(np.linalg.norm(Xw_test, axis=1), 1.0)
    idf = np.log(4 / np.array([2.0, 4.0, 1.0]))
    expected = X_test * idf
    expected = expected / np.linalg.norm(expected)
    assert np.allclose(Xw_test, expected)


def test_tfidf_sparse():
    rng = np.random.default_rng(3)
    X_train = rng.integers(0, 3, size=(10, 6)).astype(float)
    X_test = rng.integers(0, 3, size=(4, 6)).astype(float)
    dense_train, dense_test = tfidf(X_train, X_test)
    sparse_train, sparse_test = tfidf(sp.csr_matrix(X_train), sp.csr_matrix(X_test))
    assert sp.issparse(sparse_train) and sp.issparse(sparse_test)
    assert np.allclose(sparse_train.toarray(), dense_train)
    assert np.allclose(sparse_test.toarray(), dense_test)


def test_tfidf_column_mismatch():
    with pytest.raises(DimensionMismatchError):
        tfidf(np.ones((3, 4)), np.ones((2, 5)))
