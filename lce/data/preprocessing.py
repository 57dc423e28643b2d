"""
Row normalization and tf-idf weighting of the view matrices.
"""
import logging
import numpy as np
import scipy.sparse as sp
from lce.metrics import EPSILON
from lce.errors import DimensionMismatchError

logger = logging.getLogger(__name__)


def normalize_rows(X):
    """
    Scale every row of X to unit L2 norm.

    Each row is divided by its norm plus EPSILON, so all-zero rows stay zero instead of producing a division by zero.
    Sparse input is returned as a CSR matrix with the same sparsity pattern, dense input as a new array.

    Parameters
    ----------
    X : np.ndarray | scipy.sparse matrix
       The matrix to normalize, rows are entities.

    Returns
    -------
    np.ndarray | scipy.sparse.csr_matrix
       The row normalized matrix.
    """
    if sp.issparse(X):
        X = sp.csr_matrix(X, dtype=np.float64)
        norms = np.sqrt(np.asarray(X.multiply(X).sum(axis=1)).ravel())
        scale = sp.diags(1.0 / (norms + EPSILON))
        return sp.csr_matrix(scale @ X)
    X = np.asarray(X, dtype=np.float64)
    norms = np.sqrt(np.sum(np.multiply(X, X), axis=1))
    return X / (norms + EPSILON).reshape(-1, 1)


def tfidf(X_train, X_test):
    """
    Apply tf-idf weighting to a train and test count matrix, using document frequencies from the train matrix only,
    followed by row normalization.

    idf = log(n_train / (document_frequency + EPSILON))

    Parameters
    ----------
    X_train : np.ndarray | scipy.sparse matrix
       The training term counts, rows are documents.
    X_test : np.ndarray | scipy.sparse matrix
       The held-out term counts with the same columns as X_train.

    Returns
    -------
    tuple
       The weighted and normalized train and test matrices.
    """
    if X_train.shape[1] != X_test.shape[1]:
        raise DimensionMismatchError(f"Train and test matrices must have the same number of columns. "
                                     f"Current train: {X_train.shape}, test: {X_test.shape}.")
    n_train = X_train.shape[0]
    if sp.issparse(X_train):
        df = np.asarray((X_train > 0).sum(axis=0)).ravel()
    else:
        df = np.sum(np.asarray(X_train) > 0, axis=0)
    idf = np.log(n_train / (df + EPSILON))
    logger.debug(f"Computed idf for {len(idf)} terms from {n_train} training rows.")

    X_train = normalize_rows(_scale_columns(X_train, idf))
    X_test = normalize_rows(_scale_columns(X_test, idf))
    return X_train, X_test


def _scale_columns(X, idf):
    if sp.issparse(X):
        return sp.csr_matrix(sp.csr_matrix(X, dtype=np.float64) @ sp.diags(idf))
    return np.asarray(X, dtype=np.float64) * idf.reshape(1, -1)
