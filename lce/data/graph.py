"""
Construction of the nearest neighbor adjacency graph used by the Laplacian regularization.
"""
import logging
import numpy as np
import scipy.sparse as sp
from lce.data.preprocessing import normalize_rows
from lce.errors import HyperparameterError
from lce.utils import memory_estimate

logger = logging.getLogger(__name__)


def construct_adjacency(X, k: int, binary: bool = False):
    """
    Build a symmetric k-nearest neighbor adjacency matrix using the cosine similarity between the rows of X.

    The rows of X are normalized to unit length and the full pairwise similarity matrix is computed. Every row keeps
    its k most similar rows, excluding itself. A directed neighbor edge becomes undirected by taking the element-wise
    maximum of the matrix and its transpose, so an edge exists when either endpoint selected the other and carries
    the larger of the two similarities. With binary=True, every edge has weight 1.

    The dense n x n similarity matrix and the per row sort make this O(n^2 d + n^2 log n), which is the bottleneck
    for large n.

    Parameters
    ----------
    X : np.ndarray | scipy.sparse matrix
       The data matrix, every point is a row.
    k : int
       The number of nearest neighbors of each point, 1 <= k < n.
    binary : bool
       Use 0/1 weights instead of the cosine similarity. Default: False

    Returns
    -------
    scipy.sparse.csr_matrix
       The n x n adjacency matrix, symmetric, non-negative and with a zero diagonal.
    """
    n = X.shape[0]
    k = int(k)
    if k < 1 or k >= n:
        logger.error(f"The number of neighbors must be between 1 and {n - 1}. Current k: {k}")
        raise HyperparameterError(f"The number of neighbors must satisfy 1 <= k < n ({n}). Current k: {k}")

    estimate = memory_estimate(n_samples=n)
    logger.debug(f"Pairwise similarity matrix for {n} rows, estimated memory: {estimate['estimate']}")

    Xn = normalize_rows(X)
    S = Xn @ Xn.T
    S = S.toarray() if sp.issparse(S) else np.asarray(S)

    # a point is never its own neighbor
    np.fill_diagonal(S, -np.inf)
    inds = np.argsort(-S, axis=1, kind="stable")[:, :k]
    vals = np.take_along_axis(S, inds, axis=1)
    vals[vals < 0.0] = 0.0

    rows = np.repeat(np.arange(n), k)
    A = sp.csr_matrix((vals.ravel(), (rows, inds.ravel())), shape=(n, n))
    A = A.maximum(A.T).tocsr()
    A.eliminate_zeros()

    if binary:
        A.data[:] = 1.0
    logger.debug(f"Adjacency matrix constructed with {A.nnz} non-zero entries for {n} points, k={k}.")
    return A


def degree_matrix(A):
    """
    The diagonal degree matrix of an adjacency matrix, D[i, i] = sum_j A[j, i].
    """
    degree = np.asarray(A.sum(axis=0)).ravel()
    return sp.diags(degree, format="csr")
