"""
Collection of metric functions which are used throughout the code base.
"""
import numpy as np
import scipy.sparse as sp
from lce.errors import DimensionMismatchError

EPSILON = np.finfo(np.float64).eps
FLOOR = 1e-10


def trace_inner(A, B):
    """
    Trace of A^T B, computed as the sum of the element-wise product so the full matrix product is never formed.

    Parameters
    ----------
    A : np.ndarray | scipy.sparse matrix
       First matrix.
    B : np.ndarray | scipy.sparse matrix
       Second matrix, same shape as A.

    Returns
    -------
    float
       The value of sum(A * B).
    """
    if sp.issparse(A):
        return float(A.multiply(B).sum())
    if sp.issparse(B):
        return float(B.multiply(A).sum())
    return float(np.sum(np.multiply(A, B)))


def ndcg(P, Y):
    """
    Normalized Discounted Cumulative Gain of a ranking matrix, averaged over rows.

    The discount of position p (1-based) is 1 for p=1 and 1/log2(p) afterwards. The ideal DCG of a row with r
    relevant items is the sum of the first max(r, 1) discounts, rows without relevant items score 0.

    Parameters
    ----------
    P : np.ndarray
       The ranking scores, one row per query and one column per item.
    Y : np.ndarray | scipy.sparse matrix
       The binary relevance matrix of the same shape as P.

    Returns
    -------
    float
       The mean NDCG in [0, 1].
    """
    P = P.toarray() if sp.issparse(P) else np.asarray(P, dtype=float)
    Y = Y.toarray() if sp.issparse(Y) else np.asarray(Y, dtype=float)
    if P.shape != Y.shape:
        raise DimensionMismatchError(f"Ranking and relevance matrices must have the same shape. "
                                     f"Current P: {P.shape}, Y: {Y.shape}.")
    n, m = P.shape
    if n == 0 or m == 0:
        return 0.0
    discount = np.ones(m)
    discount[1:] = 1.0 / np.log2(np.arange(2, m + 1))
    cumulative = np.cumsum(discount)

    idx = np.argsort(-P, axis=1, kind="stable")
    ranked = np.take_along_axis(Y, idx, axis=1)
    dcg = ranked @ discount
    num_rel = np.count_nonzero(Y, axis=1)
    idcg = cumulative[np.clip(num_rel, 1, m) - 1]
    return float(np.sum(dcg / idcg) / n)
