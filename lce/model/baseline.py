import numpy as np
import scipy.sparse as sp
from lce.data.preprocessing import normalize_rows


def profile_baseline(Xs_train, Xu_train, Xs_test):
    """
    Rank the columns of the side view using profiles only, without any factorization.

    Every column of Xu_train (e.g. an author) gets a profile in the Xs feature space built from the normalized rows
    it is associated with. A new row is scored against every profile with the cosine similarity and the scores are
    normalized per row.

    Parameters
    ----------
    Xs_train : np.ndarray | scipy.sparse matrix
       The training rows of the primary view, n x v1.
    Xu_train : np.ndarray | scipy.sparse matrix
       The training rows of the side view, n x v2.
    Xs_test : np.ndarray | scipy.sparse matrix
       The new rows of the primary view, m x v1.

    Returns
    -------
    np.ndarray
       The m x v2 ranking scores.
    """
    P = normalize_rows(normalize_rows(Xu_train).T)
    P = P.toarray() if sp.issparse(P) else P
    # one profile per side view column, v2 x v1
    Ap = np.asarray(Xs_train.T @ P.T).T
    ranking = np.asarray(Xs_test @ normalize_rows(Ap).T)
    return normalize_rows(ranking)
