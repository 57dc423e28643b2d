"""
Inference for rows that were not part of the training set.
"""
import logging
import numpy as np
import numpy.linalg as npl
import scipy.sparse as sp
from lce.errors import DimensionMismatchError

logger = logging.getLogger(__name__)


def project(Xs_test, Hs: np.ndarray):
    """
    Project new rows of a view into the shared latent space.

    Solves the least-squares problem W_test Hs = Xs_test for W_test and clips the negative entries to zero, as the
    unconstrained solution may leave the non-negative orthant.

    Parameters
    ----------
    Xs_test : np.ndarray | scipy.sparse matrix
       The new rows, m x v1.
    Hs : np.ndarray
       The learned factor of the view, k x v1.

    Returns
    -------
    np.ndarray
       The non-negative latent representation W_test, m x k.
    """
    if Xs_test.shape[1] != Hs.shape[1]:
        logger.error(f"Projected rows must have {Hs.shape[1]} columns. Current shape: {Xs_test.shape}")
        raise DimensionMismatchError(f"Projected rows must have the same number of columns as the factor. "
                                     f"Current rows: {Xs_test.shape}, factor: {Hs.shape}.")
    X = Xs_test.toarray() if sp.issparse(Xs_test) else np.asarray(Xs_test, dtype=np.float64)
    W_test_t, _, rank, _ = npl.lstsq(Hs.T, X.T, rcond=None)
    if rank < Hs.shape[0]:
        logger.warning(f"Projection factor is rank deficient, rank {rank} of {Hs.shape[0]}.")
    W_test = W_test_t.T
    W_test[W_test < 0] = 0.0
    return W_test


def rank(Xs_test, Hs: np.ndarray, Hu: np.ndarray):
    """
    Score the columns of the second view for new rows of the first view, W_test Hu.

    Parameters
    ----------
    Xs_test : np.ndarray | scipy.sparse matrix
       The new rows of the first view, m x v1.
    Hs : np.ndarray
       The learned factor of the first view, k x v1.
    Hu : np.ndarray
       The learned factor of the second view, k x v2.

    Returns
    -------
    np.ndarray
       The m x v2 ranking scores.
    """
    return project(Xs_test, Hs) @ Hu
