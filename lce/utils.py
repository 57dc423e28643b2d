"""
Collection of utility functions used throughout the code base.
"""

import numpy as np
import scipy.sparse as sp
import logging
import psutil

logger = logging.getLogger(__name__)


def np_encoder(object):
    """
    Convert any numpy type to a generic type for json serialization.

    Parameters
    ----------
    object
       Object to be converted.
    Returns
    -------
    object
        Generic object or an unchanged object if not a numpy type
    """
    if isinstance(object, np.generic):
        return object.item()


def as_float_matrix(X):
    """
    Cast a dense or sparse matrix to float64, sparse matrices are returned in CSR format.
    """
    if sp.issparse(X):
        return sp.csr_matrix(X, dtype=np.float64)
    return np.asarray(X, dtype=np.float64)


def has_negative(X):
    if sp.issparse(X):
        return X.nnz > 0 and X.data.min() < 0.0
    return X.size > 0 and X.min() < 0.0


def has_invalid(X):
    if sp.issparse(X):
        return bool(np.any(~np.isfinite(X.data)))
    return bool(np.any(~np.isfinite(X)))


def memory_estimate(n_samples: int):
    """
    Estimate the memory required by the dense pairwise similarity matrix of the nearest neighbor graph construction.

    Parameters
    ----------
    n_samples
        Number of samples (rows).

    Returns
    -------
    dict
        The estimated and available memory in bytes, with a readable estimate string.
    """
    vm = psutil.virtual_memory()
    available_memory_bytes = int(vm.available)

    # similarity matrix, its argsort and the sorted copy
    max_bytes = 8 * 3 * n_samples * n_samples

    if max_bytes > available_memory_bytes:
        logger.warning(f"Estimated memory usage ({max_bytes} bytes) exceeds available memory "
                       f"({available_memory_bytes} bytes).")

    if max_bytes / (1024 ** 3) > 1.0:
        byte_string = f"{max_bytes / (1024 ** 3):.2f} GB"
    elif max_bytes / (1024 ** 2) > 1.0:
        byte_string = f"{max_bytes / (1024 ** 2):.2f} MB"
    elif max_bytes / 1024 > 1.0:
        byte_string = f"{max_bytes / 1024:.2f} KB"
    else:
        byte_string = f"{max_bytes} Bytes"

    return {
        "max_bytes": max_bytes,
        "available_memory_bytes": available_memory_bytes,
        "fits": max_bytes <= available_memory_bytes,
        "estimate": byte_string
    }
