import numpy as np
import scipy.sparse as sp
from lce.data.graph import degree_matrix
from lce.metrics import trace_inner


class LaplacianTerm:
    """
    The graph Laplacian regularization beta * trace(W^T (D - A) W) of the Local Collective Embeddings objective.

    The adjacency and degree matrices are built once and are read-only during training.

    Parameters
    ----------
    A : np.ndarray | scipy.sparse matrix
       The symmetric n x n adjacency matrix.
    beta : float
       The strength of the Laplacian regularization.
    """

    def __init__(self, A, beta: float):
        self.A = sp.csr_matrix(A, dtype=np.float64)
        self.D = degree_matrix(self.A)
        self.beta = float(beta)

    def products(self, W: np.ndarray):
        """
        The products A W and D W, shared by the W update and the objective.
        """
        return np.asarray(self.A @ W), np.asarray(self.D @ W)

    def loss(self, W: np.ndarray, AW: np.ndarray, DW: np.ndarray):
        return self.beta * (trace_inner(W, DW) - trace_inner(W, AW))
