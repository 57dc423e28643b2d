import numpy as np
from lce.metrics import trace_inner, FLOOR
from lce.model.laplacian import LaplacianTerm


def _dot(X, B):
    # X may be sparse, the product is always returned as a dense array
    return np.asarray(X @ B)


class CollectiveUpdate:
    """
    Multiplicative update rules for the collective factorization of two views sharing their rows, without graph
    regularization.

    Minimizes alpha * ||Xs - W Hs||^2 + (1 - alpha) * ||Xu - W Hu||^2 + lambda * (||W||^2 + ||Hs||^2 + ||Hu||^2)
    subject to W, Hs, Hu >= 0. Every denominator is clamped at FLOOR, so the factors stay non-negative when the inputs
    and hyperparameters are non-negative.

    The products reused between the update and the objective (W^T W, W^T Xs, W^T Xu, W^T W Hs, W^T W Hu) are kept in
    a cache dictionary that is rebuilt after every W update. The objective is evaluated through trace identities so
    the reconstruction residuals are never materialized.

    Parameters
    ----------
    Xs : np.ndarray | scipy.sparse matrix
       The primary view, n x v1.
    Xu : np.ndarray | scipy.sparse matrix
       The side view, n x v2.
    alpha : float
       The weight of the Xs factorization, the Xu factorization is weighted by 1 - alpha.
    lambda_ : float
       The Tikhonov regularization strength applied to all three factors.
    """

    def __init__(self, Xs, Xu, alpha: float, lambda_: float):
        self.Xs = Xs
        self.Xu = Xu
        self.alpha = float(alpha)
        self.gamma = 1.0 - self.alpha
        self.lambda_ = float(lambda_)
        self.trXsXs = trace_inner(Xs, Xs)
        self.trXuXu = trace_inner(Xu, Xu)

    def cache(self, W: np.ndarray, Hs: np.ndarray, Hu: np.ndarray):
        WtW = W.T @ W
        return {
            "WtW": WtW,
            "WtXs": _dot(self.Xs.T, W).T,
            "WtXu": _dot(self.Xu.T, W).T,
            "WtWHs": WtW @ Hs,
            "WtWHu": WtW @ Hu,
        }

    def update(self, W: np.ndarray, Hs: np.ndarray, Hu: np.ndarray, cache: dict):
        """
        One iteration of the multiplicative updates, Hs and Hu first and then W using the updated Hs and Hu. The
        matrices are modified in place.

        Parameters
        ----------
        W : np.ndarray
           The shared factor, n x k.
        Hs : np.ndarray
           The Xs factor, k x v1.
        Hu : np.ndarray
           The Xu factor, k x v2.
        cache : dict
           The cached products of the current W, Hs and Hu.

        Returns
        -------
        np.ndarray, np.ndarray, np.ndarray
           The updated W, Hs and Hu.
        """
        Hs *= (self.alpha * cache["WtXs"]) / np.maximum(self.alpha * cache["WtWHs"] + self.lambda_ * Hs, FLOOR)
        Hu *= (self.gamma * cache["WtXu"]) / np.maximum(self.gamma * cache["WtWHu"] + self.lambda_ * Hu, FLOOR)

        W_num = self._w_numerator(W, Hs, Hu, cache)
        W_den = self._w_denominator(W, Hs, Hu, cache)
        W *= W_num / np.maximum(W_den, FLOOR)
        return W, Hs, Hu

    def _w_numerator(self, W, Hs, Hu, cache):
        return self.alpha * _dot(self.Xs, Hs.T) + self.gamma * _dot(self.Xu, Hu.T)

    def _w_denominator(self, W, Hs, Hu, cache):
        return self.alpha * (W @ (Hs @ Hs.T)) + self.gamma * (W @ (Hu @ Hu.T)) + self.lambda_ * W

    def loss(self, W: np.ndarray, Hs: np.ndarray, Hu: np.ndarray, cache: dict):
        """
        The value of the objective function for the cached products of W, Hs and Hu.
        """
        tr1 = self.alpha * (self.trXsXs - 2.0 * trace_inner(Hs, cache["WtXs"]) + trace_inner(Hs, cache["WtWHs"]))
        tr2 = self.gamma * (self.trXuXu - 2.0 * trace_inner(Hu, cache["WtXu"]) + trace_inner(Hu, cache["WtWHu"]))
        tr4 = self.lambda_ * (np.trace(cache["WtW"]) + trace_inner(Hs, Hs) + trace_inner(Hu, Hu))
        return float(tr1 + tr2 + tr4)


class LaplacianCollectiveUpdate(CollectiveUpdate):
    """
    Multiplicative update rules for Local Collective Embeddings, the collective factorization with the additional
    graph Laplacian regularization beta * trace(W^T (D - A) W).

    The Laplacian term adds beta * A W to the numerator and beta * D W to the denominator of the W update, with A W
    and D W cached alongside the other products.

    Parameters
    ----------
    Xs : np.ndarray | scipy.sparse matrix
       The primary view, n x v1.
    Xu : np.ndarray | scipy.sparse matrix
       The side view, n x v2.
    alpha : float
       The weight of the Xs factorization, the Xu factorization is weighted by 1 - alpha.
    lambda_ : float
       The Tikhonov regularization strength applied to all three factors.
    laplacian : LaplacianTerm
       The graph regularization term.
    """

    def __init__(self, Xs, Xu, alpha: float, lambda_: float, laplacian: LaplacianTerm):
        super().__init__(Xs=Xs, Xu=Xu, alpha=alpha, lambda_=lambda_)
        self.laplacian = laplacian

    def cache(self, W: np.ndarray, Hs: np.ndarray, Hu: np.ndarray):
        products = super().cache(W, Hs, Hu)
        products["AW"], products["DW"] = self.laplacian.products(W)
        return products

    def _w_numerator(self, W, Hs, Hu, cache):
        return super()._w_numerator(W, Hs, Hu, cache) + self.laplacian.beta * cache["AW"]

    def _w_denominator(self, W, Hs, Hu, cache):
        return super()._w_denominator(W, Hs, Hu, cache) + self.laplacian.beta * cache["DW"]

    def loss(self, W: np.ndarray, Hs: np.ndarray, Hu: np.ndarray, cache: dict):
        tr3 = self.laplacian.loss(W, cache["AW"], cache["DW"])
        return super().loss(W, Hs, Hu, cache) + tr3
