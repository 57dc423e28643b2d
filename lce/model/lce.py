from lce.model.laplacian import LaplacianTerm
from lce.model.updates import CollectiveUpdate, LaplacianCollectiveUpdate
from lce.model.projection import project, rank
from lce.errors import DimensionMismatchError, HyperparameterError
from lce.utils import np_encoder, as_float_matrix, has_negative, has_invalid
from tqdm import trange
from datetime import datetime
from pathlib import Path
import scipy.sparse as sp
import numpy as np
import logging
import pickle
import json
import os

logging.basicConfig(format='%(asctime)s - %(message)s', datefmt='%d-%b-%y %H:%M:%S', level=logging.INFO)
logger = logging.getLogger(__name__)

DEFAULT_SEED = 354
# relative increase of the objective tolerated before a warning is logged
INCREASE_TOLERANCE = 1e-9


class LCE:
    """
    The Local Collective Embeddings model, which holds and manages the configuration, data and results of a joint
    non-negative factorization of two views sharing their rows.

    The two views Xs (n x v1) and Xu (n x v2) are factorized as Xs ~ W Hs and Xu ~ W Hu with a shared non-negative
    embedding W (n x k) minimizing

        alpha * ||Xs - W Hs||^2 + (1 - alpha) * ||Xu - W Hu||^2 + beta * trace(W^T (D - A) W)
        + lambda * (||W||^2 + ||Hs||^2 + ||Hu||^2)

    with multiplicative update rules. When an adjacency matrix A is provided, the graph Laplacian term keeps the
    embeddings of neighboring rows close. Without A, the model trains the collective factorization only and none of
    the graph products are computed.

    The LCE class contains the logic for:

    1) The initialization of W, Hs and Hu, from the absolute value of uniform draws of a seeded random generator or
    from user provided matrices.

    2) The training loop, updating Hs, Hu and then W until the change of the objective is at most epsilon or the
    maximum number of iterations is reached.

    3) The projection of new rows of Xs into the latent space to rank the columns of Xu.

    Parameters
    ----------
    Xs : np.ndarray | scipy.sparse matrix
        The primary view, n rows by v1 features, non-negative.
    Xu : np.ndarray | scipy.sparse matrix
        The side view, n rows by v2 features, non-negative.
    factors : int
        The rank k of the factorization, 1 <= k <= min(n, v1, v2).
    A : np.ndarray | scipy.sparse matrix
        Optional, the symmetric n x n adjacency matrix of the rows. Default: None, no graph regularization.
    alpha : float
        The importance of the Xs factorization in [0, 1], Xu is weighted by 1 - alpha. Default: 0.5
    beta : float
        The strength of the graph Laplacian regularization, only used when A is provided. Default: 0.05
    lambda_ : float
        The Tikhonov regularization strength. Default: 0.5
    seed : int
        The seed of the random generator used for initializing W, Hs and Hu. Default: 354
    rng : np.random.Generator
        Optional, a random generator used instead of one created from the seed, the model seed is then None.
    verbose : bool
        Log the objective value of every iteration and show a progress bar.
    """

    def __init__(self,
                 Xs,
                 Xu,
                 factors: int,
                 A=None,
                 alpha: float = 0.5,
                 beta: float = 0.05,
                 lambda_: float = 0.5,
                 seed: int = DEFAULT_SEED,
                 rng: np.random.Generator = None,
                 verbose: bool = False
                 ):
        """
        Constructor method.
        """
        self.Xs = as_float_matrix(Xs)
        self.Xu = as_float_matrix(Xu)
        self.A = None if A is None else sp.csr_matrix(A, dtype=np.float64)

        self.n, self.v1 = self.Xs.shape
        self.v2 = self.Xu.shape[1]
        self.factors = int(factors)

        self.alpha = float(alpha)
        self.beta = float(beta) if self.A is not None else 0.0
        self.lambda_ = float(lambda_)

        if rng is not None:
            # factors drawn from a caller provided generator, no seed describes them
            self.seed = None
            self.rng = rng
        else:
            self.seed = DEFAULT_SEED if seed is None else seed
            self.rng = np.random.default_rng(self.seed)

        self.W = None
        self.Hs = None
        self.Hu = None
        self.objective = []
        self.converged = False
        self.cancelled = False
        self.converge_steps = 0
        self.model_i = -1

        self.verbose = verbose
        self.__validate()
        self.__initialized = False

        self.method = "lce" if self.A is not None else "lce-beta0"
        if self.A is not None:
            self.update_step = LaplacianCollectiveUpdate(Xs=self.Xs, Xu=self.Xu, alpha=self.alpha,
                                                         lambda_=self.lambda_,
                                                         laplacian=LaplacianTerm(A=self.A, beta=self.beta))
        else:
            self.update_step = CollectiveUpdate(Xs=self.Xs, Xu=self.Xu, alpha=self.alpha, lambda_=self.lambda_)

        self.metadata = {
            "creation_date": datetime.now().strftime("%m/%d/%Y, %H:%M:%S %Z"),
            "method": self.method,
            "seed": self.seed,
            "samples": int(self.n),
            "features_s": int(self.v1),
            "features_u": int(self.v2),
            "factors": self.factors,
            "alpha": self.alpha,
            "beta": self.beta,
            "lambda": self.lambda_
        }

    def __validate(self):
        """
        Validates the input views, the adjacency matrix and the hyperparameters, raising on the first failure.

        Validation Criteria:
        Xs, Xu - Same number of rows, non-negative, no missing/NAN values.
        A - Square with the same number of rows as Xs, non-negative, no missing/NAN values. Asymmetry is only logged.
        factors - 1 <= factors <= min(n, v1, v2).
        alpha - In [0, 1]. beta, lambda - Non-negative.
        """
        if self.Xs.shape[0] != self.Xu.shape[0]:
            logger.error(f"The views must have the same number of rows. Current Xs: {self.Xs.shape}, "
                         f"Xu: {self.Xu.shape}.")
            raise DimensionMismatchError(f"Row count mismatch between Xs {self.Xs.shape} and Xu {self.Xu.shape}.")
        for name, X in (("Xs", self.Xs), ("Xu", self.Xu)):
            if has_invalid(X):
                logger.error(f"Input view {name} contains missing or invalid values.")
                raise ValueError(f"Input view {name} contains missing or invalid values.")
            if has_negative(X):
                logger.error(f"Input view {name} contains negative values, matrix can only contain positive values.")
                raise ValueError(f"Input view {name} contains negative values.")
        if self.A is not None:
            if self.A.shape != (self.n, self.n):
                logger.error(f"The adjacency matrix must have dimensions of ({self.n}, {self.n}). "
                             f"Current dimensions {self.A.shape}")
                raise DimensionMismatchError(f"Adjacency matrix shape {self.A.shape} does not match {self.n} rows.")
            if has_invalid(self.A) or has_negative(self.A):
                logger.error("The adjacency matrix contains negative or invalid values.")
                raise ValueError("The adjacency matrix contains negative or invalid values.")
            if abs(self.A - self.A.T).sum() > 0:
                logger.warning("The adjacency matrix is not symmetric, the Laplacian regularization assumes it is.")
        if self.factors < 1 or self.factors > min(self.n, self.v1, self.v2):
            logger.error(f"The number of factors must be between 1 and {min(self.n, self.v1, self.v2)}. "
                         f"Current factors: {self.factors}")
            raise DimensionMismatchError(f"Rank {self.factors} does not fit views of shapes {self.Xs.shape} "
                                         f"and {self.Xu.shape}.")
        if not 0.0 <= self.alpha <= 1.0:
            logger.error(f"alpha must be in [0, 1]. Current alpha: {self.alpha}")
            raise HyperparameterError(f"alpha must be in [0, 1]. Current alpha: {self.alpha}")
        if self.beta < 0.0:
            logger.error(f"beta must be non-negative. Current beta: {self.beta}")
            raise HyperparameterError(f"beta must be non-negative. Current beta: {self.beta}")
        if self.lambda_ < 0.0:
            logger.error(f"lambda must be non-negative. Current lambda: {self.lambda_}")
            raise HyperparameterError(f"lambda must be non-negative. Current lambda: {self.lambda_}")

    def __validate_factor(self, name: str, M, shape: tuple):
        if M.shape != shape:
            logger.error(f"Factor matrix {name} must have dimensions of {shape}. Current dimensions {M.shape}")
            raise DimensionMismatchError(f"Factor matrix {name} must have dimensions of {shape}.")
        if has_invalid(M) or has_negative(M):
            logger.error(f"Factor matrix {name} contains negative or invalid values.")
            raise ValueError(f"Factor matrix {name} contains negative or invalid values.")

    def initialize(self,
                   W: np.ndarray = None,
                   Hs: np.ndarray = None,
                   Hu: np.ndarray = None
                   ):
        """
        Initialize the shared factor (W) and the view factors (Hs, Hu).

        Matrices that are not provided are set to the absolute value of uniform draws from the model random generator,
        in the order W, Hs, Hu. Provided matrices are copied.

        Parameters
        ----------
        W : np.ndarray
           Optional, the shared factor of shape (n, factors).
        Hs : np.ndarray
           Optional, the Xs factor of shape (factors, v1).
        Hu : np.ndarray
           Optional, the Xu factor of shape (factors, v2).
        """
        _W = np.abs(self.rng.random(size=(self.n, self.factors)))
        _Hs = np.abs(self.rng.random(size=(self.factors, self.v1)))
        _Hu = np.abs(self.rng.random(size=(self.factors, self.v2)))
        if W is not None:
            _W = np.array(W, dtype=np.float64)
            self.__validate_factor("W", _W, (self.n, self.factors))
        if Hs is not None:
            _Hs = np.array(Hs, dtype=np.float64)
            self.__validate_factor("Hs", _Hs, (self.factors, self.v1))
        if Hu is not None:
            _Hu = np.array(Hu, dtype=np.float64)
            self.__validate_factor("Hu", _Hu, (self.factors, self.v2))
        self.W, self.Hs, self.Hu = _W, _Hs, _Hu
        self.__initialized = True
        if self.verbose:
            logger.debug("Completed initializing the shared and view factor matrices.")

    def summary(self):
        """
        Provides a summary of the model configuration and results if completed.
        """
        logger.info("------------\t\tModel Details\t\t-----------")
        logger.info(f"\tMethod: {self.method}\t\t\t\tFactors: {self.factors}")
        logger.info(f"\tSamples: {self.n}\t\tXs Features: {self.v1}\t\tXu Features: {self.v2}")
        logger.info(f"\talpha: {self.alpha}\t\tbeta: {self.beta}\t\tlambda: {self.lambda_}")
        logger.info(f"\tRandom Seed: {self.seed}")
        if len(self.objective) > 0:
            logger.info("---------------\t\tModel Results\t\t--------------")
            logger.info(f"\tObjective: {round(self.objective[-1], 4)}")
            logger.info(f"\tConverged: {self.converged}\t\t\t\tConverge Steps: {self.converge_steps}")
        logger.info("------------------------------------------------------")

    def train(self,
              max_iter: int = 500,
              epsilon: float = 0.001,
              model_i: int = 1,
              callback: callable = None
              ):
        """
        Train the model by iteratively updating Hs, Hu and W, decreasing the objective until convergence.

        Every iteration updates Hs and Hu from the cached products of W, then W from the updated Hs and Hu, and
        appends the objective value to the objective trajectory. The model is converged when the absolute change of
        the objective between two consecutive iterations is at most epsilon, the first iteration never converges.
        Reaching max_iter without converging is not an error, the last computed factors are kept.

        Parameters
        ----------
        max_iter : int
           The maximum number of iterations. Default: 500
        epsilon : float
           The change in the objective where the model will be considered converged. Default: 0.001
        model_i : int
           The model index, used for identifying models in batch runs.
        callback : callable
           Optional, called with (iteration, objective) after every iteration. Training stops when it returns True.

        Returns
        -------
        list
           The objective trajectory, one value per executed iteration.
        """
        max_iter = int(max_iter)
        epsilon = float(epsilon)
        if max_iter <= 0:
            logger.error(f"max_iter must be positive. Current max_iter: {max_iter}")
            raise HyperparameterError(f"max_iter must be positive. Current max_iter: {max_iter}")
        if epsilon <= 0.0:
            logger.error(f"epsilon must be positive. Current epsilon: {epsilon}")
            raise HyperparameterError(f"epsilon must be positive. Current epsilon: {epsilon}")
        if not self.__initialized:
            logger.warning("Model is not initialized, initializing with default parameters")
            self.initialize()

        W, Hs, Hu = self.W, self.Hs, self.Hu
        update = self.update_step
        cache = update.cache(W, Hs, Hu)
        objective = []
        self.converged = False
        self.cancelled = False
        self.converge_steps = 0

        t_iter = trange(max_iter, desc=f"Model: {model_i}, Seed: {self.seed}, Objective: NA, Delta: NA",
                        position=0, leave=True, disable=not self.verbose)
        for i in t_iter:
            W, Hs, Hu = update.update(W, Hs, Hu, cache)
            cache = update.cache(W, Hs, Hu)
            obj = update.loss(W, Hs, Hu, cache)
            objective.append(obj)
            self.converge_steps += 1

            if not np.isfinite(obj):
                logger.error(f"Stopping LCE model train due to the objective being invalid. Objective: {obj}")
                break
            if i == 0:
                if self.verbose:
                    logger.info(f"Iteration: {i + 1} \t Objective: {obj:f}")
                    t_iter.set_description(f"Model: {model_i}, Seed: {self.seed}, Objective: {obj:.4f}, Delta: NA")
            else:
                prior = objective[-2]
                delta = abs(obj - prior)
                if obj - prior > INCREASE_TOLERANCE * max(abs(prior), 1.0):
                    logger.warning(f"Objective increased at iteration {i + 1}, from {prior} to {obj}. Check the "
                                   f"input data and hyperparameters.")
                if self.verbose:
                    logger.info(f"Iteration: {i + 1} \t Objective: {obj:f} \t Delta: {delta:f}")
                    t_iter.set_description(f"Model: {model_i}, Seed: {self.seed}, Objective: {obj:.4f}, "
                                           f"Delta: {delta:.4f}")
                if delta <= epsilon:
                    self.converged = True
            if callback is not None and callback(i + 1, obj):
                logger.info(f"LCE model train cancelled at iteration {i + 1}.")
                self.cancelled = True
                break
            if self.converged:
                break
        t_iter.close()

        self.W, self.Hs, self.Hu = W, Hs, Hu
        self.objective = objective
        self.model_i = model_i
        self.metadata["completion_date"] = datetime.now().strftime("%m/%d/%Y, %H:%M:%S %Z")
        self.metadata["max_iterations"] = max_iter
        self.metadata["epsilon"] = epsilon
        self.metadata["model_i"] = int(model_i)
        self.metadata["converged"] = self.converged
        self.metadata["converge_steps"] = self.converge_steps
        return objective

    def project(self, Xs_test):
        """
        Project new rows of Xs into the latent space, see lce.model.projection.project.
        """
        if self.Hs is None:
            logger.error("Model must be trained before projecting new rows.")
            return None
        return project(Xs_test, self.Hs)

    def rank(self, Xs_test):
        """
        Score the columns of Xu for new rows of Xs, see lce.model.projection.rank.
        """
        if self.Hs is None:
            logger.error("Model must be trained before ranking new rows.")
            return None
        return rank(Xs_test, self.Hs, self.Hu)

    def save(self,
             model_name: str,
             output_directory: str,
             pickle_model: bool = False):
        """
        Save the LCE model to file.

        Two options are provided for saving the output of LCE to file, 1) saving the factor matrices and objective
        trajectory to separate files (csv and json) and 2) saving the LCE model to a binary pickle object. The files
        are written to the provided output_directory path, if it exists, using the model_name for the file names.

        Parameters
        ----------
        model_name : str
           The name for the model save files.
        output_directory : str
           The path to save the files to, path must exist.
        pickle_model : bool
           Saving the model to a pickle file, default = False.

        Returns
        -------
        str
           The path to the output directory, if pickle=False or the path to the pickle file. If save fails returns None
        """
        output_directory = Path(output_directory)
        if not output_directory.is_absolute():
            logger.error("Provided output directory is not an absolute path. Must provide an absolute path.")
            return None
        if not os.path.exists(output_directory):
            logger.error(f"Output directory does not exist. Specified directory: {output_directory}")
            return None
        if pickle_model:
            file_path = os.path.join(output_directory, f"{model_name}.pkl")
            with open(file_path, "wb") as save_file:
                pickle.dump(self, save_file)
                logger.info(f"LCE model saved to pickle file: {file_path}")
            return file_path

        meta_file = os.path.join(output_directory, f"{model_name}-metadata.json")
        with open(meta_file, "w") as mfile:
            json.dump({**self.metadata, "objective": self.objective}, mfile, default=np_encoder)
            logger.info(f"LCE model metadata saved to file: {meta_file}")
        for label, matrix in (("W", self.W), ("Hs", self.Hs), ("Hu", self.Hu)):
            if matrix is None:
                continue
            factor_file = os.path.join(output_directory, f"{model_name}-{label}.csv")
            with open(factor_file, "w") as ffile:
                header = f"Factor Matrix {label}\nMetadata File: {meta_file}"
                np.savetxt(ffile, matrix, delimiter=',', header=header)
                logger.info(f"LCE model factor {label} saved to file: {factor_file}")
        return str(output_directory)

    @staticmethod
    def load(file_path: str):
        """
        Load a previously saved LCE pickle file.

        Parameters
        ----------
        file_path : str
           File path to a previously saved LCE pickle file

        Returns
        -------
        LCE
           On successful load, will return a previously saved LCE object. Will return None on load fail.
        """
        file_path = Path(file_path)
        if not file_path.is_absolute():
            logger.error("Provided path is not an absolute path. Must provide an absolute path.")
            return None
        if os.path.exists(file_path):
            try:
                with open(file_path, "rb") as pfile:
                    model = pickle.load(pfile)
                    return model
            except pickle.PickleError as p_error:
                logger.error(f"Failed to load LCE pickle file {file_path}. \nError: {p_error}")
                return None
        else:
            logger.error(f"LCE load file failed, specified pickle file does not exist. File Path: {file_path}")
            return None


def local_collective_embeddings(Xs, Xu, A, k: int, alpha: float = 0.5, beta: float = 0.05, lambda_: float = 0.5,
                                epsilon: float = 0.001, maxiter: int = 500, verbose: bool = False,
                                seed: int = DEFAULT_SEED, rng: np.random.Generator = None):
    """
    Factorize Xs ~ W Hs and Xu ~ W Hu with the graph Laplacian regularization of the adjacency matrix A.

    Returns
    -------
    np.ndarray, np.ndarray, np.ndarray, list
       W, Hs, Hu and the objective trajectory.
    """
    if A is None:
        raise ValueError("An adjacency matrix is required, use collective_embeddings without graph regularization.")
    model = LCE(Xs=Xs, Xu=Xu, factors=k, A=A, alpha=alpha, beta=beta, lambda_=lambda_, seed=seed, rng=rng,
                verbose=verbose)
    model.initialize()
    objective = model.train(max_iter=maxiter, epsilon=epsilon)
    return model.W, model.Hs, model.Hu, objective


def collective_embeddings(Xs, Xu, k: int, alpha: float = 0.5, lambda_: float = 0.5, epsilon: float = 0.001,
                          maxiter: int = 500, verbose: bool = False, seed: int = DEFAULT_SEED,
                          rng: np.random.Generator = None):
    """
    Factorize Xs ~ W Hs and Xu ~ W Hu without graph regularization, the beta = 0 case of Local Collective Embeddings.

    Returns
    -------
    np.ndarray, np.ndarray, np.ndarray, list
       W, Hs, Hu and the objective trajectory.
    """
    model = LCE(Xs=Xs, Xu=Xu, factors=k, A=None, alpha=alpha, lambda_=lambda_, seed=seed, rng=rng, verbose=verbose)
    model.initialize()
    objective = model.train(max_iter=maxiter, epsilon=epsilon)
    return model.W, model.Hs, model.Hu, objective
