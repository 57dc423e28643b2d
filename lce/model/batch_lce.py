import datetime
import os
import logging
import time
import pickle
import numpy as np
from pathlib import Path
from tqdm import tqdm
import multiprocessing as mp
from logging.handlers import QueueHandler, QueueListener
from lce.model.lce import LCE, DEFAULT_SEED

logging.basicConfig(format='%(asctime)s - %(message)s', datefmt='%d-%b-%y %H:%M:%S', level=logging.INFO)
logger = logging.getLogger(__name__)


class BatchLCE:
    """
    The batch LCE class is used to create multiple LCE models, using the same input configuration and different
    random seeds for the initialization of W, Hs and Hu.

    The objective is non-convex, so different initializations can reach different stationary points. The model with
    the lowest final objective is selected as the best model. Every model owns its own matrices and trajectory, so the
    models can be trained in parallel processes.

    Parameters
    ----------
    Xs : np.ndarray | scipy.sparse matrix
        The primary view, n rows by v1 features.
    Xu : np.ndarray | scipy.sparse matrix
        The side view, n rows by v2 features.
    factors : int
        The rank of the factorizations.
    A : np.ndarray | scipy.sparse matrix
        Optional, the adjacency matrix of the rows. Default: None, no graph regularization.
    models : int
        The number of LCE models to create. Default = 10.
    alpha : float
        The importance of the Xs factorization in [0, 1]. Default: 0.5
    beta : float
        The strength of the graph Laplacian regularization. Default: 0.05
    lambda_ : float
        The Tikhonov regularization strength. Default: 0.5
    seed : int
        The random seed used for drawing the seed of every model. Default is 354.
    max_iter : int
       The maximum number of iterations of every model. Default: 500
    epsilon : float
       The change in the objective where a model will be considered converged. Default: 0.001
    parallel : bool
        Run the individual models in parallel processes. Default = False.
    cores : int
        The number of processes to use for parallel processing. Default is the number of cores - 1.
    verbose : bool
        Allows for increased verbosity of the batch run.
    """
    def __init__(self,
                 Xs,
                 Xu,
                 factors: int,
                 A=None,
                 models: int = 10,
                 alpha: float = 0.5,
                 beta: float = 0.05,
                 lambda_: float = 0.5,
                 seed: int = DEFAULT_SEED,
                 max_iter: int = 500,
                 epsilon: float = 0.001,
                 parallel: bool = False,
                 cores: int = None,
                 verbose: bool = True
                 ):
        """
        Constructor method.
        """
        self.Xs = Xs
        self.Xu = Xu
        self.A = A
        self.factors = int(factors)
        self.models = int(models)
        self.alpha = float(alpha)
        self.beta = float(beta)
        self.lambda_ = float(lambda_)
        self.max_iter = int(max_iter)
        self.epsilon = float(epsilon)

        self.seed = DEFAULT_SEED if seed is None else int(seed)
        self.rng = np.random.default_rng(self.seed)

        cores = -1 if cores is None else int(cores)
        self.parallel = parallel if isinstance(parallel, bool) else str(parallel).lower() == "true"
        self.cores = cores if cores > 0 else max((os.cpu_count() or 2) - 1, 1)
        self.verbose = verbose if isinstance(verbose, bool) else str(verbose).lower() == "true"
        self.runtime = None
        self.results = []
        self.best_model = None

    def details(self):
        logger.info(f"Batch Local Collective Embeddings Instance Configuration")
        logger.info("-------------------------------------------------")
        logger.info(f"Factors: {self.factors}, Graph: {self.A is not None}, Models: {self.models}")
        logger.info(f"alpha: {self.alpha}, beta: {self.beta}, lambda: {self.lambda_}")
        logger.info(f"Max Iterations: {self.max_iter}, Epsilon: {self.epsilon}")
        logger.info(f"Random Seed: {self.seed}, Parallel: {self.parallel}, Verbose: {self.verbose}")
        if len(self.results) > 0:
            logger.info("------------------------------- Batch Results -------------------------------")
            for i, result in enumerate(self.results):
                logger.info(f"Model: {i + 1}, Objective: {result.objective[-1]:.4f}, Seed: {result.seed}, "
                            f"Converged: {result.converged}, Steps: {result.converge_steps}/{self.max_iter}")
            best = self.results[self.best_model]
            logger.info(f"Results - Best Model: {self.best_model + 1}, Objective: {best.objective[-1]:.4f}, "
                        f"Converged: {best.converged}")

    def _create_model(self, seed: int):
        model = LCE(Xs=self.Xs, Xu=self.Xu, factors=self.factors, A=self.A, alpha=self.alpha, beta=self.beta,
                    lambda_=self.lambda_, seed=seed, verbose=False)
        model.initialize()
        return model

    def train(self):
        """
        Execute the training sequence for the batch of LCE models using the shared configuration parameters.

        Returns
        -------
        int
           The index of the best model, the model with the lowest final objective.
        """
        t0 = time.time()
        seeds = [int(s) for s in self.rng.integers(low=0, high=100000, size=self.models)]
        logger.info(f"Starting batch training of {self.models} LCE models.")
        if self.parallel:
            logger.info(f"Running batch LCE models in parallel using {self.cores} cores.")
            with mp.Manager() as manager:
                log_queue = manager.Queue()
                listener = logging_listener(log_queue)
                try:
                    input_parameters = [
                        (self._create_model(seed), model_i, log_queue, self.max_iter, self.epsilon)
                        for model_i, seed in enumerate(seeds, start=1)
                    ]
                    with mp.Pool(processes=self.cores) as pool:
                        results = pool.starmap(_train_task, input_parameters)
                finally:
                    listener.stop()
            results.sort(key=lambda result: result[0])
            self.results = [model for _, model in results]
        else:
            logger.info("Running models sequentially.")
            self.results = []
            for model_i, seed in enumerate(tqdm(seeds, desc="Batch LCE", disable=not self.verbose), start=1):
                t3 = time.time()
                model = self._create_model(seed)
                model.train(max_iter=self.max_iter, epsilon=self.epsilon, model_i=model_i)
                t_delta = datetime.timedelta(seconds=time.time() - t3)
                logger.info(f"Model {model_i} with seed {seed} trained in {t_delta}.")
                self.results.append(model)

        final = [model.objective[-1] if len(model.objective) > 0 and np.isfinite(model.objective[-1]) else np.inf
                 for model in self.results]
        self.best_model = int(np.argmin(final))
        self.runtime = round(time.time() - t0, 2)
        logger.info(f"Batch training completed in {self.runtime} seconds.")
        if self.verbose:
            self.details()
        return self.best_model

    def save(self, batch_name: str,
             output_directory: str,
             pickle_model: bool = False,
             pickle_batch: bool = True):
        """
        Save the collection of LCE models. They can be saved as individual files (csv and json files),
        as individual pickle models (each LCE model), or as a single pickle of the batch LCE object.

        Parameters
        ----------
        batch_name : str
            The name to use for the batch save files.
        output_directory :
            The output directory to save the batch files to.
        pickle_model : bool
            Pickle the individual models, creating a separate pickle file for each LCE model. Default = False.
        pickle_batch : bool
            Pickle the batch LCE object, which will contain all the LCE objects. Default = True.

        Returns
        -------
        str
           The path to the output directory, if pickle=False or the path to the pickle file. If save fails returns None
        """
        output_directory = Path(output_directory)
        if not output_directory.is_absolute():
            logger.error("Provided output directory is not an absolute path. Must provide an absolute path.")
            return None
        if os.path.exists(output_directory):
            if pickle_batch:
                file_path = os.path.join(output_directory, f"{batch_name}.pkl")
                with open(file_path, "wb") as save_file:
                    pickle.dump(self, save_file)
                    logger.info(f"Batch LCE models saved to pickle file: {file_path}")
            else:
                file_path = str(output_directory)
                for i, model in enumerate(self.results):
                    model.save(model_name=f"{batch_name}-model-{i}", output_directory=str(output_directory),
                               pickle_model=pickle_model)
            logger.info(f"All batch LCE models saved. Name: {batch_name}, Directory: {output_directory}")
            return file_path
        else:
            logger.error(f"Output directory does not exist. Specified directory: {output_directory}")
            return None

    @staticmethod
    def load(file_path: str):
        """
        Load a previously saved Batch LCE pickle file.

        Parameters
        ----------
        file_path : str
           File path to a previously saved Batch LCE pickle file

        Returns
        -------
        BatchLCE
           On successful load, will return a previously saved Batch LCE object. Will return None on load fail.
        """
        file_path = Path(file_path)
        if not file_path.is_absolute():
            logger.error("Provided path is not an absolute path. Must provide an absolute path.")
            return None
        if os.path.exists(file_path):
            try:
                with open(file_path, "rb") as pfile:
                    return pickle.load(pfile)
            except pickle.PickleError as p_error:
                logger.error(f"Failed to load BatchLCE pickle file {file_path}. \nError: {p_error}")
                return None
        else:
            logger.error(f"BatchLCE load file failed, specified pickle file does not exist. File Path: {file_path}")
            return None


def _train_task(model, model_i, log_queue, max_iter, epsilon):
    configure_logging(log_queue)
    logging.getLogger().info(f"Starting LCE model {model_i} with seed {model.seed}")
    model.train(max_iter=max_iter, epsilon=epsilon, model_i=model_i)
    return model_i, model


def configure_logging(log_queue):
    """
    Configures logging for a child process to send log messages to the log queue.

    Parameters
    ----------
    log_queue : multiprocessing.Queue
        The queue to send log messages to.
    """
    queue_handler = QueueHandler(log_queue)
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.INFO)
    root_logger.handlers = []
    root_logger.addHandler(queue_handler)


def logging_listener(log_queue):
    """
    Sets up a logging listener to handle log messages from a multiprocessing.Queue.

    Parameters
    ----------
    log_queue : multiprocessing.Queue
        The queue to receive log messages from child processes.

    Returns
    -------
    QueueListener
        The logging listener that listens for log messages.
    """
    handler = logging.StreamHandler()
    formatter = logging.Formatter('%(asctime)s - %(levelname)s - %(message)s', datefmt='%d-%b-%y %H:%M:%S')
    handler.setFormatter(formatter)

    listener = QueueListener(log_queue, handler)
    listener.start()
    return listener
