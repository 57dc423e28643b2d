import os
import logging
import numpy as np
import pandas as pd
import scipy.io as sio
import scipy.sparse as sp
from lce.data.preprocessing import tfidf
from lce.errors import DimensionMismatchError
from lce.utils import has_negative, has_invalid

logging.basicConfig(format='%(asctime)s - %(message)s', datefmt='%d-%b-%y %H:%M:%S', level=logging.INFO)
logger = logging.getLogger(__name__)


class DataHandler:
    """
    The class for loading and preparing the two views used by the LCE models.

    The primary view (e.g. document term counts) and the side view (e.g. document authors) are specified by their
    file paths, for both the training rows and the held-out test rows. When no test files are provided, the test rows
    are sampled from the training files with test_percent. Files can be .csv or tab separated text files (dense, with
    a header row of column labels), .npz files written by scipy.sparse.save_npz or Matrix Market .mtx files.

    Parameters
    ----------
    input_path : str
        The file path to the training rows of the primary view.
    label_path : str
        The file path to the training rows of the side view.
    test_input_path : str
        Optional, the file path to the test rows of the primary view.
    test_label_path : str
        Optional, the file path to the test rows of the side view.
    index_col : str
        The name of the index column of csv files. Default = None, no index column.
    test_percent : float
        The decimal percentage of rows held out for testing when no test files are provided. Default = 0.2
    seed : int
        The seed of the random row selection for the test rows. Default = 42
    drop_empty_labels : bool
        Drop the side view columns without any entry in the training rows, they can not be learned. Default = True
    apply_tfidf : bool
        Apply tf-idf weighting, fitted on the training rows, to the primary view. Default = True
    load : bool
        Load the data files, used internally for load_dataframe.
    """
    def __init__(self,
                 input_path: str,
                 label_path: str,
                 test_input_path: str = None,
                 test_label_path: str = None,
                 index_col: str = None,
                 test_percent: float = 0.2,
                 seed: int = 42,
                 drop_empty_labels: bool = True,
                 apply_tfidf: bool = True,
                 load: bool = True
                 ):
        """
        Constructor method.
        """
        self.input_path = input_path
        self.label_path = label_path
        self.test_input_path = test_input_path if test_input_path else None
        self.test_label_path = test_label_path if test_label_path else None
        self.index_col = index_col if index_col else None
        self.test_percent = float(test_percent)
        self.seed = int(seed)
        self.drop_empty_labels = str(drop_empty_labels).lower() == "true"
        self.apply_tfidf = str(apply_tfidf).lower() == "true"

        self.features = None
        self.labels = None

        self.Xs_train = None
        self.Xu_train = None
        self.Xs_test = None
        self.Xu_test = None
        self.metadata = {}

        if load:
            self._check_paths()
            self._load_data()
            self._process()

    def get_data(self):
        """
        Get the processed training and test matrices.

        Returns
        -------
        tuple
            Xs_train, Xu_train, Xs_test, Xu_test
        """
        return self.Xs_train, self.Xu_train, self.Xs_test, self.Xu_test

    def _check_paths(self):
        """
        Check all file paths to make sure they exist.
        """
        paths = [self.input_path, self.label_path]
        if self.test_input_path is not None or self.test_label_path is not None:
            paths += [self.test_input_path, self.test_label_path]
        missing = [p for p in paths if p is None or not os.path.exists(p)]
        if len(missing) > 0:
            logger.error("File Errors: " + ", ".join(f"File not found at {p}" for p in missing))
            raise FileNotFoundError(f"Data files not found: {missing}")
        logger.info("Input files configured successfully")

    def _read_data(self, filepath):
        """
        Read in a data file into a dense array or a sparse CSR matrix.

        Parameters
        ----------
        filepath : str
            The path to the data file.

        Returns
        -------
        np.ndarray | scipy.sparse.csr_matrix, list
            The matrix and the column labels, None when the file has no labels.
        """
        ext = filepath.split(".")[-1].lower()
        if ext in ["csv", "txt"]:
            if self.index_col:
                data = pd.read_csv(filepath, index_col=self.index_col, sep=None, engine="python")
            else:
                data = pd.read_csv(filepath, sep=None, engine="python")
            return data.apply(pd.to_numeric).to_numpy(dtype=np.float64), list(data.columns)
        elif ext == "npz":
            return sp.load_npz(filepath).tocsr().astype(np.float64), None
        elif ext == "mtx":
            return sp.csr_matrix(sio.mmread(filepath), dtype=np.float64), None
        logger.error(f"Unknown file type provided. Ext: {ext}, file: {filepath}")
        raise ValueError(f"Unsupported file type: {ext}")

    def _load_data(self):
        """
        Loads the matrices from files, splitting the training rows when no test files are provided.
        """
        Xs, self.features = self._read_data(self.input_path)
        Xu, self.labels = self._read_data(self.label_path)
        if self.test_input_path is not None:
            self.Xs_train, self.Xu_train = Xs, Xu
            self.Xs_test, _ = self._read_data(self.test_input_path)
            self.Xu_test, _ = self._read_data(self.test_label_path)
        else:
            self.Xs_train, self.Xu_train, self.Xs_test, self.Xu_test = self.split(Xs, Xu, self.test_percent, self.seed)

    @staticmethod
    def split(Xs, Xu, test_percent: float = 0.2, seed: int = 42):
        """
        Randomly split the rows of the two views into training and test rows.

        Parameters
        ----------
        Xs : np.ndarray | scipy.sparse matrix
            The primary view.
        Xu : np.ndarray | scipy.sparse matrix
            The side view, with the same rows as Xs.
        test_percent : float
            The decimal percentage of rows used for testing, at least one row is used for training and for testing.
        seed : int
            The seed of the random row selection.

        Returns
        -------
        tuple
            Xs_train, Xu_train, Xs_test, Xu_test
        """
        if Xs.shape[0] != Xu.shape[0]:
            raise DimensionMismatchError(f"Row count mismatch between Xs {Xs.shape} and Xu {Xu.shape}.")
        n = Xs.shape[0]
        if n < 2:
            raise ValueError("At least two rows are required to create a train and test split.")
        rng = np.random.default_rng(seed)
        order = rng.permutation(n)
        n_test = min(max(int(round(n * test_percent)), 1), n - 1)
        test_idx = np.sort(order[:n_test])
        train_idx = np.sort(order[n_test:])
        return Xs[train_idx], Xu[train_idx], Xs[test_idx], Xu[test_idx]

    def _process(self):
        """
        Validates the loaded matrices, drops the side view columns without training entries and applies tf-idf.
        """
        if self.Xs_train.shape[0] != self.Xu_train.shape[0]:
            raise DimensionMismatchError(f"Training row count mismatch between Xs {self.Xs_train.shape} "
                                         f"and Xu {self.Xu_train.shape}.")
        if self.Xs_test.shape[0] != self.Xu_test.shape[0]:
            raise DimensionMismatchError(f"Test row count mismatch between Xs {self.Xs_test.shape} "
                                         f"and Xu {self.Xu_test.shape}.")
        if self.Xs_train.shape[1] != self.Xs_test.shape[1] or self.Xu_train.shape[1] != self.Xu_test.shape[1]:
            raise DimensionMismatchError("Training and test matrices must have the same columns.")
        for name, X in (("Xs_train", self.Xs_train), ("Xu_train", self.Xu_train), ("Xs_test", self.Xs_test),
                        ("Xu_test", self.Xu_test)):
            if has_invalid(X) or has_negative(X):
                logger.error(f"Dataset {name} contains negative, missing or invalid values.")
                raise ValueError(f"Dataset {name} contains negative, missing or invalid values.")

        if self.drop_empty_labels:
            known = np.asarray(self.Xu_train.sum(axis=0)).ravel() > 0
            dropped = int(np.sum(~known))
            if dropped > 0:
                logger.info(f"Dropping {dropped} side view columns without training entries.")
            self.Xu_train = self.Xu_train[:, known]
            self.Xu_test = self.Xu_test[:, known]
            if self.labels is not None:
                self.labels = [label for label, keep in zip(self.labels, known) if keep]

        if self.apply_tfidf:
            self.Xs_train, self.Xs_test = tfidf(self.Xs_train, self.Xs_test)

        self.metadata = {
            "train_samples": int(self.Xs_train.shape[0]),
            "test_samples": int(self.Xs_test.shape[0]),
            "features": int(self.Xs_train.shape[1]),
            "labels": int(self.Xu_train.shape[1]),
            "tfidf": self.apply_tfidf
        }
        logger.info(f"Data loaded. Train rows: {self.Xs_train.shape[0]}, test rows: {self.Xs_test.shape[0]}, "
                    f"features: {self.Xs_train.shape[1]}, labels: {self.Xu_train.shape[1]}")

    @staticmethod
    def load_dataframe(input_df: pd.DataFrame, label_df: pd.DataFrame, test_input_df: pd.DataFrame = None,
                       test_label_df: pd.DataFrame = None, **kwargs):
        """
        Pass in pandas dataframes for the two views, instead of using files.

        Parameters
        ----------
        input_df
            The training rows of the primary view, or all rows when no test dataframes are provided.
        label_df
            The training rows of the side view, or all rows when no test dataframes are provided.
        test_input_df
            Optional, the test rows of the primary view.
        test_label_df
            Optional, the test rows of the side view.
        kwargs
            Additional DataHandler parameters (test_percent, seed, drop_empty_labels, apply_tfidf).

        Returns
        -------
        DataHandler
            Instance of DataHandler using dataframes as input.
        """
        dh = DataHandler(input_path="", label_path="", load=False, **kwargs)
        dh.features = list(input_df.columns)
        dh.labels = list(label_df.columns)
        Xs = input_df.to_numpy(dtype=np.float64)
        Xu = label_df.to_numpy(dtype=np.float64)
        if test_input_df is not None and test_label_df is not None:
            dh.Xs_train, dh.Xu_train = Xs, Xu
            dh.Xs_test = test_input_df.to_numpy(dtype=np.float64)
            dh.Xu_test = test_label_df.to_numpy(dtype=np.float64)
        else:
            dh.Xs_train, dh.Xu_train, dh.Xs_test, dh.Xu_test = DataHandler.split(Xs, Xu, dh.test_percent, dh.seed)
        dh._process()
        return dh
