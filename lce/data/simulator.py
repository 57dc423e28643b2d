import logging
import os
import numpy as np
import pandas as pd
import scipy.sparse as sp

logger = logging.getLogger(__name__)


class Simulator:
    """
    The Simulator generates synthetic two-view datasets with a known shared latent structure. These synthetic datasets
    can be passed to LCE, BatchLCE or a DataHandler.

    The synthetic shared factor (W) is generated from a uniform distribution [0.0, 1.0), with one dominant factor per
    sample so that samples sharing a dominant factor form groups. The primary view factor (Hs) is generated from a
    uniform distribution [0.0, 1.0) raised to a power, which makes it sparse-like, the side view factor (Hu) from a
    uniform distribution [0.0, 1.0).
    The primary view is W Hs plus absolute normal noise, scaled by noise_scale.
    The side view is binary, every sample is associated with labels_per_sample columns drawn without replacement
    with probabilities proportional to its row of W Hu.

    Parameters
    ----------
    seed : int
        The seed for the random number generator.
    factors_n : int
        The number of synthetic latent factors.
    samples_n : int
        The number of samples (shared rows).
    features_n : int
        The number of columns of the primary view.
    labels_n : int
        The number of columns of the side view.
    labels_per_sample : int
        The number of side view columns associated with every sample.
    noise_scale : float
        The scale of the normal noise added to the primary view.
    """
    def __init__(self,
                 seed: int,
                 factors_n: int,
                 samples_n: int,
                 features_n: int,
                 labels_n: int,
                 labels_per_sample: int = 2,
                 noise_scale: float = 0.05
                 ):
        self.seed = int(seed)
        self.rng = np.random.default_rng(self.seed)
        self.factors_n = int(factors_n)
        self.samples_n = int(samples_n)
        self.features_n = int(features_n)
        self.labels_n = int(labels_n)
        self.labels_per_sample = min(int(labels_per_sample), self.labels_n)
        self.noise_scale = float(noise_scale)

        self.W = None
        self.Hs = None
        self.Hu = None
        self.Xs = None
        self.Xu = None
        self._generate_data()

    def _generate_data(self):
        W = self.rng.random(size=(self.samples_n, self.factors_n)) * 0.2
        dominant = self.rng.integers(low=0, high=self.factors_n, size=self.samples_n)
        W[np.arange(self.samples_n), dominant] += 1.0
        self.W = W
        self.Hs = self.rng.random(size=(self.factors_n, self.features_n)) ** 3
        self.Hu = self.rng.random(size=(self.factors_n, self.labels_n))

        noise = np.abs(self.rng.normal(loc=0.0, scale=self.noise_scale, size=(self.samples_n, self.features_n)))
        self.Xs = self.W @ self.Hs + noise

        weights = self.W @ self.Hu
        weights = weights / weights.sum(axis=1, keepdims=True)
        Xu = np.zeros(shape=(self.samples_n, self.labels_n))
        for i in range(self.samples_n):
            labels = self.rng.choice(self.labels_n, size=self.labels_per_sample, replace=False, p=weights[i])
            Xu[i, labels] = 1.0
        self.Xu = Xu
        logger.info(f"Synthetic dataset generated. Samples: {self.samples_n}, features: {self.features_n}, "
                    f"labels: {self.labels_n}, factors: {self.factors_n}")

    def get_data(self, sparse: bool = False):
        """
        Get the synthetic views.

        Parameters
        ----------
        sparse : bool
            Return CSR matrices instead of dense arrays. Default = False

        Returns
        -------
        tuple
            The primary view Xs and the side view Xu.
        """
        if sparse:
            return sp.csr_matrix(self.Xs), sp.csr_matrix(self.Xu)
        return self.Xs, self.Xu

    def get_dataframes(self):
        """
        The synthetic views as dataframes with labelled columns, as consumed by DataHandler.load_dataframe.
        """
        input_df = pd.DataFrame(self.Xs, columns=[f"Feature {i + 1}" for i in range(self.features_n)])
        label_df = pd.DataFrame(self.Xu, columns=[f"Label {i + 1}" for i in range(self.labels_n)])
        return input_df, label_df

    def save(self, output_directory: str, sim_name: str = "synthetic"):
        """
        Save the synthetic views as csv files.

        Parameters
        ----------
        output_directory : str
            The directory to write the files to, must exist.
        sim_name : str
            The prefix of the file names.

        Returns
        -------
        tuple
            The paths of the primary view and the side view files, None if the directory does not exist.
        """
        if not os.path.exists(output_directory):
            logger.error(f"Output directory does not exist. Specified directory: {output_directory}")
            return None
        input_df, label_df = self.get_dataframes()
        input_path = os.path.join(output_directory, f"{sim_name}_input.csv")
        label_path = os.path.join(output_directory, f"{sim_name}_labels.csv")
        input_df.to_csv(input_path, index=False)
        label_df.to_csv(label_path, index=False)
        logger.info(f"Synthetic data saved to files: {input_path}, {label_path}")
        return input_path, label_path
