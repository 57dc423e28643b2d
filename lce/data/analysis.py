import logging
import numpy as np
import pandas as pd
import plotly.graph_objects as go
from lce.data.preprocessing import normalize_rows
from lce.metrics import ndcg
from lce.model.baseline import profile_baseline

logger = logging.getLogger(__name__)


class ModelAnalysis:
    """
    Class for running analysis on the results of a trained LCE model, or the models of a BatchLCE.

    Parameters
    ----------
    model : LCE
        A trained LCE model.
    batch : BatchLCE
        Optional, the batch the model belongs to, used for plotting the objective of every batch model.
    """
    def __init__(self, model, batch=None):
        self.model = model
        self.batch = batch
        self.statistics = None
        self.scores = None

    def calculate_statistics(self):
        """
        Tabulate the objective trajectory with the change between consecutive iterations.

        Returns
        -------
        pd.DataFrame
            One row per iteration with the objective value and its absolute change, NaN for the first iteration.
        """
        objective = np.asarray(self.model.objective, dtype=float)
        delta = np.full(shape=objective.shape, fill_value=np.nan)
        if len(objective) > 1:
            delta[1:] = np.abs(np.diff(objective))
        self.statistics = pd.DataFrame(data={
            "Iteration": np.arange(1, len(objective) + 1),
            "Objective": objective,
            "Delta": delta
        })
        return self.statistics

    def evaluate(self, Xs_test, Xu_test, Xs_train=None, Xu_train=None):
        """
        Score the model ranking of the side view columns for the test rows with NDCG, and the profile baseline when
        the training rows are provided.

        Parameters
        ----------
        Xs_test : np.ndarray | scipy.sparse matrix
            The test rows of the primary view.
        Xu_test : np.ndarray | scipy.sparse matrix
            The binary relevance of the side view columns for the test rows.
        Xs_train : np.ndarray | scipy.sparse matrix
            Optional, the training rows of the primary view, required for the baseline.
        Xu_train : np.ndarray | scipy.sparse matrix
            Optional, the training rows of the side view, required for the baseline.

        Returns
        -------
        dict
            The NDCG of the model, and of the baseline when computed.
        """
        scores = {"lce": ndcg(self.model.rank(Xs_test), Xu_test)}
        if Xs_train is not None and Xu_train is not None:
            scores["baseline"] = ndcg(profile_baseline(Xs_train, Xu_train, Xs_test), Xu_test)
        logger.info(", ".join(f"{name.upper()}: {value:.6f}" for name, value in scores.items()))
        self.scores = scores
        return scores

    def plot_objective(self, show: bool = True):
        """
        Plot the objective value as it changes over the training iterations, for the model or for every model of the
        batch.
        """
        obj_fig = go.Figure()
        if self.batch is not None:
            for i, result in enumerate(self.batch.results):
                obj_fig.add_trace(go.Scatter(x=list(range(1, len(result.objective) + 1)), y=result.objective,
                                             name=f"Model {i + 1}", mode='lines'))
        else:
            obj_fig.add_trace(go.Scatter(x=list(range(1, len(self.model.objective) + 1)), y=self.model.objective,
                                         name="Objective", mode='lines'))
        obj_fig.update(layout_title_text=f"Objective vs Iterations. Converged: {self.model.converged}")
        obj_fig.update_layout(width=1200, height=600, hovermode='x')
        obj_fig.update_xaxes(title_text="Iterations")
        obj_fig.update_yaxes(title_text="Objective")
        if show:
            obj_fig.show()
            return None
        return obj_fig

    def plot_embedding_similarity(self, show: bool = True):
        """
        Plot the cosine similarity between the columns of the side view in the latent space, the normalized columns of
        Hu.
        """
        Hu_n = normalize_rows(self.model.Hu.T)
        similarity = Hu_n @ Hu_n.T
        sim_fig = go.Figure(data=go.Heatmap(z=similarity, colorscale="Viridis"))
        sim_fig.update(layout_title_text="Side View Latent Similarity")
        sim_fig.update_layout(width=800, height=800)
        if show:
            sim_fig.show()
            return None
        return sim_fig
