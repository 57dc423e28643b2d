import logging
import numpy as np
from lce.model.lce import LCE
from lce.model.batch_lce import BatchLCE
from lce.data.analysis import ModelAnalysis
from lce.data.datahandler import DataHandler
from lce.data.graph import construct_adjacency
from lce.data.preprocessing import normalize_rows
from lce.data.simulator import Simulator

logger = logging.getLogger(__name__)


class TestModelAnalysis:

    datahandler = None
    model = None

    @classmethod
    def setup_class(cls):
        logger.info("Running ModelAnalysis Test Setup")
        simulator = Simulator(seed=3, factors_n=3, samples_n=60, features_n=20, labels_n=8)
        input_df, label_df = simulator.get_dataframes()
        cls.datahandler = DataHandler.load_dataframe(input_df=input_df, label_df=label_df, test_percent=0.25)
        Xs_train, Xu_train, _, _ = cls.datahandler.get_data()
        A = construct_adjacency(Xs_train, k=2, binary=True)
        cls.model = LCE(Xs=Xs_train, Xu=normalize_rows(Xu_train), factors=2, A=A, alpha=0.5, beta=0.05,
                        lambda_=0.1)
        cls.model.initialize()
        cls.model.train(max_iter=200, epsilon=1e-4)

    def test_calculate_statistics(self):
        ma = ModelAnalysis(model=self.model)
        stats = ma.calculate_statistics()
        assert len(stats) == len(self.model.objective)
        assert list(stats.columns) == ["Iteration", "Objective", "Delta"]
        assert np.isnan(stats["Delta"].iloc[0])
        if len(stats) > 1:
            assert np.isclose(stats["Delta"].iloc[1], abs(self.model.objective[1] - self.model.objective[0]))

    def test_evaluate(self):
        Xs_train, Xu_train, Xs_test, Xu_test = self.datahandler.get_data()
        ma = ModelAnalysis(model=self.model)
        scores = ma.evaluate(Xs_test=Xs_test, Xu_test=Xu_test, Xs_train=Xs_train, Xu_train=Xu_train)
        assert 0.0 <= scores["lce"] <= 1.0
        assert 0.0 <= scores["baseline"] <= 1.0
        assert ma.scores == scores
        assert "baseline" not in ma.evaluate(Xs_test=Xs_test, Xu_test=Xu_test)

    def test_plot_objective(self):
        ma = ModelAnalysis(model=self.model)
        fig = ma.plot_objective(show=False)
        assert len(fig.data) == 1
        Xs_train, Xu_train, _, _ = self.datahandler.get_data()
        bs = BatchLCE(Xs=Xs_train, Xu=Xu_train, factors=2, models=2, max_iter=20, verbose=False)
        bs.train()
        ma = ModelAnalysis(model=bs.results[bs.best_model], batch=bs)
        fig = ma.plot_objective(show=False)
        assert len(fig.data) == 2

    def test_plot_embedding_similarity(self):
        ma = ModelAnalysis(model=self.model)
        fig = ma.plot_embedding_similarity(show=False)
        assert fig is not None
