import importlib.metadata
import os
import click
import configparser
import logging
from importlib import metadata
from lce.configs import run_config, sim_config
from lce.data.datahandler import DataHandler
from lce.data.simulator import Simulator
from lce.data.analysis import ModelAnalysis
from lce.data.graph import construct_adjacency
from lce.data.preprocessing import normalize_rows
from lce.model.batch_lce import BatchLCE


logging.basicConfig(format='%(asctime)s - %(message)s', datefmt='%d-%b-%y %H:%M:%S', level=logging.INFO)
logger = logging.getLogger(__name__)

try:
    VERSION = metadata.version("lce")
except importlib.metadata.PackageNotFoundError as ex:
    logger.warning("LCE package must be installed to determine version number")
    VERSION = "NA"


def get_config(project_directory, sim=False):
    if sim:
        config_file = os.path.join(project_directory, "sim_config.toml")
    else:
        config_file = os.path.join(project_directory, "run_config.toml")
    config = configparser.ConfigParser()
    config.read(config_file)
    return config


def get_dh(config):
    return DataHandler(**config["data"])


def get_batch(project_directory):
    config = get_config(project_directory=project_directory)
    batch_pkl = os.path.join(config["project"]["directory"], "output", f"{config['project']['name']}.pkl")
    return BatchLCE.load(file_path=os.path.abspath(batch_pkl))


def create_project_directory(project_directory):
    try:
        if not os.path.exists(project_directory):
            os.mkdir(project_directory)
    except FileNotFoundError:
        logger.error("Unable to create workflow directory, make sure the path is correct.")
        return False
    return True


@click.group()
@click.version_option(version=VERSION)
def lce_cli():
    """
    \b
    The Local Collective Embeddings (LCE) CLI trains joint non-negative factorizations of a primary view (e.g.
    document content) and a side view (e.g. document authors), and ranks the side view columns for new rows of the
    primary view. The workflow sequence is as follows:
    \b
    1) setup : create the run configuration file in a project directory.
    2) simulate : (optional) generate a synthetic dataset and point the run configuration to it.
    3) run : train a batch of LCE models using the run configuration.
    4) evaluate : score the best model and the profile baseline on the test rows with NDCG.
    5) plot-objective : (optional) plot the objective over the training iterations.
    """
    pass


@lce_cli.command()
@click.argument("project_directory", type=click.Path())
def setup(project_directory):
    """
    Create the configuration file for a batch LCE run in the provided directory.

    Parameters

    project_directory : The project directory where all configuration output files are saved.

    """
    if not create_project_directory(project_directory):
        return
    logger.info(f"Creating new LCE project")
    new_config = run_config
    new_config['project']['directory'] = project_directory
    new_config_file = os.path.join(project_directory, "run_config.toml")
    with open(new_config_file, 'w') as configfile:
        new_config.write(configfile)
    logger.info(f"New run configuration file created. File path: {new_config_file}")


@lce_cli.command()
@click.argument("project_directory", type=click.Path())
def simulate(project_directory):
    """
    Generate a synthetic dataset as defined in sim_config.toml, created with default values when missing, and set
    the data paths of run_config.toml to the generated files.

    Parameters

    project_directory : The project directory where all configuration output files are saved.

    """
    if not create_project_directory(project_directory):
        return
    sim_config_file = os.path.join(project_directory, "sim_config.toml")
    if not os.path.exists(sim_config_file):
        new_sim_config = sim_config
        new_sim_config['project']['directory'] = project_directory
        with open(sim_config_file, 'w') as configfile:
            new_sim_config.write(configfile)
        logger.info(f"New simulator configuration file created. File path: {sim_config_file}")
    config = get_config(project_directory=project_directory, sim=True)
    p = config["parameters"]
    sim = Simulator(seed=p.getint("seed"), factors_n=p.getint("factors_n"), samples_n=p.getint("samples_n"),
                    features_n=p.getint("features_n"), labels_n=p.getint("labels_n"),
                    labels_per_sample=p.getint("labels_per_sample"), noise_scale=p.getfloat("noise_scale"))
    input_path, label_path = sim.save(output_directory=project_directory)

    run_config_file = os.path.join(project_directory, "run_config.toml")
    new_config = get_config(project_directory=project_directory) if os.path.exists(run_config_file) else run_config
    new_config['project']['directory'] = project_directory
    if not new_config['project']['name']:
        new_config['project']['name'] = "synthetic"
    new_config['data']['input_path'] = os.path.abspath(input_path)
    new_config['data']['label_path'] = os.path.abspath(label_path)
    with open(run_config_file, 'w') as configfile:
        new_config.write(configfile)
    logger.info(f"Run configuration updated with the synthetic dataset. File path: {run_config_file}")


@lce_cli.command()
@click.argument("project_directory", type=click.Path(exists=True))
def run(project_directory):
    """
    Run a batch of LCE models using the provided configuration file.

    Parameters

    project_directory : The project directory containing .toml configuration files.

    """
    config = get_config(project_directory=project_directory)
    dh = get_dh(config)
    Xs_train, Xu_train, Xs_test, Xu_test = dh.get_data()

    neighbors = config["graph"].getint("neighbors")
    A = None
    if neighbors > 0:
        logger.info(f"Constructing the {neighbors}-nearest neighbor graph of {Xs_train.shape[0]} rows.")
        A = construct_adjacency(Xs_train, k=neighbors, binary=config["graph"].getboolean("binary"))

    p = config["parameters"]
    batch = BatchLCE(Xs=Xs_train, Xu=normalize_rows(Xu_train), factors=p.getint("factors"), A=A,
                     models=p.getint("models"), alpha=p.getfloat("alpha"), beta=p.getfloat("beta"),
                     lambda_=p.getfloat("lambda_"), seed=p.getint("seed"), max_iter=p.getint("max_iter"),
                     epsilon=p.getfloat("epsilon"), parallel=p.getboolean("parallel"),
                     verbose=p.getboolean("verbose"))
    batch.details()
    batch.train()
    output_path = os.path.abspath(os.path.join(config["project"]["directory"], "output"))
    if not os.path.exists(output_path):
        os.mkdir(output_path)
    batch.save(batch_name=config["project"]["name"], output_directory=output_path, pickle_batch=True)
    batch.save(batch_name=config["project"]["name"], output_directory=output_path, pickle_batch=False)


@lce_cli.command()
@click.argument("project_directory", type=click.Path(exists=True))
@click.option('-m', "--selected_model", default=-1, type=int, help="The index of the model from the batch. "
                                                                   "Default: -1, the best performing model.",
              show_default=True)
def evaluate(project_directory, selected_model):
    """
    Evaluate a trained model on the test rows with NDCG, compared to the profile baseline.

    Parameters

    project_directory : The project directory containing .toml configuration files.

    """
    config = get_config(project_directory=project_directory)
    dh = get_dh(config)
    Xs_train, Xu_train, Xs_test, Xu_test = dh.get_data()
    batch = get_batch(project_directory=project_directory)
    if batch is None:
        logger.error("No trained batch found, execute run first.")
        return
    selected_i = batch.best_model if selected_model == -1 else selected_model
    ma = ModelAnalysis(model=batch.results[selected_i], batch=batch)
    logger.info(f"LCE evaluation. Model selected: {selected_i + 1}")
    ma.evaluate(Xs_test=Xs_test, Xu_test=Xu_test, Xs_train=Xs_train, Xu_train=Xu_train)


@lce_cli.command(name="plot-objective")
@click.argument("project_directory", type=click.Path(exists=True))
@click.option('-o', "--output_file", default=None, type=click.Path(), help="Write the plot to this html file "
                                                                          "instead of displaying it.")
def plot_objective(project_directory, output_file):
    """
    Plots the objective value over the training iterations for the batch models.

    Parameters

    project_directory : The project directory containing .toml configuration files.

    """
    batch = get_batch(project_directory=project_directory)
    if batch is None:
        logger.error("No trained batch found, execute run first.")
        return
    ma = ModelAnalysis(model=batch.results[batch.best_model], batch=batch)
    if output_file is None:
        ma.plot_objective()
    else:
        fig = ma.plot_objective(show=False)
        fig.write_html(output_file)
        logger.info(f"Objective plot saved to file: {output_file}")


if __name__ == "__main__":
    lce_cli()
