import os
import configparser
import lce.cli.lce_cli as cli
from click.testing import CliRunner

project_directory = os.path.join(os.path.dirname(os.path.abspath(__file__)), "..", "..", "data", "test_output",
                                 "cli_test")


def test_setup():
    runner = CliRunner()
    result = runner.invoke(cli.setup, [project_directory])
    assert result.exit_code == 0
    assert os.path.exists(os.path.join(project_directory, "run_config.toml"))


def test_simulate():
    runner = CliRunner()
    result = runner.invoke(cli.simulate, [project_directory])
    assert result.exit_code == 0
    assert os.path.exists(os.path.join(project_directory, "sim_config.toml"))
    assert os.path.exists(os.path.join(project_directory, "synthetic_input.csv"))
    run_config = configparser.ConfigParser()
    run_config.read(os.path.join(project_directory, "run_config.toml"))
    assert run_config["data"]["input_path"].endswith("synthetic_input.csv")
    assert run_config["data"]["label_path"].endswith("synthetic_labels.csv")


def test_run():
    run_config_file = os.path.join(project_directory, "run_config.toml")
    run_config = configparser.ConfigParser()
    run_config.read(run_config_file)
    run_config["project"]["name"] = "cli_test"
    run_config["graph"]["neighbors"] = "2"
    run_config["parameters"]["factors"] = "3"
    run_config["parameters"]["models"] = "2"
    run_config["parameters"]["max_iter"] = "100"
    run_config["parameters"]["parallel"] = "False"
    with open(run_config_file, 'w') as cfile:
        run_config.write(cfile)
    runner = CliRunner()
    result = runner.invoke(cli.run, [project_directory])
    assert result.exit_code == 0
    assert os.path.exists(os.path.join(project_directory, "output", "cli_test.pkl"))
    assert os.path.exists(os.path.join(project_directory, "output", "cli_test-model-0-W.csv"))


def test_evaluate():
    runner = CliRunner()
    result = runner.invoke(cli.evaluate, [project_directory])
    assert result.exit_code == 0
    result = runner.invoke(cli.evaluate, [project_directory, "-m", "1"])
    assert result.exit_code == 0


def test_plot_objective():
    output_file = os.path.join(project_directory, "output", "objective.html")
    runner = CliRunner()
    result = runner.invoke(cli.plot_objective, [project_directory, "-o", output_file])
    assert result.exit_code == 0
    assert os.path.exists(output_file)


def test_version():
    runner = CliRunner()
    result = runner.invoke(cli.lce_cli, ["--version"])
    assert result.exit_code == 0
    assert cli.VERSION in result.output
