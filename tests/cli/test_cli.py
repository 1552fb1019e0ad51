import os
import configparser
import numpy as np
import pandas as pd
import nmfkit.cli.nmf_cli as cli
from click.testing import CliRunner

project_directory = os.path.abspath(os.path.join(os.path.dirname(os.path.abspath(__file__)), "..", "..", "data",
                                                 "test_output", "cli_test"))
data_path = os.path.abspath(os.path.join(os.path.dirname(os.path.abspath(__file__)), "..", "..", "data",
                                         "test_output"))

rng = np.random.default_rng(42)
V = rng.random(size=(10, 10))
initial_W = rng.random(size=(10, 5))
initial_H = rng.random(size=(5, 10))


def _write_matrix(name, matrix):
    file_path = os.path.join(data_path, name)
    np.savetxt(file_path, matrix, delimiter=",")
    return file_path


def _update_config(name, **parameters):
    run_config_file = os.path.join(project_directory, "run_config.toml")
    input_file = os.path.join(data_path, "cli_input.csv")
    pd.DataFrame(data=V, columns=[f"f{i}" for i in range(10)]).to_csv(input_file, index=False)

    run_config = configparser.ConfigParser()
    run_config.read(run_config_file)
    run_config["project"]["name"] = name
    run_config["data"]["input_path"] = input_file
    run_config["parameters"]["rank"] = "3"
    run_config["parameters"]["max_iter"] = "100"
    for key, value in parameters.items():
        run_config["parameters"][key] = str(value)
    with open(run_config_file, 'w') as cfile:
        run_config.write(cfile)


def test_setup():
    runner = CliRunner()
    result = runner.invoke(cli.setup, [project_directory])
    assert result.exit_code == 0
    assert os.path.exists(os.path.join(project_directory, "run_config.toml"))


def test_run():
    _update_config("cli_test", models=1)
    runner = CliRunner()
    result = runner.invoke(cli.run, [project_directory])
    assert result.exit_code == 0
    assert os.path.exists(os.path.join(project_directory, "output", "cli_test.pkl"))
    assert os.path.exists(os.path.join(project_directory, "output", "cli_test-w.csv"))
    assert os.path.exists(os.path.join(project_directory, "output", "cli_test-h.csv"))


def test_run_batch():
    _update_config("cli_batch_test", models=2, update_rules="multdiv")
    runner = CliRunner()
    result = runner.invoke(cli.run, [project_directory])
    assert result.exit_code == 0
    assert os.path.exists(os.path.join(project_directory, "output", "cli_batch_test.pkl"))
    assert os.path.exists(os.path.join(project_directory, "output", "cli_batch_test-metadata.json"))


def test_run_invalid_rule():
    _update_config("cli_invalid_test", models=1, update_rules="invalid_rule")
    runner = CliRunner()
    result = runner.invoke(cli.run, [project_directory])
    assert result.exit_code != 0
    assert "invalid_rule" in result.output


def test_factorize():
    input_file = _write_matrix("cli_v.csv", V)
    output_w = os.path.join(data_path, "cli_w.csv")
    output_h = os.path.join(data_path, "cli_h.csv")
    runner = CliRunner()
    result = runner.invoke(cli.factorize_cmd, ["-i", input_file, "-r", "5", "-u", "als", "-n", "50",
                                               "-w", output_w, "-o", output_h, "-s", "1"])
    assert result.exit_code == 0
    W = np.loadtxt(output_w, delimiter=",")
    H = np.loadtxt(output_h, delimiter=",")
    assert W.shape == (10, 5)
    assert H.shape == (5, 10)
    assert W.min() >= 0.0
    assert H.min() >= 0.0


def test_factorize_initial():
    input_file = _write_matrix("cli_v.csv", V)
    w_file = _write_matrix("cli_initial_w.csv", initial_W)
    h_file = _write_matrix("cli_initial_h.csv", initial_H)
    outputs = []
    for i, min_residue in enumerate(["1", "1e-3"]):
        output_w = os.path.join(data_path, f"cli_w_{i}.csv")
        runner = CliRunner()
        result = runner.invoke(cli.factorize_cmd, ["-i", input_file, "-r", "5", "-e", min_residue,
                                                   "-q", w_file, "-p", h_file, "-w", output_w])
        assert result.exit_code == 0
        outputs.append(np.loadtxt(output_w, delimiter=","))
    assert np.linalg.norm(outputs[0] - outputs[1]) > 1e-5


def test_factorize_invalid():
    input_file = _write_matrix("cli_v.csv", V)
    runner = CliRunner()
    result = runner.invoke(cli.factorize_cmd, ["-i", input_file, "-r", "0"])
    assert result.exit_code != 0
    result = runner.invoke(cli.factorize_cmd, ["-i", input_file, "-r", "5", "-n", "-1"])
    assert result.exit_code != 0
    result = runner.invoke(cli.factorize_cmd, ["-i", input_file, "-r", "5", "-u", "invalid_rule"])
    assert result.exit_code != 0
    h_file = _write_matrix("cli_bad_h.csv", initial_H[:4])
    result = runner.invoke(cli.factorize_cmd, ["-i", input_file, "-r", "5", "-p", h_file])
    assert result.exit_code != 0


def test_factorize_rank_one():
    input_file = _write_matrix("cli_v.csv", V)
    w_file = _write_matrix("cli_rank_one_w.csv", initial_W[:, :1])
    output_w = os.path.join(data_path, "cli_rank_one_out_w.csv")
    output_h = os.path.join(data_path, "cli_rank_one_out_h.csv")
    runner = CliRunner()
    result = runner.invoke(cli.factorize_cmd, ["-i", input_file, "-r", "1", "-q", w_file, "-n", "50",
                                               "-w", output_w, "-o", output_h])
    assert result.exit_code == 0
    W = np.loadtxt(output_w, delimiter=",", ndmin=2)
    H = np.loadtxt(output_h, delimiter=",", ndmin=2)
    assert W.shape == (10, 1)
    assert H.shape == (1, 10)


def test_factorize_invalid_input_file():
    negative_file = _write_matrix("cli_negative_v.csv", -V)
    runner = CliRunner()
    result = runner.invoke(cli.factorize_cmd, ["-i", negative_file, "-r", "2"])
    assert result.exit_code == 1
    assert "negative" in result.output
    assert not isinstance(result.exception, ValueError)


def test_run_invalid_input_file():
    _update_config("cli_missing_input_test", models=1)
    run_config_file = os.path.join(project_directory, "run_config.toml")
    run_config = configparser.ConfigParser()
    run_config.read(run_config_file)
    run_config["data"]["input_path"] = os.path.join(data_path, "missing_input.csv")
    with open(run_config_file, 'w') as cfile:
        run_config.write(cfile)
    runner = CliRunner()
    result = runner.invoke(cli.run, [project_directory])
    assert result.exit_code == 1
    assert "not found" in result.output
