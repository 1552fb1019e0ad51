import importlib.metadata
import os
import click
import configparser
import logging
import numpy as np
from importlib import metadata
from nmfkit.data.datahandler import DataHandler
from nmfkit.model.nmf import NMF, UPDATE_RULES, factorize
from nmfkit.model.batch_nmf import BatchNMF
from nmfkit.configs import run_config
from nmfkit.errors import NMFError


logging.basicConfig(format='%(asctime)s - %(message)s', datefmt='%d-%b-%y %H:%M:%S', level=logging.INFO)
logger = logging.getLogger(__name__)

try:
    VERSION = metadata.version("nmfkit")
except importlib.metadata.PackageNotFoundError as ex:
    logger.warning("nmfkit package must be installed to determine version number")
    VERSION = "NA"


def get_config(project_directory):
    config_file = os.path.join(project_directory, "run_config.toml")
    config = configparser.ConfigParser()
    config.read(config_file)
    return config


def load_matrix(file_path):
    if file_path is None:
        return None
    dh = DataHandler(input_path=file_path, header=False)
    return dh.get_data()


@click.group()
@click.version_option(version=VERSION)
def nmfkit_cli():
    """
    \b
    The nmfkit CLI factorizes a non-negative matrix V into non-negative matrices W and H, such that WH ~ V.
    \b
    1) factorize : run a single factorization with the parameters given as options.
    2) setup : create a project directory with a run configuration file.
    3) run : execute the factorization(s) defined by the project configuration file.
    """
    pass


@nmfkit_cli.command()
@click.argument("project_directory", type=click.Path())
def setup(project_directory):
    """
    Create the configuration file for a factorization run in the provided directory.

    Parameters

    project_directory : The project directory where all configuration and output files are saved.

    """
    try:
        if not os.path.exists(project_directory):
            os.makedirs(project_directory)
    except OSError:
        logger.error("Unable to create project directory, make sure the path is correct.")
        raise click.ClickException(f"Unable to create project directory {project_directory}")
    logger.info(f"Creating new nmfkit project")
    new_config = configparser.ConfigParser()
    new_config.read_dict(run_config)
    new_config['project']['directory'] = project_directory
    new_config_file = os.path.join(project_directory, "run_config.toml")
    with open(new_config_file, 'w') as configfile:
        new_config.write(configfile)
    logger.info(f"New run configuration file created. File path: {new_config_file}")


@nmfkit_cli.command()
@click.argument("project_directory", type=click.Path(exists=True))
def run(project_directory):
    """
    Run a factorization, or a batch of factorizations, using the project configuration file.

    Parameters

    project_directory : The project directory containing the run_config.toml configuration file.

    """
    config = get_config(project_directory=project_directory)
    try:
        dh = DataHandler(**config["data"])
    except (ValueError, FileNotFoundError) as ex:
        raise click.ClickException(str(ex))
    V = dh.get_data()
    parameters = config["parameters"]
    models = parameters.getint("models", fallback=1)
    output_path = os.path.abspath(os.path.join(config["project"]["directory"], "output"))
    if not os.path.exists(output_path):
        os.mkdir(output_path)
    try:
        if models > 1:
            batch = BatchNMF(V=V,
                             rank=parameters.getint("rank"),
                             models=models,
                             update_rules=parameters.get("update_rules", fallback="multdist"),
                             seed=parameters.getint("seed", fallback=42),
                             init_method=parameters.get("init_method", fallback="random"),
                             init_norm=parameters.getboolean("init_norm", fallback=True),
                             max_iter=parameters.getint("max_iter", fallback=10000),
                             min_residue=parameters.getfloat("min_residue", fallback=1e-5),
                             converge_delta=parameters.getfloat("converge_delta", fallback=1e-10),
                             converge_n=parameters.getint("converge_n", fallback=10),
                             parallel=parameters.getboolean("parallel", fallback=False),
                             verbose=parameters.getboolean("verbose", fallback=False))
            batch.details()
            batch.train()
            batch.save(batch_name=config["project"]["name"], output_directory=output_path, pickle_batch=True)
            batch.results[batch.best_model].save(model_name=config["project"]["name"], output_directory=output_path,
                                                 header=dh.features)
        else:
            model = NMF(V=V,
                        rank=parameters.getint("rank"),
                        update_rules=parameters.get("update_rules", fallback="multdist"),
                        seed=parameters.getint("seed", fallback=42),
                        verbose=parameters.getboolean("verbose", fallback=False))
            model.initialize(init_method=parameters.get("init_method", fallback="random"),
                             init_norm=parameters.getboolean("init_norm", fallback=True))
            model.train(max_iter=parameters.getint("max_iter", fallback=10000),
                        min_residue=parameters.getfloat("min_residue", fallback=1e-5),
                        converge_delta=parameters.getfloat("converge_delta", fallback=1e-10),
                        converge_n=parameters.getint("converge_n", fallback=10))
            model.summary()
            model.save(model_name=config["project"]["name"], output_directory=output_path, pickle_model=True)
            model.save(model_name=config["project"]["name"], output_directory=output_path, header=dh.features)
    except NMFError as ex:
        raise click.ClickException(str(ex))


@nmfkit_cli.command(name="factorize")
@click.option('-i', "--input", "input_path", required=True, type=click.Path(exists=True),
              help="Input dataset to perform NMF on, a csv file without a header row.")
@click.option('-r', "--rank", required=True, type=int, help="Rank of the factorization.")
@click.option('-u', "--update_rules", default="multdist", show_default=True,
              help=f"Update rules for each iteration; one of: {', '.join(UPDATE_RULES)}.")
@click.option('-n', "--max_iterations", default=10000, type=int, show_default=True,
              help="Number of iterations before NMF terminates, 0 runs until convergence.")
@click.option('-e', "--min_residue", default=1e-5, type=float, show_default=True,
              help="The minimum residue allowed, below which the program terminates.")
@click.option('-q', "--initial_w", type=click.Path(exists=True), default=None, help="Initial W matrix.")
@click.option('-p', "--initial_h", type=click.Path(exists=True), default=None, help="Initial H matrix.")
@click.option('-w', "--output_w", type=click.Path(), default=None, help="File to save the calculated W matrix to.")
@click.option('-o', "--output_h", type=click.Path(), default=None, help="File to save the calculated H matrix to.")
@click.option('-s', "--seed", default=None, type=int, help="Random seed, unset uses fresh entropy.")
@click.option('-v', "--verbose", is_flag=True, default=False, help="Display the iteration progress.")
def factorize_cmd(input_path, rank, update_rules, max_iterations, min_residue, initial_w, initial_h, output_w,
                  output_h, seed, verbose):
    """
    Factorize the input matrix V into W and H, with V ~ WH, using the selected update rules.
    """
    try:
        V = load_matrix(input_path)
        W, H = factorize(V=V, rank=rank, update_rules=update_rules, max_iterations=max_iterations,
                         min_residue=min_residue, initial_w=load_matrix(initial_w), initial_h=load_matrix(initial_h),
                         seed=seed, verbose=verbose)
    except (ValueError, FileNotFoundError) as ex:
        raise click.ClickException(str(ex))
    if output_w is not None:
        np.savetxt(output_w, W, delimiter=",")
        logger.info(f"W matrix saved to file: {output_w}")
    if output_h is not None:
        np.savetxt(output_h, H, delimiter=",")
        logger.info(f"H matrix saved to file: {output_h}")
