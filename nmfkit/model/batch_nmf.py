import datetime
import os
import logging
import time
import pickle
import numpy as np
from pathlib import Path
import multiprocessing as mp
from nmfkit.model.nmf import NMF, validate_rank, validate_update_rule, validate_iteration_bounds

logging.basicConfig(format='%(asctime)s - %(message)s', datefmt='%d-%b-%y %H:%M:%S', level=logging.INFO)
logger = logging.getLogger(__name__)


class BatchNMF:
    """
    The batch NMF class is used to create multiple NMF models, using the same input configuration and different
    random seeds for initialization of the W and H matrices.

    The batch NMF class allows for the parallel execution of multiple NMF models, each model owns its own copy of
    the input and factor matrices. The best model is the model with the lowest final residue.

    Parameters
    ----------
    V : np.ndarray
        The non-negative input data matrix of shape M x N.
    rank : int
        The rank of the factorizations.
    models : int
        The number of NMF models to create. Default = 10.
    update_rules : str
        The update rule used by every model. Options are: 'multdist', 'multdiv' and 'als'.
    seed : int
        The random seed used for generating the seeds of the individual models. Default is 42.
    W : np.ndarray
        Optional, predefined basis matrix used by all models. A 3-D array provides one matrix per model.
    H : np.ndarray
        Optional, predefined coefficient matrix used by all models. A 3-D array provides one matrix per model.
    init_method : str
       The initialization method for missing matrices, 'random' or 'kmeans'.
    init_norm : bool
       When using init_method 'kmeans', this option allows for normalizing the input dataset prior to clustering.
    max_iter : int
       The maximum number of iterations to update W and H matrices, 0 for no maximum. Default: 10000
    min_residue : float
       The residue at or below which a model is considered converged. Default: 1e-5
    converge_delta : float
       The relative change in the residue where a model is considered stagnant. Default: 1e-10
    converge_n : int
       The number of iterations the change in residue is measured over. Default: 10
    parallel : bool
        Run the individual models in parallel. Default = False.
    cores : int
        The number of cores to use for parallel processing. Default is the number of cores - 1.
    verbose : bool
        Allows for increased verbosity of the initialization and model training steps.
    """
    def __init__(self,
                 V: np.ndarray,
                 rank: int,
                 models: int = 10,
                 update_rules: str = "multdist",
                 seed: int = 42,
                 W: np.ndarray = None,
                 H: np.ndarray = None,
                 init_method: str = "random",
                 init_norm: bool = True,
                 max_iter: int = 10000,
                 min_residue: float = 1e-5,
                 converge_delta: float = 1e-10,
                 converge_n: int = 10,
                 parallel: bool = False,
                 cores: int = None,
                 verbose: bool = False
                 ):
        """
        Constructor method.
        """
        self.rank = validate_rank(rank)
        self.update_rules = validate_update_rule(update_rules)
        validate_iteration_bounds(max_iter=max_iter, min_residue=min_residue, converge_delta=converge_delta,
                                  converge_n=converge_n)

        self.V = V
        self.W = W
        self.H = H

        self.models = int(models)
        self.max_iter = int(max_iter)
        self.min_residue = float(min_residue)
        self.converge_delta = float(converge_delta)
        self.converge_n = int(converge_n)

        self.seed = 42 if seed is None else int(seed)
        self.rng = np.random.default_rng(self.seed)
        self.init_method = str(init_method)
        self.init_norm = bool(init_norm)

        self.runtime = None
        self.parallel = parallel if isinstance(parallel, bool) else str(parallel).lower() == "true"
        cores = -1 if cores is None else int(cores)
        self.cores = cores if cores > 0 else max((os.cpu_count() or 2) - 1, 1)
        self.verbose = verbose if isinstance(verbose, bool) else str(verbose).lower() == "true"
        self.results = []
        self.best_model = None

    def details(self):
        logger.info(f"Batch NMF Instance Configuration")
        logger.info("-------------------------------------------------")
        logger.info(f"Rank: {self.rank}, Update Rules: {self.update_rules}, Models: {self.models}")
        logger.info(f"Max Iterations: {self.max_iter}, Min Residue: {self.min_residue}, "
                    f"Converge Delta: {self.converge_delta}, Converge N: {self.converge_n}")
        logger.info(f"Random Seed: {self.seed}, Init Method: {self.init_method}")
        logger.info(f"Parallel: {self.parallel}, Cores: {self.cores}, Verbose: {self.verbose}")
        if len(self.results) > 0:
            logger.info("------------------------------ Batch Results ------------------------------")
            for i, result in enumerate(self.results):
                logger.info(f"Model: {i + 1}, Residue: {result.residue:.6f}, Seed: {result.seed}, "
                            f"Converged: {result.converged}, Stop Reason: {result.stop_reason}, "
                            f"Steps: {result.converge_steps}")
            best = self.results[self.best_model]
            logger.info(f"Results - Best Model: {self.best_model + 1}, Residue: {best.residue:.6f}, "
                        f"Converged: {best.converged}")

    def _factor(self, factor, model_i):
        if factor is None:
            return None
        factor = np.asarray(factor)
        if factor.ndim == 3:
            return factor[model_i - 1]
        return factor

    def train(self):
        """
        Execute the training sequence for the batch of NMF models using the shared configuration parameters.

        Returns
        -------
        int
           The index of the best model in the results list.
        """
        t0 = time.time()
        models = []
        for model_i in range(1, self.models + 1):
            _seed = int(self.rng.integers(low=0, high=1e5))
            _nmf = NMF(V=self.V, rank=self.rank, update_rules=self.update_rules, seed=_seed,
                       verbose=self.verbose and not self.parallel)
            _nmf.initialize(W=self._factor(self.W, model_i), H=self._factor(self.H, model_i),
                            init_method=self.init_method, init_norm=self.init_norm)
            models.append(_nmf)

        train_parameters = (self.max_iter, self.min_residue, self.converge_delta, self.converge_n)
        if self.parallel:
            logger.info(f"Running {self.models} NMF models in parallel using {self.cores} cores.")
            input_parameters = [(_nmf, i + 1, *train_parameters) for i, _nmf in enumerate(models)]
            with mp.Pool(processes=self.cores) as pool:
                results = pool.starmap(_train_task, input_parameters)
            self.results = [_nmf for _, _nmf in sorted(results, key=lambda r: r[0])]
        else:
            logger.info(f"Running {self.models} NMF models sequentially.")
            self.results = []
            for i, _nmf in enumerate(models):
                t3 = time.time()
                _train_task(_nmf, i + 1, *train_parameters)
                t_delta = datetime.timedelta(seconds=time.time() - t3)
                if self.verbose:
                    logger.info(f"Model {i + 1} training completed in {t_delta}.")
                self.results.append(_nmf)

        residues = [np.inf if r.residue is None else r.residue for r in self.results]
        self.best_model = int(np.argmin(residues))
        self.runtime = round(time.time() - t0, 2)
        logger.info(f"Batch training completed in {self.runtime} seconds. Best model: {self.best_model + 1}, "
                    f"residue: {residues[self.best_model]:.6f}")
        if self.verbose:
            self.details()
        return self.best_model

    def save(self, batch_name: str, output_directory: str, pickle_batch: bool = True, header: list = None):
        """
        Save the collection of NMF models, either as one pickle of the batch or as the csv/json files of each model.

        Parameters
        ----------
        batch_name : str
           The name used for the save files.
        output_directory : str
           The absolute path of an existing directory.
        pickle_batch : bool
           Pickle the whole batch object instead of writing the files of each model. Default = True.
        header : list
           The column names of V, used in the csv files.

        Returns
        -------
        str
           The path of the pickle file or the output directory, None if saving fails.
        """
        output_directory = Path(output_directory)
        if not output_directory.is_absolute():
            logger.error("Provided output directory is not an absolute path. Must provide an absolute path.")
            return None
        if not os.path.exists(output_directory):
            logger.error(f"Output directory does not exist. Specified directory: {output_directory}")
            return None
        if pickle_batch:
            file_path = os.path.join(output_directory, f"{batch_name}.pkl")
            with open(file_path, "wb") as save_file:
                pickle.dump(self, save_file)
                logger.info(f"Batch NMF models saved to pickle file: {file_path}")
            return file_path
        for i, result in enumerate(self.results):
            result.save(model_name=f"{batch_name}-{i + 1}", output_directory=output_directory, header=header)
        return output_directory

    @staticmethod
    def load(file_path: str):
        """
        Load a previously saved batch NMF pickle file, returns None on failure.
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
                logger.error(f"Failed to load batch NMF pickle file {file_path}. \nError: {p_error}")
                return None
        else:
            logger.error(f"Batch NMF load file failed, specified pickle file does not exist. File Path: {file_path}")
            return None


def _train_task(nmf, model_i, max_iter, min_residue, converge_delta, converge_n):
    nmf.train(max_iter=max_iter, min_residue=min_residue, converge_delta=converge_delta, converge_n=converge_n,
              model_i=model_i)
    return model_i, nmf
