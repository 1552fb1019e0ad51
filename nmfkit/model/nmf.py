from nmfkit.model.multdist import MultDistNMF
from nmfkit.model.multdiv import MultDivNMF
from nmfkit.model.als import ALSNMF
from nmfkit.model.convergence import ConvergenceTracker
from nmfkit.errors import (InvalidRankError, InvalidIterationBoundError, InvalidResidueBoundError,
                           UnknownUpdateRuleError, InvalidInitialFactorShapeError, InvalidInputMatrixError)
from nmfkit.utils import np_encoder, is_integer
from nmfkit.metrics import kl_divergence, EPSILON
from scipy.cluster.vq import kmeans2, whiten
from tqdm import tqdm
from datetime import datetime
from pathlib import Path
import numpy as np
import logging
import pickle
import json
import time
import os

logging.basicConfig(format='%(asctime)s - %(message)s', datefmt='%d-%b-%y %H:%M:%S', level=logging.INFO)
logger = logging.getLogger(__name__)

# The closed set of update rules, keyed by the rule name used in configurations and the CLI.
UPDATE_RULES = {
    "multdist": MultDistNMF,
    "multdiv": MultDivNMF,
    "als": ALSNMF,
}

INIT_METHODS = ("random", "kmeans")


def validate_rank(rank):
    if not is_integer(rank) or rank < 1:
        logger.error(f"The rank of the factorization must be a positive integer. Current rank: {rank}")
        raise InvalidRankError(f"The rank must be a positive integer, got {rank!r}.")
    return int(rank)


def validate_update_rule(update_rules):
    rule = str(update_rules).lower()
    if rule not in UPDATE_RULES:
        logger.error(f"Unknown update rule: {update_rules}. Valid options are: {', '.join(UPDATE_RULES)}")
        raise UnknownUpdateRuleError(f"Unknown update rule {update_rules!r}, expected one of "
                                     f"{', '.join(UPDATE_RULES)}.")
    return rule


def validate_iteration_bounds(max_iter, min_residue, converge_delta=0.0, converge_n=1):
    """
    Validates the termination parameters of a factorization.

    Parameters
    ----------
    max_iter : int
       The maximum number of iterations, must be non-negative. A value of 0 places no bound on the iterations.
    min_residue : float
       The residue threshold, must be non-negative.
    converge_delta : float
       The stagnation threshold, must be non-negative.
    converge_n : int
       The stagnation window, must be at least 1.
    """
    if not is_integer(max_iter) or max_iter < 0:
        logger.error(f"The maximum number of iterations must be a non-negative integer. Current value: {max_iter}")
        raise InvalidIterationBoundError(f"max_iterations must be a non-negative integer, got {max_iter!r}.")
    if not min_residue >= 0.0:
        logger.error(f"The minimum residue must be non-negative. Current value: {min_residue}")
        raise InvalidResidueBoundError(f"min_residue must be non-negative, got {min_residue!r}.")
    if not converge_delta >= 0.0:
        logger.error(f"The converge delta must be non-negative. Current value: {converge_delta}")
        raise InvalidResidueBoundError(f"converge_delta must be non-negative, got {converge_delta!r}.")
    if not is_integer(converge_n) or converge_n < 1:
        logger.error(f"The converge window must be a positive integer. Current value: {converge_n}")
        raise InvalidResidueBoundError(f"converge_n must be a positive integer, got {converge_n!r}.")


def validate_matrix(X, name: str) -> np.ndarray:
    """
    Copy a matrix into a new float64 array, checking that it is two dimensional, finite and non-negative.

    Parameters
    ----------
    X : array_like
       The matrix to validate.
    name : str
       The name of the matrix used in the error messages.

    Returns
    -------
    np.ndarray
       A copy of the matrix which does not share memory with X.
    """
    try:
        _x = np.array(X, dtype=np.float64)
    except (TypeError, ValueError) as ex:
        logger.error(f"Matrix {name} could not be converted to a numeric array. Error: {ex}")
        raise InvalidInputMatrixError(f"Matrix {name} is not numeric.") from ex
    if _x.ndim != 2:
        logger.error(f"Matrix {name} must be two dimensional. Current dimensions: {_x.ndim}")
        raise InvalidInputMatrixError(f"Matrix {name} must be two dimensional, got {_x.ndim} dimensions.")
    if _x.size == 0:
        logger.error(f"Matrix {name} is empty. Current shape: {_x.shape}")
        raise InvalidInputMatrixError(f"Matrix {name} must not be empty, got shape {_x.shape}.")
    if not np.all(np.isfinite(_x)):
        logger.error(f"Matrix {name} contains missing or invalid values.")
        raise InvalidInputMatrixError(f"Matrix {name} contains missing or infinite values.")
    if _x.min() < 0.0:
        logger.error(f"Matrix {name} contains negative values, matrix can only contain non-negative values.")
        raise InvalidInputMatrixError(f"Matrix {name} contains negative values.")
    return _x


class NMF:
    """
    The non-negative matrix factorization model object which holds and manages the configuration, data, and
    meta-data of a single factorization V ~ WH.

    The NMF class manages the steps of the factorization workflow:

    1) The initialization of the basis (W) and coefficient (H) matrices, where these matrices can be passed in by the
    user or created by uniform random sampling or k-means clustering of the input data.

    2) The execution of the selected update rule until the convergence criteria is met. The three implemented rules
    are the multiplicative distance rule ('multdist'), the multiplicative divergence rule ('multdiv') and alternating
    least squares ('als').

    Parameters
    ----------
    V : np.ndarray
        The non-negative input data matrix of shape M x N.
    rank : int
        The rank of the factorization, the number of columns of W and rows of H.
    update_rules : str
        The update rule used for updating the W and H matrices. Options are: 'multdist', 'multdiv' and 'als'.
    seed : int
        The random seed used for initializing the W and H matrices. Default is None, fresh entropy.
    verbose : bool
        Allows for increased verbosity of the initialization and model training steps.
    """

    def __init__(self,
                 V: np.ndarray,
                 rank: int,
                 update_rules: str = "multdist",
                 seed: int = None,
                 verbose: bool = False
                 ):
        """
        Constructor method.
        """
        self.rank = validate_rank(rank)
        self.update_rules = validate_update_rule(update_rules)
        self.V = validate_matrix(V, name="V")

        self.m, self.n = self.V.shape
        if self.rank > min(self.m, self.n):
            logger.warning(f"The rank {self.rank} is larger than the smallest dimension of V {self.V.shape}.")

        self.update_step = UPDATE_RULES[self.update_rules].update

        self.seed = seed
        self.rng = np.random.default_rng(self.seed)
        self.init_method = "random"

        self.W = None
        self.H = None
        self.WH = None
        self.residue = None
        self.residues = None
        self.divergence = None

        self.converged = False
        self.converge_steps = 0
        self.stop_reason = None
        self.runtime = None

        self.metadata = {
            "creation_date": datetime.now().strftime("%m/%d/%Y, %H:%M:%S %Z"),
            "update_rules": self.update_rules,
            "seed": self.seed,
            "rows": int(self.m),
            "columns": int(self.n),
            "rank": self.rank
        }
        self.verbose = verbose
        self.__initialized = False

    def initialize(self,
                   W: np.ndarray = None,
                   H: np.ndarray = None,
                   init_method: str = "random",
                   init_norm: bool = True
                   ):
        """
        Initialize the basis (W) and coefficient (H) matrices.

        Provided matrices are validated and copied, so the caller's arrays are never updated by the model. The
        shapes of these matrices are W: (M, rank) and H: (rank, N). Missing matrices are created by one of two
        methods:
        1) Random sampling ('random'), the default, draws every entry uniformly from [0, 1).
        2) K Means Clustering ('kmeans'), clusters the rows of the input dataset into rank clusters, H is set to the
        cluster centroids and W assigns each row to its cluster.

        Parameters
        ----------
        W : np.ndarray
           The basis matrix of shape (M, rank), optional.
        H : np.ndarray
           The coefficient matrix of shape (rank, N), optional.
        init_method : str
           The method used to create missing matrices, 'random' or 'kmeans'.
        init_norm : bool
           When using init_method 'kmeans', this option allows for normalizing the input dataset prior to
           clustering.
        """
        init_method = str(init_method).lower()
        if init_method not in INIT_METHODS:
            logger.error(f"Unknown initialization method: {init_method}. Valid options are: {', '.join(INIT_METHODS)}")
            raise ValueError(f"Unknown initialization method {init_method!r}.")

        if W is not None:
            W = validate_matrix(W, name="W")
            if W.shape != (self.m, self.rank):
                logger.error(f"Basis matrix W must have dimensions of ({self.m}, {self.rank}). "
                             f"Current dimensions {W.shape}")
                raise InvalidInitialFactorShapeError(f"Initial W must have shape ({self.m}, {self.rank}), "
                                                     f"got {W.shape}.")
        if H is not None:
            H = validate_matrix(H, name="H")
            if H.shape != (self.rank, self.n):
                logger.error(f"Coefficient matrix H must have dimensions of ({self.rank}, {self.n}). "
                             f"Current dimensions {H.shape}")
                raise InvalidInitialFactorShapeError(f"Initial H must have shape ({self.rank}, {self.n}), "
                                                     f"got {H.shape}.")

        if init_method == "kmeans" and self.rank > self.m:
            logger.warning(f"K-means initialization requires rank <= {self.m}, using random initialization.")
            init_method = "random"

        if init_method == "kmeans" and (W is None or H is None):
            obs = self.V
            if init_norm:
                obs = whiten(obs=self.V)
            centroids, clusters = kmeans2(data=obs, k=self.rank, minit="++", seed=self.seed)
            if init_norm:
                std = self.V.std(axis=0)
                std[std == 0.0] = 1.0
                centroids = centroids * std
            if H is None:
                H = centroids
                H[H <= 0.0] = EPSILON
            if W is None:
                contributions = np.zeros(shape=(self.m, self.rank)) + (1.0 / self.rank)
                for i, c in enumerate(clusters):
                    contributions[i, c] = self.rng.normal(1.0, 0.1, None)
                W = contributions
                W[W <= 0.0] = EPSILON
            if self.verbose:
                logger.debug(f"Basis and coefficient matrices initialized using k-means clustering. The observations "
                             f"were {'not ' if not init_norm else ''}normalized.")
        else:
            if W is None:
                W = self.rng.random(size=(self.m, self.rank))
                W[W <= 0.0] = EPSILON
            if H is None:
                H = self.rng.random(size=(self.rank, self.n))
                H[H <= 0.0] = EPSILON

        self.W = W
        self.H = H
        self.init_method = init_method
        self.metadata["init_method"] = init_method
        self.__initialized = True
        if self.verbose:
            logger.debug("Completed initializing the basis and coefficient matrices.")

    def summary(self):
        """
        Provides a summary of the model configuration and results if completed.
        """
        logger.info("------------\t\tModel Details\t\t-----------")
        logger.info(f"\tUpdate Rules: {self.update_rules}\t\t\tRank: {self.rank}")
        logger.info(f"\tRows: {self.m}\t\tColumns: {self.n}")
        logger.info(f"\tRandom Seed: {self.seed}\t\tInit Method: {self.init_method}")
        if self.WH is not None:
            logger.info("---------------\t\tModel Results\t\t--------------")
            logger.info(f"\tResidue: {self.residue}\t\tStop Reason: {self.stop_reason}")
            logger.info(f"\tConverged: {self.converged}\t\t\t\tConverge Steps: {self.converge_steps}")
            if self.divergence is not None:
                logger.info(f"\tKL Divergence: {self.divergence:.6f}")
        logger.info("------------------------------------------------------")

    def train(self,
              max_iter: int = 10000,
              min_residue: float = 1e-5,
              converge_delta: float = 1e-10,
              converge_n: int = 10,
              model_i: int = 1
              ):
        """
        Train the NMF model by iteratively updating the W and H matrices until a termination condition is met.

        After every update the relative residue ||V - WH|| / ||V|| is calculated. Training stops when the residue is
        less than or equal to min_residue, when the relative change in the residue over converge_n iterations is
        less than or equal to converge_delta, or when max_iter iterations have completed. A max_iter of 0 places no
        bound on the number of iterations.

        Parameters
        ----------
        max_iter : int
           The maximum number of iterations to update W and H matrices, 0 for no maximum. Default: 10000
        min_residue : float
           The residue at or below which the model is considered converged. Default: 1e-5
        converge_delta : float
           The relative change in the residue where the model is considered stagnant. Default: 1e-10
        converge_n : int
           The number of iterations the change in residue is measured over. Default: 10
        model_i : int
           The model index, used for identifying models in batch processing.
        """
        validate_iteration_bounds(max_iter=max_iter, min_residue=min_residue, converge_delta=converge_delta,
                                  converge_n=converge_n)
        if not self.__initialized:
            logger.warning("Model is not initialized, initializing with default parameters")
            self.initialize()

        tracker = ConvergenceTracker(min_residue=min_residue, max_iter=max_iter, converge_delta=converge_delta,
                                     converge_n=converge_n)
        W, H = self.W, self.H
        iteration = 0

        t0 = time.time()
        t_iter = tqdm(total=max_iter if max_iter > 0 else None,
                      desc=f"Model: {model_i}, Seed: {self.seed}, Residue: NA",
                      position=0, leave=True, disable=not self.verbose)
        while True:
            _W, _H = self.update_step(V=self.V, W=W, H=H)
            iteration += 1
            residue = tracker.evaluate(V=self.V, W=_W, H=_H)
            if np.isnan(residue):
                logger.error(f"Stopping NMF model train due to residue being NAN, keeping the factors of "
                             f"iteration {iteration - 1}.")
            else:
                W, H = _W, _H
            t_iter.set_description(f"Model: {model_i}, Seed: {self.seed}, Residue: {residue:.6f}")
            t_iter.update(1)
            if tracker.should_stop(iteration=iteration):
                break
        t_iter.close()
        t1 = time.time()

        self.W = W
        self.H = H
        self.WH = np.matmul(self.W, self.H)
        self.residues = [r for r in tracker.residues if not np.isnan(r)]
        self.residue = self.residues[-1] if len(self.residues) > 0 else None
        self.divergence = kl_divergence(V=self.V, W=self.W, H=self.H) if self.update_rules == "multdiv" else None
        self.converged = tracker.converged
        self.converge_steps = iteration
        self.stop_reason = tracker.reason
        self.runtime = round(t1 - t0, 4)

        self.metadata["completion_date"] = datetime.now().strftime("%m/%d/%Y, %H:%M:%S %Z")
        self.metadata["max_iterations"] = int(max_iter)
        self.metadata["min_residue"] = float(min_residue)
        self.metadata["converge_delta"] = float(converge_delta)
        self.metadata["converge_n"] = int(converge_n)
        self.metadata["model_i"] = int(model_i)
        self.metadata["iterations"] = int(iteration)
        self.metadata["stop_reason"] = self.stop_reason
        self.metadata["residue"] = self.residue
        if self.verbose:
            logger.info(f"Model {model_i} stopped after {iteration} iterations ({self.stop_reason}), "
                        f"residue: {self.residue}, runtime: {self.runtime} sec")

    def save(self,
             model_name: str,
             output_directory: str,
             pickle_model: bool = False,
             header: list = None):
        """
        Save the NMF model to file.

        Two options are provided for saving the output of NMF to file, 1) saving the NMF to separate files (csv and
        json) and 2) saving the NMF model to a binary pickle object. The files are written to the provided
        output_directory path, if it exists, using the model_name for the file names.

        Parameters
        ----------
        model_name : str
           The name for the model save files.
        output_directory : str
           The path to save the files to, path must exist.
        pickle_model : bool
           Saving the model to a pickle file, default = False.
        header : list
           A list of headers, column names of V, to add to the top of the H and residual csv files. Default: None

        Returns
        -------
        str
           The path to the output directory, if pickle=False or the path to the pickle file. If save fails returns
           None

        """
        factor_header = ""
        if header is not None:
            factor_header = ",".join([f"Factor {i + 1}" for i in range(self.rank)])
            header = ",".join(header)
        else:
            header = ""
        output_directory = Path(output_directory)
        if not output_directory.is_absolute():
            logger.error("Provided output directory is not an absolute path. Must provide an absolute path.")
            return None
        if os.path.exists(output_directory):
            if pickle_model:
                file_path = os.path.join(output_directory, f"{model_name}.pkl")
                with open(file_path, "wb") as save_file:
                    pickle.dump(self, save_file)
                    logger.info(f"NMF model saved to pickle file: {file_path}")
            else:
                file_path = output_directory
                meta_file = os.path.join(output_directory, f"{model_name}-metadata.json")
                with open(meta_file, "w") as mfile:
                    json.dump(self.metadata, mfile, default=np_encoder)
                    logger.info(f"NMF model metadata saved to file: {meta_file}")
                w_file = os.path.join(output_directory, f"{model_name}-w.csv")
                with open(w_file, "w") as wfile:
                    np.savetxt(wfile, self.W, delimiter=',', header=factor_header, comments="")
                    logger.info(f"NMF model basis matrix saved to file: {w_file}")
                h_file = os.path.join(output_directory, f"{model_name}-h.csv")
                with open(h_file, "w") as hfile:
                    np.savetxt(hfile, self.H, delimiter=',', header=header, comments="")
                    logger.info(f"NMF model coefficient matrix saved to file: {h_file}")
                if self.WH is not None:
                    residual_file = os.path.join(output_directory, f"{model_name}-residuals.csv")
                    with open(residual_file, 'w') as rfile:
                        np.savetxt(rfile, self.V - self.WH, delimiter=',', header=header, comments="")
                        logger.info(f"NMF model residuals saved to file: {residual_file}")
            return file_path

        else:
            logger.error(f"Output directory does not exist. Specified directory: {output_directory}")
            return None

    @staticmethod
    def load(file_path: str):
        """
        Load a previously saved NMF pickle file.

        Parameters
        ----------
        file_path : str
           File path to a previously saved NMF pickle file

        Returns
        -------
        NMF
           On successful load, will return a previously saved NMF object. Will return None on load fail.
        """
        file_path = Path(file_path)
        if not file_path.is_absolute():
            logger.error("Provided path is not an absolute path. Must provide an absolute path.")
            return None
        if os.path.exists(file_path):
            try:
                with open(file_path, "rb") as pfile:
                    nmf = pickle.load(pfile)
                    return nmf
            except pickle.PickleError as p_error:
                logger.error(f"Failed to load NMF pickle file {file_path}. \nError: {p_error}")
                return None
        else:
            logger.error(f"NMF load file failed, specified pickle file does not exist. File Path: {file_path}")
            return None


def factorize(V: np.ndarray,
              rank: int,
              update_rules: str = "multdist",
              max_iterations: int = 10000,
              min_residue: float = 1e-5,
              initial_w: np.ndarray = None,
              initial_h: np.ndarray = None,
              seed: int = None,
              converge_delta: float = 1e-10,
              converge_n: int = 10,
              verbose: bool = False):
    """
    Factorize the non-negative matrix V into non-negative matrices W and H, V ~ WH.

    All arguments are validated before any matrix work is done. When initial_w and initial_h are both given the
    result is deterministic, otherwise the missing matrix is sampled uniformly from [0, 1) using the seed.

    Parameters
    ----------
    V : np.ndarray
       The non-negative input matrix of shape (M, N).
    rank : int
       The rank of the factorization, must be at least 1.
    update_rules : str
       The update rule, one of 'multdist', 'multdiv' or 'als'. Default: 'multdist'
    max_iterations : int
       The maximum number of iterations, 0 for no maximum. Default: 10000
    min_residue : float
       The relative residue at which the iterations stop. Default: 1e-5
    initial_w : np.ndarray
       Optional initial basis matrix of shape (M, rank), it is copied and never modified.
    initial_h : np.ndarray
       Optional initial coefficient matrix of shape (rank, N), it is copied and never modified.
    seed : int
       The random seed for the initialization of missing factors.
    converge_delta : float
       The relative change in residue over converge_n iterations below which the iterations stop.
    converge_n : int
       The number of iterations the change in residue is measured over.
    verbose : bool
       Show the progress of the iterations.

    Returns
    -------
    np.ndarray, np.ndarray
       The W matrix of shape (M, rank) and the H matrix of shape (rank, N).
    """
    validate_rank(rank)
    validate_iteration_bounds(max_iter=max_iterations, min_residue=min_residue, converge_delta=converge_delta,
                              converge_n=converge_n)
    model = NMF(V=V, rank=rank, update_rules=update_rules, seed=seed, verbose=verbose)
    model.initialize(W=initial_w, H=initial_h)
    model.train(max_iter=max_iterations, min_residue=min_residue, converge_delta=converge_delta,
                converge_n=converge_n)
    return model.W, model.H
