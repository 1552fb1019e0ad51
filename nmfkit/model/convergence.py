import logging
import numpy as np
from nmfkit.metrics import relative_residue, EPSILON

logger = logging.getLogger(__name__)


class ConvergenceTracker:
    """
    Tracks the residue of a factorization across iterations and decides when the update loop terminates.

    The residue is the relative Frobenius reconstruction error ||V - WH|| / ||V||, used for all update rules. The loop
    terminates when any one of the following holds:

    1) the residue is less than or equal to min_residue;
    2) the residue has stagnated, the relative change between the residue converge_n iterations ago and the current
    residue is less than or equal to converge_delta;
    3) the iteration count has reached max_iter, a max_iter of 0 places no bound on the iteration count;
    4) the residue is NaN.

    Parameters
    ----------
    min_residue : float
        The residue threshold below which the factorization is considered converged.
    max_iter : int
        The maximum number of iterations, 0 for no maximum.
    converge_delta : float
        The relative change in the residue over converge_n iterations where the residue is considered stagnant.
    converge_n : int
        The number of iterations the stagnation window covers.
    """

    MIN_RESIDUE = "min_residue"
    STAGNATION = "stagnation"
    MAX_ITERATIONS = "max_iterations"
    NAN = "nan"

    def __init__(self,
                 min_residue: float = 1e-5,
                 max_iter: int = 10000,
                 converge_delta: float = 1e-10,
                 converge_n: int = 10
                 ):
        self.min_residue = float(min_residue)
        self.max_iter = int(max_iter)
        self.converge_delta = float(converge_delta)
        self.converge_n = int(converge_n)
        self.residues = []
        self.reason = None

    def reset(self):
        self.residues = []
        self.reason = None

    @property
    def residue(self):
        if len(self.residues) == 0:
            return None
        return self.residues[-1]

    def evaluate(self, V: np.ndarray, W: np.ndarray, H: np.ndarray) -> float:
        """
        Calculate the residue of the current factors and add it to the residue history.

        Parameters
        ----------
        V : np.ndarray
           The input dataset.
        W : np.ndarray
           The basis matrix.
        H : np.ndarray
           The coefficient matrix.

        Returns
        -------
        float
           The relative residue of the factorization.
        """
        residue = relative_residue(V=V, W=W, H=H)
        self.residues.append(residue)
        return residue

    def is_stagnant(self) -> bool:
        if len(self.residues) <= self.converge_n:
            return False
        prior = self.residues[-self.converge_n - 1]
        delta = abs(prior - self.residues[-1])
        return delta <= self.converge_delta * max(prior, EPSILON)

    def should_stop(self, iteration: int) -> bool:
        """
        Check the termination conditions after an iteration has been evaluated, setting the stop reason.

        Parameters
        ----------
        iteration : int
           The number of completed iterations.

        Returns
        -------
        bool
           True when the update loop should end.
        """
        residue = self.residue
        if residue is not None:
            if np.isnan(residue):
                self.reason = self.NAN
            elif residue <= self.min_residue:
                self.reason = self.MIN_RESIDUE
            elif self.is_stagnant():
                self.reason = self.STAGNATION
        if self.reason is None and 0 < self.max_iter <= iteration:
            self.reason = self.MAX_ITERATIONS
        return self.reason is not None

    @property
    def converged(self) -> bool:
        return self.reason in (self.MIN_RESIDUE, self.STAGNATION)
