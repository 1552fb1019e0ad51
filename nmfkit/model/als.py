import numpy as np
from numpy import linalg as npl


class ALSNMF:

    @staticmethod
    def update(
            V: np.ndarray,
            W: np.ndarray,
            H: np.ndarray
    ):
        """
        Alternating least squares update.

        H is solved for with W held fixed, then W with the new H held fixed. Each solve is the unconstrained least
        squares solution through the pseudo-inverse of the gram matrix, negative entries are then clamped to zero.
        The pseudo-inverse keeps the solve defined when W or H loses rank (e.g. a column clamped entirely to zero).

        Parameters
        ----------
        V : np.ndarray
           The input dataset.
        W : np.ndarray
           The basis matrix.
        H : np.ndarray
           The coefficient matrix, prior H is not used by this algorithm but provided here for a uniform signature.

        Returns
        -------
        np.ndarray, np.ndarray
           The updated W and H matrices.
        """
        _wtw_i = npl.pinv(np.matmul(W.T, W))
        H = np.matmul(_wtw_i, np.matmul(W.T, V))
        H[H < 0.0] = 0.0

        _hht_i = npl.pinv(np.matmul(H, H.T))
        W = np.matmul(np.matmul(V, H.T), _hht_i)
        W[W < 0.0] = 0.0

        return W, H
