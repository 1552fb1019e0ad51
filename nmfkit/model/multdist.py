import numpy as np
from nmfkit.metrics import EPSILON


class MultDistNMF:

    @staticmethod
    def update(
            V: np.ndarray,
            W: np.ndarray,
            H: np.ndarray
    ):
        """
        The multiplicative update procedure minimizing the Euclidean (Frobenius) distance ||V - WH||.

        The update rules are described in the publication 'Algorithms for Non-negative Matrix Factorization'
        by Lee and Seung (NIPS 2000). H is updated first, the updated H is then used for the W update.

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
        np.ndarray, np.ndarray
           The updated W and H matrices.

        """
        H_num = np.matmul(W.T, V)
        H_den = np.matmul(np.matmul(W.T, W), H) + EPSILON
        H = np.multiply(H, np.divide(H_num, H_den))

        W_num = np.matmul(V, H.T)
        W_den = np.matmul(W, np.matmul(H, H.T)) + EPSILON
        W = np.multiply(W, np.divide(W_num, W_den))

        return W, H
