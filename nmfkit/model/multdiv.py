import numpy as np
from nmfkit.metrics import EPSILON


class MultDivNMF:

    @staticmethod
    def update(
            V: np.ndarray,
            W: np.ndarray,
            H: np.ndarray
    ):
        """
        The multiplicative update procedure minimizing the generalized Kullback-Leibler divergence D(V || WH).

        Both factors are scaled by the ratio V/WH propagated through the other factor, normalized by the column sums
        of W (for H) or the row sums of H (for W). Described in 'Algorithms for Non-negative Matrix Factorization' by
        Lee and Seung (NIPS 2000).

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
        ratio = np.divide(V, np.matmul(W, H) + EPSILON)
        H_num = np.matmul(W.T, ratio)
        H_den = W.sum(axis=0).reshape(-1, 1) + EPSILON
        H = np.multiply(H, np.divide(H_num, H_den))

        ratio = np.divide(V, np.matmul(W, H) + EPSILON)
        W_num = np.matmul(ratio, H.T)
        W_den = H.sum(axis=1).reshape(1, -1) + EPSILON
        W = np.multiply(W, np.divide(W_num, W_den))

        return W, H
