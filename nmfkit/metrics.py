"""
Collection of metric functions which are used throughout the code base.
"""
import numpy as np

EPSILON = 1e-12


def frobenius_residue(V, W, H):
    _wh = np.matmul(W, H)
    residuals = np.subtract(V, _wh)
    return float(np.linalg.norm(residuals))


def relative_residue(V, W, H):
    """
    The Frobenius norm of the residuals V - WH scaled by the Frobenius norm of V.

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
       The relative reconstruction error, zero for an exact factorization.
    """
    v_norm = max(float(np.linalg.norm(V)), EPSILON)
    return frobenius_residue(V=V, W=W, H=H) / v_norm


def kl_divergence(V, W, H):
    """
    The generalized Kullback-Leibler divergence D(V || WH), the objective of the multiplicative divergence rule.
    """
    _wh = np.matmul(W, H) + EPSILON
    _v = np.asarray(V)
    log_term = np.zeros_like(_wh)
    mask = _v > 0.0
    log_term[mask] = _v[mask] * np.log(_v[mask] / _wh[mask])
    return float(np.sum(log_term - _v + _wh))
