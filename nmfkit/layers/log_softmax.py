import numpy as np

# Taylor coefficients of exp(x / 8), the result is raised to the 8th power. Absolute error below 1e-4.
_A0 = 1.0
_A1 = 0.125
_A2 = 0.0078125
_A3 = 0.00032552083
_A4 = 1.0172526e-5


def fast_exp_neg(x: np.ndarray) -> np.ndarray:
    """
    Approximation of exp(-x) for non-negative x, zero for x >= 13.
    """
    x = np.asarray(x, dtype=np.float64)
    xc = np.minimum(x, 13.0)
    y = _A0 + xc * (_A1 + xc * (_A2 + xc * (_A3 + xc * _A4)))
    y = y ** 8
    return np.where(x < 13.0, 1.0 / y, 0.0)


class LogSoftMax:
    """
    The log-softmax activation, applied to each column of the input independently.

    The layer has no parameters and no state, forward and backward only depend on their arguments.

    Parameters
    ----------
    fast_exp : bool
        Use the polynomial approximation of the exponential in the forward pass instead of np.exp, for numerical
        parity with results computed with the approximation. Default = False.
    """

    def __init__(self, fast_exp: bool = False):
        self.fast_exp = fast_exp

    def forward(self, input: np.ndarray) -> np.ndarray:
        """
        Calculate input[i] - max(input) - log(sum_j exp(input[j] - max(input))) for each column.

        Parameters
        ----------
        input : np.ndarray
           A 2-D array, each column is transformed separately. A 1-D array is treated as a single column.

        Returns
        -------
        np.ndarray
           The log-probabilities, of the same shape as input.
        """
        input = np.asarray(input, dtype=np.float64)
        max_input = np.max(input, axis=0, keepdims=True)
        shifted = max_input - input
        if self.fast_exp:
            exp_shifted = fast_exp_neg(shifted)
        else:
            exp_shifted = np.exp(-shifted)
        return input - (max_input + np.log(np.sum(exp_shifted, axis=0, keepdims=True)))

    def backward(self, input: np.ndarray, gy: np.ndarray) -> np.ndarray:
        """
        Combine the upstream gradient gy with the layer input, g = exp(input) + gy.
        """
        return np.exp(np.asarray(input, dtype=np.float64)) + np.asarray(gy, dtype=np.float64)
