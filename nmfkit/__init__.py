"""
nmfkit: non-negative matrix factorization V ~ WH with multiplicative distance, multiplicative divergence and
alternating least squares update rules.
"""
from nmfkit.model.nmf import NMF, factorize, UPDATE_RULES
from nmfkit.model.batch_nmf import BatchNMF
from nmfkit.errors import (NMFError, InvalidRankError, InvalidIterationBoundError, InvalidResidueBoundError,
                           UnknownUpdateRuleError, InvalidInitialFactorShapeError, InvalidInputMatrixError)

__all__ = [
    "NMF",
    "BatchNMF",
    "factorize",
    "UPDATE_RULES",
    "NMFError",
    "InvalidRankError",
    "InvalidIterationBoundError",
    "InvalidResidueBoundError",
    "UnknownUpdateRuleError",
    "InvalidInitialFactorShapeError",
    "InvalidInputMatrixError",
]
