"""
Exceptions raised when the inputs of a factorization are not valid.

All of the errors are detected before any iteration is executed and derive from ValueError, so callers that only
care about invalid arguments can catch that.
"""


class NMFError(ValueError):
    pass


class InvalidRankError(NMFError):
    pass


class InvalidIterationBoundError(NMFError):
    pass


class InvalidResidueBoundError(NMFError):
    pass


class UnknownUpdateRuleError(NMFError):
    pass


class InvalidInitialFactorShapeError(NMFError):
    pass


class InvalidInputMatrixError(NMFError):
    pass
