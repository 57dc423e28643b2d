"""
Exceptions raised when the inputs of a factorization or graph construction violate its contract.
"""


class DimensionMismatchError(ValueError):
    """
    The shapes of the provided matrices are inconsistent, or the rank does not fit the matrices.
    """
    pass


class HyperparameterError(ValueError):
    """
    A hyperparameter is outside its valid range.
    """
    pass
