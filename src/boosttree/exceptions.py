"""Exception types raised by boosttree."""


class BoostTreeError(Exception):
    """Base class for all boosttree errors."""


class InvalidInputError(BoostTreeError, ValueError):
    """
    Training or prediction data is unusable.

    Raised for an empty dataset, rows of differing length, mismatched X/y
    lengths, non-finite values, or a split feature index that lies beyond
    the arity of a feature vector being predicted.
    """


class InvalidHyperparameterError(BoostTreeError, ValueError):
    """A hyperparameter is outside its valid range."""


class SerializationError(BoostTreeError, ValueError):
    """A serialized ensemble record is malformed."""
