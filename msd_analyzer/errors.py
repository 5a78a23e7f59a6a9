"""
Error kinds raised by the analyzer and the pooling routine.
"""


class MSDAnalyzerError(Exception):
    """Base class for analyzer errors."""


class BadDimensionality(MSDAnalyzerError, ValueError):
    """Dimensionality is not a positive integer."""


class BadArgument(MSDAnalyzerError, TypeError):
    """An argument is not of the expected kind."""


class InconsistentArray(MSDAnalyzerError, ValueError):
    """
    Analyzers in a pooled array disagree on units or dimensionality.

    Parameters
    ----------
    index : int
        Position of the first offending analyzer in the array
    field : str
        One of 'n_dim', 'space_units', 'time_units'
    expected, found
        Value of the reference analyzer and of the offending one
    """

    def __init__(self, index, field, expected, found):
        self.index = index
        self.field = field
        self.expected = expected
        self.found = found
        super().__init__(
            f"pool: inconsistent ensemble at index {index}: "
            f"{field} is {found!r}, expected {expected!r}"
        )
