"""
segmented_trend.errors
~~~~~~~~~~~~~~~~~~~~~~
Exception hierarchy shared by the generator, the regression engine and
the driver.  Every error is terminal for a run.
"""

from __future__ import annotations


class SegmentedTrendError(Exception):
    """Base class for all errors raised by :mod:`segmented_trend`."""


class InvalidConfiguration(SegmentedTrendError, ValueError):
    """Parameters or input columns are out of bounds or inconsistent."""


class InsufficientData(SegmentedTrendError, ValueError):
    """The series is too short for the number of model parameters."""


class FitFailure(SegmentedTrendError, ArithmeticError):
    """The regression could not be estimated.

    Raised for a singular design matrix or an autocorrelation estimate
    that is non-finite or outside the open interval (-1, 1).
    """
