# src/PrecipFillPy/exceptions.py
# SPDX-License-Identifier: MIT
"""Exception and warning types raised by PrecipFillPy."""

from __future__ import annotations


class InvalidInputError(ValueError):
    """
    Structural problem with the input data (misaligned or non-monotonic
    dates, missing or malformed coordinates, non-numeric station values).

    Raised before any matrix is computed. Subclasses :class:`ValueError`
    so callers catching ``ValueError`` keep working.
    """


class NoEligibleDonorsWarning(UserWarning):
    """Emitted when one or more stations have no donor after filtering."""


__all__ = ["InvalidInputError", "NoEligibleDonorsWarning"]
