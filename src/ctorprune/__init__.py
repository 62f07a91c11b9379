"""ctorprune package root."""

from ctorprune.exceptions import NeverRaise, NeverThrown
from ctorprune.invariants import never

__all__ = ["__version__", "NeverRaise", "NeverThrown", "never"]

__version__ = "0.1.0"
