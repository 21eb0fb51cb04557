"""VeriCUDA proof obligation engine."""

__version__ = "0.1.0"
