"""End-to-end browser test suite for the DAEE platform."""

__version__ = "1.0.0"
