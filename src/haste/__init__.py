"""haste — run benchmark matrices and compare the results statistically."""

__version__ = "0.1.0"
