"""Drive a remote coding agent through a pull-request task."""

__version__ = "0.1.0"
