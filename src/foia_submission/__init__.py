"""Queue worker delivering FOIA requests to agency components."""

__version__ = "0.1.0"
