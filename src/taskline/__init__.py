"""taskline: personal task tracking with a one-line descriptor notation."""

__version__ = "0.3.0"
