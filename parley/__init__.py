"""Parley: stakeholder interviews, assessment synthesis and usage metering."""

__version__ = "0.1.0"
