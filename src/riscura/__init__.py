"""Riscura - risk-to-control mapping and coverage tracking."""

__version__ = "1.0.0"
