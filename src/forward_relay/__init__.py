"""Gasless meta-transaction relay for signed Forward authorizations."""

__version__ = "0.1.0"
