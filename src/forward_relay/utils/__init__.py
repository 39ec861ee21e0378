"""Utility helpers for the forward relay."""
