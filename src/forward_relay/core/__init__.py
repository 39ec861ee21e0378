"""Core configuration for the forward relay."""
