"""Relay services: admission gates, execution and housekeeping."""
