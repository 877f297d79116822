"""Logging and metrics for changeaudit."""
