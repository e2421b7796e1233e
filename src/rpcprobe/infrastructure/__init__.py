"""Logging and error infrastructure."""
