"""Probe orchestration: bootstrap, probe and diagnostics."""
