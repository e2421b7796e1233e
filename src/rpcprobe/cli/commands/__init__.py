"""CLI command modules registered on the Typer app."""
