"""Collaborator implementations: RPC clients and crypto providers."""
