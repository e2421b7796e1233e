"""Configuration helpers for rpcprobe."""
