"""Gateways to the world outside the process: the git repository and the clock."""
