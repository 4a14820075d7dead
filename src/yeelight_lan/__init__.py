"""Async client for the Yeelight LAN control protocol."""

__version__ = "0.1.0"
