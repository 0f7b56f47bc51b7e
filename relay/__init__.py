"""Compute Relay - evaluates arithmetic expressions sent over WebSockets and
broadcasts each result to every connected client.

Usage:
    python -m relay --addr localhost:8080           # Start the server
    python -m relay.client --name alice              # Interactive client
"""

__version__ = "1.0.0"
