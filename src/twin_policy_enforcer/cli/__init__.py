"""Command-line interface for twin-policy-enforcer."""
