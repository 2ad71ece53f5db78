"""Command-line interface for TrustGate."""
