"""TrustGate test suite."""
