"""Tests for trustgate.audit."""
