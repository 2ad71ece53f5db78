"""Tests for trustgate.registry."""
