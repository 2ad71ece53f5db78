"""Tests for the trustgate CLI."""
