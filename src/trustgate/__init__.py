"""TrustGate: supply-chain trust audits for npm package installs."""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"
