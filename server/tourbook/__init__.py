"""Tour booking service: availability ledger, booking lifecycle and business rules."""

__version__ = "1.0.0"
