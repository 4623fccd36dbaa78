"""Bridges to external cryptographic engines and the embedded trust chain."""
