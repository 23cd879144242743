"""HTTP API for the discrete experiment simulators.

Serves JSON endpoints for Bell, GHZ, BB84 and Stern-Gerlach runs plus a
health probe, and provides a small client for scripts.
"""
