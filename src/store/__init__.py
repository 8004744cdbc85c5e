"""Storage layer.

This package persists latest, history and published snapshots per
source, captures rejected payloads, and exposes the SDK client.
"""
