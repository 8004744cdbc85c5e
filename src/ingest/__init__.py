"""Extraction pipeline.

This package turns fetched source payloads into validated snapshots
and decides which of them extend the append-only history.
"""
