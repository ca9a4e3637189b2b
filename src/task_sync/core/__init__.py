"""Ports and typed errors shared by the sync pipeline."""
