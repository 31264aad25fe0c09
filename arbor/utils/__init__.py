"""Utility helpers for arbor."""
