"""Service layer for arbor."""
