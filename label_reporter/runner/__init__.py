"""Run aggregation."""
