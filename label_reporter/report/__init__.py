"""Report outputs of a finalized run."""
