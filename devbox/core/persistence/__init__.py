"""Run log persistence."""
