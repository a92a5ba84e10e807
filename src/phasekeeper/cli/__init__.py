"""Command-line interface for Phasekeeper."""
