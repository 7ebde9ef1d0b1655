"""Command line interface for augent."""
