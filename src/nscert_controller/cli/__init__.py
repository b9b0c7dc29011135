"""Command line interface for the nscert controller."""
