"""Core runtime configuration."""
