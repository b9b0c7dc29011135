"""Service layer managers."""
