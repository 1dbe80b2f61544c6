"""API and catalog payload schemas."""
