"""Core scrubbing logic."""
