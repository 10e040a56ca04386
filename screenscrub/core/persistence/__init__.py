"""Artifact persistence."""
