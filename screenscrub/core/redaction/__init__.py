"""Redaction package — span location and compositing."""
