"""screenscrub — detect and redact PII in screenshots and photos."""

__version__ = "0.1.0"


def __getattr__(name: str):
    """Lazy re-export so that ``import screenscrub`` does not pull in PIL."""
    if name == "ScreenScrubber":
        from screenscrub.core.pipeline import ScreenScrubber
        return ScreenScrubber
    if name == "detect_sensitive_data":
        from screenscrub.core.detection.regex_detector import detect_sensitive_data
        return detect_sensitive_data
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
