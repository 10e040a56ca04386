"""Detection package — regex matching, validation, arbitration and masking."""
from screenscrub.core.detection.regex_detector import (  # noqa: F401
    detect_sensitive_data,
    get_detection_stats,
)
