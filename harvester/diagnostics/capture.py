"""
Diagnostic screenshot capture.

Screenshots are taken for failed navigations, detected challenges/blocks and
errors raised during extraction. File names combine a classification prefix
with the target hostname (`error_timeout_example.com.png`,
`captcha_example.com.png`). Capture is best-effort: failures are reported and
swallowed, never raised to the extraction call.
"""

import re
from pathlib import Path
from typing import Any, Optional, Union
from urllib.parse import urlparse


_UNSAFE_CHARS_RE = re.compile(r"[^A-Za-z0-9._-]+")


class DiagnosticsCapture:
    """Writes page screenshots for diagnostics into a single directory."""

    def __init__(self, screenshot_dir: Union[str, Path] = "diagnostics", enabled: bool = True):
        """
        Args:
            screenshot_dir: Directory for screenshots (created lazily on first capture)
            enabled: When False, capture() is a no-op
        """
        self.screenshot_dir = Path(screenshot_dir)
        self.enabled = bool(enabled)

    def screenshot_path(self, prefix: str, url: str) -> Path:
        try:
            host = urlparse(url).hostname or "unknown"
        except ValueError:
            host = "unknown"
        safe_prefix = _UNSAFE_CHARS_RE.sub("_", prefix) or "page"
        safe_host = _UNSAFE_CHARS_RE.sub("_", host)
        return self.screenshot_dir / f"{safe_prefix}_{safe_host}.png"

    def capture(self, page: Any, url: str, prefix: str) -> Optional[Path]:
        """Screenshot the current page; returns the path or None when capture failed."""
        if not self.enabled or page is None:
            return None
        path = self.screenshot_path(prefix, url)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            page.screenshot(path=str(path))
            return path
        except Exception as e:
            print(f"Could not take {prefix} screenshot: {e}")
            return None
