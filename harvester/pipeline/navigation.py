from __future__ import annotations

import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, Dict, Iterator, Optional, Tuple
from urllib.parse import urlparse

from playwright.sync_api import Page, sync_playwright
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError

from ..diagnostics import DiagnosticsCapture
from ..lexicons import DEFAULT_LEXICON, Lexicon
from ..schemas import (
    BlockedOrChallenged,
    ErrorKind,
    Failed,
    Loaded,
    NavigationOutcome,
    PageSignal,
    PageState,
)
from .escalation import decide_signals


DEFAULT_UA = "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/140.0.0.0 Safari/537.36"

DEFAULT_HEADERS: Dict[str, str] = {
    "Accept-Language": "en-US,en;q=0.9",
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,image/apng,*/*;q=0.8",
    "sec-ch-ua": '"Chromium";v="140", "Google Chrome";v="140", "Not;A=Brand";v="24"',
    "sec-ch-ua-mobile": "?0",
    "sec-ch-ua-platform": '"macOS"',
}

BROWSER_ARGS = [
    '--disable-dev-shm-usage',     # Prevent /dev/shm issues in containers
    '--disable-gpu',                # Disable GPU for headless
    '--disable-extensions',         # No browser extensions
    '--disable-plugins',            # No plugins
    '--no-first-run',               # Skip first run setup
    '--disable-default-apps',       # No default apps
    '--disable-background-timer-throttling',  # Consistent timing
]

SCROLL_TO_END_JS = "() => window.scrollTo(0, document.body ? document.body.scrollHeight : 0)"


@dataclass(frozen=True)
class NavigationPolicy:
    """Fixed navigation policy: strongest wait condition first."""
    wait_conditions: Tuple[str, ...] = ("networkidle", "load", "domcontentloaded")
    attempt_timeout_ms: int = 45000
    overall_timeout_ms: int = 60000
    retry_pause_ms: int = 2000
    initial_settle_ms: int = 2000
    scroll_settle_ms: int = 3000


def is_valid_url(url: object) -> bool:
    if not isinstance(url, str) or not url.strip():
        return False
    s = url.strip()
    if any(ch.isspace() for ch in s):
        return False
    try:
        p = urlparse(s)
        host = p.hostname
    except ValueError:
        return False
    return p.scheme in ("http", "https") and bool(host)


def classify_error(error: Optional[BaseException]) -> ErrorKind:
    """Map a navigation/transport failure to an ErrorKind.

    Timeouts are recognised by exception type; Chromium net:: error codes are
    only available in the message text.
    """
    if error is None:
        return ErrorKind.UNKNOWN
    if isinstance(error, (PlaywrightTimeoutError, TimeoutError)):
        return ErrorKind.TIMEOUT
    msg = str(error)
    low = msg.lower()
    if "timeout" in low or "timed out" in low:
        return ErrorKind.TIMEOUT
    if "net::ERR_CONNECTION_REFUSED" in msg:
        return ErrorKind.CONNECTION_REFUSED
    if "net::ERR_NAME_NOT_RESOLVED" in msg:
        return ErrorKind.DNS
    if "net::ERR_ABORTED" in msg:
        return ErrorKind.ABORTED
    if "net::ERR_CERT_" in msg or "net::ERR_SSL_" in msg:
        return ErrorKind.SSL
    if "navigation" in low:
        return ErrorKind.NAVIGATION
    return ErrorKind.UNKNOWN


class BrowserSessionProvider:
    """Opens one isolated headless browser session per target URL.

    Uses Playwright with security-first settings:
    - Sandbox enabled (no --no-sandbox)
    - Extensions and plugins disabled
    - Realistic client identity (user agent, viewport, locale headers)
    """

    def __init__(
        self,
        *,
        headless: bool = True,
        user_agent: str = DEFAULT_UA,
        viewport: Tuple[int, int] = (1280, 800),
        locale: str = "en-US",
        extra_headers: Optional[Dict[str, str]] = None,
    ) -> None:
        self.headless = bool(headless)
        self.user_agent = user_agent
        self.viewport = viewport
        self.locale = locale
        self.extra_headers = dict(extra_headers if extra_headers is not None else DEFAULT_HEADERS)

    @contextmanager
    def open(self, url: str) -> Iterator[Page]:
        with sync_playwright() as p:
            browser = p.chromium.launch(headless=self.headless, args=BROWSER_ARGS)
            try:
                context = browser.new_context(
                    user_agent=self.user_agent,
                    viewport={"width": self.viewport[0], "height": self.viewport[1]},
                    device_scale_factor=1,
                    locale=self.locale,
                    extra_http_headers=self.extra_headers,
                )
                host = urlparse(url).hostname or ""
                if host:
                    context.add_cookies([{"name": "visited_before", "value": "true", "domain": host, "path": "/"}])
                page = context.new_page()
                try:
                    yield page
                finally:
                    try:
                        page.close()
                    except Exception as e:
                        print(f"Could not close page: {e}")
            finally:
                browser.close()


class NavigationController:
    """Drives one browser session to a target URL and classifies the result.

    Three attempts with weakening wait conditions, each bounded by the
    per-attempt timeout and by what remains of the overall deadline. A loaded
    page is inspected for challenge/block signatures; flagged pages are still
    handed to extraction.
    """

    def __init__(
        self,
        *,
        provider: Optional[BrowserSessionProvider] = None,
        policy: Optional[NavigationPolicy] = None,
        lexicon: Lexicon = DEFAULT_LEXICON,
        diagnostics: Optional[DiagnosticsCapture] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.provider = provider or BrowserSessionProvider()
        self.policy = policy or NavigationPolicy()
        self.lexicon = lexicon
        self.diagnostics = diagnostics or DiagnosticsCapture()
        self.clock = clock

    @contextmanager
    def navigate(self, url: str) -> Iterator[NavigationOutcome]:
        """Yield the NavigationOutcome for url; the session closes when the block exits."""
        if not is_valid_url(url):
            print(f"Invalid website URL: {url}")
            yield Failed(kind=ErrorKind.INVALID_URL, message=f"invalid URL: {url!r}", attempts=0)
            return
        with self.provider.open(url) as page:
            try:
                outcome = self._load(page, url)
            except Exception as e:
                outcome = Failed(kind=classify_error(e), message=str(e))
            if isinstance(outcome, Failed):
                print(f"Error type: {outcome.kind.value}")
                self.diagnostics.capture(page, url, f"error_{outcome.kind.value}")
            elif isinstance(outcome, BlockedOrChallenged):
                if PageSignal.CHALLENGE in outcome.signals:
                    print("CAPTCHA or anti-bot measure detected. Extraction may be limited.")
                    self.diagnostics.capture(page, url, "captcha")
                if PageSignal.BLOCK in outcome.signals:
                    print("Access appears to be blocked or page not found. Extraction may fail.")
                    self.diagnostics.capture(page, url, "blocked")
            try:
                yield outcome
            except Exception as e:
                kind = classify_error(e)
                print(f"Error type: {kind.value}")
                self.diagnostics.capture(page, url, f"error_{kind.value}")
                raise

    def _remaining_ms(self, deadline: float) -> int:
        return int((deadline - self.clock()) * 1000)

    def _load(self, page: Page, url: str) -> NavigationOutcome:
        policy = self.policy
        deadline = self.clock() + policy.overall_timeout_ms / 1000.0
        max_attempts = len(policy.wait_conditions)
        attempts = 0
        last_error: Optional[BaseException] = None
        for wait_until in policy.wait_conditions:
            remaining = self._remaining_ms(deadline)
            if remaining <= 0:
                print("Website navigation timed out")
                return Failed(kind=ErrorKind.TIMEOUT, message="Website navigation timed out", attempts=attempts)
            attempts += 1
            print(f"Navigation attempt {attempts}/{max_attempts} with wait condition: {wait_until}")
            try:
                page.goto(url, wait_until=wait_until, timeout=min(policy.attempt_timeout_ms, remaining))
            except Exception as e:
                last_error = e
                if attempts < max_attempts:
                    print(f"Navigation attempt {attempts} failed: {e}. Retrying...")
                    pause = min(policy.retry_pause_ms, max(0, self._remaining_ms(deadline)))
                    if pause > 0:
                        page.wait_for_timeout(pause)
                continue
            print(f"Successfully loaded website: {url}")
            return self._inspect(page, url, attempts)
        kind = classify_error(last_error)
        if self._remaining_ms(deadline) <= 0:
            kind = ErrorKind.TIMEOUT
        return Failed(kind=kind, message=str(last_error or ""), attempts=attempts)

    def snapshot(self, page: Page, fallback_url: str, pass_name: str) -> PageState:
        try:
            current = page.url or fallback_url
        except Exception:
            current = fallback_url
        return PageState(url=current, html=page.content() or "", pass_name=pass_name, page=page)

    def _body_text(self, page: Page) -> str:
        try:
            return page.inner_text("body") or ""
        except Exception:
            return ""

    def _inspect(self, page: Page, url: str, attempts: int) -> NavigationOutcome:
        state = self.snapshot(page, url, "loaded")
        decision = decide_signals(self._body_text(page), state.html, state.url, self.lexicon)
        if decision.flagged:
            return BlockedOrChallenged(
                page_state=state,
                signals=decision.signals,
                reasons=tuple(decision.reasons),
                attempts=attempts,
            )
        return Loaded(page_state=state, attempts=attempts)

    def render_passes(self, state: PageState) -> Iterator[PageState]:
        """Yield the initial and post-scroll document states, in that order.

        The scroll happens only after the caller has consumed the initial
        state, so extraction of the first pass sees the unscrolled page.
        """
        page = state.page
        page.wait_for_timeout(self.policy.initial_settle_ms)
        yield self.snapshot(page, state.url, "initial")
        page.evaluate(SCROLL_TO_END_JS)
        page.wait_for_timeout(self.policy.scroll_settle_ms)
        yield self.snapshot(page, state.url, "post-scroll")
