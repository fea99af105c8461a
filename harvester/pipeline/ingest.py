from __future__ import annotations

import time
from typing import Callable, Iterable, List, Optional

import httpx

from ..schemas import ContactRecord, EnrichedProduct, ErrorKind, ProductCandidate
from .extractors import ExtractionResult, WebsiteContactExtractor
from .navigation import DEFAULT_UA, is_valid_url


class WebsitePrefilter:
    """Quick HEAD check before spending a browser session on a website.

    Rejects only definite failures (HTTP >= 400 or a non-HTML response);
    transport errors fail open so the browser still gets its chance.
    """

    def __init__(
        self,
        *,
        timeout_s: float = 5.0,
        user_agent: str = DEFAULT_UA,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._client = httpx.Client(
            timeout=float(timeout_s),
            follow_redirects=True,
            headers={"User-Agent": user_agent},
            transport=transport,
        )

    def is_ok(self, url: str) -> bool:
        try:
            r = self._client.head(url)
        except httpx.HTTPError as e:
            print(f"Prefilter could not reach {url}: {e} (continuing)")
            return True
        if r.status_code >= 400:
            print(f"Prefilter rejected {url}: HTTP {r.status_code}")
            return False
        ct = r.headers.get("Content-Type", "").lower()
        if ct and not ct.startswith("text/html"):
            print(f"Prefilter rejected {url}: {ct}")
            return False
        return True

    def close(self) -> None:
        self._client.close()


class IngestPipeline:
    """Sequential batch orchestrator over launch candidates.

    Exactly one EnrichedProduct is produced per processed candidate, in input
    order, whatever happens during extraction. Websites are visited one at a
    time with a fixed delay between visits.
    """

    def __init__(
        self,
        *,
        extractor: Optional[WebsiteContactExtractor] = None,
        delay_between_requests_s: float = 2.0,
        max_products: Optional[int] = None,
        prefilter: Optional[WebsitePrefilter] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.extractor = extractor or WebsiteContactExtractor()
        self.delay_between_requests_s = max(0.0, float(delay_between_requests_s))
        self.max_products = int(max_products) if max_products else None
        self.prefilter = prefilter
        self._sleep = sleep

    def enrich(self, candidate: ProductCandidate) -> EnrichedProduct:
        url = candidate.website_url
        if not url:
            print(f"No website for {candidate.name or candidate.product_url}; skipping extraction")
            return EnrichedProduct.from_parts(candidate, ContactRecord.empty())
        if not is_valid_url(url):
            print(f"Invalid website URL for {candidate.name}: {url}")
            return EnrichedProduct.from_parts(candidate, ContactRecord.empty(), error_kind=ErrorKind.INVALID_URL)
        if self.prefilter is not None and not self.prefilter.is_ok(url):
            return EnrichedProduct.from_parts(candidate, ContactRecord.empty(), error_kind=ErrorKind.NAVIGATION)
        result: ExtractionResult = self.extractor.extract_with_outcome(url)
        return EnrichedProduct.from_parts(
            candidate,
            result.record,
            error_kind=result.error_kind,
            signals=result.signals,
        )

    def run(self, candidates: Iterable[ProductCandidate]) -> List[EnrichedProduct]:
        todo = list(candidates)
        if self.max_products is not None and len(todo) > self.max_products:
            print(f"Limiting run to {self.max_products} of {len(todo)} products")
            todo = todo[: self.max_products]
        rows: List[EnrichedProduct] = []
        visited = 0
        for i, candidate in enumerate(todo, start=1):
            print(f"➡️  [{i}/{len(todo)}] {candidate.name or candidate.website_url}")
            will_visit = bool(candidate.website_url) and is_valid_url(candidate.website_url)
            if will_visit and visited > 0 and self.delay_between_requests_s > 0:
                self._sleep(self.delay_between_requests_s)
            rows.append(self.enrich(candidate))
            if will_visit:
                visited += 1
        return rows

    def close(self) -> None:
        if self.prefilter is not None:
            self.prefilter.close()
