"""
Contact Extraction Boundary - Strategy Interpreter and Website Extractor

Runs the ordered extraction strategies over each render pass of one external
website and merges the passes into a single ContactRecord.

Key Features:
- Strategies are data: a name, the fields they may fill and a callable
- A strategy runs only while at least one of its fields is still empty
- A failing strategy is reported and skipped; later strategies still run
- `WebsiteContactExtractor.extract()` never raises; failures become an empty record
"""

from __future__ import annotations

import json
import time
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple

from ..lexicons import DEFAULT_LEXICON, Lexicon
from ..ops_logger import OpsLogger, build_url_record, ops_env_enabled
from ..schemas import (
    CONTACT_FIELDS,
    ContactRecord,
    ErrorKind,
    Failed,
    PageSignal,
    PageState,
)
from .links import LinkClassifier
from .merger import merge
from .navigation import NavigationController, classify_error
from .probes import PageProbes
from .text_patterns import TextPatternExtractor


StrategyFn = Callable[[PageState, ContactRecord], ContactRecord]

SOCIAL_FIELDS: Tuple[str, ...] = ("social_handle", "linkedin_url")


@dataclass(frozen=True)
class Strategy:
    name: str
    fields: Tuple[str, ...]
    run: StrategyFn


def default_strategies(lexicon: Lexicon = DEFAULT_LEXICON) -> List[Strategy]:
    """Built-in strategy order: static stages first, in-page probes after."""
    links = LinkClassifier(lexicon)
    text = TextPatternExtractor(lexicon)
    probes = PageProbes(lexicon)
    return [
        Strategy("links", CONTACT_FIELDS, links.classify),
        Strategy("text", ("email",), text.extract),
        Strategy("icons", SOCIAL_FIELDS, probes.icon_scan),
        Strategy("document", CONTACT_FIELDS, probes.document_scan),
        Strategy("scripts", ("email",), probes.script_scan),
        Strategy("list_items", SOCIAL_FIELDS, probes.list_item_scan),
        Strategy("domain_guess", ("email",), probes.domain_guess),
    ]


def run_strategies(state: PageState, strategies: Sequence[Strategy]) -> ContactRecord:
    """Fold the strategies over an empty record for one render pass.

    Values a strategy reports for fields outside its declared `fields`, or
    for fields already filled, are ignored.
    """
    record = ContactRecord.empty()
    for strategy in strategies:
        missing = set(record.missing_fields())
        if not missing:
            break
        if not missing.intersection(strategy.fields):
            continue
        try:
            found = strategy.run(state, record)
        except Exception as e:
            print(f"Strategy '{strategy.name}' failed on {state.url}: {e}")
            continue
        if found is None:
            continue
        allowed = ContactRecord(**{f: getattr(found, f) for f in strategy.fields})
        record = record.fill_missing(allowed)
    return record


@dataclass(frozen=True)
class ExtractionResult:
    """Merged record of one website plus what the navigation reported."""
    record: ContactRecord
    outcome: str
    error_kind: Optional[ErrorKind] = None
    signals: Tuple[PageSignal, ...] = ()
    attempts: int = 0


class WebsiteContactExtractor:
    """
    Extracts one ContactRecord per external website.

    Each call owns one navigation session. Both render passes (initial and
    post-scroll) are extracted with the strategy list and merged, preferring
    post-scroll values since footers usually render last.
    """

    def __init__(
        self,
        *,
        navigator: Optional[NavigationController] = None,
        lexicon: Lexicon = DEFAULT_LEXICON,
        strategies: Optional[Sequence[Strategy]] = None,
        ops_logger: Optional[OpsLogger] = None,
    ) -> None:
        self.lexicon = lexicon
        self.navigator = navigator or NavigationController(lexicon=lexicon)
        self.strategies = list(strategies) if strategies is not None else default_strategies(lexicon)
        self.ops_logger = ops_logger
        # OPS logging toggle (env or runner flag)
        self.ops_json_enabled = False
        self.last_ops_record: Optional[dict] = None

    def extract(self, url: str) -> ContactRecord:
        """Return the merged ContactRecord for url; never raises."""
        return self.extract_with_outcome(url).record

    def extract_with_outcome(self, url: str) -> ExtractionResult:
        print(f"Visiting website: {url}")
        t0 = time.perf_counter()
        t_navigate = 0.0
        t_extract = 0.0
        attempts = 0
        signals: Tuple[PageSignal, ...] = ()
        try:
            with self.navigator.navigate(url) as outcome:
                t_navigate = time.perf_counter() - t0
                attempts = outcome.attempts
                if isinstance(outcome, Failed):
                    print(f"Could not load {url}: {outcome.kind.value}")
                    result = ExtractionResult(
                        record=ContactRecord.empty(),
                        outcome="failed",
                        error_kind=outcome.kind,
                        attempts=attempts,
                    )
                else:
                    signals = tuple(getattr(outcome, "signals", ()))
                    t_ex = time.perf_counter()
                    record = self._extract_passes(outcome.page_state)
                    t_extract = time.perf_counter() - t_ex
                    result = ExtractionResult(
                        record=record,
                        outcome="flagged" if signals else "loaded",
                        signals=signals,
                        attempts=attempts,
                    )
        except Exception as e:
            print(f"Error extracting contact info from {url}: {e}")
            result = ExtractionResult(
                record=ContactRecord.empty(),
                outcome="error",
                error_kind=classify_error(e),
                signals=signals,
                attempts=attempts,
            )
        self._emit_ops(url, result, {
            "navigate_s": t_navigate,
            "extract_s": t_extract,
            "total_s": max(0.0, time.perf_counter() - t0),
        })
        if result.record.found_fields():
            print(f"Extracted from {url}: {', '.join(result.record.found_fields())}")
        return result

    def _extract_passes(self, page_state: PageState) -> ContactRecord:
        passes = {}
        for state in self.navigator.render_passes(page_state):
            print(f"Extracting contact information ({state.pass_name})...")
            passes[state.pass_name] = run_strategies(state, self.strategies)
        return merge(
            passes.get("initial", ContactRecord.empty()),
            passes.get("post-scroll", ContactRecord.empty()),
        )

    def _emit_ops(self, url: str, result: ExtractionResult, durations: dict) -> None:
        if not (ops_env_enabled() or self.ops_json_enabled):
            return
        record = build_url_record(
            url=url,
            outcome=result.outcome,
            error_kind=result.error_kind.value if result.error_kind else None,
            signals=[s.value for s in result.signals],
            attempts=result.attempts,
            found_fields=result.record.found_fields(),
            durations=durations,
        )
        self.last_ops_record = record
        if self.ops_logger is not None:
            self.ops_logger.emit(record)
        else:
            print(json.dumps({"lch_ops": 1, **record}, ensure_ascii=False))
