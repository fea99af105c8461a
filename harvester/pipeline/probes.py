"""
In-page fallback probes (iconography, document, script and list scans).

Each probe evaluates JavaScript inside the live page so that dynamically
injected elements are visible, then post-processes the raw result in Python
with the same email gate and handle extraction as the static stages. Probes
take the record built so far and only report fields that are still empty.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

from ..lexicons import DEFAULT_LEXICON, HANDLE_PLATFORM, PROFILE_PLATFORM, Lexicon
from ..schemas import ContactRecord, PageState
from .links import extract_social_handle
from .text_patterns import EMAIL_PATTERN, TextPatternExtractor, is_acceptable_email


ICON_SCAN_JS = """
(args) => {
  const result = {};
  const elements = Array.from(document.querySelectorAll('a, button, div, span, i, svg, img'));
  const isWeb = (u) => /^https?:/i.test(u || '');
  const hostMatches = (u, domains) => {
    try {
      const h = new URL(u, location.href).hostname.toLowerCase();
      return domains.some(d => h === d || h.endsWith('.' + d));
    } catch (e) {
      return false;
    }
  };
  const here = location.href.split('#')[0].replace(/\\/$/, '');
  const usable = (a) => {
    if (!a || !isWeb(a.href)) return false;
    if ((a.getAttribute('href') || '').trim().startsWith('#')) return false;
    return a.href.split('#')[0].replace(/\\/$/, '') !== here;
  };
  const linkFor = (el) => {
    if (el.tagName === 'A') return usable(el) ? el.href : '';
    const parent = el.closest('a');
    if (usable(parent)) return parent.href;
    const child = el.querySelector('a');
    if (usable(child)) return child.href;
    return '';
  };
  const hasToken = (s, t) => {
    for (let i = s.indexOf(t); i !== -1; i = s.indexOf(t, i + 1)) {
      if (i === 0 || !/[a-z0-9]/.test(s[i - 1])) return true;
    }
    return false;
  };
  const ownMarkup = (el) => {
    if (el.tagName === 'A' || el.tagName === 'I' || el.tagName === 'SVG' || el.tagName === 'svg' || el.tagName === 'IMG') {
      return (el.outerHTML || '').toLowerCase();
    }
    const attrs = Array.from(el.attributes || []).map(a => a.name + '=' + a.value).join(' ');
    return attrs.toLowerCase();
  };
  for (const [key, platform] of Object.entries(args.platforms)) {
    for (const el of elements) {
      const cls = (typeof el.className === 'string' ? el.className : (el.getAttribute('class') || '')).toLowerCase();
      const href = el.getAttribute('href') || '';
      if (href.toLowerCase().startsWith('mailto:')) continue;
      const markup = ownMarkup(el);
      const hit = platform.tokens.some(t => hasToken(markup, t) || hasToken(cls, t)) ||
                  (href !== '' && hostMatches(href, platform.domains));
      if (!hit) continue;
      const url = linkFor(el);
      if (url) {
        result[key] = url;
        break;
      }
    }
  }
  return result;
}
"""

DOCUMENT_SCAN_JS = """
(args) => {
  const hostMatches = (u, domains) => {
    try {
      const h = new URL(u).hostname.toLowerCase();
      return domains.some(d => h === d || h.endsWith('.' + d));
    } catch (e) {
      return false;
    }
  };
  const result = { text: '', social: {}, contact: '', dataEmails: [] };
  result.text = document.body ? (document.body.innerText || '') : '';
  const links = Array.from(document.querySelectorAll('a[href]'));
  for (const link of links) {
    const href = link.href || '';
    const low = href.toLowerCase();
    if (!/^https?:/.test(low)) continue;
    let social = false;
    for (const [key, platform] of Object.entries(args.platforms)) {
      if (hostMatches(href, platform.domains)) {
        social = true;
        if (!result.social[key]) result.social[key] = href;
      }
    }
    if (social || result.contact) continue;
    const text = (link.innerText || '').toLowerCase();
    if (args.contactHrefTokens.some(t => low.includes(t)) || args.contactTextTokens.some(t => text.includes(t))) {
      result.contact = href;
    }
  }
  for (const el of Array.from(document.querySelectorAll('[data-email], [data-mail]'))) {
    const v = el.getAttribute('data-email') || el.getAttribute('data-mail') || '';
    if (v.includes('@')) result.dataEmails.push(v);
  }
  return result;
}
"""

SCRIPT_SCAN_JS = """
() => Array.from(document.querySelectorAll('script:not([src])'))
  .map(s => s.textContent || '')
  .filter(c => c.includes('@'))
  .slice(0, 200)
"""

LIST_ITEM_SCAN_JS = """
(args) => {
  const hostMatches = (u, domains) => {
    try {
      const h = new URL(u).hostname.toLowerCase();
      return domains.some(d => h === d || h.endsWith('.' + d));
    } catch (e) {
      return false;
    }
  };
  const result = {};
  for (const item of Array.from(document.querySelectorAll('li'))) {
    const link = item.querySelector('a');
    if (!link || !/^https?:/i.test(link.href || '')) continue;
    const href = link.href.toLowerCase();
    const text = (item.textContent || '').toLowerCase();
    const html = (item.innerHTML || '').toLowerCase();
    for (const [key, platform] of Object.entries(args.platforms)) {
      if (result[key]) continue;
      if (hostMatches(link.href, platform.domains) ||
          platform.textTokens.some(t => text.includes(t) || html.includes(t))) {
        result[key] = link.href;
        break;
      }
    }
  }
  return result;
}
"""

BODY_TEXT_JS = "() => document.body ? (document.body.innerText || '') : ''"


def registrable_domain(host: str) -> str:
    parts = (host or '').lower().split('.')
    if len(parts) >= 3 and parts[-2] in {'co', 'com', 'org', 'net', 'gov', 'ac', 'edu'} and len(parts[-1]) <= 3:
        return '.'.join(parts[-3:])
    return '.'.join(parts[-2:]) if len(parts) >= 2 else (host or '').lower()


class PageProbes:
    """Fallback probes run against the live page of a PageState."""

    def __init__(self, lexicon: Lexicon = DEFAULT_LEXICON) -> None:
        self.lexicon = lexicon
        self.text_extractor = TextPatternExtractor(lexicon)

    def _platform_args(self) -> Dict[str, Any]:
        return {
            "platforms": {
                key: {
                    "domains": p.domains,
                    "tokens": p.icon_tokens,
                    "textTokens": p.text_tokens,
                }
                for key, p in self.lexicon.platforms.items()
                if key in (HANDLE_PLATFORM, PROFILE_PLATFORM)
            },
            "contactHrefTokens": self.lexicon.contact_href_tokens,
            "contactTextTokens": self.lexicon.contact_text_tokens,
        }

    def _social_record(self, found: Dict[str, Any], label: str) -> ContactRecord:
        handle = ""
        linkedin = ""
        twitter_url = str(found.get(HANDLE_PLATFORM) or "")
        if twitter_url:
            handle = extract_social_handle(twitter_url, self.lexicon.handle_platform.domains)
            print(f"Found Twitter from {label}: {handle}")
        linkedin_url = str(found.get(PROFILE_PLATFORM) or "")
        if linkedin_url:
            linkedin = linkedin_url
            print(f"Found LinkedIn from {label}: {linkedin}")
        return ContactRecord(social_handle=handle, linkedin_url=linkedin)

    def icon_scan(self, state: PageState, current: Optional[ContactRecord] = None) -> ContactRecord:
        """Broad element scan for platform icons/classes; resolves the nearest link."""
        if state.page is None:
            return ContactRecord.empty()
        print("Looking for social media icons...")
        found = state.page.evaluate(ICON_SCAN_JS, self._platform_args()) or {}
        return self._social_record(found, "icon")

    def document_scan(self, state: PageState, current: Optional[ContactRecord] = None) -> ContactRecord:
        """Cross-check over innerText, every a[href] and data-email/data-mail attributes."""
        if state.page is None:
            return ContactRecord.empty()
        print("Trying JavaScript extraction...")
        found = state.page.evaluate(DOCUMENT_SCAN_JS, self._platform_args()) or {}
        email = self.text_extractor.pick_email(self.text_extractor.candidate_emails(str(found.get("text") or "")))
        if not email:
            for raw in found.get("dataEmails") or []:
                m = EMAIL_PATTERN.search(str(raw))
                if m and is_acceptable_email(m.group(1), self.lexicon):
                    email = m.group(1).lower()
                    break
        if email:
            print(f"Found email with JavaScript: {email}")
        social = self._social_record(found.get("social") or {}, "JavaScript")
        contact = str(found.get("contact") or "")
        if contact:
            print(f"Found contact page with JavaScript: {contact}")
        return ContactRecord(
            email=email,
            social_handle=social.social_handle,
            linkedin_url=social.linkedin_url,
            contact_page_url=contact,
        )

    def script_scan(self, state: PageState, current: Optional[ContactRecord] = None) -> ContactRecord:
        """Email-shaped substrings inside inline <script> bodies."""
        if state.page is None:
            return ContactRecord.empty()
        bodies: List[str] = state.page.evaluate(SCRIPT_SCAN_JS) or []
        for body in bodies:
            survivors = self.text_extractor.filter_placeholders(self.text_extractor.candidate_emails(str(body)))
            if survivors:
                print(f"Found email from DOM patterns: {survivors[0]}")
                return ContactRecord(email=survivors[0])
        return ContactRecord.empty()

    def list_item_scan(self, state: PageState, current: Optional[ContactRecord] = None) -> ContactRecord:
        """Social links nested in <li> elements (footer list markup)."""
        if state.page is None:
            return ContactRecord.empty()
        found = state.page.evaluate(LIST_ITEM_SCAN_JS, self._platform_args()) or {}
        return self._social_record(found, "DOM patterns")

    def guess_candidates(self, url: str) -> List[str]:
        try:
            host = urlparse(url).hostname or ""
        except ValueError:
            host = ""
        if host.startswith("www."):
            host = host[4:]
        domain = registrable_domain(host)
        if not domain or "." not in domain:
            return []
        return [f"{role}@{domain}" for role in self.lexicon.domain_guess_roles]

    def domain_guess(self, state: PageState, current: Optional[ContactRecord] = None) -> ContactRecord:
        """Accept {role}@{domain} only when that literal string is visible on the page."""
        if state.page is None:
            return ContactRecord.empty()
        candidates = self.guess_candidates(state.url)
        if not candidates:
            return ContactRecord.empty()
        print(f"Trying common email patterns for domain {candidates[0].split('@', 1)[1]}")
        text = str(state.page.evaluate(BODY_TEXT_JS) or "")
        for cand in candidates:
            if cand in text and is_acceptable_email(cand, self.lexicon):
                print(f"Found common email pattern: {cand}")
                return ContactRecord(email=cand)
        return ContactRecord.empty()
