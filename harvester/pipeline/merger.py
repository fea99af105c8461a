from __future__ import annotations

from ..schemas import CONTACT_FIELDS, ContactRecord


def merge(initial: ContactRecord, post_scroll: ContactRecord) -> ContactRecord:
    """Field-wise merge of the two render passes; post-scroll wins when non-empty."""
    return ContactRecord(
        **{f: (getattr(post_scroll, f) or getattr(initial, f) or "") for f in CONTACT_FIELDS}
    )
