from __future__ import annotations

from typing import Any, Callable

from ..db.dynamodb.document_store import Page

FetchPage = Callable[[dict[str, Any] | None], Page]


def collect_pages(fetch: FetchPage) -> list[dict[str, Any]]:
    """
    Call ``fetch`` until a page comes back without a continuation token.

    Items keep the store's order across pages. There is no page or size cap;
    a failing page raises and whatever was accumulated is dropped with it.
    """
    page = fetch(None)
    items = list(page.items)
    while page.next_token:
        page = fetch(page.next_token)
        items.extend(page.items)
    return items
