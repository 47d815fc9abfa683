# agentdocs/search.py
"""
Plain substring search over a use case's snippets.

The result is metadata only; code never leaves through this path.
"""

from typing import Any, Dict, List, Optional

from agentdocs.models import STATUS_PASSED


def _contains(haystack: Optional[str], needle: str) -> bool:
    return bool(haystack) and needle in haystack.lower()


def matches(snippet: Dict[str, Any], query: str) -> bool:
    q = query.lower()
    service = snippet.get("service") or {}
    return (
        _contains(snippet.get("title"), q)
        or _contains(snippet.get("description"), q)
        or _contains(service.get("name"), q)
    )


def project(snippet: Dict[str, Any]) -> Dict[str, Any]:
    service = snippet.get("service") or {}
    return {
        "id": snippet["id"],
        "title": snippet.get("title"),
        "description": snippet.get("description"),
        "service": service.get("slug"),
        "language": snippet.get("language"),
        "verified": snippet.get("verification_status") == STATUS_PASSED,
        "verified_at": snippet.get("verified_at"),
    }


def search_snippets(snippets: List[Dict[str, Any]], query: Optional[str] = None) -> List[Dict[str, Any]]:
    """Filter enriched snippets by `query` (no filtering when empty) and project them."""
    if query:
        snippets = [s for s in snippets if matches(s, query)]
    return [project(s) for s in snippets]
