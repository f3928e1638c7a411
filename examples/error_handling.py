"""Error handling patterns with recovery hints.

This example demonstrates how to handle retrieval failures by kind and
use the recovery_hint property to provide actionable guidance.
"""

from clipcache import (
    ClipcacheError,
    InvalidInputError,
    NoMediaFoundError,
    RetrievalOrchestrator,
    RetrievalRequest,
    RetrievalResult,
    UpstreamError,
    get_settings,
)


orchestrator = RetrievalOrchestrator.from_settings(get_settings())


# Pattern 1: Reject input without a link before doing any work
def retrieve_or_explain(text: str) -> RetrievalResult | None:
    """Retrieve media, explaining what was wrong with the input."""
    try:
        return orchestrator.retrieve(
            RetrievalRequest(raw_input=text, base_url="http://localhost:3000")
        )
    except InvalidInputError as e:
        print(f"No link found in {e.raw_input!r}")
        print(f"Hint: {e.recovery_hint}")
        return None


# Pattern 2: Distinguish "nothing to download" from other failures
def retrieve_if_available(text: str) -> RetrievalResult | None:
    """Retrieve media, returning None if the page lists no media."""
    try:
        return orchestrator.retrieve(
            RetrievalRequest(raw_input=text, base_url="http://localhost:3000")
        )
    except NoMediaFoundError as e:
        print(f"Nothing downloadable at {e.url}")
        return None


# Pattern 3: Retry once when the origin link has gone stale
def retrieve_with_retry(text: str) -> RetrievalResult:
    """Resolve again if the origin rejects the download link."""
    request = RetrievalRequest(raw_input=text, base_url="http://localhost:3000")
    try:
        return orchestrator.retrieve(request)
    except UpstreamError as e:
        if e.status_code is None or e.status_code >= 500:
            raise
        print(f"Origin answered HTTP {e.status_code}; resolving again")
        return orchestrator.retrieve(request)


# Pattern 4: Catch-all by kind
def retrieve_and_report(text: str) -> RetrievalResult | None:
    try:
        return orchestrator.retrieve(
            RetrievalRequest(raw_input=text, base_url="http://localhost:3000")
        )
    except ClipcacheError as e:
        print(f"[{e.kind}] {e} (step: {e.step})")
        if e.recovery_hint:
            print(f"Hint: {e.recovery_hint}")
        return None


if __name__ == "__main__":
    retrieve_and_report("hello world")
