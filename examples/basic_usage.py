"""Basic retrieval example.

This example shows the simplest usage pattern: wire an orchestrator,
hand it some text containing a media link, and print the result. Small
assets are cached under ./uploads for five minutes; large ones come back
as direct links.
"""

from datetime import timedelta
from pathlib import Path

from clipcache import (
    AioDlResolver,
    FileCacheStore,
    HttpAssetFetcher,
    RetrievalOrchestrator,
    RetrievalRequest,
    RichProgressReporter,
)


# Option 1: Manual wiring (full control over adapters)
orchestrator = RetrievalOrchestrator(
    resolver=AioDlResolver("https://resolver.example.com"),
    fetcher=HttpAssetFetcher(),
    store=FileCacheStore(Path("./uploads"), ttl=timedelta(minutes=5)),
)

# Option 2: Factory method (reads CLIPCACHE_* environment variables)
# from clipcache import get_settings
# orchestrator = RetrievalOrchestrator.from_settings(get_settings())

request = RetrievalRequest(
    raw_input="have a look https://social.example.com/watch/123",
    base_url="http://localhost:3000",
)

with RichProgressReporter() as progress:
    result = orchestrator.retrieve(request, progress=progress)

if result.is_direct_link:
    print(f"Too large to cache ({result.file_size}): {result.video_url}")
else:
    print(f"Cached for {result.expires_in}: {result.video_url}")

# Expired assets are reclaimed at the start of every retrieval, or on demand
orchestrator.sweep()
