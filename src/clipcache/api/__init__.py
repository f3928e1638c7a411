"""HTTP API for clipcache."""

from clipcache.api.app import create_app


__all__ = ["create_app"]
