"""Endpoint wrappers built on the request-execution layer."""

from urlscan_client.api.files import FilesApi

__all__ = ["FilesApi"]
