"""Clients for the remote services a run talks to."""

from .http import HttpClient, HttpResponse
from .mutex import Mutex, MutexClient, mutex_key
from .pages_api import PagesApiClient

__all__ = [
    "HttpClient",
    "HttpResponse",
    "Mutex",
    "MutexClient",
    "mutex_key",
    "PagesApiClient",
]
