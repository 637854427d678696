# modpack_cache/http/__init__.py
from .client import HTTPError, request, requestWithSettings, createClient

__all__ = ["HTTPError", "request", "requestWithSettings", "createClient"]
