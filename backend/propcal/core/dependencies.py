import asyncio
from typing import Annotated

import httpx
from fastapi import Depends
from supabase import Client

from propcal.calendar.constants import MeetingProviderConfig
from propcal.core.supabase import get_supabase_client

_http_client: httpx.AsyncClient | None = None
_http_client_lock: asyncio.Lock = asyncio.Lock()


async def get_http_client() -> httpx.AsyncClient:
    global _http_client
    async with _http_client_lock:
        if _http_client is None or _http_client.is_closed:
            _http_client = httpx.AsyncClient(
                timeout=MeetingProviderConfig.REQUEST_TIMEOUT,
                limits=httpx.Limits(max_connections=50, max_keepalive_connections=10),
                headers={"Accept-Encoding": "gzip"}
            )
        return _http_client


async def close_http_client():
    global _http_client
    async with _http_client_lock:
        if _http_client is not None and not _http_client.is_closed:
            await _http_client.aclose()
            _http_client = None


SupabaseClientDep = Annotated[Client, Depends(get_supabase_client)]
