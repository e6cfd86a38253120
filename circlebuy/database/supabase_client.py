"""
Supabase clients: shared ones for data access, throwaway ones for sign-in flows
"""

from typing import Callable, Dict
from supabase import create_client, Client
from circlebuy.config import settings

_clients: Dict[str, Client] = {}


def _client_for(key: str) -> Client:
    if key not in _clients:
        _clients[key] = create_client(settings.supabase_url, key)
    return _clients[key]


def get_supabase() -> Client:
    """Anon-key client; row-level security applies. Never signs anyone in."""
    return _client_for(settings.supabase_key)


def get_service_supabase() -> Client:
    """Service-role client for writes users may not make themselves. Falls back to the anon client."""
    if settings.supabase_service_role_key:
        return _client_for(settings.supabase_service_role_key)
    return get_supabase()


def new_auth_client() -> Client:
    """Fresh anon client per sign-up, sign-in or refresh.

    supabase-py stores the signed-in session on the client and sends it with
    later queries, so these flows must never run on the shared client.
    """
    return create_client(settings.supabase_url, settings.supabase_key)


def get_auth_client_factory() -> Callable[[], Client]:
    return new_auth_client
