import logging

from supabase import Client, create_client

from propcal.config import get_settings

logger = logging.getLogger(__name__)


class SupabaseClient:
    """
    Supabase client factory.

    The calendar backend only reads property data (leases, payments, work
    orders, communications, meetings). Authorization happens upstream, so a
    single service role client is shared by every request.
    """
    _service_instance: Client | None = None

    @classmethod
    def get_service_client(cls) -> Client:
        if cls._service_instance is None:
            settings = get_settings()
            if not settings.SUPABASE_URL or not settings.SUPABASE_SERVICE_ROLE_KEY:
                raise RuntimeError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be configured")
            logger.info("Creating Supabase service client for %s", settings.SUPABASE_URL)
            cls._service_instance = create_client(
                settings.SUPABASE_URL,
                settings.SUPABASE_SERVICE_ROLE_KEY
            )
        return cls._service_instance


def get_supabase_client() -> Client:
    return SupabaseClient.get_service_client()
