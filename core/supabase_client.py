from supabase import create_client
from core.config import settings, logger
from core.errors import BackendConfigurationError
from typing import Dict
import asyncio
from functools import partial

# Cache the service-role client per process
_supabase_clients: Dict[str, any] = {}
_init_lock = asyncio.Lock()

def supabase_configured() -> bool:
    """True when both the project URL and the service role key are set."""
    return bool(settings.SUPABASE_URL and settings.SUPABASE_SERVICE_KEY)

async def get_supabase_client():
    """
    Initializes and returns the Supabase client (thread-safe).

    Uses the service role key: issuing signed upload URLs and writing to the
    files table both need it.

    Raises:
        BackendConfigurationError: if SUPABASE_URL or SUPABASE_SERVICE_KEY is missing.
    """
    global _supabase_clients

    if "service" not in _supabase_clients:
        async with _init_lock:
            # Double check after acquiring lock
            if "service" not in _supabase_clients:
                if not supabase_configured():
                    logger.error("Supabase URL or Service Role Key not configured. Cannot create client.")
                    raise BackendConfigurationError(
                        "Supabase configuration is missing. Please check your environment variables."
                    )

                logger.info("Initializing Supabase client with service role key...")
                try:
                    # Run create_client in a thread pool since it's synchronous
                    loop = asyncio.get_running_loop()
                    client_instance = await loop.run_in_executor(
                        None,
                        partial(create_client, settings.SUPABASE_URL, settings.SUPABASE_SERVICE_KEY)
                    )
                    _supabase_clients["service"] = client_instance
                    logger.info("Supabase client with service role key initialized successfully.")
                except Exception as e:
                    logger.error(f"Failed to initialize Supabase client: {e}", exc_info=True)
                    raise BackendConfigurationError(f"Failed to initialize Supabase client: {e}")

    return _supabase_clients["service"]

def reset_supabase_client() -> None:
    """Drops the cached client so the next call re-reads settings."""
    _supabase_clients.clear()

# Table name comes from settings so deployments can point at their own table
FILES_TABLE = settings.FILES_TABLE
