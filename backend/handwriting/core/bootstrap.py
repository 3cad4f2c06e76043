# handwriting/core/bootstrap.py
"""
Bootstrap module for data layer initialization.
Builds a DataLayer from configuration and performs the first load.
"""
import logging

from handwriting.config import settings
from handwriting.layer import DataLayer
from handwriting.persistence.http_client import HttpPersistenceService
from handwriting.services.sync_engine import RetryPolicy

logger = logging.getLogger("handwriting")


def create_data_layer() -> DataLayer:
    """Data layer backed by the HTTP data API at ``API_BASE_URL``."""
    persistence = HttpPersistenceService(settings.api_base_url, settings.http_timeout_sec)
    return DataLayer(
        persistence,
        freshness_window_sec=settings.freshness_window_sec,
        retry=RetryPolicy.from_settings(),
    )


async def start_data_layer() -> DataLayer:
    """
    Create the data layer and load the dataset once.
    Warns when no moderator account exists, since nobody could review public works.
    """
    layer = create_data_layer()
    await layer.load(force=True)
    admins = [u for u in layer.store.all_users() if u.is_admin]
    if not admins:
        logger.warning("[bootstrap] No admin present; public works will stay pending. "
                       "Seed an account named %r with role=admin.", settings.default_admin_username)
    return layer
