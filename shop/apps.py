from django.apps import AppConfig
import logging

logger = logging.getLogger(__name__)


class ShopConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "shop"

    def ready(self):
        """
        Wire model signals: the realtime change feed and profile creation.
        """
        from . import accounts, realtime

        realtime.connect()
        accounts.connect()
        logger.debug("Shop signal handlers connected.")
