import logging

from django.apps import AppConfig
from django.conf import settings

logger = logging.getLogger("storehub.auth")


class CoreConfig(AppConfig):
    name = "core"
    default_auto_field = "django.db.models.BigAutoField"

    def ready(self):
        if settings.JWT_SECRET == "dev-secret-change-me":
            logger.warning("JWT_SECRET is not set - using a weak default for dev only")
