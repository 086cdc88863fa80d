import logging

from django.apps import AppConfig
from django.conf import settings

from .config import GitServerConfig

logger = logging.getLogger(__name__)


class RepoBrowserConfig(AppConfig):
    name = "repo_browser"
    verbose_name = "Repository browser"

    server_config = GitServerConfig(repository_roots=())

    def ready(self):
        self.server_config = GitServerConfig.from_settings(settings)
        if not self.server_config.repository_roots:
            logger.warning("GIT_SERVER has no REPOSITORY_ROOTS configured, every repository lookup will fail")
