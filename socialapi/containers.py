from dependency_injector import containers, providers

from socialapi.config import Settings
from socialapi.providers.tapestry import TapestryClient


class Container(containers.DeclarativeContainer):
    """Application container.

    Request-scoped services are built in socialapi.deps from the DB session;
    process-wide objects (settings, external clients) live here.
    """

    config = providers.Singleton(Settings)
    tapestry_client = providers.Singleton(TapestryClient, settings=config)
