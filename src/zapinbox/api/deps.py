"""Request-scoped accessors for the objects create_app() wires up."""

from fastapi import Request

from zapinbox.config import Settings
from zapinbox.inbox.ingest import Ingestor
from zapinbox.inbox.store import InboxStore
from zapinbox.zapi.client import ZapiClient


def get_store(request: Request) -> InboxStore:
    return request.app.state.store


def get_ingestor(request: Request) -> Ingestor:
    return request.app.state.ingestor


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_zapi_client(request: Request) -> ZapiClient:
    """Injected client if one was given to create_app(), else one from settings."""
    client = request.app.state.zapi_client
    if client is None:
        client = ZapiClient.from_settings(request.app.state.settings)
    return client
