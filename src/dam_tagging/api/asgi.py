"""ASGI entrypoint for the DAM tagging API."""

from dam_tagging.api.app import create_app
from dam_tagging.containers import build_container

app = create_app(build_container())
