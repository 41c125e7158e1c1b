"""ASGI entrypoint for the ID scanner API."""

from id_scanner.api.app import create_app
from id_scanner.containers import build_container

app = create_app(build_container())
