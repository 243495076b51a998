"""ASGI entrypoint for the PixPrint account API."""

from pixprint.api.app import create_app
from pixprint.containers import build_container

app = create_app(build_container())
