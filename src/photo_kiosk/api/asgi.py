"""ASGI entrypoint for the photo kiosk API."""

from photo_kiosk.api.app import create_app
from photo_kiosk.containers import build_container

app = create_app(build_container())
