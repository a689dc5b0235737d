"""ASGI entrypoint for the fan moments API."""

from fan_moments.api.app import create_app
from fan_moments.containers import build_container

app = create_app(build_container())
