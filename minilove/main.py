"""Application entrypoint that delegates to the app factory."""

from minilove.core.app_factory import create_app

app = create_app()
