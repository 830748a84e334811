"""Application factory wiring Flask extensions and blueprints."""

from __future__ import annotations

from flask import Flask

from authapi.core.config import BaseConfig, get_config
from authapi.core.logger import configure_logging, init_app as init_logging


def create_app(
    config: str | type[BaseConfig] | object | None = None,
    *,
    instance_relative_config: bool = True,
    instance_config_filename: str = "config.py",
) -> Flask:
    """Build and configure the Flask application.

    :raises ConfigError: If the token settings are invalid (empty secret,
        non-positive TTLs, unknown store backend). The app refuses to start.
    """

    app = Flask(__name__, instance_relative_config=instance_relative_config)

    app.config.from_object(get_config() if config is None else config)
    if instance_relative_config and instance_config_filename:
        app.config.from_pyfile(instance_config_filename, silent=True)

    configure_logging(app.config.get("LOG_LEVEL", "INFO"))

    from authapi.core import extensions

    extensions.init_app(app)

    from authapi import wiring

    wiring.init_app(app)

    init_logging(app)

    from authapi.core import cors

    cors.init_app(app)

    from authapi.api import init_app as init_api

    init_api(app)

    from authapi.core import errors

    errors.init_app(app)

    from authapi import cli as app_cli

    app_cli.init_app(app)

    return app
