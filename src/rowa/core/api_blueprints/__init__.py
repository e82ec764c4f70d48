from __future__ import annotations

"""
ROWA API Blueprints

Flask Blueprints exposing the vesting engine over HTTP.

Usage:
    from rowa.core.api_blueprints import create_app
    app = create_app(manager, on_commit=service.save)
"""

import logging
from typing import Callable

from flask import Flask, g

from rowa.core.api_blueprints.vesting_bp import vesting_bp
from rowa.vesting.vesting_manager import VestingManager

__all__ = [
    "vesting_bp",
    "register_blueprints",
    "create_app",
    "ALL_BLUEPRINTS",
]

logger = logging.getLogger(__name__)

ALL_BLUEPRINTS = [vesting_bp]


def register_blueprints(
    app: Flask,
    manager: VestingManager,
    on_commit: Callable[[], None] | None = None,
) -> None:
    """
    Register the vesting blueprint and inject its context into ``g``.

    Args:
        app: Flask application instance
        manager: VestingManager serving the requests
        on_commit: Called after every successful mutation (e.g. to persist)
    """

    @app.before_request
    def inject_api_context() -> None:
        g.api_context = {"manager": manager, "on_commit": on_commit}

    for blueprint in ALL_BLUEPRINTS:
        app.register_blueprint(blueprint)
    logger.info(
        "Registered %d API blueprints",
        len(ALL_BLUEPRINTS),
        extra={"event": "api.blueprints_registered"},
    )


def create_app(
    manager: VestingManager,
    on_commit: Callable[[], None] | None = None,
) -> Flask:
    """Application factory for the vesting API."""
    app = Flask("rowa")
    register_blueprints(app, manager, on_commit)
    return app
