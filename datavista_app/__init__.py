# datavista_app/__init__.py
# -*- coding: utf-8 -*-
from __future__ import annotations

import logging
import os
from datetime import datetime

from flask import Flask, render_template
from config import Config, TestingConfig, StagingConfig, ProductionConfig
from .blueprints.admin import admin_bp
from .extensions import init_extensions, register_cli
from .services.ai_client import init_ai
from .services.quota import init_quota
from .services.identity import init_identity, current_user
from .blueprints.core import bp as core_bp
from .blueprints.auth import bp as auth_bp
from .blueprints.dashboards import bp as dashboards_bp
from .blueprints.blog import bp as blog_bp

ENV_CONFIGS = {
    "testing": TestingConfig,
    "staging": StagingConfig,
    "production": ProductionConfig,
}


def create_app(config_object: type[Config] | None = None, overrides: dict | None = None) -> Flask:
    app = Flask(__name__, template_folder="../templates", static_folder="../static")

    if config_object is None:
        config_object = ENV_CONFIGS.get(os.getenv("APP_ENV", "").lower(), Config)
    app.config.from_object(config_object)
    if overrides:
        app.config.update(overrides)

    app.logger.setLevel(getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO))

    # Extensions (DB/Bcrypt/Migrate)
    init_extensions(app)

    # Services, available through app.extensions
    init_ai(app)            # app.extensions["ai_client"]
    init_quota(app)         # app.extensions["quota_gate"]
    init_identity(app)      # app.extensions["identity"]
    app.config["STARTED_AT"] = datetime.utcnow().strftime("%Y-%m-%d %H:%M:%S UTC")

    # Blueprints
    app.register_blueprint(core_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(dashboards_bp)
    app.register_blueprint(blog_bp)
    app.register_blueprint(admin_bp)
    # CLI (e.g. flask init-db)
    register_cli(app)

    @app.errorhandler(404)
    def not_found(_e):
        return render_template("404.html"), 404

    @app.context_processor
    def inject_user():
        return {"current_user": current_user()}

    @app.template_filter("filesize")
    def filesize(value):
        n = float(value or 0)
        if n >= 1024 * 1024:
            return f"{n / (1024 * 1024):.2f} MB"
        if n >= 1024:
            return f"{n / 1024:.1f} KB"
        return f"{int(n)} B"

    app.logger.info("datavista started (env=%s)", app.config.get("FLASK_ENV"))
    return app
