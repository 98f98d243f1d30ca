from __future__ import annotations

import os
from pathlib import Path

from flask import Flask

from adapters.config_loader import load_config, merge_config
from config import configure_logging
from services import db as db_service


BLUEPRINTS = [
    ("blueprints.planning.routes", "bp"),
]


def create_app(test_config: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_mapping(
        DATABASE=os.path.join(app.instance_path, "planning.sqlite"),
        PLANNING_CONFIG=os.environ.get("PLANNING_CONFIG"),
    )

    if test_config:
        app.config.update(test_config)

    config_path = app.config.get("PLANNING_CONFIG")
    app.config["PLANNING"] = load_config(config_path) if config_path else merge_config(app.config.get("PLANNING"))
    configure_logging(app.config["PLANNING"])

    Path(app.instance_path).mkdir(parents=True, exist_ok=True)

    for import_path, attr in BLUEPRINTS:
        module = __import__(import_path, fromlist=[attr])
        blueprint = getattr(module, attr)
        app.register_blueprint(blueprint)

    @app.route("/healthz")
    def healthcheck() -> tuple[str, int]:
        return "OK", 200

    db_service.init_app(app)

    return app


if __name__ == "__main__":
    app = create_app()
    app.run(debug=True)
