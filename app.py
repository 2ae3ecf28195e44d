import logging
import os
from logging.handlers import RotatingFileHandler

from flask import Flask, jsonify, request
from flask_migrate import Migrate

from config import Config
from models import db


migrate = Migrate()

COSTING_METHODS = {"PROMEDIO", "PEPS", "UEPS"}


def _setup_logging(app: Flask) -> None:
    level = getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO)
    loggers = [app.logger, logging.getLogger("services")]

    if app.config.get("LOG_TO_FILE", True):
        log_dir = app.config["LOG_DIR"]
        os.makedirs(log_dir, exist_ok=True)

        file_handler = RotatingFileHandler(
            os.path.join(log_dir, "app.log"),
            maxBytes=2_000_000,
            backupCount=5,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
        ))

        for lg in loggers:
            if not any(isinstance(h, RotatingFileHandler) for h in lg.handlers):
                lg.addHandler(file_handler)

    for lg in loggers:
        lg.setLevel(level)


def create_app(config_class=Config) -> Flask:
    app = Flask(__name__)
    app.config.from_object(config_class)

    # -------------------------
    # Extensiones
    # -------------------------
    db.init_app(app)
    migrate.init_app(app, db)

    # -------------------------
    # Importar modelos (Alembic)
    # -------------------------
    from models.product import Product  # noqa: F401
    from models.kardex import InventoryMovement  # noqa: F401
    from models.inventory import StockSnapshot  # noqa: F401

    # -------------------------
    # Blueprints
    # -------------------------
    from routes.inventory import inventory_bp
    from routes.kardex import kardex_bp
    from routes.products import products_bp

    blueprints = [
        inventory_bp,
        kardex_bp,
        products_bp,
    ]

    for bp in blueprints:
        app.register_blueprint(bp)

    # -------------------------
    # Logging + manejo global de errores
    # -------------------------
    _setup_logging(app)

    method = str(app.config.get("INVENTORY_COSTING_METHOD", "PROMEDIO")).upper()
    if method not in COSTING_METHODS:
        raise ValueError(f"INVENTORY_COSTING_METHOD inválido: {method}")
    if method != "PROMEDIO":
        app.logger.warning(
            "Método de costeo %s guardado como preferencia; se valúa con costo promedio ponderado.",
            method,
        )

    from schemas.documents import DocumentError

    @app.errorhandler(DocumentError)
    def _handle_document_error(e):
        app.logger.info("Documento rechazado en %s %s: %s", request.method, request.path, e)
        return jsonify({"ok": False, "message": str(e)}), 400

    @app.errorhandler(500)
    def _handle_500(e):
        app.logger.exception("Error 500 no manejado: %s %s", request.method, request.path)
        return jsonify({"ok": False, "message": "Ocurrió un error interno. El problema fue registrado."}), 500

    @app.errorhandler(404)
    def _handle_404(e):
        return jsonify({"ok": False, "message": "Recurso no encontrado."}), 404

    @app.errorhandler(405)
    def _handle_405(e):
        return jsonify({"ok": False, "message": "Método no permitido."}), 405

    return app


if __name__ == "__main__":
    app = create_app()
    # Debug controlado por config / variables de entorno
    app.run(debug=app.config.get("DEBUG", False))
