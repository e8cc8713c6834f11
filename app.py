import os
import sys
import logging
from rich.logging import RichHandler
from flask import Flask, jsonify
from asgiref.wsgi import WsgiToAsgi

from portal.models import init_db, FeedbackParameter
from routes.admin_routes import admin_bp
from routes.student_routes import student_bp
from routes.report_routes import report_bp
from config import MAX_FILE_SIZE, UPLOAD_FOLDER

logger = logging.getLogger("feedback_portal")


def configure_logging(level=logging.INFO):
    """Route all logging through rich."""
    logging.basicConfig(
        level=level,
        format="%(message)s",
    )
    logging.root.handlers = [
        RichHandler(rich_tracebacks=True, show_path=True, tracebacks_show_locals=False,
                    log_time_format="[%b %d, %Y, %I:%M:%S %p]",
                    )
    ]


def create_app(initialize=True):
    app = Flask(__name__)
    app.secret_key = os.environ.get('SECRET_KEY', 'your_secret_key_change_in_production')
    app.config['MAX_CONTENT_LENGTH'] = MAX_FILE_SIZE
    app.json.ensure_ascii = False

    app.register_blueprint(admin_bp)
    app.register_blueprint(student_bp)
    app.register_blueprint(report_bp)

    @app.route("/health")
    def health():
        return jsonify({'status': 'ok'})

    if initialize:
        os.makedirs(UPLOAD_FOLDER, exist_ok=True)
        init_db()
        FeedbackParameter.seed_if_empty()

    return app


if __name__ == "__main__":
    configure_logging()

    logger.info("Initializing database...")
    app = create_app()
    logger.info("Database initialized")

    if len(sys.argv) > 1 and sys.argv[1] == '--seed-demo':
        from portal.models.store import FeedbackStore
        from portal.services.seed import seed_from_store
        logger.info("Seeding demo data...")
        seed_from_store(FeedbackStore.sample())

    import uvicorn
    host = os.environ.get('HOST', '127.0.0.1')
    port = int(os.environ.get('PORT', 5000))
    logger.info(f"Starting server on {host}:{port}")
    uvicorn.run(WsgiToAsgi(app), host=host, port=port, log_config=None)
