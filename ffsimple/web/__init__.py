"""Flask application factory for the ffsimple web API."""

import logging
import os
from pathlib import Path

from flask import Flask, jsonify

from ffsimple.errors import FFmpegNotFoundError
from ffsimple.fsutil import create_temp_dir

logger = logging.getLogger(__name__)

# uploads above this size are rejected with 413
MAX_UPLOAD_BYTES = 4 * 1024 * 1024 * 1024


def create_app(work_dir: Path | None = None) -> Flask:
    app = Flask(__name__)
    if work_dir is None:
        env_dir = os.environ.get("FFSIMPLE_WORK_DIR")
        work_dir = Path(env_dir) if env_dir else create_temp_dir(prefix="ffsimple_web_")
    app.config.update(WORK_DIR=Path(work_dir), MAX_CONTENT_LENGTH=MAX_UPLOAD_BYTES)
    logger.info(f"Storing uploads and chunks under {app.config['WORK_DIR']}")

    from ffsimple.web.routes import bp
    app.register_blueprint(bp)

    @app.errorhandler(413)
    def upload_too_large(error):
        return jsonify({"error": f"Uploads are limited to {MAX_UPLOAD_BYTES // 1024 ** 3} GB"}), 413

    @app.errorhandler(FFmpegNotFoundError)
    def ffmpeg_missing(error):
        return jsonify({"error": str(error)}), 503

    return app
