"""
Flask API server for scenario transcription.

This server provides endpoints for:
- Uploading scenario archives for processing (queued, or blocking)
- Checking job status and progress
- Listing and downloading produced reports

Jobs are executed by a JobQueue, one at a time, in submission order.
"""

import atexit
import logging
from datetime import datetime
from functools import partial
from typing import Optional

from flask import Flask, jsonify, request, send_from_directory
from flask_cors import CORS

from ..config import Settings
from .job_queue import JobQueue
from .job_storage import REPORT_EXTENSION, JobStorage
from .models import JobState
from .processor import ScenarioProcessor

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {"zip"}
ZIP_MIMETYPES = {"application/zip", "application/x-zip-compressed"}


def allowed_file(filename: str, mimetype: Optional[str] = None) -> bool:
    """Check if the uploaded file looks like a ZIP archive."""
    if mimetype in ZIP_MIMETYPES:
        return True
    return "." in filename and filename.rsplit(".", 1)[1].lower() in ALLOWED_EXTENSIONS


def create_app(
    settings: Optional[Settings] = None,
    job_queue: Optional[JobQueue] = None,
    processor: Optional[ScenarioProcessor] = None,
) -> Flask:
    """
    Build the Flask application.

    Args:
        settings: Static configuration (loaded from the environment if omitted)
        job_queue: Queue executing the jobs (a new one is created if omitted)
        processor: Pipeline used for submitted archives (built from settings if omitted)
    """
    settings = settings or Settings.load()
    storage = processor.storage if processor else JobStorage(settings.uploads_dir)
    processor = processor or ScenarioProcessor.from_settings(settings, storage)

    if job_queue is None:
        job_queue = JobQueue()
        # Ensure cleanup on shutdown
        atexit.register(partial(job_queue.shutdown, wait=False))

    app = Flask(__name__)
    app.config["MAX_CONTENT_LENGTH"] = settings.max_upload_bytes
    app.extensions["job_queue"] = job_queue
    app.extensions["job_storage"] = storage
    CORS(app)

    werkzeug_logger = logging.getLogger("werkzeug")
    werkzeug_logger.setLevel(getattr(logging, settings.log_level, logging.WARNING))

    def _receive_archive():
        """Validate and store the uploaded archive; returns (path, error response)."""
        if "file" not in request.files:
            return None, (jsonify({"error": "No file provided"}), 400)

        file = request.files["file"]
        if file.filename == "":
            return None, (jsonify({"error": "No file selected"}), 400)

        if not allowed_file(file.filename, file.mimetype):
            return None, (jsonify({"error": "File must be a .zip archive"}), 400)

        return storage.save_upload(file), None

    @app.route("/health", methods=["GET"])
    def health_check():
        """Health check endpoint."""
        queue_status = job_queue.get_queue_status()
        return jsonify(
            {
                "status": "healthy",
                "timestamp": datetime.now().isoformat(),
                "queue_running": queue_status["is_running"],
                "queue_size": queue_status["queue_size"],
                "running_job": queue_status["running_job"],
            }
        )

    @app.route("/scenario/upload", methods=["POST"])
    def upload_scenario():
        """
        Upload a scenario archive for asynchronous processing.

        Expected form data:
        - file: ZIP archive of the scenario export

        Returns:
        - job_id: Identifier for polling /scenario/status/<job_id>
        """
        archive_path, error = _receive_archive()
        if error:
            return error

        job_id = job_queue.submit(processor.make_job(archive_path))
        logger.info(f"Job {job_id} queued for {archive_path.name}")
        return (
            jsonify({"job_id": job_id, "state": JobState.QUEUED.value, "message": "Archive queued for processing"}),
            202,
        )

    @app.route("/scenario/upload/sync", methods=["POST"])
    def upload_scenario_sync():
        """
        Upload a scenario archive and wait for the report.

        Returns the report path once the job finishes, or the job error.
        """
        archive_path, error = _receive_archive()
        if error:
            return error

        snapshot = job_queue.submit_and_wait(processor.make_job(archive_path))
        if snapshot.state == JobState.FINISHED and snapshot.result:
            return jsonify({"job_id": snapshot.id, "file_path": snapshot.result.file_path, "message": snapshot.result.message})
        return jsonify({"job_id": snapshot.id, "error": snapshot.error or "Processing failed"}), 500

    @app.route("/scenario/status/<job_id>", methods=["GET"])
    def get_job_status(job_id: str):
        """
        Get the status of a processing job.

        Returns state, progress (0-100), items_done, total_items, error and,
        once finished, file_path and result_message.
        """
        snapshot = job_queue.get_job(job_id)
        if snapshot is None:
            return jsonify({"error": "Job not found"}), 404
        return jsonify(snapshot.to_dict())

    @app.route("/scenario/history", methods=["GET"])
    def list_history():
        """
        List produced reports, newest first.

        Query parameters:
        - limit: Maximum number of entries (0-500, default: 100)
        """
        try:
            limit = int(request.args.get("limit", 100))
        except ValueError:
            limit = 100
        return jsonify({"items": storage.list_artifacts(limit=limit)})

    @app.route("/uploads/jobs/<job_dir>/<filename>", methods=["GET"])
    def download_report(job_dir: str, filename: str):
        """Serve a produced report under its public path."""
        if job_dir in (".", "..") or not filename.lower().endswith(REPORT_EXTENSION):
            return jsonify({"error": "Report not found"}), 404
        return send_from_directory(storage.jobs_dir / job_dir, filename, as_attachment=True)

    @app.route("/queue/status", methods=["GET"])
    def get_queue_status():
        """Get detailed queue status information."""
        return jsonify(job_queue.get_queue_status())

    return app
