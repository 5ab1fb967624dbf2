"""Web API routes: upload a recording, split it in the background, fetch chunks."""

import json
import logging
import queue
import threading
import uuid
from dataclasses import dataclass, field
from pathlib import Path

from flask import Blueprint, Response, abort, current_app, jsonify, request, send_file

from ffsimple.editors.split import split_file_on_silences
from ffsimple.errors import FFmpegError, FFmpegRuntimeError
from ffsimple.manifest import load_split_config
from ffsimple.models import AudioChunk
from ffsimple.process import CancelToken

logger = logging.getLogger(__name__)

bp = Blueprint("web", __name__)

# seconds the SSE stream waits for the next progress event
PROGRESS_IDLE_TIMEOUT = 120


@dataclass
class Job:
    id: str
    dir: Path
    input_path: Path
    filename: str
    status: str = "uploaded"
    error: str | None = None
    chunks: list[AudioChunk] = field(default_factory=list)
    events: queue.Queue | None = None
    cancel: CancelToken | None = None

    def summary(self) -> dict:
        out = {"job_id": self.id, "status": self.status, "filename": self.filename}
        if self.status == "done":
            out["chunks"] = [
                {"index": i, "start": c.range.start, "end": c.range.end}
                for i, c in enumerate(self.chunks)
            ]
        if self.error:
            out["error"] = self.error
        return out


_jobs: dict[str, Job] = {}


def _get_job(job_id: str) -> Job:
    job = _jobs.get(job_id)
    if job is None:
        abort(404, description="Job not found")
    return job


@bp.errorhandler(404)
def not_found(error):
    return jsonify({"error": error.description}), 404


@bp.route("/")
def index():
    return jsonify({
        "service": "ffsimple",
        "endpoints": [
            "POST /api/upload",
            "POST /api/jobs/<job_id>/split",
            "POST /api/jobs/<job_id>/cancel",
            "GET /api/jobs/<job_id>/progress",
            "GET /api/jobs/<job_id>/status",
            "GET /api/jobs/<job_id>/chunks/<index>",
        ],
    })


@bp.route("/api/upload", methods=["POST"])
def upload():
    upload = request.files.get("file")
    if upload is None or not upload.filename:
        return jsonify({"error": "No file provided"}), 400

    job_id = uuid.uuid4().hex[:12]
    job_dir = Path(current_app.config["WORK_DIR"]) / job_id
    job_dir.mkdir(parents=True)
    input_path = job_dir / f"input{Path(upload.filename).suffix or '.wav'}"
    upload.save(input_path)

    job = Job(id=job_id, dir=job_dir, input_path=input_path, filename=upload.filename)
    _jobs[job_id] = job
    logger.info(f"Job {job_id}: received {upload.filename}")
    return jsonify({"job_id": job_id, "filename": job.filename})


def _run_split(job: Job, config) -> None:
    events = job.events
    total = 0
    done = 0

    def on_started(count: int) -> None:
        nonlocal total
        total = count
        events.put({"stage": f"Cutting {count} chunks", "progress": 0.0})

    def on_chunk(path: Path, index: int) -> None:
        nonlocal done
        done += 1
        events.put({"stage": f"Cut chunk {index}", "chunk": index, "progress": round(done / max(total, 1), 3)})

    try:
        job.chunks = split_file_on_silences(
            job.input_path,
            output_dir=job.dir / "chunks",
            config=config,
            on_started=on_started,
            on_chunk=on_chunk,
            cancel=job.cancel,
        )
        job.status = "done"
    except FFmpegError as e:
        job.status = "cancelled" if job.cancel.cancelled else "error"
        if isinstance(e, FFmpegRuntimeError) and e.tail:
            job.error = "ffmpeg failed: " + "\n".join(e.tail)[-500:]
        else:
            job.error = str(e)
    except ValueError as e:
        job.status = "error"
        job.error = str(e)
    except Exception as e:
        logger.exception(f"Job {job.id}: split crashed")
        job.status = "error"
        job.error = str(e)
    finally:
        events.put(None)


@bp.route("/api/jobs/<job_id>/split", methods=["POST"])
def start_split(job_id: str):
    job = _get_job(job_id)
    if job.status == "processing":
        return jsonify({"error": "Job is already processing"}), 409

    try:
        config = load_split_config(request.get_json(silent=True) or {})
    except TypeError as e:
        return jsonify({"error": f"Invalid split options: {e}"}), 400

    job.status = "processing"
    job.error = None
    job.chunks = []
    job.events = queue.Queue()
    job.cancel = CancelToken()

    threading.Thread(target=_run_split, args=(job, config), daemon=True).start()
    return jsonify({"status": "started"})


@bp.route("/api/jobs/<job_id>/cancel", methods=["POST"])
def cancel_job(job_id: str):
    job = _get_job(job_id)
    if job.status != "processing":
        return jsonify({"error": "No processing in progress"}), 409
    job.cancel.cancel()
    return jsonify({"status": "cancelling"})


@bp.route("/api/jobs/<job_id>/progress")
def progress_stream(job_id: str):
    job = _get_job(job_id)
    if job.events is None:
        return jsonify({"error": "No processing in progress"}), 409

    def generate():
        while True:
            try:
                event = job.events.get(timeout=PROGRESS_IDLE_TIMEOUT)
            except queue.Empty:
                event = {"error": "timeout"}
            if event is None:
                event = job.summary()
                if job.status == "done":
                    event.update(stage="complete", progress=1.0)
            yield f"data: {json.dumps(event)}\n\n"
            if "progress" not in event or event.get("stage") == "complete":
                break

    return Response(generate(), mimetype="text/event-stream")


@bp.route("/api/jobs/<job_id>/chunks/<int:index>")
def download_chunk(job_id: str, index: int):
    job = _get_job(job_id)
    if job.status != "done":
        return jsonify({"error": "Job not complete"}), 409
    if index >= len(job.chunks):
        abort(404, description="Chunk not found")
    return send_file(job.chunks[index].filename, as_attachment=True)


@bp.route("/api/jobs/<job_id>/status")
def job_status(job_id: str):
    return jsonify(_get_job(job_id).summary())
