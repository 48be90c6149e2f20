"""
Upload endpoints.

Blueprint: upload_bp
Routes:
    GET    /          # Upload form
    POST   /upload    # Compress the uploaded file and stream it back

The response body is read from the compressed file after the strategy has
succeeded. Job artifacts are released when the response is closed, or
right away when the job fails.
"""

from __future__ import annotations

import logging

from flask import Blueprint, Response, current_app, jsonify, render_template, request

from ..compression.errors import CompressionError, ResponseWriteError, TranscodeError
from ..compression.pipeline import CompressionPipeline
from ..models.job import CompressionResult

upload_bp = Blueprint("upload", __name__)

logger = logging.getLogger(__name__)

# Form field names accepted for the uploaded file
FILE_FIELDS = ("image", "file")
STREAM_CHUNK = 64 * 1024


def _pipeline() -> CompressionPipeline:
    return current_app.config["PIPELINE"]


def _error_response(error: CompressionError, job_id: str = "-"):
    """Log once and answer with the error's status and public message."""
    if error.status_code >= 500:
        extra = ""
        if isinstance(error, TranscodeError) and error.output:
            extra = f"\n{error.output_tail()}"
        logger.error(f"[{job_id}] {error}{extra}")
    else:
        logger.warning(f"[{job_id}] {error}")
    return jsonify({"success": False, "error": error.message}), error.status_code


def _stream_output(result: CompressionResult) -> Response:
    """Build the attachment response for a finished job."""
    try:
        fh = open(result.output_path, "rb")
    except OSError as e:
        raise ResponseWriteError(detail=str(e)) from e

    def generate():
        try:
            while True:
                chunk = fh.read(STREAM_CHUNK)
                if not chunk:
                    break
                yield chunk
        except OSError as e:
            logger.error(f"[{result.job_id}] Error streaming output: {e}")
            raise
        finally:
            fh.close()

    response = Response(generate(), mimetype="application/octet-stream")
    response.headers.set("Content-Disposition", "attachment", filename=result.download_name)
    response.content_length = result.output_bytes
    response.call_on_close(fh.close)
    return response


# ── Routes ───────────────────────────────────────────────────────


@upload_bp.route("/", methods=["GET"])
def index():
    """Upload form."""
    return render_template("index.html")


@upload_bp.route("/upload", methods=["POST"])
def api_upload():
    """Compress one uploaded file and return it as an attachment."""
    upload = next(
        (request.files[name] for name in FILE_FIELDS if name in request.files),
        None,
    )
    pipeline = _pipeline()
    try:
        job, artifacts = pipeline.start(upload.filename if upload is not None else "")
    except CompressionError as e:
        return _error_response(e)

    handed_off = False
    try:
        pipeline.store_upload(job, upload.stream)
        result = pipeline.execute(job, artifacts)
        response = _stream_output(result)
        response.call_on_close(artifacts.release)
        handed_off = True
        return response
    except CompressionError as e:
        return _error_response(e, job.job_id)
    finally:
        if not handed_off:
            artifacts.release()
