import logging
import threading
import uuid

from flask import Flask, Response, jsonify, request
from pydantic import ValidationError

import config
from ai_analyzer import AIGateway, validate_openai_key
from errors import ChannelNotFoundError, GatewayError, MissingCredentialError
from exporters import (
    channel_report_to_text,
    keyword_report_to_text,
    opportunity_report_to_text,
    sanitize_filename,
    to_csv,
    to_json,
)
from keystore import KeyStore
from models import ChannelAnalysisResult, KeywordAnalysisResult, VideoRecord
from video_processing import process_videos, upload_cadence
from workflows import (
    RequestTracker,
    run_channel_analysis,
    run_keyword_analysis,
    run_opportunity_finder,
)
from youtube_api import YouTubeGateway, validate_api_key

logger = logging.getLogger(__name__)

app = Flask(__name__)
app.config["KEYSTORE"] = KeyStore(config.KEYSTORE_PATH)

# In-memory task storage
tasks: dict[str, dict] = {}
tracker = RequestTracker()


def _credentials() -> config.Credentials:
    return config.load_credentials(app.config["KEYSTORE"])


def _run_workflow(task_id: str, workflow: str, token: int, func, *args, **kwargs):
    task = tasks[task_id]
    try:
        task["status"] = "running"
        result = func(*args, **kwargs)

        if not tracker.is_current(workflow, token):
            task["status"] = "superseded"
            task["message"] = "A newer request replaced this one"
            return

        task["result"] = result
        task["status"] = "done"
        task["message"] = result.ai_error or "Done"

    except ChannelNotFoundError as e:
        task["status"] = "not_found"
        task["message"] = str(e)
    except GatewayError as e:
        logger.warning("Task %s failed: %s", task_id, e)
        task["status"] = "error"
        task["message"] = "Data lookup failed or the API quota was exceeded"
    except Exception as e:
        logger.exception("Task %s crashed", task_id)
        task["status"] = "error"
        task["message"] = str(e)


def _start(workflow: str, func, *args, **kwargs):
    task_id = str(uuid.uuid4())
    token = tracker.issue(workflow)
    tasks[task_id] = {
        "workflow": workflow,
        "status": "queued",
        "message": "Starting...",
        "result": None,
    }

    thread = threading.Thread(
        target=_run_workflow,
        args=(task_id, workflow, token, func, *args),
        kwargs=kwargs,
        daemon=True,
    )
    thread.start()

    return jsonify({"task_id": task_id})


def _payload() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _text(data: dict, key: str) -> str:
    value = data.get(key)
    return value.strip() if isinstance(value, str) else ""


@app.errorhandler(MissingCredentialError)
def missing_credential(e):
    return jsonify({"error": str(e)}), 401


@app.errorhandler(ValueError)
def bad_value(e):
    return jsonify({"error": str(e)}), 400


@app.route("/api/channel", methods=["POST"])
def api_channel():
    data = _payload()
    query = _text(data, "query")
    if not query:
        return jsonify({"error": "Query is required"}), 400

    credentials = _credentials()
    credentials.require_youtube()
    with_ai = not data.get("skip_ai", False) and credentials.has_openai()

    return _start("channel", run_channel_analysis, credentials, query, with_ai=with_ai)


@app.route("/api/keyword", methods=["POST"])
def api_keyword():
    data = _payload()
    keyword = _text(data, "query")
    if not keyword:
        return jsonify({"error": "Query is required"}), 400

    credentials = _credentials()
    credentials.require_youtube()
    with_ai = not data.get("skip_ai", False) and credentials.has_openai()

    return _start(
        "keyword", run_keyword_analysis, credentials, keyword,
        region=data.get("region", "KR"),
        category_id=data.get("category_id", ""),
        with_ai=with_ai,
    )


@app.route("/api/opportunity", methods=["POST"])
def api_opportunity():
    data = _payload()
    topic = _text(data, "query")
    if not topic:
        return jsonify({"error": "Query is required"}), 400

    credentials = _credentials()
    credentials.require_youtube()
    with_ai = not data.get("skip_ai", False) and credentials.has_openai()

    return _start(
        "opportunity", run_opportunity_finder, credentials, topic,
        category_id=data.get("category_id", ""),
        period=data.get("period", "1y"),
        region=data.get("region", "KR"),
        video_type=data.get("video_type", "all"),
        with_ai=with_ai,
    )


def _view_videos(videos: list[VideoRecord]) -> list[VideoRecord]:
    return process_videos(
        videos,
        video_type=request.args.get("type", "all"),
        sort_key=request.args.get("sort", "popularity"),
        limit=request.args.get("limit", type=int),
    )


def _serialize(result) -> dict:
    data = result.model_dump(mode="json")
    if isinstance(result, (ChannelAnalysisResult, KeywordAnalysisResult)):
        data["videos"] = [v.model_dump(mode="json") for v in _view_videos(result.videos)]
    if isinstance(result, ChannelAnalysisResult):
        cadence = upload_cadence(result.videos)
        data["cadence"] = cadence.model_dump(mode="json") if cadence else None
    return data


@app.route("/api/status/<task_id>")
def api_status(task_id):
    task = tasks.get(task_id)
    if not task:
        return jsonify({"error": "Task not found"}), 404

    body = {k: v for k, v in task.items() if k != "result"}
    body["result"] = _serialize(task["result"]) if task["result"] is not None else None
    return jsonify(body)


def _text_export(result) -> tuple[str, str]:
    if isinstance(result, ChannelAnalysisResult):
        if result.report is None:
            raise ValueError("No report to export")
        return channel_report_to_text(result.report, result.channel.title), result.channel.title
    if isinstance(result, KeywordAnalysisResult):
        if result.report is None:
            raise ValueError("No report to export")
        return keyword_report_to_text(result.report, result.keyword), result.keyword
    return opportunity_report_to_text(result.report, result.channels, result.topic), result.topic


def _csv_export(result) -> tuple[str, str]:
    if isinstance(result, ChannelAnalysisResult):
        return to_csv(_view_videos(result.videos)), result.channel.title
    if isinstance(result, KeywordAnalysisResult):
        return to_csv(_view_videos(result.videos)), result.keyword
    rows = [
        {
            "channel": r.channel.title,
            "channel_id": r.channel.id,
            "subscribers": r.channel.subscriber_count,
            "created": r.channel.published_at.isoformat() if r.channel.published_at else "",
            "top_video": r.top_video.title,
            "top_video_views": r.top_video_views,
            "score": round(r.score, 4),
        }
        for r in result.channels
    ]
    return to_csv(rows), result.topic


_MIMETYPES = {
    "csv": "text/csv; charset=utf-8",
    "txt": "text/plain; charset=utf-8",
    "json": "application/json",
}


@app.route("/api/export/<task_id>/<fmt>")
def api_export(task_id, fmt):
    task = tasks.get(task_id)
    if not task or task.get("result") is None:
        return jsonify({"error": "No results"}), 404
    if fmt not in _MIMETYPES:
        return jsonify({"error": f"Unknown format: {fmt}"}), 400

    result = task["result"]
    if fmt == "csv":
        content, name = _csv_export(result)
    elif fmt == "txt":
        content, name = _text_export(result)
    else:
        content = to_json(result.report if result.report is not None else result)
        name = getattr(result, "keyword", None) or getattr(result, "topic", None) or result.channel.title

    return Response(
        content,
        mimetype=_MIMETYPES[fmt],
        headers={"Content-Disposition": f"attachment; filename={sanitize_filename(name)}_{task_id[:8]}.{fmt}"},
    )


@app.route("/api/categories")
def api_categories():
    region = request.args.get("region", "KR")
    credentials = _credentials()
    try:
        categories = YouTubeGateway(credentials.require_youtube()).get_video_categories(
            "US" if region == "Global" else region
        )
    except GatewayError as e:
        return jsonify({"error": str(e)}), 502
    return jsonify([c.model_dump() for c in categories])


@app.route("/api/summarize", methods=["POST"])
def api_summarize():
    data = _payload()
    try:
        video = VideoRecord.model_validate(data.get("video") or {})
    except ValidationError:
        return jsonify({"error": "A video record is required"}), 400

    credentials = _credentials()
    summary = AIGateway(credentials.require_openai()).summarize_video(video)
    return jsonify({"video_id": video.id, "summary": summary})


@app.route("/api/keys", methods=["GET"])
def api_keys_status():
    credentials = _credentials()
    return jsonify({"youtube": credentials.has_youtube(), "openai": credentials.has_openai()})


@app.route("/api/keys", methods=["POST"])
def api_keys_save():
    data = _payload()
    youtube_key = _text(data, "youtube_api_key")
    openai_key = _text(data, "openai_api_key")
    if not youtube_key and not openai_key:
        return jsonify({"error": "At least one key is required"}), 400

    checks = {}
    if youtube_key:
        checks["youtube"] = validate_api_key(youtube_key)
    if openai_key:
        checks["openai"] = validate_openai_key(openai_key)
    if not all(checks.values()):
        return jsonify({"error": "Invalid API key", "valid": checks}), 400

    app.config["KEYSTORE"].save(
        youtube_api_key=youtube_key or None,
        openai_api_key=openai_key or None,
    )
    return jsonify({"saved": True, "valid": checks})


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    app.run(debug=True, port=5000)
