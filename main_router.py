# main_router.py
import uuid
import shutil
import logging
from functools import lru_cache
from pathlib import Path
from datetime import datetime, timezone

from flask import Flask, request, send_file, jsonify, abort
from flask_cors import CORS
from werkzeug.utils import secure_filename

import settings

settings.configure_logging()

from code_generator import CodeGenerationError, generate_code, generate_ui, improve_code, write_outputs
from error_handler import ValidationError, register_error_handlers
from fallbacks import generate_fallback_ui
from html_assembler import inline_preview_html
from input_validation import (
    CodeGenerationInput,
    CreatePromptInput,
    ImproveCodeInput,
    SearchQueryInput,
    UIGenerationInput,
    UpdateProfileInput,
    render_markdown_safe,
    validate_request,
)
from prompt_guide_bot import ask_prompt_guide
from rate_limiter import ai_limiter, auth_limiter, general_limiter, rate_limit
from response_parser import create_fallback_response
from storage_service import StorageService, safe_client_id

log = logging.getLogger(__name__)

OUTPUT_ROOT = settings.OUTPUT_ROOT
STORAGE_ROOT = settings.STORAGE_ROOT

PROJECT_FILES = ("index.html", "script.js", "styles.css", "style.css")
DOWNLOAD_ALLOWED = set(PROJECT_FILES) | {"raw_response.txt", "result.json"}

app = Flask(__name__)
app.secret_key = settings.FLASK_SECRET
CORS(app, resources={r"/api/*": {"origins": settings.CORS_ALLOWED_ORIGINS}})
register_error_handlers(app)


@app.after_request
def _security_headers(resp):
    for name, value in settings.SECURITY_HEADERS.items():
        resp.headers.setdefault(name, value)
    return resp


# ---------- helpers ----------

def _ts_dir() -> Path:
    """Create timestamped output directory."""
    stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    out = OUTPUT_ROOT / f"{stamp}_{uuid.uuid4().hex[:6]}"
    out.mkdir(parents=True, exist_ok=True)
    return out


def _workdir(workdir: str) -> Path:
    safe = secure_filename(workdir)
    if not safe or not (OUTPUT_ROOT / safe).is_dir():
        abort(404)
    return OUTPUT_ROOT / safe


def _storage() -> StorageService:
    client_id = (request.headers.get("X-Client-Id") or "").strip()
    if not client_id:
        raise ValidationError("X-Client-Id header is required")
    return _storage_for(str(STORAGE_ROOT), safe_client_id(client_id))


@lru_cache(maxsize=settings.STORAGE_CACHE_SIZE)
def _storage_for(root: str, client_key: str) -> StorageService:
    return StorageService(Path(root), client_key)


def _remember_project(kind: str, prompt: str, result: dict, workdir: str) -> None:
    if not request.headers.get("X-Client-Id"):
        return
    _storage().add_project_to_history({
        "id": workdir,
        "type": kind,
        "prompt": prompt,
        "description": result.get("description"),
        "usedModel": result.get("usedModel"),
        "createdAt": datetime.now(timezone.utc).isoformat(),
    })


def _zip_project(out_dir: Path) -> Path:
    project = out_dir / "project"
    project.mkdir(parents=True, exist_ok=True)
    for name in PROJECT_FILES:
        if (out_dir / name).exists():
            shutil.copy2(out_dir / name, project / name)
    zip_path = out_dir / f"project_{out_dir.name}.zip"
    base = str(zip_path)[:-4]  # make_archive expects no .zip
    shutil.make_archive(base_name=base, format="zip", root_dir=project)
    return zip_path


# ---------- AI code generation ----------

@app.post("/api/ai/generate/code")
@rate_limit(ai_limiter)
def api_generate_code():
    data = request.get_json(silent=True) or {}
    if not str(data.get("prompt") or "").strip():
        return jsonify({"ok": False, "error": "Prompt is required"}), 400
    payload = validate_request(CodeGenerationInput, data)

    try:
        result = generate_code(payload.prompt, payload.model, payload.language)
    except CodeGenerationError as e:
        log.error("Code generation failed: %s", e)
        return jsonify({"ok": False, "error": "Code generation failed", "details": str(e)}), 500

    raw = result.pop("raw", "")
    out_dir = _ts_dir()
    write_outputs(out_dir, result, raw)
    _remember_project("code", payload.prompt, result, out_dir.name)
    return jsonify({**result, "ok": True, "workdir": out_dir.name})


@app.route("/api/ai/generate/ui", methods=["POST", "OPTIONS"])
@rate_limit(ai_limiter)
def api_generate_ui():
    if request.method == "OPTIONS":
        return "", 200

    data = request.get_json(silent=True) or {}
    prompt = data.get("prompt")
    if not isinstance(prompt, str) or not prompt.strip():
        return jsonify({"ok": False, "error": "Prompt is required"}), 400

    try:
        payload = validate_request(UIGenerationInput, data)
        existing = payload.existing_code.model_dump() if payload.existing_code else None
        result = generate_ui(payload.prompt, existing, payload.is_iteration, payload.model, payload.language)
        return jsonify(result)
    except ValidationError:
        raise
    except Exception as e:
        log.exception("UI generation error")
        fallback = generate_fallback_ui(prompt, "Error fallback UI")
        fallback["css"] = "body { font-family: Arial, sans-serif; color: red; }"
        return jsonify({**fallback, "error": str(e)}), 500


@app.post("/api/ai/generate/improve")
@rate_limit(ai_limiter)
def api_improve_code():
    data = request.get_json(silent=True) or {}
    if not data.get("originalCode") or not data.get("improvementRequest"):
        return jsonify({"ok": False, "error": "Original code and improvement request are required"}), 400
    payload = validate_request(ImproveCodeInput, data)

    try:
        result = improve_code(
            payload.original_code, payload.improvement_request,
            payload.framework, payload.model, payload.language,
        )
    except Exception as e:
        # last resort: the user's code comes back untouched
        log.exception("Improvement failed, returning fallback")
        result = create_fallback_response(payload.framework, payload.model, payload.original_code)
        result.update({"fallback": True, "raw": f"ERROR: {e}"})

    raw = result.pop("raw", "")
    out_dir = _ts_dir()
    write_outputs(out_dir, result, raw)
    _remember_project("improve", payload.improvement_request, result, out_dir.name)
    return jsonify({**result, "ok": True, "workdir": out_dir.name})


# ---------- preview / download ----------

@app.get("/preview/<workdir>")
def preview(workdir: str):
    """Return HTML (with CSS/JS inlined) for iframe preview."""
    out_dir = _workdir(workdir)
    html_path = out_dir / "index.html"
    html = html_path.read_text("utf-8", errors="ignore") if html_path.exists() else ""

    css = ""
    for name in ("styles.css", "style.css"):
        if (out_dir / name).exists():
            css = (out_dir / name).read_text("utf-8", errors="ignore")
            break
    js_path = out_dir / "script.js"
    js = js_path.read_text("utf-8", errors="ignore") if js_path.exists() else ""
    return inline_preview_html(html, css, js)


@app.get("/download/<workdir>/<name>")
def download(workdir: str, name: str):
    out_dir = _workdir(workdir)
    if name not in DOWNLOAD_ALLOWED or not (out_dir / name).exists():
        abort(404)
    return send_file(out_dir / name, as_attachment=True)


@app.get("/download-project/<workdir>")
def download_project(workdir: str):
    out_dir = _workdir(workdir)
    zip_path = _zip_project(out_dir)
    return send_file(zip_path, as_attachment=True, download_name=zip_path.name)


# ---------- validation layer ----------

@app.post("/api/prompts/validate")
@rate_limit(general_limiter)
def api_validate_prompt():
    payload = validate_request(CreatePromptInput, request.get_json(silent=True))
    return jsonify({
        "ok": True,
        "data": payload.model_dump(mode="json"),
        "contentHtml": render_markdown_safe(payload.content),
    })


@app.get("/api/search")
@rate_limit(general_limiter)
def api_search():
    payload = validate_request(SearchQueryInput, request.args.to_dict())
    return jsonify({"ok": True, "data": payload.model_dump(mode="json")})


@app.post("/api/profile/validate")
@rate_limit(auth_limiter)
def api_validate_profile():
    payload = validate_request(UpdateProfileInput, request.get_json(silent=True))
    return jsonify({"ok": True, "data": payload.model_dump(mode="json", exclude_none=True)})


# ---------- per-client storage ----------

def _required(data: dict, field: str) -> str:
    value = data.get(field)
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"Validation failed: {field}: required", details=[{"field": field, "message": "required"}])
    return value.strip()


@app.route("/api/storage/hidden-posts", methods=["GET", "POST"])
@rate_limit(general_limiter)
def storage_hidden_posts():
    store = _storage()
    if request.method == "POST":
        store.add_hidden_post(_required(request.get_json(silent=True) or {}, "postId"))
    return jsonify({"ok": True, "hiddenPosts": store.get_hidden_posts()})


@app.delete("/api/storage/hidden-posts/<post_id>")
@rate_limit(general_limiter)
def storage_unhide_post(post_id: str):
    store = _storage()
    store.remove_hidden_post(post_id)
    return jsonify({"ok": True, "hiddenPosts": store.get_hidden_posts()})


@app.route("/api/storage/hidden-comments", methods=["GET", "POST", "PUT"])
@rate_limit(general_limiter)
def storage_hidden_comments():
    store = _storage()
    data = request.get_json(silent=True) or {}
    if request.method == "POST":
        store.add_hidden_comment(_required(data, "commentId"))
    elif request.method == "PUT":
        ids = data.get("commentIds")
        if not isinstance(ids, list) or not all(isinstance(i, str) for i in ids):
            raise ValidationError("Validation failed: commentIds: must be a list of strings")
        store.set_hidden_comments(ids)
    return jsonify({"ok": True, "hiddenComments": store.get_hidden_comments()})


@app.delete("/api/storage/hidden-comments/<comment_id>")
@rate_limit(general_limiter)
def storage_unhide_comment(comment_id: str):
    store = _storage()
    store.remove_hidden_comment(comment_id)
    return jsonify({"ok": True, "hiddenComments": store.get_hidden_comments()})


@app.route("/api/storage/history", methods=["GET", "DELETE"])
@rate_limit(general_limiter)
def storage_history():
    store = _storage()
    if request.method == "DELETE":
        store.clear_project_history()
    return jsonify({"ok": True, "history": store.get_project_history()})


@app.route("/api/storage/settings", methods=["GET", "PUT"])
@rate_limit(general_limiter)
def storage_settings():
    store = _storage()
    if request.method == "PUT":
        data = request.get_json(silent=True) or {}
        store.set_user_setting(_required(data, "key"), data.get("value"))
    key = request.args.get("key")
    if key:
        return jsonify({"ok": True, "key": key, "value": store.get_user_setting(key, request.args.get("default"))})
    return jsonify({"ok": True, "settings": store.get_user_settings()})


@app.route("/api/storage/email-provider", methods=["GET", "PUT", "DELETE"])
@rate_limit(general_limiter)
def storage_email_provider():
    store = _storage()
    if request.method == "PUT":
        store.set_email_provider_flag(bool((request.get_json(silent=True) or {}).get("isEmailProvider")))
    elif request.method == "DELETE":
        store.remove_email_provider_flag()
    return jsonify({"ok": True, "isEmailProvider": store.get_email_provider_flag()})


@app.get("/api/storage/usage")
@rate_limit(general_limiter)
def storage_usage():
    return jsonify({"ok": True, "usage": _storage().get_storage_usage()})


@app.delete("/api/storage")
@rate_limit(general_limiter)
def storage_clear():
    store = _storage()
    store.clear_all_storage()
    return jsonify({"ok": True})


# ---------- help centre ----------

@app.route("/api/prompt-guide/ask", methods=["POST"])
def prompt_guide_api():
    data = request.get_json(silent=True) or {}
    msg = data.get("message")
    ctx = data.get("context_type")
    ctx = ctx.strip() if isinstance(ctx, str) else ""
    if not isinstance(msg, str) or not msg.strip():
        return jsonify({"error": "message required"}), 400
    answer = ask_prompt_guide(msg.strip(), ctx)
    if isinstance(answer, dict):  # html + flag
        return jsonify(answer)
    return jsonify({"answer": answer})


if __name__ == "__main__":
    app.run(debug=settings.DEBUG)
