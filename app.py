import logging
import secrets
import datetime

from flask import Flask, jsonify, render_template, request

import config
from deadline import is_open, time_left_label
from form_state import (
    FormState,
    attempt_submit,
    blur_field,
    change_field,
    initial_state,
    reset_state,
    status_message,
    visible_errors,
)
from formatters import format_field
from schema import FIELDS, FIELDS_BY_ID, FILE_FIELDS, empty_record
from submission import SubmissionCoordinator, SubmissionState
from supabase_client import SupabaseClient
from validation import validate_form

# -------------------------------------------------------------------
# Flask + logging
# -------------------------------------------------------------------
logging.basicConfig(level=config.LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)

app = Flask(__name__)
app.secret_key = config.FLASK_SECRET_KEY or secrets.token_hex(16)
app.config["MAX_CONTENT_LENGTH"] = config.MAX_UPLOAD_MB * 1024 * 1024

TITLE = "Cadastro de Profissionais de Enfermagem"
MSG_UNEXPECTED = "Ocorreu um erro inesperado ao enviar o formulário. Por favor, tente novamente mais tarde."


def now() -> datetime.datetime:
    return datetime.datetime.now()


def get_coordinator() -> SubmissionCoordinator:
    store = SupabaseClient(config.SUPABASE_URL, config.SUPABASE_ANON_KEY,
                           config.SUPABASE_TABLE, timeout=config.SUPABASE_TIMEOUT)
    return SubmissionCoordinator(store, config.SUPABASE_STORAGE_BUCKET, config.SUBMISSION_DEADLINE,
                                 clock=now, cache_control=config.STORAGE_CACHE_CONTROL)


# -------------------------------------------------------------------
# Request -> form state
# -------------------------------------------------------------------
def state_from_request(req) -> FormState:
    """
    Replay the posted values through the same transitions the page runs on
    every keystroke, so masks and the field invariants hold server-side too.
    """
    state = initial_state()
    # type first: changing it clears the key value
    state = change_field(state, "payment_key_type", req.form.get("payment_key_type", ""))
    for f in FIELDS:
        fid = f["id"]
        if fid == "payment_key_type":
            continue
        if f["type"] == "files":
            fs = req.files.get(fid)
            value = fs if fs and fs.filename else None
        elif f["type"] == "checkbox":
            value = req.form.get(fid) in ("on", "true", "1")
        else:
            value = req.form.get(fid, "")
        state = change_field(state, fid, value)
    # re-apply once files are in: single marital status drops a picked attachment
    return change_field(state, "marital_status", state.record["marital_status"])


def _render(state: FormState, status=("", ""), code: int = 200):
    message, kind = status
    return render_template(
        "form.html",
        title=TITLE,
        fields=FIELDS,
        record=state.record,
        errors=visible_errors(state),
        status_message=message,
        status_type=kind,
        submitted=state.submitted,
        time_left=time_left_label(now(), config.SUBMISSION_DEADLINE),
        csrf_token=secrets.token_hex(16),
    ), code


# -------------------------------------------------------------------
# Form page
# -------------------------------------------------------------------
@app.route("/", methods=["GET", "POST"])
def form():
    if request.method == "GET":
        return _render(initial_state())

    state = attempt_submit(state_from_request(request))
    if state.errors:
        return _render(state, status_message(state), 400)

    try:
        result = get_coordinator().submit(state.record)
    except Exception:
        logger.exception("Unexpected failure while submitting")
        return _render(state, (MSG_UNEXPECTED, "error"), 500)

    if result.ok:
        return _render(reset_state(), (result.message, "success"))
    state = FormState(record=state.record, errors=result.errors or state.errors,
                      touched=state.touched, submitted=True)
    code = 400 if result.state is SubmissionState.REJECTED_LOCALLY else 502
    return _render(state, (result.message, "error"), code)


# -------------------------------------------------------------------
# JSON helpers used by the page while typing
# -------------------------------------------------------------------
@app.route("/api/format", methods=["POST"])
def api_format():
    payload = request.get_json(silent=True) or {}
    fid = payload.get("field")
    if fid not in FIELDS_BY_ID:
        return jsonify({"error": f"Unknown field: {fid}"}), 400
    record = {"payment_key_type": payload.get("payment_key_type", "")}
    value = format_field(fid, payload.get("value", ""), previous=payload.get("previous"), record=record)
    return jsonify({"value": value})


class _PickedFile:
    """Stands in for a picked file when only its name travels with the request."""

    def __init__(self, filename: str):
        self.filename = filename


@app.route("/api/validate", methods=["POST"])
def api_validate():
    payload = request.get_json(silent=True) or {}
    posted = payload.get("record") or {}
    files = payload.get("files") or {}

    record = empty_record()
    for fid, value in posted.items():
        if fid in FIELDS_BY_ID and FIELDS_BY_ID[fid]["type"] != "files":
            record[fid] = value
    for f in FILE_FIELDS:
        if files.get(f["id"]):
            record[f["id"]] = _PickedFile(files[f["id"]])

    touched = frozenset(t for t in (payload.get("touched") or []) if t in FIELDS_BY_ID)
    state = FormState(record=record, errors=validate_form(record), touched=touched, submitted=True)
    if payload.get("submit"):
        state = attempt_submit(state)
    elif payload.get("blur") in FIELDS_BY_ID:
        state = blur_field(state, payload["blur"])
    message, kind = status_message(state)
    return jsonify({
        "errors": state.errors,
        "visible_errors": visible_errors(state),
        "status": {"message": message, "type": kind},
    })


@app.route("/api/deadline", methods=["GET"])
def api_deadline():
    current = now()
    return jsonify({
        "deadline": config.SUBMISSION_DEADLINE.isoformat(),
        "time_left": time_left_label(current, config.SUBMISSION_DEADLINE),
        "open": is_open(current, config.SUBMISSION_DEADLINE),
    })


# -------------------------------------------------------------------
# Run
# -------------------------------------------------------------------
if __name__ == "__main__":
    host = "0.0.0.0"
    url = f"http://{host}:{config.PORT}/"
    print("\n================= Flask Dev Server =================")
    print(f"→ Cadastro:  {url}")
    print(f"→ Prazo:     {config.SUBMISSION_DEADLINE.isoformat()}")
    print("====================================================\n", flush=True)
    app.run(host=host, port=config.PORT, debug=False)
