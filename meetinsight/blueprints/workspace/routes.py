from flask import jsonify, request
from flask_login import login_required, current_user
from . import bp
from ...utils.decorators import workflow_json
from ...workflow.errors import ValidationFailed
from ...workflow.registry import get_registry


def _controller():
    return get_registry().get(current_user.id)


def _payload():
    return request.get_json(silent=True) or {}


def _int_field(data, key):
    try:
        return int(data.get(key))
    except (TypeError, ValueError):
        raise ValidationFailed(f"'{key}' must be an integer") from None


def _state(ctl, status=200):
    return jsonify(ctl.snapshot()), status


@bp.get("")
@login_required
@workflow_json
def state():
    return _state(_controller())


# -- records ------------------------------------------------------------------

@bp.get("/records")
@login_required
@workflow_json
def list_records():
    ctl = _controller()
    return jsonify({
        "records": [r.to_dict() for r in ctl.list_records()],
        "active_record_id": ctl.record_id,
    })


@bp.post("/records")
@login_required
@workflow_json
def create_record():
    ctl = _controller()
    ctl.create_record(_payload().get("title"))
    return _state(ctl, 201)


@bp.patch("/records/<int:record_id>")
@login_required
@workflow_json
def rename_record(record_id):
    ctl = _controller()
    ctl.rename_record(record_id, _payload().get("title"))
    return _state(ctl)


@bp.delete("/records/<int:record_id>")
@login_required
@workflow_json
def delete_record(record_id):
    ctl = _controller()
    ctl.delete_record(record_id)
    return _state(ctl)


@bp.post("/records/<int:record_id>/select")
@login_required
@workflow_json
def select_record(record_id):
    ctl = _controller()
    ctl.select_record(record_id)
    return _state(ctl)


# -- edit buffers ---------------------------------------------------------------

@bp.patch("/metadata")
@login_required
@workflow_json
def update_metadata():
    ctl = _controller()
    data = _payload()
    ctl.update_metadata_field(data.get("field"), data.get("value"))
    return _state(ctl)


@bp.patch("/transcript")
@login_required
@workflow_json
def update_transcript():
    ctl = _controller()
    ctl.update_transcript(_payload().get("value"))
    return _state(ctl)


# -- navigation -----------------------------------------------------------------

@bp.post("/step")
@login_required
@workflow_json
def set_step():
    ctl = _controller()
    ctl.set_step(_payload().get("step"))
    return _state(ctl)


@bp.post("/insight")
@login_required
@workflow_json
def enter_insight():
    ctl = _controller()
    ctl.enter_insight()
    return _state(ctl)


@bp.post("/transcript-versions/active")
@login_required
@workflow_json
def set_active_transcript_version():
    ctl = _controller()
    ctl.set_active_transcript_version(_int_field(_payload(), "version"))
    return _state(ctl)


# -- gateway operations ---------------------------------------------------------

@bp.post("/correction")
@login_required
@workflow_json
def run_correction():
    ctl = _controller()
    ctl.run_correction()
    return _state(ctl)


@bp.post("/modules/<module_id>/analysis")
@login_required
@workflow_json
def run_module_analysis(module_id):
    ctl = _controller()
    ctl.run_module_analysis(module_id)
    return _state(ctl)


@bp.post("/modules/<module_id>/chat")
@login_required
@workflow_json
def send_module_chat(module_id):
    ctl = _controller()
    ctl.send_module_chat(module_id, _payload().get("text"))
    return _state(ctl)


@bp.post("/modules/<module_id>/active")
@login_required
@workflow_json
def set_active_module_version(module_id):
    ctl = _controller()
    ctl.set_active_module_version(module_id, _int_field(_payload(), "version"))
    return _state(ctl)


@bp.patch("/modules/<module_id>/input")
@login_required
@workflow_json
def set_chat_input(module_id):
    ctl = _controller()
    ctl.set_chat_input(module_id, _payload().get("text"))
    return _state(ctl)
