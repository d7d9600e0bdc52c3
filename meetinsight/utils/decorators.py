from functools import wraps
from flask import current_app, jsonify
from ..workflow.errors import WorkflowError


def workflow_json(view):
    """Turn a WorkflowError raised by the view into ``{"error": ...}`` JSON."""
    @wraps(view)
    def wrapped(*args, **kwargs):
        try:
            return view(*args, **kwargs)
        except WorkflowError as e:
            current_app.logger.info('%s rejected: %s', view.__name__, e.message)
            return jsonify({"error": e.message}), e.status
    return wrapped
