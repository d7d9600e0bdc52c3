import threading

from flask import current_app

from ..extensions import rq
from ..jobs.autosave import save_record_fields
from ..services.autosave import AutosaveScheduler
from ..services.gateway import GatewayClient
from ..services.record_store import RecordStore
from .controller import WorkflowController


class WorkspaceRegistry:
    """One in-process WorkflowController per logged-in user."""

    def __init__(self):
        self._controllers = {}
        self._lock = threading.Lock()

    def build(self, owner_id):
        app = current_app._get_current_object()

        def write(payload):
            rq.enqueue(save_record_fields, owner_id, payload['record_id'], payload['fields'])

        def write_now(payload):
            # flushes precede a reload of the same row, so they cannot wait for a worker
            try:
                save_record_fields(owner_id, payload['record_id'], payload['fields'])
            except Exception:
                current_app.logger.exception('Autosave flush failed for record %s', payload['record_id'])

        autosave = AutosaveScheduler(write, delay=app.config.get('AUTOSAVE_DELAY_SEC', 0.8), app=app,
                                     flush_writer=write_now)
        return WorkflowController(
            store=RecordStore(owner_id),
            gateway=GatewayClient.from_config(app.config),
            autosave=autosave,
        )

    def get(self, owner_id) -> WorkflowController:
        with self._lock:
            ctl = self._controllers.get(owner_id)
            if ctl is None:
                ctl = self.build(owner_id)
                self._controllers[owner_id] = ctl
            return ctl

    def discard(self, owner_id):
        with self._lock:
            ctl = self._controllers.pop(owner_id, None)
        if ctl is not None and ctl.autosave is not None:
            ctl.autosave.flush()


def init_registry(app):
    app.extensions['workspace_registry'] = WorkspaceRegistry()


def get_registry() -> WorkspaceRegistry:
    return current_app.extensions['workspace_registry']
