"""Per-user workflow controller.

Drives the three-step workspace (input -> correction -> insight) for the
selected meeting record and keeps a denormalised in-memory mirror of it:
edit buffers, the transcript version list, a module -> versions map and the
"currently viewed" cursors. The mirror is rebuilt wholesale whenever a
record is selected.

Every mutating operation either succeeds or raises a ``WorkflowError`` after
setting ``error_message`` to the text the user should see.
"""

import threading
from contextlib import contextmanager

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..models.meeting_record import METADATA_FIELDS, empty_metadata
from ..services.gateway import EMPTY_RESULT_MESSAGE, EmptyResultError, GatewayError
from ..services.modules import AnalysisModule, UnknownModuleError
from ..services.prompts import split_correction_output
from ..services.record_store import RecordNotFound, VersionConflict
from .errors import (
    NoRecordSelected,
    OperationFailed,
    OperationInProgress,
    RecordMissing,
    StepLocked,
    ValidationFailed,
)
from .state import ChatTurn, ModuleVersionMap, Step

# failures from the gateway or the store that end an operation
BACKEND_ERRORS = (GatewayError, RecordNotFound, VersionConflict, SQLAlchemyError)


class WorkflowController:
    def __init__(self, store, gateway, autosave=None):
        self.store = store
        self.gateway = gateway
        self.autosave = autosave
        self.is_loading = False
        self._busy = threading.Lock()
        self._reset_workspace()

    def _reset_workspace(self):
        self.record = None
        self.metadata = empty_metadata()
        self.transcript = ""
        self.transcript_versions = []
        # display default; only meaningful once a version exists
        self.active_transcript_version = 1
        self.module_versions = ModuleVersionMap()
        self.active_module_versions = {}
        self.chat_inputs = {}
        self.step = Step.INPUT
        self.error_message = None

    # -- helpers ----------------------------------------------------------------

    @property
    def record_id(self):
        return self.record.id if self.record else None

    @property
    def current_transcript_version(self):
        for v in self.transcript_versions:
            if v.version_number == self.active_transcript_version:
                return v
        return None

    def active_module_thread(self, module):
        module = self._parse_module(module)
        number = self.active_module_versions.get(module, 1)
        return self.module_versions.find(module, number)

    def _fail(self, exc_cls, message):
        self.error_message = message
        raise exc_cls(message)

    def _require_record(self):
        if self.record is None:
            self._fail(NoRecordSelected, "Select or create a meeting record first.")

    def _parse_module(self, module):
        try:
            return AnalysisModule.parse(module)
        except UnknownModuleError as e:
            self._fail(ValidationFailed, str(e))

    def _require_idle(self):
        # a running gateway operation owns the mirror until it finishes
        if self.is_loading or self._busy.locked():
            raise OperationInProgress("Another operation is still running, please wait.")

    def _ensure_same_record(self, record_id, what):
        if self.record_id != record_id:
            current_app.logger.warning("%s result for record %s dropped: record changed to %s",
                                       what, record_id, self.record_id)
            self._fail(OperationFailed, f"{what} discarded: the meeting record changed while it was running.")

    @contextmanager
    def _in_flight(self):
        if not self._busy.acquire(blocking=False):
            self._fail(OperationInProgress, "Another operation is still running, please wait.")
        self.is_loading = True
        try:
            yield
        finally:
            self.is_loading = False
            self._busy.release()

    def _write_fields(self, key, fields):
        record_id = self.record.id
        if self.autosave is None:
            self.store.update_record(record_id, raw_transcript=fields.get('raw_transcript'),
                                     metadata=fields.get('metadata'))
            return
        self.autosave.schedule(f"{record_id}:{key}", {'record_id': record_id, 'fields': fields})

    def _flush_autosave(self):
        if self.autosave is not None:
            self.autosave.flush()

    # -- records -----------------------------------------------------------------

    def list_records(self):
        return self.store.list_records()

    def create_record(self, title=None):
        self._require_idle()
        self._flush_autosave()
        snapshot = self.store.create_record(title)
        current_app.logger.info('Created record %s', snapshot.id)
        self._reset_workspace()
        self.record = snapshot
        return snapshot

    def select_record(self, record_id):
        """Load a record and all its versions; the step always restarts at Input."""
        self._require_idle()
        self._flush_autosave()
        try:
            snapshot = self.store.get_record(record_id)
            transcript_versions = self.store.list_transcript_versions(record_id)
            threads = self.store.list_module_versions(record_id)
        except RecordNotFound:
            self._fail(RecordMissing, "Meeting record not found.")

        self._reset_workspace()
        self.record = snapshot
        self.metadata = dict(snapshot.metadata)
        self.transcript = snapshot.raw_transcript
        self.transcript_versions = list(transcript_versions)
        if self.transcript_versions:
            self.active_transcript_version = self.transcript_versions[-1].version_number
        self.module_versions.load(threads)
        for module in self.module_versions.modules():
            self.active_module_versions[module] = self.module_versions.latest(module).version_number
        return snapshot

    def rename_record(self, record_id, title):
        title = (title or "").strip()
        if not title:
            self._fail(ValidationFailed, "Title must not be empty.")
        try:
            snapshot = self.store.update_record(record_id, title=title)
        except RecordNotFound:
            self._fail(RecordMissing, "Meeting record not found.")
        if self.record_id == snapshot.id:
            self.record.title = snapshot.title
        return snapshot

    def delete_record(self, record_id):
        self._require_idle()
        deleting_active = self.record_id == record_id
        if deleting_active and self.autosave is not None:
            self.autosave.cancel_all()
        try:
            self.store.delete_record(record_id)
        except RecordNotFound:
            self._fail(RecordMissing, "Meeting record not found.")
        current_app.logger.info('Deleted record %s', record_id)
        if deleting_active:
            remaining = self.store.list_records()
            if remaining:
                self.select_record(remaining[0].id)
            else:
                self._reset_workspace()

    # -- edit buffers ----------------------------------------------------------

    def update_metadata_field(self, field, value):
        self._require_record()
        self._require_idle()
        if field not in METADATA_FIELDS:
            self._fail(ValidationFailed, f"Unknown metadata field: {field!r}")
        value = value or ""
        self.metadata[field] = value
        self.record.metadata[field] = value
        self._write_fields(f"metadata.{field}", {'metadata': {field: value}})

    def update_transcript(self, value):
        self._require_record()
        self._require_idle()
        value = value or ""
        self.transcript = value
        self.record.raw_transcript = value
        self._write_fields("raw_transcript", {'raw_transcript': value})

    def set_chat_input(self, module, text):
        module = self._parse_module(module)
        self.chat_inputs[module] = text or ""

    # -- navigation ------------------------------------------------------------

    def set_step(self, step):
        try:
            step = Step(int(step))
        except (TypeError, ValueError):
            self._fail(ValidationFailed, f"Unknown step: {step!r}")
        self._require_record()
        if step != Step.INPUT and not self.transcript_versions:
            self._fail(StepLocked, "Run a transcript correction before opening this step.")
        self.step = step
        return self.step

    def enter_insight(self):
        return self.set_step(Step.INSIGHT)

    def set_active_transcript_version(self, version_number):
        self._require_record()
        for v in self.transcript_versions:
            if v.version_number == version_number:
                self.active_transcript_version = version_number
                return v
        self._fail(ValidationFailed, f"Transcript version {version_number} does not exist.")

    def set_active_module_version(self, module, version_number):
        module = self._parse_module(module)
        self._require_record()
        thread = self.module_versions.find(module, version_number)
        if thread is None:
            self._fail(ValidationFailed, f"Module {module.value} version {version_number} does not exist.")
        self.active_module_versions[module] = version_number
        return thread

    # -- gateway operations ----------------------------------------------------

    def run_correction(self):
        self._require_record()
        if not self.transcript or not self.transcript.strip():
            self._fail(ValidationFailed, "Enter the raw transcript before running a correction.")

        with self._in_flight():
            self.error_message = None
            record_id = self.record.id
            try:
                result = self.gateway.correct_transcript(self.transcript, dict(self.metadata))
                if not result or not result.strip():
                    raise EmptyResultError(EMPTY_RESULT_MESSAGE)
                self._ensure_same_record(record_id, "Correction")
                corrected, log = split_correction_output(result)
                next_version = len(self.transcript_versions) + 1
                version = self.store.insert_transcript_version(record_id, next_version, corrected, log)
            except BACKEND_ERRORS as e:
                current_app.logger.exception('Correction failed for record %s', record_id)
                self._fail(OperationFailed, f"Correction failed: {e}")

            self.transcript_versions.append(version)
            self.active_transcript_version = version.version_number
            self.step = Step.CORRECTION
            current_app.logger.info('Record %s: transcript version %s created', record_id, version.version_number)
            return version

    def run_module_analysis(self, module):
        """Start a fresh analysis thread for ``module``; never extends an existing one."""
        module = self._parse_module(module)
        self._require_record()
        source = self.current_transcript_version
        if source is None:
            self._fail(ValidationFailed, "Complete a transcript correction before running a module analysis.")

        with self._in_flight():
            self.error_message = None
            record_id = self.record.id
            try:
                result = self.gateway.analyze_transcript(source.corrected_transcript, module, [])
                if not result or not result.strip():
                    raise EmptyResultError(EMPTY_RESULT_MESSAGE)
                self._ensure_same_record(record_id, "Analysis")
                next_version = self.module_versions.next_number(module)
                thread = self.store.insert_module_version(record_id, module, next_version, initial_message=result)
            except BACKEND_ERRORS as e:
                current_app.logger.exception('Module %s analysis failed for record %s', module.value, record_id)
                self._fail(OperationFailed, f"Analysis failed: {e}")

            self.module_versions.append(thread)
            self.active_module_versions[module] = thread.version_number
            self.step = Step.INSIGHT
            current_app.logger.info('Record %s: module %s version %s created',
                                    record_id, module.value, thread.version_number)
            return thread

    def send_module_chat(self, module, user_text=None):
        """Continue the active thread of ``module`` with one user turn.

        The user turn is appended (and persisted) before the gateway call and
        stays in place when the call fails; only the model reply is lost.
        """
        module = self._parse_module(module)
        self._require_record()
        text = user_text if user_text is not None else self.chat_inputs.get(module, "")
        if not text or not text.strip():
            self._fail(ValidationFailed, "Enter a message first.")
        if self.is_loading:
            self._fail(OperationInProgress, "Another operation is still running, please wait.")
        source = self.current_transcript_version
        if source is None:
            self._fail(ValidationFailed, "Complete a transcript correction before chatting.")
        thread = self.active_module_thread(module)
        if thread is None:
            self._fail(ValidationFailed, f"Run module {module.value} before starting a conversation.")

        with self._in_flight():
            self.error_message = None
            thread.messages.append(ChatTurn(role="user", text=text))
            user_idx = len(thread.messages) - 1
            self.chat_inputs[module] = ""
            try:
                thread.messages[user_idx] = self.store.insert_chat_message(thread.id, "user", text)
                answer = self.gateway.analyze_transcript(source.corrected_transcript, module, thread.messages)
                if not answer or not answer.strip():
                    raise EmptyResultError(EMPTY_RESULT_MESSAGE)
                reply = self.store.insert_chat_message(thread.id, "model", answer)
            except BACKEND_ERRORS as e:
                current_app.logger.exception('Module %s chat failed for record %s', module.value, self.record_id)
                self._fail(OperationFailed, f"Chat failed: {e}")

            thread.messages.append(reply)
            return reply

    # -- view ------------------------------------------------------------------

    def snapshot(self):
        current = self.current_transcript_version
        return {
            'record': self.record.to_dict() if self.record else None,
            'metadata': dict(self.metadata),
            'transcript': self.transcript,
            'step': int(self.step),
            'is_loading': self.is_loading,
            'error': self.error_message,
            'transcript_versions': [v.to_dict() for v in self.transcript_versions],
            'active_transcript_version': self.active_transcript_version,
            'current_transcript': current.to_dict() if current else None,
            'modules': {
                m.value: {
                    'name': m.display_name,
                    'version_count': self.module_versions.count(m),
                    'active_version': self.active_module_versions.get(m),
                    'versions': [t.to_dict() for t in self.module_versions.versions(m)],
                    'chat_input': self.chat_inputs.get(m, ""),
                }
                for m in AnalysisModule
            },
        }
