"""SQLAlchemy-backed record store, scoped to one owner.

Every lookup filters by ``owner_id``; a record that does not exist and a
record owned by somebody else are indistinguishable (``RecordNotFound``).
"""

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models.meeting_record import DEFAULT_TITLE, METADATA_FIELDS, MeetingRecord, empty_metadata
from ..models.transcript_version import TranscriptVersion
from ..models.module_version import ModuleVersion
from ..models.chat_message import ROLES, ChatMessage
from ..workflow.state import ChatTurn, ModuleThread, RecordSnapshot, TranscriptSnapshot
from .modules import AnalysisModule


class RecordNotFound(LookupError):
    pass


class VersionConflict(RuntimeError):
    pass


def _record_snapshot(r: MeetingRecord) -> RecordSnapshot:
    meta = empty_metadata()
    meta.update({k: v for k, v in (r.meeting_metadata or {}).items() if k in METADATA_FIELDS})
    return RecordSnapshot(id=r.id, title=r.title, raw_transcript=r.raw_transcript or "",
                          metadata=meta, created_at=r.created_at)


def _transcript_snapshot(v: TranscriptVersion) -> TranscriptSnapshot:
    return TranscriptSnapshot(id=v.id, version_number=v.version_number,
                              corrected_transcript=v.corrected_transcript,
                              correction_log=v.correction_log, created_at=v.created_at)


def _chat_turn(m: ChatMessage) -> ChatTurn:
    return ChatTurn(role=m.role, text=m.content, created_at=m.created_at, id=m.id)


class RecordStore:
    def __init__(self, owner_id: int):
        self.owner_id = owner_id

    # -- helpers --------------------------------------------------------------

    def _get_record(self, record_id) -> MeetingRecord:
        r = MeetingRecord.query.filter_by(id=record_id, owner_id=self.owner_id).first()
        if r is None:
            raise RecordNotFound(f"Record {record_id} not found")
        return r

    def _get_module_version(self, module_version_id) -> ModuleVersion:
        mv = (
            ModuleVersion.query.join(MeetingRecord, MeetingRecord.id == ModuleVersion.record_id)
            .filter(ModuleVersion.id == module_version_id, MeetingRecord.owner_id == self.owner_id)
            .first()
        )
        if mv is None:
            raise RecordNotFound(f"Module version {module_version_id} not found")
        return mv

    def _commit_version(self, what):
        try:
            db.session.commit()
        except IntegrityError as e:
            db.session.rollback()
            current_app.logger.warning('Version collision on %s: %s', what, e)
            raise VersionConflict(f"{what} already exists; reload the record and retry.") from e

    # -- records ----------------------------------------------------------------

    def create_record(self, title=None) -> RecordSnapshot:
        r = MeetingRecord(owner_id=self.owner_id, title=(title or DEFAULT_TITLE),
                          raw_transcript="", meeting_metadata=empty_metadata())
        db.session.add(r)
        db.session.commit()
        return _record_snapshot(r)

    def list_records(self):
        rows = (
            MeetingRecord.query.filter_by(owner_id=self.owner_id)
            .order_by(MeetingRecord.created_at.desc(), MeetingRecord.id.desc())
            .all()
        )
        return [_record_snapshot(r) for r in rows]

    def get_record(self, record_id) -> RecordSnapshot:
        return _record_snapshot(self._get_record(record_id))

    def update_record(self, record_id, title=None, raw_transcript=None, metadata=None) -> RecordSnapshot:
        """Update the given fields; ``metadata`` is merged key by key."""
        r = self._get_record(record_id)
        if title is not None:
            r.title = title
        if raw_transcript is not None:
            r.raw_transcript = raw_transcript
        if metadata:
            merged = empty_metadata()
            merged.update(r.meeting_metadata or {})
            merged.update({k: v for k, v in metadata.items() if k in METADATA_FIELDS})
            # reassign so the JSON column is flagged dirty
            r.meeting_metadata = merged
        db.session.commit()
        return _record_snapshot(r)

    def delete_record(self, record_id):
        r = self._get_record(record_id)
        db.session.delete(r)
        db.session.commit()

    # -- transcript versions ----------------------------------------------------

    def insert_transcript_version(self, record_id, version_number, corrected_transcript,
                                  correction_log=None) -> TranscriptSnapshot:
        self._get_record(record_id)
        v = TranscriptVersion(record_id=record_id, version_number=version_number,
                              corrected_transcript=corrected_transcript, correction_log=correction_log)
        db.session.add(v)
        self._commit_version(f"Transcript version {version_number}")
        return _transcript_snapshot(v)

    def list_transcript_versions(self, record_id):
        self._get_record(record_id)
        rows = (
            TranscriptVersion.query.filter_by(record_id=record_id)
            .order_by(TranscriptVersion.version_number.asc())
            .all()
        )
        return [_transcript_snapshot(v) for v in rows]

    # -- module versions / chat ---------------------------------------------------

    def insert_module_version(self, record_id, module, version_number, initial_message=None) -> ModuleThread:
        """Insert a module version, optionally with its first model message.

        Both rows are committed in one transaction, so a failure never leaves
        a module version without its opening analysis.
        """
        module = AnalysisModule.parse(module)
        self._get_record(record_id)
        mv = ModuleVersion(record_id=record_id, module_id=module.value, version_number=version_number)
        db.session.add(mv)
        if initial_message is not None:
            mv.messages.append(ChatMessage(role="model", content=initial_message))
        self._commit_version(f"Module {module.value} version {version_number}")
        return ModuleThread(id=mv.id, module=module, version_number=mv.version_number,
                            created_at=mv.created_at, messages=[_chat_turn(m) for m in mv.messages])

    def list_module_versions(self, record_id):
        self._get_record(record_id)
        rows = (
            ModuleVersion.query.filter_by(record_id=record_id)
            .order_by(ModuleVersion.module_id.asc(), ModuleVersion.version_number.asc())
            .all()
        )
        threads = []
        for mv in rows:
            msgs = (
                ChatMessage.query.filter_by(module_version_id=mv.id)
                .order_by(ChatMessage.created_at.asc(), ChatMessage.id.asc())
                .all()
            )
            threads.append(ModuleThread(id=mv.id, module=AnalysisModule.parse(mv.module_id),
                                        version_number=mv.version_number, created_at=mv.created_at,
                                        messages=[_chat_turn(m) for m in msgs]))
        return threads

    def insert_chat_message(self, module_version_id, role, content) -> ChatTurn:
        if role not in ROLES:
            raise ValueError(f"Invalid chat role: {role!r}")
        self._get_module_version(module_version_id)
        m = ChatMessage(module_version_id=module_version_id, role=role, content=content)
        db.session.add(m)
        db.session.commit()
        return _chat_turn(m)
