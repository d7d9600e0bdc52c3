from ..extensions import db
from .base import OwnerScopedMixin, TimestampMixin

DEFAULT_TITLE = "Untitled meeting analysis"
METADATA_FIELDS = ("subject", "keywords", "speakers", "terminology", "length")


def empty_metadata():
    return {k: "" for k in METADATA_FIELDS}


class MeetingRecord(db.Model, OwnerScopedMixin, TimestampMixin):
    __tablename__ = "meeting_records"

    id = db.Column(db.Integer, primary_key=True)
    # OwnerScopedMixin: owner_id
    title = db.Column(db.String(200), nullable=False, default=DEFAULT_TITLE)
    # the single raw transcript; edits overwrite it, only corrections are versioned
    raw_transcript = db.Column(db.Text, nullable=False, default="")
    # {"subject", "keywords", "speakers", "terminology", "length"}, all free text
    meeting_metadata = db.Column(db.JSON, nullable=False, default=empty_metadata)

    transcript_versions = db.relationship(
        "TranscriptVersion", backref="record", cascade="all, delete-orphan",
        order_by="TranscriptVersion.version_number",
    )
    module_versions = db.relationship(
        "ModuleVersion", backref="record", cascade="all, delete-orphan",
        order_by="ModuleVersion.version_number",
    )

    def __repr__(self) -> str:
        return f"<MeetingRecord id={self.id} title={self.title!r}>"
