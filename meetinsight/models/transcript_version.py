from ..extensions import db


class TranscriptVersion(db.Model):
    __tablename__ = "transcript_versions"

    id = db.Column(db.Integer, primary_key=True)
    record_id = db.Column(db.Integer, db.ForeignKey("meeting_records.id", ondelete="CASCADE"), nullable=False, index=True)
    # 1..N per record, assigned as count + 1
    version_number = db.Column(db.Integer, nullable=False, default=1)
    corrected_transcript = db.Column(db.Text, nullable=False)
    correction_log = db.Column(db.Text)
    created_at = db.Column(db.DateTime, server_default=db.func.now(), nullable=False)

    __table_args__ = (
        db.UniqueConstraint('record_id', 'version_number', name='uq_transcript_versions_record_number'),
    )

    def __repr__(self) -> str:
        return f"<TranscriptVersion record_id={self.record_id} v{self.version_number}>"
