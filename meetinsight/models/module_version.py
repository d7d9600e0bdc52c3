from ..extensions import db


class ModuleVersion(db.Model):
    __tablename__ = "module_versions"

    id = db.Column(db.Integer, primary_key=True)
    record_id = db.Column(db.Integer, db.ForeignKey("meeting_records.id", ondelete="CASCADE"), nullable=False, index=True)
    module_id = db.Column(db.String(1), nullable=False)  # A/B/C/D/E
    # sequenced independently per (record, module)
    version_number = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime, server_default=db.func.now(), nullable=False)

    messages = db.relationship(
        "ChatMessage", backref="module_version", cascade="all, delete-orphan",
        order_by="ChatMessage.id",
    )

    __table_args__ = (
        db.UniqueConstraint('record_id', 'module_id', 'version_number', name='uq_module_versions_record_module_number'),
    )

    def __repr__(self) -> str:
        return f"<ModuleVersion record_id={self.record_id} {self.module_id}v{self.version_number}>"
