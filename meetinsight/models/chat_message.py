from ..extensions import db

ROLES = ("user", "model")


class ChatMessage(db.Model):
    __tablename__ = "chat_messages"

    id = db.Column(db.Integer, primary_key=True)
    module_version_id = db.Column(db.Integer, db.ForeignKey("module_versions.id", ondelete="CASCADE"), nullable=False, index=True)
    role = db.Column(db.String(10), nullable=False)  # user/model
    content = db.Column(db.Text, nullable=False)
    created_at = db.Column(db.DateTime, server_default=db.func.now(), nullable=False)

    __table_args__ = (
        db.CheckConstraint("role IN ('user', 'model')", name='ck_chat_messages_role'),
    )
