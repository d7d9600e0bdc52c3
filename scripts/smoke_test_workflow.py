import os
import sys

# ensure project root is on sys.path so `import meetinsight` works when running this script
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from meetinsight import create_app
from meetinsight.extensions import db
from meetinsight.models.user import User
from meetinsight.services.gateway import GatewayClient
from meetinsight.services.record_store import RecordStore
from meetinsight.workflow.controller import WorkflowController

# End-to-end run against the configured gateway (LLM_GATEWAY_URL / LLM_GATEWAY_API_KEY):
# creates a record, corrects a short transcript, runs module E and asks one follow-up.

SMOKE_EMAIL = "smoke@example.local"
TRANSCRIPT = (
    "Alice 00:00:01 ok so um the the launch is moved to next friday\n"
    "Bob 00:00:04 wait who decided that\n"
    "Alice 00:00:06 it was agreed in the ops sync bob you own the release notes\n"
)

app = create_app()
with app.app_context():
    db.create_all()
    user = User.query.filter_by(email=SMOKE_EMAIL).first()
    if not user:
        user = User(email=SMOKE_EMAIL, display_name="Smoke Test")
        user.set_password("smoke-test-password")
        db.session.add(user)
        db.session.commit()
        print(f"Created user id={user.id}")

    ctl = WorkflowController(RecordStore(user.id), GatewayClient.from_config(app.config))
    record = ctl.create_record("Smoke test meeting")
    ctl.update_transcript(TRANSCRIPT)
    ctl.update_metadata_field("subject", "Launch planning")

    version = ctl.run_correction()
    print(f"Transcript version {version.version_number}:\n{version.corrected_transcript[:500]}")

    thread = ctl.run_module_analysis("E")
    print(f"Module E version {thread.version_number}:\n{thread.messages[0].text[:500]}")

    reply = ctl.send_module_chat("E", "Who owns the release notes?")
    print(f"Follow-up:\n{reply.text[:500]}")
    print("Record id:", record.id)
