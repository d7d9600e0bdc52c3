import os
import sys

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

import pytest

from meetinsight import create_app
from meetinsight.extensions import db
from meetinsight.models.user import User
from meetinsight.services.record_store import RecordStore
from meetinsight.workflow.controller import WorkflowController
from meetinsight.workflow.registry import get_registry


class FakeGateway:
    """Records every call; answers from ``responses`` in order.

    An Exception entry is raised; a callable entry is called while the
    operation is in flight and its return value is the answer.
    """

    def __init__(self):
        self.calls = []
        self.responses = []
        self.default = "Fake analysis."

    def _next(self):
        if self.responses:
            r = self.responses.pop(0)
            if isinstance(r, Exception):
                raise r
            if callable(r):
                return r()
            return r
        return self.default

    def correct_transcript(self, transcript, metadata):
        self.calls.append(("correct", transcript, dict(metadata)))
        return self._next()

    def analyze_transcript(self, transcript, module, history=None):
        self.calls.append(("analyze", transcript, module, [(m.role, m.text) for m in (history or [])]))
        return self._next()


class FakeResponse:
    def __init__(self, status_code=200, body=None, text=None):
        self.status_code = status_code
        self._body = body
        self.text = text if text is not None else ("" if body is None else str(body))

    @property
    def ok(self):
        return 200 <= self.status_code < 300

    def json(self):
        if self._body is None:
            raise ValueError("No JSON body")
        return self._body


def completion(text):
    return FakeResponse(200, {"choices": [{"message": {"role": "assistant", "content": text}}]})


def _make_user(email, password="correct-horse-battery"):
    u = User(email=email, display_name=email.split("@")[0])
    u.set_password(password)
    db.session.add(u)
    db.session.commit()
    return u


@pytest.fixture
def app():
    app = create_app('config.TestConfig')
    with app.app_context():
        db.create_all()
        yield app
        for ctl in list(get_registry()._controllers.values()):
            if ctl.autosave is not None:
                ctl.autosave.cancel_all()
        db.session.remove()
        db.drop_all()


@pytest.fixture
def user(app):
    return _make_user("owner@example.com")


@pytest.fixture
def other_user(app):
    return _make_user("intruder@example.com")


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def store(user):
    return RecordStore(user.id)


@pytest.fixture
def controller(store, gateway):
    # no autosave scheduler: buffer edits are written straight through
    return WorkflowController(store, gateway)


@pytest.fixture
def client(app, user):
    c = app.test_client()
    resp = c.post("/auth/login", data={"email": "owner@example.com", "password": "correct-horse-battery"})
    assert resp.status_code == 302
    return c


@pytest.fixture
def workspace(app, user, gateway):
    ctl = get_registry().get(user.id)
    ctl.gateway = gateway
    return ctl
