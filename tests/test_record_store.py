import pytest

from meetinsight.extensions import db
from meetinsight.models.chat_message import ChatMessage
from meetinsight.models.meeting_record import DEFAULT_TITLE, METADATA_FIELDS
from meetinsight.models.module_version import ModuleVersion
from meetinsight.models.transcript_version import TranscriptVersion
from meetinsight.services.modules import AnalysisModule
from meetinsight.services.record_store import RecordNotFound, RecordStore, VersionConflict


def test_create_record_defaults(store):
    r = store.create_record()
    assert r.title == DEFAULT_TITLE
    assert r.raw_transcript == ""
    assert sorted(r.metadata) == sorted(METADATA_FIELDS)
    assert all(v == "" for v in r.metadata.values())


def test_list_records_newest_first(store):
    first = store.create_record("first")
    second = store.create_record("second")
    ids = [r.id for r in store.list_records()]
    assert ids == [second.id, first.id]


def test_update_record_merges_metadata(store):
    r = store.create_record("m")
    store.update_record(r.id, metadata={"subject": "Budget"})
    out = store.update_record(r.id, metadata={"speakers": "Ann, Bob", "bogus": "x"})
    assert out.metadata["subject"] == "Budget"
    assert out.metadata["speakers"] == "Ann, Bob"
    assert "bogus" not in out.metadata


def test_records_are_owner_scoped(store, other_user):
    r = store.create_record("mine")
    intruder = RecordStore(other_user.id)
    assert intruder.list_records() == []
    with pytest.raises(RecordNotFound):
        intruder.get_record(r.id)
    with pytest.raises(RecordNotFound):
        intruder.update_record(r.id, title="stolen")
    with pytest.raises(RecordNotFound):
        intruder.insert_transcript_version(r.id, 1, "x")
    with pytest.raises(RecordNotFound):
        intruder.delete_record(r.id)
    assert store.get_record(r.id).title == "mine"


def test_transcript_versions_ascending(store):
    r = store.create_record()
    store.insert_transcript_version(r.id, 2, "second")
    store.insert_transcript_version(r.id, 1, "first", "### Correction Log\n- x")
    versions = store.list_transcript_versions(r.id)
    assert [v.version_number for v in versions] == [1, 2]
    assert versions[0].correction_log.startswith("### Correction Log")
    assert versions[1].correction_log is None


def test_duplicate_transcript_version_is_conflict(store):
    r = store.create_record()
    store.insert_transcript_version(r.id, 1, "a")
    with pytest.raises(VersionConflict):
        store.insert_transcript_version(r.id, 1, "b")
    # session is usable after the rollback
    assert [v.corrected_transcript for v in store.list_transcript_versions(r.id)] == ["a"]


def test_module_version_inserted_with_first_message(store):
    r = store.create_record()
    thread = store.insert_module_version(r.id, "c", 1, initial_message="analysis")
    assert thread.module is AnalysisModule.C
    assert [(m.role, m.text) for m in thread.messages] == [("model", "analysis")]
    assert ChatMessage.query.filter_by(module_version_id=thread.id).count() == 1


def test_duplicate_module_version_leaves_no_orphan_message(store):
    r = store.create_record()
    store.insert_module_version(r.id, "A", 1, initial_message="one")
    with pytest.raises(VersionConflict):
        store.insert_module_version(r.id, "A", 1, initial_message="two")
    assert ModuleVersion.query.count() == 1
    assert [m.content for m in ChatMessage.query.all()] == ["one"]


def test_module_versions_are_numbered_per_module(store):
    r = store.create_record()
    store.insert_module_version(r.id, "A", 1, initial_message="a1")
    store.insert_module_version(r.id, "B", 1, initial_message="b1")
    store.insert_module_version(r.id, "A", 2, initial_message="a2")
    threads = store.list_module_versions(r.id)
    assert [(t.module.value, t.version_number) for t in threads] == [("A", 1), ("A", 2), ("B", 1)]


def test_chat_messages_in_insertion_order(store):
    r = store.create_record()
    t = store.insert_module_version(r.id, "E", 1, initial_message="summary")
    store.insert_chat_message(t.id, "user", "who owns task 2?")
    store.insert_chat_message(t.id, "model", "Bob")
    [loaded] = store.list_module_versions(r.id)
    assert [(m.role, m.text) for m in loaded.messages] == [
        ("model", "summary"), ("user", "who owns task 2?"), ("model", "Bob"),
    ]


def test_chat_message_role_is_validated(store):
    r = store.create_record()
    t = store.insert_module_version(r.id, "E", 1, initial_message="summary")
    with pytest.raises(ValueError):
        store.insert_chat_message(t.id, "assistant", "nope")


def test_chat_message_owner_scoped(store, other_user):
    r = store.create_record()
    t = store.insert_module_version(r.id, "E", 1, initial_message="summary")
    with pytest.raises(RecordNotFound):
        RecordStore(other_user.id).insert_chat_message(t.id, "user", "hi")


def test_delete_record_cascades(store):
    r = store.create_record()
    store.insert_transcript_version(r.id, 1, "a")
    t = store.insert_module_version(r.id, "A", 1, initial_message="x")
    store.insert_chat_message(t.id, "user", "y")
    store.delete_record(r.id)
    db.session.expire_all()
    assert TranscriptVersion.query.count() == 0
    assert ModuleVersion.query.count() == 0
    assert ChatMessage.query.count() == 0
    with pytest.raises(RecordNotFound):
        store.get_record(r.id)
