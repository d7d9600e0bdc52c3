from flask import current_app, has_app_context

from ..services.record_store import RecordStore


def _run_save_record_fields(owner_id: int, record_id: int, fields: dict):
    store = RecordStore(owner_id)
    store.update_record(
        record_id,
        raw_transcript=fields.get('raw_transcript'),
        metadata=fields.get('metadata'),
    )
    current_app.logger.debug('Autosaved record %s fields=%s', record_id, sorted(fields))
    return record_id


def save_record_fields(owner_id: int, record_id: int, fields: dict):
    """Job entrypoint: runs inside the caller's app context when there is one
    (inline fallback), otherwise builds the app so RQ workers can call it.
    """
    if has_app_context():
        return _run_save_record_fields(owner_id, record_id, fields)
    from meetinsight import create_app
    app = create_app()
    with app.app_context():
        return _run_save_record_fields(owner_id, record_id, fields)
