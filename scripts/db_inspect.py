"""Print meeting records with their version counts and check numbering.

Transcript and module version numbers must run 1..N without gaps; any
record that breaks this (for example after two tabs raced) is flagged.
"""
import os, sqlite3, sys

DBS = [
    os.path.join(os.getcwd(), 'meetinsight.db'),
    os.path.join(os.getcwd(), 'instance', 'meetinsight.db'),
]


def _contiguous(numbers):
    return sorted(numbers) == list(range(1, len(numbers) + 1))


def inspect(db):
    print(f"\n=== {db} ===")
    if not os.path.exists(db):
        print("missing")
        return
    conn = sqlite3.connect(db)
    cur = conn.cursor()
    def q(sql, params=()):
        cur.execute(sql, params)
        return cur.fetchall()
    try:
        for rid, owner_id, title in q('select id, owner_id, title from meeting_records order by id'):
            tv = [r[0] for r in q('select version_number from transcript_versions where record_id=?', (rid,))]
            print(f"record {rid} owner={owner_id} {title!r}: transcript versions={len(tv)}"
                  + ("" if _contiguous(tv) else f"  GAP/DUP {sorted(tv)}"))
            for (module_id,) in q('select distinct module_id from module_versions where record_id=? order by module_id', (rid,)):
                mv = q('select id, version_number from module_versions where record_id=? and module_id=?', (rid, module_id))
                nums = [r[1] for r in mv]
                empty = [r[1] for r in mv if not q('select 1 from chat_messages where module_version_id=? limit 1', (r[0],))]
                line = f"    module {module_id}: versions={len(nums)}"
                if not _contiguous(nums):
                    line += f"  GAP/DUP {sorted(nums)}"
                if empty:
                    line += f"  EMPTY {empty}"
                print(line)
    except Exception as e:
        print('error:', e)
    finally:
        conn.close()


if __name__ == '__main__':
    targets = sys.argv[1:] or DBS
    for db in targets:
        inspect(db)
    print('\nDone.')
