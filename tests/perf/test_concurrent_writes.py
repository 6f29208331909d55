import threading
import time

import pytest

from rowguard import Applied, ConflictDetected, RowGuardDB, attempt_save


def _open(path):
    return RowGuardDB.on_disk(path, install=False)


@pytest.mark.perf
def test_same_token_at_most_one_success(disk_path):
    setup = _open(disk_path)
    seeded = setup.versioned_products.first()
    setup.close()

    N_THREADS = 8
    barrier = threading.Barrier(N_THREADS)
    results = []
    errors = []

    def worker(i):
        db = _open(disk_path)
        try:
            barrier.wait()
            results.append(db.versioned_products.write(seeded.id, {"stock": i}, seeded.row_version))
        except Exception as exc:  # surfaced through the errors list
            errors.append(exc)
        finally:
            db.close()

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(N_THREADS)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert not errors
    applied = [r for r in results if isinstance(r, Applied)]
    conflicts = [r for r in results if isinstance(r, ConflictDetected)]
    assert len(applied) == 1
    assert len(conflicts) == N_THREADS - 1
    assert all(c.actual == applied[0].row_version for c in conflicts)


def _increment(path, times, errors):
    db = _open(path)
    try:
        for _ in range(times):
            # optimistic retry loop: reload on conflict, then reapply
            for _try in range(200):
                p = db.versioned_products.first()
                p.stock = p.stock + 1
                if attempt_save(db.versioned_products, p).ok:
                    break
                time.sleep(0.001)
            else:
                errors.append("max_retries")
    finally:
        db.close()


@pytest.mark.perf
def test_concurrent_increments(disk_path):
    errors: list[str] = []
    N_THREADS = 4
    INCR = 50

    threads = [
        threading.Thread(target=_increment, args=(disk_path, INCR, errors)) for _ in range(N_THREADS)
    ]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    db = _open(disk_path)
    try:
        assert db.versioned_products.first().stock == 100 + N_THREADS * INCR
    finally:
        db.close()
    assert not errors
