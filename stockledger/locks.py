"""
Per-key locking for balance rows.

Every read-compute-write of a (product_id, warehouse_id) balance, and
every check+reserve on it, runs while holding that key's lock. Locks are
re-entrant per thread so a document-level critical section can call into
BalanceStore without deadlocking on itself.

Multi-key sections always acquire in sorted order, and callers acquire
their keys before opening a database transaction.

Document-level operations (edit, validate, cancel) first take the
document's own lock, then read its lines and take the key locks. No
caller takes a document lock while holding key locks.

This serializes writers inside one process; across processes the row
lock (select_for_update) and the version compare-and-swap in
BalanceStore take over.
"""

import threading
from contextlib import ExitStack, contextmanager
from typing import Iterable

Key = tuple[str, str]

_registry_lock = threading.Lock()
_key_locks: dict[Key, threading.RLock] = {}
_document_locks: dict[Key, threading.RLock] = {}


def _lock_for(key: Key, registry: dict | None = None) -> threading.RLock:
    if registry is None:
        registry = _key_locks
    with _registry_lock:
        lock = registry.get(key)
        if lock is None:
            lock = registry[key] = threading.RLock()
        return lock


@contextmanager
def key_lock(product_id: str, warehouse_id: str):
    """Hold the lock for a single balance key."""
    lock = _lock_for((str(product_id), str(warehouse_id)))
    with lock:
        yield


@contextmanager
def key_locks(keys: Iterable[Key]):
    """Hold the locks for several balance keys, acquired in sorted order."""
    ordered = sorted({(str(p), str(w)) for p, w in keys})
    with ExitStack() as stack:
        for key in ordered:
            stack.enter_context(_lock_for(key))
        yield ordered


@contextmanager
def document_lock(doc_type: str, doc_id):
    """Hold the lock for one document. Take it before any key lock."""
    lock = _lock_for((str(doc_type), str(doc_id)), _document_locks)
    with lock:
        yield
