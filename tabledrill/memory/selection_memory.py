import os
import json
from urllib.parse import quote
from typing import Optional, List, Iterable

from tabledrill.utils import get_logger
from .store import KeyValueStore, create_store

LOG = get_logger()

KEY_PREFIX = 'quiz_last_rows_'
# scoped keys live outside KEY_PREFIX so they cannot collide with any identity
CLIENT_KEY_PREFIX = 'quiz_last_rows:'
SELECTION_MEMORY_ENABLED = os.getenv('SELECTION_MEMORY_ENABLED', 'true').lower() in ('1', 'true', 'yes')


class SelectionMemory:
    """Rows shown in the last fresh round, one JSON array per dataset identity.

    Nothing here raises: an unreachable store or an unreadable value reads as
    "no history", and a failed write is logged and reported as ``False``.
    """

    _instance = None

    def __init__(self, store: Optional[KeyValueStore] = None):
        self.store = store

    @classmethod
    def get_instance(cls) -> 'SelectionMemory':
        if cls._instance is None:
            store = create_store() if SELECTION_MEMORY_ENABLED else None
            if store is None:
                LOG.info('selection_memory_disabled')
            cls._instance = SelectionMemory(store)
        return cls._instance

    def key(self, dataset_identity: str, client_id: Optional[str] = None) -> str:
        if client_id:
            return f"{CLIENT_KEY_PREFIX}{quote(client_id, safe='')}:{dataset_identity}"
        return f'{KEY_PREFIX}{dataset_identity}'

    def load(self, dataset_identity: str, total_rows: Optional[int] = None, client_id: Optional[str] = None) -> List[int]:
        if self.store is None:
            return []
        key = self.key(dataset_identity, client_id)
        try:
            raw = self.store.get(key)
        except Exception as e:
            LOG.warning('selection_memory_load_failed', extra={'key': key, 'error': str(e)})
            return []
        if not raw:
            return []
        try:
            parsed = json.loads(raw)
        except (TypeError, ValueError) as e:
            LOG.warning('selection_memory_corrupt', extra={'key': key, 'error': str(e)})
            return []
        if not isinstance(parsed, list):
            LOG.warning('selection_memory_corrupt', extra={'key': key, 'error': 'not a list'})
            return []

        out: List[int] = []
        for idx in parsed:
            if isinstance(idx, bool) or not isinstance(idx, int):
                continue
            if total_rows is not None and not 0 <= idx < total_rows:
                continue
            if idx not in out:
                out.append(idx)
        return out

    def save(self, dataset_identity: str, indices: Iterable[int], client_id: Optional[str] = None) -> bool:
        if self.store is None:
            return False
        key = self.key(dataset_identity, client_id)
        try:
            ok = bool(self.store.set(key, json.dumps(sorted(set(indices)))))
        except Exception as e:
            LOG.warning('selection_memory_save_failed', extra={'key': key, 'error': str(e)})
            return False
        if ok:
            LOG.debug('selection_memory_saved', extra={'key': key})
        return ok
