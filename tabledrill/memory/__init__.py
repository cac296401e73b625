"""
Selection memory: which rows each dataset showed last, kept in a key-value store.
"""

from .store import KeyValueStore, InMemoryStore, RedisStore, create_store
from .selection_memory import SelectionMemory, KEY_PREFIX, CLIENT_KEY_PREFIX

__all__ = [
	'KeyValueStore',
	'InMemoryStore',
	'RedisStore',
	'create_store',
	'SelectionMemory',
	'KEY_PREFIX',
	'CLIENT_KEY_PREFIX',
]
