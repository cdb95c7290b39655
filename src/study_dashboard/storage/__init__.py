"""
Storage adapter.

- kv_store.py: get/set/remove over JSON values (file-per-key backend, in-memory backend)
"""
