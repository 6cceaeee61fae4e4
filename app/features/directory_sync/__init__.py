"""
Directory sync feature module.

One-shot upsert synchronization of the ``members`` table between the primary
store and the self-hosted secondary (MySQL) store.
"""
