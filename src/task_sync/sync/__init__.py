"""
Sync pipeline.

Components:
- payload.py: outgoing payload from the pending set or the backlog
- protocol.py: wire message encode/decode
- transport.py: TLS round trip
- interpreter.py: status code -> outcome, server diagnostics
- merge.py: apply server records, extract the synch key
- commit.py: atomic backlog/task commit + summary
- engine.py: SyncService, the whole round trip
"""
