# Task board: client-side task store with fractional ordering and bucket tokens
#
# Components:
#   schema.py      - Data model (Task, PendingTask, Bucket, TaskPatch, BoardState)
#   ordering.py    - Fractional order keys (append, insert-after, collision bump)
#   obfuscation.py - Masked task text and placeholder tasks for locked buckets
#   store.py       - TaskBoardStore: canonical state, operations, subscriptions
#   persistence.py - JSON file / SQLite / in-memory snapshot slots
#   view.py        - Bucket views (token check, obfuscation, progress)
#   routing.py     - /bucket/<name>?token=... addressing
#   config.py      - YAML configuration
