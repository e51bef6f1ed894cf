"""
Group task engine.

Modules, leaf to root:
- notifications: pending notification rows per user
- groups: group roster and manager resolution
- transaction: per-master serialization with optimistic retries
- approval: the manager sign-off gate in front of scoring
- sync: master/copy synchronization
- completion: sharedCompletion propagation
- tasks: the operations request handlers call
"""
