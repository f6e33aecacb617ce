"""Business logic layer for drive app.

This package contains all business logic for user storage:
- Storage accounts (on-demand creation, quota lookup)
- Quota admission and usage reports
- Quota-checked uploads with rollback
- Listing, download lookup, deletion and purge of stored files

All business logic should be implemented here, separate from
models (data layer) and infrastructure (filesystem).
"""
