"""Infrastructure layer for drive app.

This package contains everything that touches the filesystem:
- Storage context and per-user path resolution
- Usage scanning of storage roots
- Local storage backend with rollback support
- Metadata helpers (MIME type, human-readable sizes)

Keep filesystem concerns separate from business logic.
"""
