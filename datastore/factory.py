from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from datastore.firebase_store import FirebaseTreeStore
from datastore.tree_store import InMemoryTreeStore, TreeStore
from settings import ConfigurationError, get_settings


@lru_cache
def build_default_store() -> TreeStore:
    settings = get_settings()
    if settings.store_backend == "memory":
        path = Path(settings.mock_tree_path) if settings.mock_tree_path else None
        return InMemoryTreeStore(name="sensors", persistence_path=path)

    missing = settings.missing_firebase_settings()
    if missing:
        raise ConfigurationError(
            f"Missing required environment variables: {', '.join(missing)}"
        )
    return FirebaseTreeStore(
        database_url=settings.firebase_database_url or "",
        credentials_path=settings.firebase_credentials_path,
        project_id=settings.firebase_project_id,
    )
