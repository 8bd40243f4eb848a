"""Realtime Database access through the Firebase Admin SDK."""

from __future__ import annotations

import logging
from threading import Lock
from typing import Any, Optional

import firebase_admin
from firebase_admin import credentials, db
from firebase_admin.exceptions import FirebaseError
from google.auth.exceptions import GoogleAuthError

from datastore.tree_store import TreeStoreError, as_collection, ordered_keys
from models.records import ReadingCollection

logger = logging.getLogger(__name__)

_STORE_ERRORS = (FirebaseError, GoogleAuthError, ValueError, OSError)


def initialize_firebase(
    database_url: str,
    credentials_path: Optional[str] = None,
    project_id: Optional[str] = None,
) -> firebase_admin.App:
    """Return the default Firebase app, initialising it on first use."""
    if firebase_admin._apps:
        return firebase_admin.get_app()

    if credentials_path:
        credential = credentials.Certificate(credentials_path)
    else:
        credential = credentials.ApplicationDefault()

    options = {"databaseURL": database_url}
    if project_id:
        options["projectId"] = project_id

    app = firebase_admin.initialize_app(credential, options)
    logger.info("Initialized Firebase app for %s", database_url)
    return app


class FirebaseTreeStore:
    """Read-only view over a Firebase Realtime Database."""

    def __init__(
        self,
        database_url: str,
        credentials_path: Optional[str] = None,
        project_id: Optional[str] = None,
    ) -> None:
        self.database_url = database_url
        self.credentials_path = credentials_path
        self.project_id = project_id
        self._app: Optional[firebase_admin.App] = None
        self._lock = Lock()

    def _get_app(self) -> firebase_admin.App:
        with self._lock:
            if self._app is None:
                try:
                    self._app = initialize_firebase(
                        self.database_url, self.credentials_path, self.project_id
                    )
                except _STORE_ERRORS as exc:
                    raise TreeStoreError(f"Failed to initialize Firebase: {exc}") from exc
            return self._app

    def _reference(self, path: str) -> db.Reference:
        return db.reference(path or "/", app=self._get_app())

    def read(self, path: str) -> Any:
        try:
            return self._reference(path).get()
        except _STORE_ERRORS as exc:
            raise TreeStoreError(f"Failed to read {path!r}: {exc}") from exc

    def read_last_n(self, path: str, n: int) -> ReadingCollection:
        if n <= 0:
            return {}
        try:
            data = self._reference(path).order_by_key().limit_to_last(n).get()
        except _STORE_ERRORS as exc:
            raise TreeStoreError(f"Failed to query {path!r}: {exc}") from exc

        collection = as_collection(data)
        keys = ordered_keys(collection)[-n:]
        return {key: collection[key] for key in keys}

    def ping(self) -> bool:
        try:
            self._reference("/").get(shallow=True)
        except _STORE_ERRORS as exc:
            raise TreeStoreError(f"Firebase connection failed: {exc}") from exc
        return True
