from __future__ import annotations

from typing import Any

from firestore_toolkit.settings import AppSettings


def create_firestore_client(settings: AppSettings) -> Any:
    try:
        from google.cloud import firestore
    except ModuleNotFoundError as exc:
        raise RuntimeError(
            "google-cloud-firestore is not installed. Run `pip install -e .`."
        ) from exc

    return firestore.AsyncClient(
        project=settings.firestore_project_id or None,
        database=settings.firestore_database,
    )
