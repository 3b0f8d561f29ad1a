# store.py
"""Document store capability used by the rest of the service.

Paths are slash separated, Firestore style: ``properties/p1`` is a document,
``properties/p1/rooms`` is a collection and ``properties/p1/rooms/r1`` a
document inside it. Backends: in-memory, SQL (Flask-SQLAlchemy) and Firestore
(see ``firestore.py``).
"""
import copy
import json
import logging
import secrets
import string
from typing import List, Optional, Tuple

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from .errors import StoreError
from .models import db, Document

logger = logging.getLogger(__name__)

ID_ALPHABET = string.ascii_letters + string.digits


def new_document_id(length: int = 20) -> str:
    return ''.join(secrets.choice(ID_ALPHABET) for _ in range(length))


def split_path(path: str) -> List[str]:
    parts = [p for p in path.strip('/').split('/') if p]
    if not parts:
        raise ValueError("Empty store path")
    return parts


def document_parts(path: str) -> Tuple[str, str]:
    """Return (collection path, document id) for a document path."""
    parts = split_path(path)
    if len(parts) % 2:
        raise ValueError(f"Not a document path: {path}")
    return '/'.join(parts[:-1]), parts[-1]


def collection_path(path: str) -> str:
    parts = split_path(path)
    if len(parts) % 2 == 0:
        raise ValueError(f"Not a collection path: {path}")
    return '/'.join(parts)


class DocumentStore:
    def get_document(self, path: str) -> Optional[dict]:
        raise NotImplementedError

    def set_document(self, path: str, data: dict, merge: bool = False) -> None:
        raise NotImplementedError

    def query_collection(self, path: str) -> List[Tuple[str, dict]]:
        """All documents directly inside a collection, ordered by id."""
        raise NotImplementedError


class MemoryDocumentStore(DocumentStore):
    def __init__(self):
        self._docs = {}

    def get_document(self, path):
        collection, doc_id = document_parts(path)
        doc = self._docs.get((collection, doc_id))
        return copy.deepcopy(doc) if doc is not None else None

    def set_document(self, path, data, merge=False):
        key = document_parts(path)
        data = copy.deepcopy(data)
        if merge and key in self._docs:
            self._docs[key].update(data)
        else:
            self._docs[key] = data

    def query_collection(self, path):
        collection = collection_path(path)
        return sorted(
            (doc_id, copy.deepcopy(doc))
            for (col, doc_id), doc in self._docs.items()
            if col == collection
        )


class SqlDocumentStore(DocumentStore):
    """Documents as JSON rows in one table; needs an app context."""

    def get_document(self, path):
        collection, doc_id = document_parts(path)
        try:
            row = db.session.get(Document, f"{collection}/{doc_id}")
        except SQLAlchemyError as e:
            raise StoreError(f"Read failed for {path}: {e}") from e
        return row.to_dict() if row else None

    def set_document(self, path, data, merge=False):
        collection, doc_id = document_parts(path)
        full_path = f"{collection}/{doc_id}"
        try:
            row = db.session.get(Document, full_path)
            if row is None:
                row = Document(path=full_path, collection=collection, doc_id=doc_id)
                db.session.add(row)
                body = {}
            else:
                body = row.to_dict() if merge else {}
            body.update(data)
            row.data = json.dumps(body)
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.exception("Write failed for %s", full_path)
            raise StoreError(f"Write failed for {path}: {e}") from e

    def query_collection(self, path):
        collection = collection_path(path)
        try:
            rows = Document.query.filter_by(collection=collection).order_by(Document.doc_id).all()
        except SQLAlchemyError as e:
            raise StoreError(f"Query failed for {path}: {e}") from e
        return [(row.doc_id, row.to_dict()) for row in rows]


def get_store() -> DocumentStore:
    return current_app.extensions['docstore']
