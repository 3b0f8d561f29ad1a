# firestore.py
"""Firestore REST (v1) backend for the document store."""
import logging

import requests

from .errors import StoreError, StoreTimeout
from .store import DocumentStore, collection_path, document_parts

logger = logging.getLogger(__name__)

FIRESTORE_URL = 'https://firestore.googleapis.com/v1'
PAGE_SIZE = 300


def encode_value(value) -> dict:
    if value is None:
        return {'nullValue': None}
    if isinstance(value, bool):
        return {'booleanValue': value}
    if isinstance(value, int):
        return {'integerValue': str(value)}
    if isinstance(value, float):
        return {'doubleValue': value}
    if isinstance(value, str):
        return {'stringValue': value}
    if isinstance(value, dict):
        return {'mapValue': {'fields': encode_fields(value)}}
    if isinstance(value, (list, tuple, set, frozenset)):
        return {'arrayValue': {'values': [encode_value(v) for v in value]}}
    raise TypeError(f"Cannot store value of type {type(value).__name__}")


def encode_fields(data: dict) -> dict:
    return {key: encode_value(val) for key, val in data.items()}


def decode_value(value: dict):
    if 'nullValue' in value:
        return None
    if 'booleanValue' in value:
        return value['booleanValue']
    if 'integerValue' in value:
        return int(value['integerValue'])
    if 'doubleValue' in value:
        return float(value['doubleValue'])
    if 'mapValue' in value:
        return decode_fields(value['mapValue'].get('fields', {}))
    if 'arrayValue' in value:
        return [decode_value(v) for v in value['arrayValue'].get('values', [])]
    # stringValue, timestampValue, referenceValue
    for key in ('stringValue', 'timestampValue', 'referenceValue'):
        if key in value:
            return value[key]
    raise ValueError(f"Unsupported Firestore value: {value}")


def decode_fields(fields: dict) -> dict:
    return {key: decode_value(val) for key, val in fields.items()}


class FirestoreDocumentStore(DocumentStore):
    def __init__(self, project_id, database='(default)', token=None, timeout=10, session=None):
        if not project_id:
            raise ValueError("FIRESTORE_PROJECT_ID is required for the firestore backend")
        self.base_url = f"{FIRESTORE_URL}/projects/{project_id}/databases/{database}/documents"
        self.timeout = timeout
        self.session = session or requests.Session()
        self.headers = {'Authorization': f"Bearer {token}"} if token else {}

    def _request(self, method, path, **kwargs):
        url = f"{self.base_url}/{path}"
        try:
            resp = self.session.request(method, url, headers=self.headers,
                                        timeout=self.timeout, **kwargs)
        except requests.Timeout as e:
            raise StoreTimeout(f"{method} {path} timed out after {self.timeout}s") from e
        except requests.RequestException as e:
            raise StoreError(f"{method} {path} failed: {e}") from e
        return resp

    def _check(self, resp, method, path):
        if resp.status_code >= 400:
            logger.error("Firestore %s %s -> %s %s", method, path, resp.status_code, resp.text)
            raise StoreError(f"{method} {path} returned {resp.status_code}")

    def get_document(self, path):
        collection, doc_id = document_parts(path)
        full_path = f"{collection}/{doc_id}"
        resp = self._request('GET', full_path)
        if resp.status_code == 404:
            return None
        self._check(resp, 'GET', full_path)
        return decode_fields(resp.json().get('fields', {}))

    def set_document(self, path, data, merge=False):
        collection, doc_id = document_parts(path)
        full_path = f"{collection}/{doc_id}"
        params = None
        if merge:
            params = [('updateMask.fieldPaths', key) for key in data]
        resp = self._request('PATCH', full_path, params=params,
                             json={'fields': encode_fields(data)})
        self._check(resp, 'PATCH', full_path)

    def query_collection(self, path):
        collection = collection_path(path)
        docs = []
        page_token = None
        while True:
            params = {'pageSize': PAGE_SIZE, 'orderBy': '__name__'}
            if page_token:
                params['pageToken'] = page_token
            resp = self._request('GET', collection, params=params)
            self._check(resp, 'GET', collection)
            body = resp.json()
            for doc in body.get('documents', []):
                doc_id = doc['name'].rsplit('/', 1)[-1]
                docs.append((doc_id, decode_fields(doc.get('fields', {}))))
            page_token = body.get('nextPageToken')
            if not page_token:
                break
        return docs
