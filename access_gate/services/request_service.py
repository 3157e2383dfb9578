"""Service for storing access requests in MongoDB or in memory."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pymongo import DESCENDING
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import PyMongoError

from access_gate import database
from access_gate.errors import RemoteStoreError, RequestNotFound
from access_gate.models import AccessRequest, RequestStatus
from access_gate.storage import access_requests
from access_gate.utils.codes import now_utc

COLLECTION_NAME = "access_requests"


def _get_requests_collection(db: Optional[Database] = None) -> Optional[Collection]:
    """Return the MongoDB collection, or None when the in-memory store is in use."""
    if db is not None:
        return db[COLLECTION_NAME]
    if not database.mongodb_enabled():
        return None
    try:
        return database.get_database()[COLLECTION_NAME]
    except PyMongoError as exc:
        raise RemoteStoreError(f"MongoDB unavailable: {exc}") from exc


def _serialize(document: Dict[str, Any]) -> Dict[str, Any]:
    """Strip Mongo internals so documents look the same from either backend."""
    result = {k: v for k, v in document.items() if k != "_id"}
    if "_id" in document:
        result["id"] = str(document["_id"])
    return result


def insert_request(
    code: str,
    created_at: Optional[datetime] = None,
    db: Optional[Database] = None,
) -> Dict[str, Any]:
    """
    Insert a pending access request.

    Codes are not checked for uniqueness. If the same code is inserted twice
    the newest document is the one status lookups see.

    Args:
        code: The five digit access code
        created_at: When the request was made (defaults to now)
        db: Database to use instead of the configured one

    Returns:
        The stored document
    """
    request = AccessRequest.pending(code, created_at or now_utc())
    document = request.to_document()

    collection = _get_requests_collection(db)
    if collection is None:
        access_requests.setdefault(code, []).append(dict(document))
        return dict(document)

    try:
        collection.insert_one(document)
    except PyMongoError as exc:
        raise RemoteStoreError(f"Failed to insert access request {code}: {exc}") from exc

    return _serialize(document)


def get_request(code: str, db: Optional[Database] = None) -> Optional[Dict[str, Any]]:
    """
    Fetch the newest access request for a code.

    Returns:
        The request document, or None if no request uses this code
    """
    collection = _get_requests_collection(db)
    if collection is None:
        documents = access_requests.get(code)
        return dict(documents[-1]) if documents else None

    try:
        document = collection.find_one({"code": code}, sort=[("created_at", DESCENDING)])
    except PyMongoError as exc:
        raise RemoteStoreError(f"Failed to read access request {code}: {exc}") from exc

    return _serialize(document) if document else None


def get_status(code: str, db: Optional[Database] = None) -> RequestStatus:
    """Return the status for a code, raising RequestNotFound if there is none."""
    collection = _get_requests_collection(db)
    if collection is None:
        document = get_request(code)
    else:
        try:
            document = collection.find_one(
                {"code": code},
                {"status": 1, "_id": 0},
                sort=[("created_at", DESCENDING)],
            )
        except PyMongoError as exc:
            raise RemoteStoreError(f"Failed to read status for {code}: {exc}") from exc

    if not document:
        raise RequestNotFound(code)
    try:
        return RequestStatus(document.get("status"))
    except ValueError as exc:
        raise RemoteStoreError(f"Unknown status for {code}: {document.get('status')!r}") from exc


def approve_request(code: str, db: Optional[Database] = None) -> bool:
    """
    Mark every request with this code as approved.

    Returns:
        True if at least one request exists for the code, False otherwise
    """
    approved_at = now_utc()

    collection = _get_requests_collection(db)
    if collection is None:
        documents = access_requests.get(code, [])
        for document in documents:
            document["status"] = RequestStatus.APPROVED.value
            document.setdefault("approved_at", approved_at)
        return bool(documents)

    try:
        result = collection.update_many(
            {"code": code},
            {"$set": {"status": RequestStatus.APPROVED.value, "approved_at": approved_at}},
        )
    except PyMongoError as exc:
        raise RemoteStoreError(f"Failed to approve access request {code}: {exc}") from exc

    return result.matched_count > 0


def list_requests(
    status: Optional[RequestStatus] = None,
    limit: int = 100,
    db: Optional[Database] = None,
) -> List[Dict[str, Any]]:
    """List access requests, newest first, optionally filtered by status."""
    collection = _get_requests_collection(db)
    if collection is None:
        documents = [doc for docs in access_requests.values() for doc in docs]
        if status is not None:
            documents = [doc for doc in documents if doc["status"] == status.value]
        documents.sort(key=lambda doc: doc["created_at"], reverse=True)
        return [dict(doc) for doc in documents[:limit]]

    query: Dict[str, Any] = {}
    if status is not None:
        query["status"] = status.value

    try:
        cursor = collection.find(query).sort("created_at", DESCENDING).limit(limit)
        return [_serialize(doc) for doc in cursor]
    except PyMongoError as exc:
        raise RemoteStoreError(f"Failed to list access requests: {exc}") from exc


def count_by_status(db: Optional[Database] = None) -> Dict[str, int]:
    """Return how many requests exist in each status."""
    counts = {status.value: 0 for status in RequestStatus}

    collection = _get_requests_collection(db)
    if collection is None:
        for documents in access_requests.values():
            for document in documents:
                counts[document["status"]] += 1
        return counts

    try:
        for status in RequestStatus:
            counts[status.value] = collection.count_documents({"status": status.value})
    except PyMongoError as exc:
        raise RemoteStoreError(f"Failed to count access requests: {exc}") from exc

    return counts


def create_indexes(db: Optional[Database] = None) -> None:
    """Create the lookup indexes. The code index is not unique."""
    collection = _get_requests_collection(db)
    if collection is None:
        return
    collection.create_index([("code", 1), ("created_at", DESCENDING)])
    collection.create_index([("status", 1), ("created_at", DESCENDING)])
