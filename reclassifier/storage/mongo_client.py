# ==============================================
# MongoClient
# ==============================================
#
# PURPOSE:
#   MongoDB record store. Streams organization records with
#   their children and individuals joined, answers the reverse
#   reports-to lookup, and applies the bulk reclassification.
#
# COLLECTIONS:
# ------------
#   organizations:   {_id, is_portal_linked, owner_id, currency_code,
#                     parent_id, classification_id}
#   individuals:     {_id, organization_id, owner_id, currency_code,
#                     reports_to_id}
#   classifications: {_id, name}
#
#   All _id and reference values are strings.
#
# CLASS: MongoClient
# ------------------
#   Stateful — holds connection to MongoDB.
#
#   Constructor:
#   ------------
#   - __init__(host, port, database, user=None, password=None)
#
#   Methods:
#   --------
#   - connect() / disconnect()
#   - ensure_indexes() -> None
#       Indexes on the join and lookup fields:
#         organizations.parent_id, individuals.organization_id,
#         individuals.reports_to_id
#   - stream_batches(source_filter, batch_size) -> Iterator[list[OrganizationRecord]]
#       One aggregation with two bounded $lookup stages, cut into batches.
#       At most one child id and two individuals are joined per record.
#   - find_reports_to(target_ids) -> list[tuple[str, str]]
#   - apply_classification(requests) -> list[MutationOutcome]
#       bulk_write(ordered=False). Per-op writeErrors become failed
#       outcomes; unknown organization ids fail with "record not found",
#       including ids deleted between the existence check and the write
#       (detected through matched_count).
#   - resolve_classification_id(name) -> str | None
#   - supports_currency() -> bool
#
#   Context Manager:
#   ----------------
#   - __enter__ / __exit__ for `with MongoClient(...) as store:` usage.
#
# ==============================================

from itertools import islice
from typing import Iterable, Iterator, List, Tuple

from pymongo import MongoClient as PyMongoClient
from pymongo import ASCENDING, UpdateOne
from pymongo.errors import BulkWriteError, ConnectionFailure, OperationFailure

from reclassifier.evaluation.records import MutationOutcome, MutationRequest, OrganizationRecord


RECORD_NOT_FOUND = "record not found"

# Upper bound on ids per $in clause.
LOOKUP_CHUNK_SIZE = 10000

CHILD_LOOKUP_LIMIT = 1
INDIVIDUAL_LOOKUP_LIMIT = 2


class MongoClient:
    def __init__(self, host, port, database, user=None, password=None):
        # Store connection params. Don't connect yet.
        self.host = host
        self.port = port
        self.database = database
        self.user = user
        self.password = password
        self.client = None

    def connect(self):
        # Establish connection to MongoDB.
        try:
            if self.user and self.password:
                uri = f"mongodb://{self.user}:{self.password}@{self.host}:{self.port}/{self.database}"
            else:
                uri = f"mongodb://{self.host}:{self.port}/{self.database}"
            self.client = PyMongoClient(uri)
            self.client.admin.command('ping')
            print("✓ Connected to MongoDB.")
        except ConnectionFailure as e:
            print(f"✗ Could not connect to MongoDB: {e}")
            raise
        except OperationFailure as e:
            print(f"✗ Authentication failed: {e}")
            raise

    def disconnect(self):
        if self.client:
            self.client.close()
            print("✓ Disconnected from MongoDB.")
            self.client = None

    def _collection(self, name):
        if not self.client:
            raise RuntimeError("Not connected to MongoDB.")
        return self.client[self.database][name]

    def ensure_indexes(self):
        self._collection("organizations").create_index([("parent_id", ASCENDING)])
        self._collection("individuals").create_index([("organization_id", ASCENDING)])
        self._collection("individuals").create_index([("reports_to_id", ASCENDING)])

    def stream_batches(self, source_filter: dict, batch_size: int) -> Iterator[List[OrganizationRecord]]:
        """
        Stream organization records in batches of at most batch_size.

        Args:
            source_filter: {"exclude_classification_id": ..., "classification_id": ...}
                           (classification_id is optional)
            batch_size: Maximum records per batch

        Yields:
            Lists of OrganizationRecord with child_ids and individuals joined
        """
        organizations = self._collection("organizations")
        cursor = organizations.aggregate(
            self._build_pipeline(source_filter),
            allowDiskUse=True,
            batchSize=batch_size
        )
        try:
            while True:
                batch = [OrganizationRecord.from_dict(doc) for doc in islice(cursor, batch_size)]
                if not batch:
                    break
                yield batch
        finally:
            cursor.close()

    @staticmethod
    def _build_pipeline(source_filter: dict) -> list:
        classification_match = {"$ne": source_filter["exclude_classification_id"]}
        if source_filter.get("classification_id") is not None:
            classification_match["$eq"] = source_filter["classification_id"]

        return [
            {"$match": {"classification_id": classification_match}},
            {"$sort": {"_id": 1}},
            # Bounded joins: one child id answers "has children", two
            # individuals answer "not exactly one".
            {"$lookup": {
                "from": "organizations",
                "let": {"organization_id": "$_id"},
                "pipeline": [
                    {"$match": {"$expr": {"$eq": ["$parent_id", "$$organization_id"]}}},
                    {"$limit": CHILD_LOOKUP_LIMIT},
                    {"$project": {"_id": 1}},
                ],
                "as": "children"
            }},
            {"$lookup": {
                "from": "individuals",
                "let": {"organization_id": "$_id"},
                "pipeline": [
                    {"$match": {"$expr": {"$eq": ["$organization_id", "$$organization_id"]}}},
                    {"$sort": {"_id": 1}},
                    {"$limit": INDIVIDUAL_LOOKUP_LIMIT},
                ],
                "as": "individuals"
            }},
            {"$addFields": {"child_ids": "$children._id"}},
            {"$project": {"children": 0}},
        ]

    def find_reports_to(self, target_ids: Iterable[str]) -> List[Tuple[str, str]]:
        """
        Find individuals whose reports_to_id is one of target_ids.

        Returns:
            List of (individual_id, reports_to_id) pairs
        """
        individuals = self._collection("individuals")
        target_ids = sorted(target_ids)
        relations = []
        for start in range(0, len(target_ids), LOOKUP_CHUNK_SIZE):
            chunk = target_ids[start:start + LOOKUP_CHUNK_SIZE]
            cursor = individuals.find(
                {"reports_to_id": {"$in": chunk}},
                {"_id": 1, "reports_to_id": 1}
            )
            relations.extend((str(doc["_id"]), str(doc["reports_to_id"])) for doc in cursor)
        return relations

    def apply_classification(self, requests: List[MutationRequest]) -> List[MutationOutcome]:
        """
        Set classification_id on every requested organization, unordered.

        Each update succeeds or fails on its own; a failed update does
        not stop or undo the others.

        Returns:
            One MutationOutcome per request, in request order
        """
        if not requests:
            return []
        organizations = self._collection("organizations")

        requested_ids = [request.organization_id for request in requests]
        existing = {
            str(doc["_id"])
            for doc in organizations.find({"_id": {"$in": requested_ids}}, {"_id": 1})
        }

        submitted = [request for request in requests if request.organization_id in existing]
        errors = {}
        if submitted:
            operations = [
                UpdateOne(
                    {"_id": request.organization_id},
                    {"$set": {"classification_id": request.classification_id}}
                )
                for request in submitted
            ]
            try:
                matched = organizations.bulk_write(operations, ordered=False).matched_count
            except BulkWriteError as e:
                matched = e.details.get("nMatched", 0)
                for write_error in e.details.get("writeErrors", []):
                    organization_id = submitted[write_error["index"]].organization_id
                    # Keep the first message reported for a record.
                    errors.setdefault(organization_id, write_error.get("errmsg", "write failed"))

            unconfirmed = [r.organization_id for r in submitted if r.organization_id not in errors]
            if matched < len(unconfirmed):
                # Some records vanished after the existence check.
                still_there = {
                    str(doc["_id"])
                    for doc in organizations.find({"_id": {"$in": unconfirmed}}, {"_id": 1})
                }
                for organization_id in unconfirmed:
                    if organization_id not in still_there:
                        errors[organization_id] = RECORD_NOT_FOUND

        outcomes = []
        for request in requests:
            if request.organization_id not in existing:
                outcomes.append(MutationOutcome(request.organization_id, False, RECORD_NOT_FOUND))
            elif request.organization_id in errors:
                outcomes.append(MutationOutcome(request.organization_id, False, errors[request.organization_id]))
            else:
                outcomes.append(MutationOutcome(request.organization_id, True))
        return outcomes

    def resolve_classification_id(self, name: str):
        doc = self._collection("classifications").find_one({"name": name}, {"_id": 1})
        return str(doc["_id"]) if doc else None

    def supports_currency(self) -> bool:
        # A currency attribute exists if any organization carries one.
        doc = self._collection("organizations").find_one({"currency_code": {"$exists": True}}, {"_id": 1})
        return doc is not None

    def __enter__(self):
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.disconnect()
