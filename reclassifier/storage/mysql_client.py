# ==============================================
# MySQLClient
# ==============================================
#
# PURPOSE:
#   MySQL record store. Same interface as MongoClient, backed by
#   three tables. Pages organizations with keyset pagination and
#   joins child existence and individuals per page.
#
# TABLES:
# -------
#   organizations:   id, is_portal_linked, owner_id, [currency_code],
#                    parent_id, classification_id
#   individuals:     id, organization_id, owner_id, [currency_code],
#                    reports_to_id
#   classifications: id, name
#
#   currency_code columns are optional; supports_currency() reports
#   whether organizations has one.
#
# CLASS: MySQLClient
# ------------------
#   Stateful — holds connection to MySQL.
#
#   Constructor:
#   ------------
#   - __init__(host, port, user, password, database)
#       Store connection params. Don't connect yet.
#
#   Methods:
#   --------
#   - connect() / disconnect()
#   - ensure_indexes() -> None
#       Add missing indexes on organizations.parent_id,
#       individuals.organization_id and individuals.reports_to_id.
#   - stream_batches(source_filter, batch_size) -> Iterator[list[OrganizationRecord]]
#   - find_reports_to(target_ids) -> list[tuple[str, str]]
#   - apply_classification(requests) -> list[MutationOutcome]
#       One UPDATE + COMMIT per organization. A failing row is rolled
#       back on its own and the loop continues. A lost connection raises
#       MutationInterrupted with the outcomes committed so far.
#   - get_current_columns(table_name) -> dict[str, str]
#   - resolve_classification_id(name) -> str | None
#   - supports_currency() -> bool
#
#   Context Manager:
#   ----------------
#   - __enter__ / __exit__ for `with MySQLClient(...) as store:` usage.
#
# ==============================================

from typing import Iterable, Iterator, List, Tuple

import pymysql
import pymysql.cursors
from pymysql.constants import CLIENT

from reclassifier.evaluation.records import (
    MutationInterrupted,
    MutationOutcome,
    MutationRequest,
    OrganizationRecord,
)


RECORD_NOT_FOUND = "record not found"

# Upper bound on ids per IN (...) clause.
LOOKUP_CHUNK_SIZE = 1000

# "MySQL server has gone away", "Lost connection to MySQL server during query"
CONNECTION_LOST_CODES = {2006, 2013}

INDEXES = (
    ("organizations", "idx_organizations_parent_id", "parent_id"),
    ("individuals", "idx_individuals_organization_id", "organization_id"),
    ("individuals", "idx_individuals_reports_to_id", "reports_to_id"),
)


class MySQLClient:
    def __init__(self, host, port, user, password, database):
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.database = database
        self.connection = None

    def connect(self) -> None:
        # FOUND_ROWS: UPDATE rowcount counts matched rows, not changed rows.
        self.connection = pymysql.connect(
            host=self.host,
            port=self.port,
            user=self.user,
            password=self.password,
            database=self.database,
            cursorclass=pymysql.cursors.DictCursor,
            client_flag=CLIENT.FOUND_ROWS,
            autocommit=False,
        )
        print("✓ Connected to MySQL.")

    def disconnect(self) -> None:
        if self.connection:
            self.connection.close()
            self.connection = None
            print("✓ Disconnected from MySQL.")

    def _cursor(self):
        if self.connection is None:
            raise RuntimeError("Not connected to MySQL.")
        return self.connection.cursor()

    def ensure_indexes(self) -> None:
        with self._cursor() as cursor:
            for table_name, index_name, column in INDEXES:
                cursor.execute(
                    "SELECT COUNT(*) AS n FROM INFORMATION_SCHEMA.STATISTICS "
                    "WHERE TABLE_SCHEMA = %s AND TABLE_NAME = %s AND INDEX_NAME = %s",
                    (self.database, table_name, index_name)
                )
                if cursor.fetchone()["n"] == 0:
                    cursor.execute(f"CREATE INDEX {index_name} ON {table_name} ({column})")
        self.connection.commit()

    def get_current_columns(self, table_name: str) -> dict[str, str]:
        # Query INFORMATION_SCHEMA to get current column names and types
        with self._cursor() as cursor:
            cursor.execute(
                "SELECT COLUMN_NAME, DATA_TYPE FROM INFORMATION_SCHEMA.COLUMNS "
                "WHERE TABLE_SCHEMA = %s AND TABLE_NAME = %s",
                (self.database, table_name)
            )
            return {str(row["COLUMN_NAME"]): str(row["DATA_TYPE"]) for row in cursor.fetchall()}

    def stream_batches(self, source_filter: dict, batch_size: int) -> Iterator[List[OrganizationRecord]]:
        """
        Stream organization records in batches of at most batch_size.

        Pages by primary key, so rows reclassified while streaming
        don't shift later pages.
        """
        org_columns = ["id", "is_portal_linked", "owner_id", "parent_id", "classification_id"]
        if "currency_code" in self.get_current_columns("organizations"):
            org_columns.append("currency_code")

        individual_columns = ["id", "organization_id", "owner_id", "reports_to_id"]
        if "currency_code" in self.get_current_columns("individuals"):
            individual_columns.append("currency_code")

        where = ["(classification_id IS NULL OR classification_id <> %s)"]
        params = [source_filter["exclude_classification_id"]]
        if source_filter.get("classification_id") is not None:
            where.append("classification_id = %s")
            params.append(source_filter["classification_id"])

        query = (
            f"SELECT {', '.join(org_columns)} FROM organizations "
            f"WHERE {' AND '.join(where)} AND id > %s ORDER BY id LIMIT %s"
        )

        last_id = ""
        while True:
            with self._cursor() as cursor:
                cursor.execute(query, (*params, last_id, batch_size))
                rows = cursor.fetchall()
            if not rows:
                break
            last_id = rows[-1]["id"]
            yield self._join_batch(rows, individual_columns)
            if len(rows) < batch_size:
                break

    def _join_batch(self, rows: list[dict], individual_columns: list[str]) -> List[OrganizationRecord]:
        org_ids = [row["id"] for row in rows]
        placeholders = ", ".join(["%s"] * len(org_ids))

        with self._cursor() as cursor:
            cursor.execute(
                f"SELECT parent_id, MIN(id) AS child_id FROM organizations "
                f"WHERE parent_id IN ({placeholders}) GROUP BY parent_id",
                org_ids
            )
            children = {row["parent_id"]: [row["child_id"]] for row in cursor.fetchall()}

            cursor.execute(
                f"SELECT {', '.join(individual_columns)} FROM individuals "
                f"WHERE organization_id IN ({placeholders}) ORDER BY id",
                org_ids
            )
            individuals = {}
            for row in cursor.fetchall():
                individuals.setdefault(row["organization_id"], []).append(row)

        return [
            OrganizationRecord.from_dict({
                **row,
                "child_ids": children.get(row["id"], []),
                "individuals": individuals.get(row["id"], []),
            })
            for row in rows
        ]

    def find_reports_to(self, target_ids: Iterable[str]) -> List[Tuple[str, str]]:
        """
        Find individuals whose reports_to_id is one of target_ids.

        Returns:
            List of (individual_id, reports_to_id) pairs
        """
        target_ids = sorted(target_ids)
        relations = []
        with self._cursor() as cursor:
            for start in range(0, len(target_ids), LOOKUP_CHUNK_SIZE):
                chunk = target_ids[start:start + LOOKUP_CHUNK_SIZE]
                placeholders = ", ".join(["%s"] * len(chunk))
                cursor.execute(
                    f"SELECT id, reports_to_id FROM individuals WHERE reports_to_id IN ({placeholders})",
                    chunk
                )
                relations.extend((str(row["id"]), str(row["reports_to_id"])) for row in cursor.fetchall())
        return relations

    def apply_classification(self, requests: List[MutationRequest]) -> List[MutationOutcome]:
        """
        Set classification_id on every requested organization.

        Each row is committed (or rolled back) on its own.

        Returns:
            One MutationOutcome per request, in request order

        Raises:
            MutationInterrupted: If the connection is lost mid-run
        """
        outcomes = []
        if not requests:
            return outcomes

        with self._cursor() as cursor:
            for request in requests:
                try:
                    cursor.execute(
                        "UPDATE organizations SET classification_id = %s WHERE id = %s",
                        (request.classification_id, request.organization_id)
                    )
                    if cursor.rowcount == 0:
                        self.connection.rollback()
                        outcomes.append(MutationOutcome(request.organization_id, False, RECORD_NOT_FOUND))
                        continue
                    self.connection.commit()
                    outcomes.append(MutationOutcome(request.organization_id, True))
                except pymysql.err.OperationalError as e:
                    if e.args and e.args[0] in CONNECTION_LOST_CODES:
                        raise MutationInterrupted(outcomes, e) from e
                    self.connection.rollback()
                    outcomes.append(MutationOutcome(request.organization_id, False, _error_message(e)))
                except (pymysql.err.IntegrityError, pymysql.err.DataError, pymysql.err.InternalError) as e:
                    self.connection.rollback()
                    outcomes.append(MutationOutcome(request.organization_id, False, _error_message(e)))
        return outcomes

    def resolve_classification_id(self, name: str):
        with self._cursor() as cursor:
            cursor.execute("SELECT id FROM classifications WHERE name = %s LIMIT 1", (name,))
            row = cursor.fetchone()
        return str(row["id"]) if row else None

    def supports_currency(self) -> bool:
        return "currency_code" in self.get_current_columns("organizations")

    def __enter__(self):
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.disconnect()


def _error_message(error: pymysql.MySQLError) -> str:
    # pymysql errors carry (code, message)
    if len(error.args) > 1:
        return str(error.args[1])
    return str(error)
