import asyncio
import json
from typing import Any

from cassandra import DriverException, OperationTimedOut
from cassandra.auth import PlainTextAuthProvider
from cassandra.cluster import Cluster, NoHostAvailable, Session
from cassandra.policies import DCAwareRoundRobinPolicy
from cassandra.query import PreparedStatement, dict_factory

from shared.clients.store.StoreClientInterface import StoreClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig
from shared.models.document import Document
from shared.models.errors import StoreError

_DRIVER_ERRORS = (DriverException, NoHostAvailable, OperationTimedOut)

TABLE = "documents"
COLUMNS = "id, title, content, category, author, metadata, created_at, updated_at"


class StoreClientScylla(StoreClientInterface):
    """Document store backed by a ScyllaDB (CQL) table.

    The driver is synchronous; every statement runs in a worker thread so the
    event loop is never blocked. The driver's Session owns the connection pool
    and is shared by all callers.
    """

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._contact_points = self.get_config_val("CONTACT_POINTS", default=None, val_type="list")
        self._port = int(self.get_config_val("PORT", default=9042, val_type="number"))
        self._keyspace = self.get_config_val("KEYSPACE", default="search", val_type="string")
        self._local_dc = self.get_config_val("LOCAL_DC", default="datacenter1", val_type="string")
        self._username = self.get_config_val("USERNAME", default="", val_type="string")
        self._password = self.get_config_val("PASSWORD", default="", val_type="string")
        self._auto_create_schema = self.get_config_val("AUTO_CREATE_SCHEMA", default=True, val_type="bool")
        self._replication_factor = int(self.get_config_val("REPLICATION_FACTOR", default=1, val_type="number"))

        self._cluster: Cluster | None = None
        self._session: Session | None = None
        self._statements: dict[str, PreparedStatement] = {}

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Scylla"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="CONTACT_POINTS", val_type="list", default=None),
            EnvConfig(env_key="PORT", val_type="number", default=9042),
            EnvConfig(env_key="KEYSPACE", val_type="string", default="search"),
            EnvConfig(env_key="LOCAL_DC", val_type="string", default="datacenter1"),
            EnvConfig(env_key="USERNAME", val_type="string", default=""),
            EnvConfig(env_key="PASSWORD", val_type="string", default=""),
            EnvConfig(env_key="AUTO_CREATE_SCHEMA", val_type="bool", default=True),
            EnvConfig(env_key="REPLICATION_FACTOR", val_type="number", default=1),
        ]

    ##########################################
    ############### LIFECYCLE ################
    ##########################################

    async def boot(self) -> None:
        """Connect to the cluster, create the schema if enabled and prepare statements.

        Raises:
            StoreError: If the cluster is unreachable or a statement cannot be prepared.
        """
        auth_provider = None
        if self._username:
            auth_provider = PlainTextAuthProvider(username=self._username, password=self._password)
        self._cluster = Cluster(
            contact_points=self._contact_points,
            port=self._port,
            load_balancing_policy=DCAwareRoundRobinPolicy(local_dc=self._local_dc),
            auth_provider=auth_provider,
            protocol_version=4,
        )
        try:
            self._session = await asyncio.to_thread(self._cluster.connect)
        except _DRIVER_ERRORS as exc:
            raise StoreError(f"Could not connect to Scylla at {self._contact_points}: {exc}") from exc
        self._session.row_factory = dict_factory
        self._session.default_timeout = self.timeout

        if self._auto_create_schema:
            await self.do_create_schema()
        else:
            self.logging.info("Scylla schema auto-creation is disabled.")

        try:
            await asyncio.to_thread(self._session.set_keyspace, self._keyspace)
            await self._prepare_statements()
        except _DRIVER_ERRORS as exc:
            raise StoreError(f"Could not prepare Scylla statements: {exc}") from exc
        self.logging.info("Scylla store ready (keyspace '%s').", self._keyspace)

    async def close(self) -> None:
        if self._cluster is not None:
            await asyncio.to_thread(self._cluster.shutdown)
        self._cluster = None
        self._session = None
        self._statements = {}

    async def do_healthcheck(self) -> bool:
        try:
            rows = await self._execute("SELECT release_version FROM system.local")
        except StoreError as exc:
            self.logging.warning("Scylla healthcheck failed: %s", exc)
            return False
        return bool(rows)

    async def _prepare_statements(self) -> None:
        queries = {
            "insert": f"INSERT INTO {TABLE} ({COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
            "select_by_id": f"SELECT {COLUMNS} FROM {TABLE} WHERE id = ?",
            "select_all": f"SELECT {COLUMNS} FROM {TABLE}",
            "select_by_category": f"SELECT {COLUMNS} FROM {TABLE} WHERE category = ? ALLOW FILTERING",
            "update": f"UPDATE {TABLE} SET title = ?, content = ?, category = ?, author = ?, metadata = ?, updated_at = ? WHERE id = ?",
            "delete": f"DELETE FROM {TABLE} WHERE id = ?",
            "count": f"SELECT COUNT(*) AS count FROM {TABLE}",
        }
        for name, cql in queries.items():
            self._statements[name] = await asyncio.to_thread(self._session.prepare, cql)

    ##########################################
    ################ SCHEMA ##################
    ##########################################

    async def do_create_schema(self) -> None:
        self.logging.info("Initialising Scylla schema in keyspace '%s'...", self._keyspace)
        statements = [
            f"CREATE KEYSPACE IF NOT EXISTS {self._keyspace} "
            f"WITH replication = {{'class': 'SimpleStrategy', 'replication_factor': {self._replication_factor}}}",
            f"CREATE TABLE IF NOT EXISTS {self._keyspace}.{TABLE} ("
            "id text PRIMARY KEY, title text, content text, category text, author text, "
            "metadata map<text, text>, created_at timestamp, updated_at timestamp)",
            f"CREATE INDEX IF NOT EXISTS {TABLE}_category_idx ON {self._keyspace}.{TABLE} (category)",
        ]
        for cql in statements:
            await self._execute(cql)
        self.logging.info("Scylla schema initialised.")

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_save(self, document: Document) -> Document:
        if not document.id:
            raise StoreError("Cannot save a document without id.")
        await self._execute(self._statement("insert"), (
            document.id,
            document.title,
            document.content,
            document.category,
            document.author,
            self._encode_metadata(document.metadata),
            document.created_at,
            document.updated_at,
        ))
        self.logging.debug("Document %s saved to Scylla.", document.id)
        return document

    async def do_find_by_id(self, document_id: str) -> Document | None:
        rows = await self._execute(self._statement("select_by_id"), (document_id,))
        return self._parse_row(rows[0]) if rows else None

    async def do_find_all(self) -> list[Document]:
        rows = await self._execute(self._statement("select_all"))
        return [self._parse_row(row) for row in rows]

    async def do_find_by_category(self, category: str) -> list[Document]:
        rows = await self._execute(self._statement("select_by_category"), (category,))
        return [self._parse_row(row) for row in rows]

    async def do_update(self, document: Document) -> Document:
        if not document.id:
            raise StoreError("Cannot update a document without id.")
        await self._execute(self._statement("update"), (
            document.title,
            document.content,
            document.category,
            document.author,
            self._encode_metadata(document.metadata),
            document.updated_at,
            document.id,
        ))
        self.logging.debug("Document %s updated in Scylla.", document.id)
        return document

    async def do_delete_by_id(self, document_id: str) -> None:
        await self._execute(self._statement("delete"), (document_id,))
        self.logging.debug("Document %s deleted from Scylla.", document_id)

    async def do_count(self) -> int:
        rows = await self._execute(self._statement("count"))
        return int(rows[0]["count"]) if rows else 0

    ##########################################
    ############### HELPERS ##################
    ##########################################

    def _statement(self, name: str) -> PreparedStatement:
        if name not in self._statements:
            raise StoreError("Scylla client not initialised. Call boot() before making requests.")
        return self._statements[name]

    async def _execute(self, statement: Any, params: tuple | None = None) -> list[dict]:
        """Run a statement in a worker thread and materialise every page of the result.

        Raises:
            StoreError: If the client is not booted or the driver reports a failure.
        """
        if self._session is None:
            raise StoreError("Scylla client not initialised. Call boot() before making requests.")
        session = self._session

        def _run() -> list[dict]:
            return list(session.execute(statement, params))

        try:
            return await asyncio.to_thread(_run)
        except _DRIVER_ERRORS as exc:
            self.logging.error("Scylla statement failed: %s", exc)
            raise StoreError(f"Scylla statement failed: {exc}") from exc

    def _encode_metadata(self, metadata: dict[str, Any] | None) -> dict[str, str]:
        """JSON-encode every metadata value for the map<text, text> column."""
        encoded: dict[str, str] = {}
        for key, value in (metadata or {}).items():
            try:
                encoded[key] = json.dumps(value)
            except (TypeError, ValueError) as exc:
                self.logging.warning("Could not serialise metadata value for key %s: %s", key, exc)
                encoded[key] = str(value)
        return encoded

    def _decode_metadata(self, raw: dict[str, str] | None) -> dict[str, Any]:
        """Decode JSON metadata values; values that are not valid JSON stay plain strings."""
        decoded: dict[str, Any] = {}
        for key, value in (raw or {}).items():
            try:
                decoded[key] = json.loads(value)
            except (TypeError, ValueError):
                decoded[key] = value
        return decoded

    def _parse_row(self, row: dict) -> Document:
        return Document(
            id=row.get("id"),
            title=row.get("title"),
            content=row.get("content"),
            category=row.get("category"),
            author=row.get("author"),
            metadata=self._decode_metadata(row.get("metadata")),
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
        )
