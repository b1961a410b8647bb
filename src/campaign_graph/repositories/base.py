"""Generic repository over labelled nodes.

Every entity repository maps one node label onto a pydantic model. Foreign-key
fields of the model are not stored as properties; they are outgoing edges
(``Link``) that the base class creates, replaces and reads back.

All statements of one repository call run inside a single transaction handed
to the executor, so a failure at any step (missing parent, rejected parent,
blocked delete) rolls back everything the call did.
"""
from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, ClassVar, Generic, TypeVar

from pydantic import BaseModel

from campaign_graph.exceptions import CampaignGraphError, ConflictError, EntityNotFoundError, InvalidQueryError
from campaign_graph.logging import get_logger
from campaign_graph.models.common import CreateParams, ListOptions, Page, Patch, SortDirection, new_id, utcnow

if TYPE_CHECKING:
    from campaign_graph.db.executor import QueryExecutor, Record, Transaction

logger = get_logger(__name__)

M = TypeVar("M", bound=BaseModel)
T = TypeVar("T")
J = TypeVar("J", bound=BaseModel)


@dataclass(frozen=True)
class Link:
    """A foreign-key field stored as an outgoing edge ``(n)-[rel]->(target)``."""

    field: str
    rel_type: str
    label: str
    key: str

    @property
    def alias(self) -> str:
        return self.field.removesuffix("_id")


@dataclass(frozen=True)
class JoinSpec:
    """A join node: ``(owner)-[owner_rel]->(join)-[target_rel]->(target)``."""

    label: str
    key: str
    owner_label: str
    owner_key: str
    owner_rel: str
    target_label: str
    target_key: str
    target_rel: str

    @property
    def pattern(self) -> str:
        return (
            f"(o:{self.owner_label})-[:{self.owner_rel}]->(j:{self.label})"
            f"-[:{self.target_rel}]->(t:{self.target_label})"
        )

    @property
    def projection(self) -> str:
        return f"j {{.*, {self.owner_key}: o.{self.owner_key}, {self.target_key}: t.{self.target_key}}}"


class BaseRepository(Generic[M]):
    """CRUD contract shared by the entity repositories.

    Subclasses declare the label, identifier property, model, links, sortable
    fields and equality filters; the base class builds the queries.
    """

    label: ClassVar[str]
    id_field: ClassVar[str]
    model: ClassVar[type[BaseModel]]
    filter_model: ClassVar[type[ListOptions]] = ListOptions
    links: ClassVar[tuple[Link, ...]] = ()

    # Extra OPTIONAL MATCH lines, the variables they bind and projection
    # entries, beyond the links
    extra_matches: ClassVar[tuple[str, ...]] = ()
    extra_scope: ClassVar[tuple[str, ...]] = ()
    extra_fields: ClassVar[tuple[str, ...]] = ()

    # Model fields that are neither properties nor links (child collections)
    non_properties: ClassVar[frozenset[str]] = frozenset()

    sort_fields: ClassVar[type[Enum]]
    default_sort: ClassVar[tuple[str, SortDirection]] = ("name", SortDirection.ASC)
    search_fields: ClassVar[tuple[str, ...]] = ("name", "description")

    # filter attribute -> Cypher expression compared for equality
    filter_fields: ClassVar[dict[str, str]] = {}

    def __init__(self, executor: QueryExecutor) -> None:
        self.executor = executor

    @property
    def entity(self) -> str:
        return self.id_field.removesuffix("_id")

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    def _read(self, operation: str, work: Callable[[Transaction], T]) -> T:
        try:
            return self.executor.read_transaction(work)
        except CampaignGraphError:
            raise
        except Exception:
            logger.exception("repository.transaction_failed", label=self.label, operation=operation, mode="read")
            raise

    def _write(self, operation: str, work: Callable[[Transaction], T]) -> T:
        try:
            return self.executor.write_transaction(work)
        except CampaignGraphError:
            raise
        except Exception:
            logger.exception("repository.transaction_failed", label=self.label, operation=operation, mode="write")
            raise

    # ------------------------------------------------------------------
    # Query fragments
    # ------------------------------------------------------------------

    def _match(self, var: str = "n", param: str = "id") -> str:
        return f"MATCH ({var}:{self.label} {{{self.id_field}: ${param}}})"

    def _hydrate_matches(self) -> str:
        lines = [f"OPTIONAL MATCH (n)-[:{link.rel_type}]->({link.alias}:{link.label})" for link in self.links]
        lines.extend(self.extra_matches)
        return "\n".join(lines)

    def _projection(self) -> str:
        entries = [".*"]
        entries.extend(f"{link.field}: {link.alias}.{link.key}" for link in self.links)
        entries.extend(self.extra_fields)
        return "n {" + ", ".join(entries) + "}"

    def _scope(self) -> str:
        """Variables carried past the hydrating matches."""
        return ", ".join(["n", *(link.alias for link in self.links), *self.extra_scope])

    def _order_by(self, options: ListOptions) -> str:
        requested = options.sort_by or self.default_sort[0]
        try:
            field = self.sort_fields(requested)
        except ValueError:
            allowed = ", ".join(member.value for member in self.sort_fields)
            raise InvalidQueryError(f"Cannot sort {self.label} by {requested!r}; allowed: {allowed}") from None
        direction = options.sort_direction or self.default_sort[1]
        # Identifier tiebreak keeps pages stable across calls
        return f"n.{field.value} {direction.value.upper()}, n.{self.id_field} ASC"

    def _filters(self, options: ListOptions) -> tuple[list[str], dict[str, Any]]:
        where: list[str] = []
        params: dict[str, Any] = {}
        for name, expression in self.filter_fields.items():
            value = getattr(options, name, None)
            if value is None:
                continue
            if isinstance(value, Enum):
                value = value.value
            where.append(f"{expression} = ${name}")
            params[name] = value
        if options.search:
            fields = " OR ".join(
                f"toLower(coalesce(n.{field}, '')) CONTAINS toLower($search)" for field in self.search_fields
            )
            where.append(f"({fields})")
            params["search"] = options.search
        return where, params

    # ------------------------------------------------------------------
    # Graph helpers used inside transactions
    # ------------------------------------------------------------------

    def _exists(self, tx: Transaction, entity_id: str) -> bool:
        rows = tx.run(f"{self._match()}\nRETURN n.{self.id_field} AS id", {"id": entity_id})
        return bool(rows)

    def _require(self, tx: Transaction, label: str, key: str, value: str) -> None:
        rows = tx.run(f"MATCH (x:{label} {{{key}: $value}})\nRETURN x.{key} AS id", {"value": value})
        if not rows:
            raise EntityNotFoundError(label, value)

    def _link(self, tx: Transaction, entity_id: str, link: Link, target_id: str) -> None:
        rows = tx.run(
            f"""
            {self._match()}
            MATCH (target:{link.label} {{{link.key}: $target_id}})
            CREATE (n)-[:{link.rel_type}]->(target)
            RETURN target.{link.key} AS target_id
            """,
            {"id": entity_id, "target_id": target_id},
        )
        if not rows:
            raise EntityNotFoundError(link.label, target_id)

    def _unlink(self, tx: Transaction, entity_id: str, link: Link) -> None:
        tx.run(
            f"""
            {self._match()}-[r:{link.rel_type}]->(:{link.label})
            DELETE r
            """,
            {"id": entity_id},
        )

    def _count(self, tx: Transaction, entity_id: str, pattern: str) -> int:
        """Count matches of a pattern anchored on ``n``."""
        rows = tx.run(f"{self._match()}\nRETURN COUNT {{ {pattern} }} AS count", {"id": entity_id})
        return rows[0]["count"] if rows else 0

    def _guard(self, tx: Transaction, entity_id: str, pattern: str, reason: str) -> None:
        """Raise ``ConflictError`` if ``pattern`` still matches."""
        count = self._count(tx, entity_id, pattern)
        if count:
            raise ConflictError(self.label, entity_id, f"{reason} ({count})")

    def _drop_relationships(self, tx: Transaction, entity_id: str) -> None:
        """Delete ``Relationship`` nodes that have ``n`` at either end."""
        tx.run(
            f"""
            {self._match()}<-[:RELATES|RELATES_TO]-(r:Relationship)
            DETACH DELETE r
            """,
            {"id": entity_id},
        )

    def _fetch(self, tx: Transaction, entity_id: str) -> M | None:
        rows = tx.run(
            f"""
            {self._match()}
            {self._hydrate_matches()}
            RETURN {self._projection()} AS entity
            LIMIT 1
            """,
            {"id": entity_id},
        )
        if not rows:
            return None
        return self.model.model_validate(self._complete(tx, rows[0]["entity"]))

    def _complete(self, tx: Transaction, data: Record) -> Record:
        """Attach child collections to a fetched entity."""
        return data

    # Hooks

    def _before_create(self, tx: Transaction, params: CreateParams, props: dict[str, Any]) -> None:
        return None

    def _after_create(self, tx: Transaction, entity_id: str, params: CreateParams) -> None:
        return None

    def _before_update(self, tx: Transaction, entity_id: str, patch: Patch) -> None:
        return None

    def _after_update(self, tx: Transaction, entity_id: str, patch: Patch) -> None:
        return None

    def _before_delete(self, tx: Transaction, entity_id: str) -> None:
        return None

    # ------------------------------------------------------------------
    # Generic contract
    # ------------------------------------------------------------------

    def create(self, params: CreateParams, actor_id: str) -> M:
        """Create the node and its edges, then read it back from the graph.

        Raises:
            EntityNotFoundError: A referenced parent does not exist.
        """
        entity_id = new_id()
        link_fields = {link.field for link in self.links}
        props = params.node_properties(exclude=link_fields | self.non_properties)
        props.update({self.id_field: entity_id, "created_at": utcnow(), "created_by": actor_id})

        def work(tx: Transaction) -> M:
            self._before_create(tx, params, props)
            tx.run(f"CREATE (n:{self.label} $props)", {"props": props})
            for link in self.links:
                target_id = getattr(params, link.field, None)
                if target_id is not None:
                    self._link(tx, entity_id, link, target_id)
            self._after_create(tx, entity_id, params)
            entity = self._fetch(tx, entity_id)
            if entity is None:
                raise EntityNotFoundError(self.label, entity_id)
            return entity

        entity = self._write("create", work)
        logger.info(f"{self.entity}.create", **{self.id_field: entity_id}, created_by=actor_id)
        return entity

    def find_by_id(self, entity_id: str) -> M | None:
        return self._read("find_by_id", lambda tx: self._fetch(tx, entity_id))

    get_by_id = find_by_id

    def find_all(self, options: ListOptions | None = None) -> Page[M]:
        """List entities a page at a time.

        The total is counted with the same predicate as the page, first, in the
        same read transaction.
        """
        options = options or self.filter_model()
        where, params = self._filters(options)
        order = self._order_by(options)
        base = f"MATCH (n:{self.label})\n{self._hydrate_matches()}\nWITH {self._scope()}"
        if where:
            base += "\nWHERE " + " AND ".join(where)

        def work(tx: Transaction) -> tuple[int, list[Record]]:
            counted = tx.run(f"{base}\nRETURN count(n) AS total", params)
            rows = tx.run(
                f"{base}\nRETURN {self._projection()} AS entity\nORDER BY {order}\nSKIP $skip LIMIT $limit",
                {**params, "skip": options.skip, "limit": options.limit},
            )
            return (counted[0]["total"] if counted else 0), rows

        total, rows = self._read("find_all", work)
        return Page[self.model](
            items=[self.model.model_validate(row["entity"]) for row in rows],
            total=total,
            page=options.page,
            limit=options.limit,
        )

    get_all = find_all

    def update(self, entity_id: str, patch: Patch) -> M:
        """Apply a typed patch.

        Scalar fields are merged onto the node. Each foreign-key field present
        in the patch drops the current edge and, unless the new value is
        ``None``, creates the new one.

        Raises:
            EntityNotFoundError: The entity or a new edge target does not exist.
        """
        changes = patch.to_changes()
        relinks = {link: changes.pop(link.field) for link in self.links if link.field in changes}
        props = {key: value for key, value in changes.items() if key not in self.non_properties}

        def work(tx: Transaction) -> M:
            if not self._exists(tx, entity_id):
                raise EntityNotFoundError(self.label, entity_id)
            self._before_update(tx, entity_id, patch)
            tx.run(
                f"{self._match()}\nSET n += $props, n.updated_at = $now",
                {"id": entity_id, "props": props, "now": utcnow()},
            )
            for link, target_id in relinks.items():
                self._unlink(tx, entity_id, link)
                if target_id is not None:
                    self._link(tx, entity_id, link, target_id)
            self._after_update(tx, entity_id, patch)
            entity = self._fetch(tx, entity_id)
            if entity is None:
                raise EntityNotFoundError(self.label, entity_id)
            return entity

        entity = self._write("update", work)
        logger.info(f"{self.entity}.update", **{self.id_field: entity_id}, fields=sorted(patch.model_fields_set))
        return entity

    def delete(self, entity_id: str) -> bool:
        """Delete the node after its dependents are handled.

        Returns:
            True if a node was removed, False if it did not exist.

        Raises:
            ConflictError: Dependents block the delete.
        """

        def work(tx: Transaction) -> bool:
            if not self._exists(tx, entity_id):
                return False
            self._before_delete(tx, entity_id)
            rows = tx.run(f"{self._match()}\nDETACH DELETE n\nRETURN count(n) AS deleted", {"id": entity_id})
            return bool(rows) and rows[0]["deleted"] > 0

        deleted = self._write("delete", work)
        if deleted:
            logger.info(f"{self.entity}.delete", **{self.id_field: entity_id})
        return deleted

    # ------------------------------------------------------------------
    # Join nodes
    # ------------------------------------------------------------------

    def _join_list(
        self,
        join: JoinSpec,
        model: type[J],
        side: str,
        value: str,
        order: str = "j.created_at ASC",
    ) -> list[J]:
        key = join.owner_key if side == "o" else join.target_key

        def work(tx: Transaction) -> list[Record]:
            return tx.run(
                f"""
                MATCH {join.pattern}
                WHERE {side}.{key} = $value
                RETURN {join.projection} AS entry
                ORDER BY {order}
                """,
                {"value": value},
            )

        return [model.model_validate(row["entry"]) for row in self._read(f"list_{join.label}", work)]

    def _join_fetch(self, tx: Transaction, join: JoinSpec, join_id: str) -> Record | None:
        rows = tx.run(
            f"""
            MATCH {join.pattern}
            WHERE j.{join.key} = $join_id
            RETURN {join.projection} AS entry
            """,
            {"join_id": join_id},
        )
        return rows[0]["entry"] if rows else None

    def _join_get(self, join: JoinSpec, model: type[J], join_id: str) -> J | None:
        data = self._read(f"get_{join.label}", lambda tx: self._join_fetch(tx, join, join_id))
        return model.model_validate(data) if data is not None else None

    def _join_add(
        self,
        join: JoinSpec,
        model: type[J],
        owner_id: str,
        target_id: str,
        props: dict[str, Any],
    ) -> J:
        join_id = new_id()
        props = {**props, join.key: join_id, "created_at": utcnow()}

        def work(tx: Transaction) -> Record:
            self._require(tx, join.owner_label, join.owner_key, owner_id)
            self._require(tx, join.target_label, join.target_key, target_id)
            existing = tx.run(
                f"""
                MATCH {join.pattern}
                WHERE o.{join.owner_key} = $owner_id AND t.{join.target_key} = $target_id
                RETURN j.{join.key} AS id
                """,
                {"owner_id": owner_id, "target_id": target_id},
            )
            if existing:
                raise ConflictError(join.label, existing[0]["id"], f"{join.owner_label} {owner_id} is already linked")
            tx.run(
                f"""
                MATCH (o:{join.owner_label} {{{join.owner_key}: $owner_id}})
                MATCH (t:{join.target_label} {{{join.target_key}: $target_id}})
                CREATE (o)-[:{join.owner_rel}]->(j:{join.label} $props)-[:{join.target_rel}]->(t)
                """,
                {"owner_id": owner_id, "target_id": target_id, "props": props},
            )
            data = self._join_fetch(tx, join, join_id)
            if data is None:
                raise EntityNotFoundError(join.label, join_id)
            return data

        data = self._write(f"add_{join.label}", work)
        logger.info(
            f"{join.label.lower()}.create",
            **{join.key: join_id, join.owner_key: owner_id, join.target_key: target_id},
        )
        return model.model_validate(data)

    def _join_update(self, join: JoinSpec, model: type[J], join_id: str, patch: Patch) -> J:
        def work(tx: Transaction) -> Record:
            rows = tx.run(
                f"""
                MATCH (j:{join.label} {{{join.key}: $join_id}})
                SET j += $props, j.updated_at = $now
                RETURN j.{join.key} AS id
                """,
                {"join_id": join_id, "props": patch.to_changes(), "now": utcnow()},
            )
            if not rows:
                raise EntityNotFoundError(join.label, join_id)
            data = self._join_fetch(tx, join, join_id)
            if data is None:
                raise EntityNotFoundError(join.label, join_id)
            return data

        data = self._write(f"update_{join.label}", work)
        logger.info(f"{join.label.lower()}.update", **{join.key: join_id})
        return model.model_validate(data)

    def _join_remove(self, join: JoinSpec, join_id: str) -> bool:
        def work(tx: Transaction) -> bool:
            rows = tx.run(
                f"""
                MATCH (j:{join.label} {{{join.key}: $join_id}})
                DETACH DELETE j
                RETURN count(j) AS deleted
                """,
                {"join_id": join_id},
            )
            return bool(rows) and rows[0]["deleted"] > 0

        removed = self._write(f"remove_{join.label}", work)
        if removed:
            logger.info(f"{join.label.lower()}.delete", **{join.key: join_id})
        return removed
