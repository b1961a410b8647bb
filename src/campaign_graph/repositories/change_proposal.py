"""Repository for change proposals and proposal batches.

A proposal may point at the entity it would change (``PROPOSES_CHANGE_TO``)
and at the campaign or session it was raised in (``HAS_CONTEXT``). Both ids
are also kept as properties so a proposal still reads back what it targeted
after the target is gone.
"""
from __future__ import annotations

import json
from datetime import UTC, datetime
from enum import Enum
from typing import TYPE_CHECKING, Any

from campaign_graph.exceptions import EntityNotFoundError
from campaign_graph.logging import get_logger
from campaign_graph.models.common import ListOptions, SortDirection, new_id, utcnow
from campaign_graph.models.proposal import (
    ChangeProposal,
    ChangeProposalCreate,
    ProposalBatch,
    ProposalBatchCreate,
    ProposalBatchUpdate,
    ProposalComment,
    ProposalFilter,
    ProposalStatus,
)
from campaign_graph.repositories.base import BaseRepository

if TYPE_CHECKING:
    from campaign_graph.db.executor import Record, Transaction
    from campaign_graph.models.common import CreateParams

logger = get_logger(__name__)

CONTEXT_MATCH = """
MATCH (context)
WHERE (context:Campaign AND context.campaign_id = $context_id)
   OR (context:Session AND context.session_id = $context_id)
"""

CONTEXT_DETAILS = (
    "CASE WHEN context IS NULL THEN null "
    "ELSE {id: coalesce(context.campaign_id, context.session_id), name: context.name, "
    "type: toLower(labels(context)[0])} END"
)

BATCH_QUERY = """
MATCH (b:ProposalBatch)
WHERE {where}
OPTIONAL MATCH (b)-[:HAS_CONTEXT]->(context)
OPTIONAL MATCH (b)-[:CONTAINS]->(p:ChangeProposal)
WITH b, context, p
ORDER BY p.created_at ASC
WITH b, context, collect(p {{.*}}) AS proposals
RETURN b {{.*, proposals: proposals, proposal_ids: [x IN proposals | x.proposal_id],
          context_details: {context_details}}} AS batch
ORDER BY b.updated_at DESC
"""


class ProposalSort(str, Enum):
    UPDATED_AT = "updated_at"
    CREATED_AT = "created_at"
    TITLE = "title"
    STATUS = "status"


def _iso(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat()


class ChangeProposalRepository(BaseRepository[ChangeProposal]):
    """Change proposals and the batches that group them."""

    label = "ChangeProposal"
    id_field = "proposal_id"
    model = ChangeProposal
    filter_model = ProposalFilter
    extra_matches = (
        "OPTIONAL MATCH (n)-[:PROPOSES_CHANGE_TO]->(target)",
        "OPTIONAL MATCH (n)-[:HAS_CONTEXT]->(context)",
    )
    extra_scope = ("target", "context")
    extra_fields = (
        "entity_details: CASE WHEN target IS NULL THEN null "
        "ELSE {id: n.entity_id, name: coalesce(target.name, target.title), type: n.entity_type} END",
        f"context_details: {CONTEXT_DETAILS}",
    )
    sort_fields = ProposalSort
    default_sort = ("updated_at", SortDirection.DESC)
    search_fields = ("title", "description")
    filter_fields = {
        "entity_id": "n.entity_id",
        "context_id": "n.context_id",
        "created_by": "n.created_by",
    }

    def _filters(self, options: ListOptions) -> tuple[list[str], dict[str, Any]]:
        where, params = super()._filters(options)
        if not isinstance(options, ProposalFilter):
            return where, params
        for name, prop, values in (
            ("statuses", "status", options.statuses),
            ("types", "proposal_type", options.types),
            ("entity_types", "entity_type", options.entity_types),
        ):
            if values:
                where.append(f"n.{prop} IN ${name}")
                params[name] = [value.value for value in values]
        if options.created_after is not None:
            where.append("n.created_at >= $created_after")
            params["created_after"] = _iso(options.created_after)
        if options.created_before is not None:
            where.append("n.created_at <= $created_before")
            params["created_before"] = _iso(options.created_before)
        return where, params

    # ---------------------------- Hooks ----------------------------

    def _before_create(self, tx: Transaction, params: CreateParams, props: dict[str, Any]) -> None:
        props["status"] = ProposalStatus.PENDING.value
        props["comments"] = "[]"
        props["updated_at"] = props["created_at"]

    def _after_create(self, tx: Transaction, entity_id: str, params: CreateParams) -> None:
        if not isinstance(params, ChangeProposalCreate):
            return
        node_type = params.entity_type.node_type
        if params.entity_id is not None and node_type is not None:
            rows = tx.run(
                f"""
                {self._match()}
                MATCH (target:{node_type.label} {{{node_type.id_field}: $entity_id}})
                CREATE (n)-[:PROPOSES_CHANGE_TO]->(target)
                RETURN target.{node_type.id_field} AS id
                """,
                {"id": entity_id, "entity_id": params.entity_id},
            )
            if not rows:
                raise EntityNotFoundError(node_type.label, params.entity_id)
        if params.context_id is not None:
            self._link_context(tx, self._match(), entity_id, params.context_id)

    def _link_context(self, tx: Transaction, match: str, node_id: str, context_id: str) -> None:
        rows = tx.run(
            f"""
            {match}
            {CONTEXT_MATCH}
            CREATE (n)-[:HAS_CONTEXT]->(context)
            RETURN count(context) AS linked
            """,
            {"id": node_id, "context_id": context_id},
        )
        if not rows or not rows[0]["linked"]:
            raise EntityNotFoundError("Campaign or Session", context_id)

    # ---------------------------- Review ----------------------------

    def review(self, proposal_id: str, status: ProposalStatus, reviewer_id: str) -> ChangeProposal:
        """Record a review decision on a proposal."""

        def work(tx: Transaction) -> ChangeProposal:
            now = utcnow()
            rows = tx.run(
                f"""
                {self._match()}
                SET n.status = $status, n.reviewed_by = $reviewer_id, n.reviewed_at = $now, n.updated_at = $now
                RETURN n.proposal_id AS id
                """,
                {"id": proposal_id, "status": status.value, "reviewer_id": reviewer_id, "now": now},
            )
            if not rows:
                raise EntityNotFoundError(self.label, proposal_id)
            proposal = self._fetch(tx, proposal_id)
            if proposal is None:
                raise EntityNotFoundError(self.label, proposal_id)
            return proposal

        proposal = self._write("review", work)
        logger.info("proposal.review", proposal_id=proposal_id, status=status.value, reviewed_by=reviewer_id)
        return proposal

    def add_comment(self, proposal_id: str, content: str, author_id: str) -> ChangeProposal:
        comment = ProposalComment(content=content, created_by=author_id)

        def work(tx: Transaction) -> ChangeProposal:
            rows = tx.run(f"{self._match()}\nRETURN n.comments AS comments", {"id": proposal_id})
            if not rows:
                raise EntityNotFoundError(self.label, proposal_id)
            comments = json.loads(rows[0]["comments"] or "[]")
            comments.append(comment.model_dump(mode="json"))
            tx.run(
                f"{self._match()}\nSET n.comments = $comments, n.updated_at = $now",
                {"id": proposal_id, "comments": json.dumps(comments), "now": utcnow()},
            )
            proposal = self._fetch(tx, proposal_id)
            if proposal is None:
                raise EntityNotFoundError(self.label, proposal_id)
            return proposal

        proposal = self._write("add_comment", work)
        logger.info("proposal.comment", proposal_id=proposal_id, comment_id=comment.comment_id)
        return proposal

    # ---------------------------- Batches ----------------------------

    @staticmethod
    def _batch_query(where: str) -> str:
        return BATCH_QUERY.format(where=where, context_details=CONTEXT_DETAILS)

    def _fetch_batch(self, tx: Transaction, batch_id: str) -> Record | None:
        rows = tx.run(self._batch_query("b.batch_id = $batch_id"), {"batch_id": batch_id})
        return rows[0]["batch"] if rows else None

    def create_batch(self, params: ProposalBatchCreate, actor_id: str) -> ProposalBatch:
        """Group existing proposals into a batch.

        Raises:
            EntityNotFoundError: A proposal or the context does not exist.
        """
        batch_id = new_id()
        now = utcnow()
        props = params.node_properties(exclude={"proposal_ids"})
        props.update(
            {
                "batch_id": batch_id,
                "status": ProposalStatus.PENDING.value,
                "created_at": now,
                "updated_at": now,
                "created_by": actor_id,
            }
        )
        match = "MATCH (n:ProposalBatch {batch_id: $id})"

        def work(tx: Transaction) -> Record:
            tx.run("CREATE (n:ProposalBatch $props)", {"props": props})
            if params.proposal_ids:
                rows = tx.run(
                    f"""
                    {match}
                    MATCH (p:ChangeProposal)
                    WHERE p.proposal_id IN $proposal_ids
                    CREATE (n)-[:CONTAINS]->(p)
                    RETURN p.proposal_id AS id
                    """,
                    {"id": batch_id, "proposal_ids": params.proposal_ids},
                )
                linked = {row["id"] for row in rows}
                missing = [proposal_id for proposal_id in params.proposal_ids if proposal_id not in linked]
                if missing:
                    raise EntityNotFoundError(self.label, missing[0])
            if params.context_id is not None:
                self._link_context(tx, match, batch_id, params.context_id)
            data = self._fetch_batch(tx, batch_id)
            if data is None:
                raise EntityNotFoundError("ProposalBatch", batch_id)
            return data

        data = self._write("create_batch", work)
        logger.info("proposal_batch.create", batch_id=batch_id, proposals=len(params.proposal_ids))
        return ProposalBatch.model_validate(data)

    def get_batch(self, batch_id: str) -> ProposalBatch | None:
        data = self._read("get_batch", lambda tx: self._fetch_batch(tx, batch_id))
        return ProposalBatch.model_validate(data) if data is not None else None

    def get_batches(self, context_id: str | None = None) -> list[ProposalBatch]:
        """Batches, most recently updated first, optionally for one context."""
        where = "b.context_id = $context_id" if context_id is not None else "true"

        def work(tx: Transaction) -> list[Record]:
            rows = tx.run(self._batch_query(where), {"context_id": context_id})
            return [row["batch"] for row in rows]

        return [ProposalBatch.model_validate(data) for data in self._read("get_batches", work)]

    def update_batch(self, batch_id: str, patch: ProposalBatchUpdate) -> ProposalBatch:
        def work(tx: Transaction) -> Record:
            rows = tx.run(
                """
                MATCH (b:ProposalBatch {batch_id: $batch_id})
                SET b += $props, b.updated_at = $now
                RETURN b.batch_id AS id
                """,
                {"batch_id": batch_id, "props": patch.to_changes(), "now": utcnow()},
            )
            if not rows:
                raise EntityNotFoundError("ProposalBatch", batch_id)
            data = self._fetch_batch(tx, batch_id)
            if data is None:
                raise EntityNotFoundError("ProposalBatch", batch_id)
            return data

        data = self._write("update_batch", work)
        logger.info("proposal_batch.update", batch_id=batch_id)
        return ProposalBatch.model_validate(data)

    def delete_batch(self, batch_id: str) -> bool:
        """Delete a batch; its proposals stay."""

        def work(tx: Transaction) -> bool:
            rows = tx.run(
                """
                MATCH (b:ProposalBatch {batch_id: $batch_id})
                DETACH DELETE b
                RETURN count(b) AS deleted
                """,
                {"batch_id": batch_id},
            )
            return bool(rows) and rows[0]["deleted"] > 0

        deleted = self._write("delete_batch", work)
        if deleted:
            logger.info("proposal_batch.delete", batch_id=batch_id)
        return deleted
