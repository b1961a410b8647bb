"""Read-only traversals that shape parts of the campaign graph for rendering.

Two views are offered:

- a mind map: every drawable node within ``depth`` hops of one start entity,
  or a bounded sample of the whole graph when no start is given;
- a hierarchy: the fixed World -> Campaign -> Session -> Character tree.

Nodes and edges reached along several paths are emitted once. Only nodes
carrying one of the ``NodeType`` labels are drawn. A join node such as
``CharacterItem`` is drawn as a single edge from its owner to its target,
carrying the join's id and properties, and counts as one hop of ``depth``.
"""
from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any, TypeVar

from campaign_graph.exceptions import CampaignGraphError
from campaign_graph.logging import get_logger
from campaign_graph.models.graph import (
    LABEL_TO_NODE_TYPE,
    EdgeType,
    GraphData,
    GraphEdge,
    GraphNode,
    GraphQuery,
    NodeType,
)
from campaign_graph.repositories.event import EVENT_CHARACTER, EVENT_ITEM
from campaign_graph.repositories.item import CHARACTER_ITEM, LOCATION_ITEM
from campaign_graph.repositories.power import CHARACTER_POWER

if TYPE_CHECKING:
    from campaign_graph.db.executor import QueryExecutor, Record, Transaction
    from campaign_graph.repositories.base import JoinSpec

logger = get_logger(__name__)

T = TypeVar("T")

# Upper bound on paths expanded from one start node
MAX_PATHS = 5000

NODE_MAP = "{element_id: elementId(x), labels: labels(x), properties: properties(x)}"
EDGE_MAP = (
    "{element_id: elementId(r), type: type(r), source: elementId(startNode(r)), "
    "target: elementId(endNode(r)), properties: properties(r)}"
)

# Drawn edge type -> join node it collapses
JOINS: dict[str, JoinSpec] = {
    join.owner_rel: join for join in (CHARACTER_POWER, CHARACTER_ITEM, LOCATION_ITEM, EVENT_CHARACTER, EVENT_ITEM)
}
JOINS_BY_LABEL: dict[str, JoinSpec] = {join.label: join for join in JOINS.values()}

# (child type, edge pattern from parent p to child c, edge id prefix, drawn edge type)
HIERARCHY_LEVELS: tuple[tuple[NodeType, str, str, str], ...] = (
    (NodeType.CAMPAIGN, "(c)-[:PART_OF]->(p)", "w2c", "CONTAINS"),
    (NodeType.SESSION, "(c)-[:PART_OF]->(p)", "c2s", "CONTAINS"),
    (NodeType.CHARACTER, "(c)-[:APPEARS_IN]->(p)", "s2ch", "HAS_PARTICIPANT"),
)


class GraphRepository:
    """Builds ``GraphData`` views over the entity nodes."""

    def __init__(self, executor: QueryExecutor) -> None:
        self.executor = executor

    def _read(self, operation: str, work: Callable[[Transaction], T]) -> T:
        try:
            return self.executor.read_transaction(work)
        except CampaignGraphError:
            raise
        except Exception:
            logger.exception("repository.transaction_failed", label="graph", operation=operation, mode="read")
            raise

    # ---------------------------- Mind map ----------------------------

    def get_mind_map(self, query: GraphQuery | None = None) -> GraphData:
        """Expand up to ``query.depth`` hops around the start entity.

        Returns an empty graph when the start entity does not exist.
        """
        query = query or GraphQuery()
        labels = [node_type.label for node_type in (query.node_types or list(NodeType))]
        edge_types = [edge_type.value for edge_type in (query.edge_types or list(EdgeType))]
        joins = [JOINS[edge_type] for edge_type in edge_types if edge_type in JOINS]
        join_labels = [join.label for join in joins]
        # Crossing a join also walks its stored target relationship
        for join in joins:
            if join.target_rel not in edge_types:
                edge_types.append(join.target_rel)
        start = query.start

        if start is None:

            def work(tx: Transaction) -> tuple[list[Record], list[Record]]:
                return self._sample(tx, labels, edge_types, join_labels, query.limit)

            nodes, edges = self._read("get_mind_map", work)
        else:
            node_type, start_id = start

            def work(tx: Transaction) -> tuple[list[Record], list[Record]]:
                return self._expand(tx, node_type, start_id, query.depth, labels, edge_types, join_labels)

            nodes, edges = self._read("get_mind_map", work)

        graph = _assemble(nodes, edges, query.include_images)
        logger.debug(
            "graph.mind_map",
            start=start[0].value if start else None,
            depth=query.depth,
            nodes=len(graph.nodes),
            edges=len(graph.edges),
        )
        return graph

    def _expand(
        self,
        tx: Transaction,
        node_type: NodeType,
        start_id: str,
        depth: int,
        labels: list[str],
        edge_types: list[str],
        join_labels: list[str],
    ) -> tuple[list[Record], list[Record]]:
        rows = tx.run(
            f"""
            MATCH (x:{node_type.label} {{{node_type.id_field}: $start_id}})
            RETURN {NODE_MAP} AS node
            """,
            {"start_id": start_id},
        )
        if not rows:
            return [], []
        nodes = [rows[0]["node"]]
        edges: list[Record] = []
        # depth is an int in 1..5 after GraphQuery validation. Passing a join
        # node takes two stored relationships but counts as one hop.
        paths = tx.run(
            f"""
            MATCH path = (origin:{node_type.label} {{{node_type.id_field}: $start_id}})-[*1..{2 * int(depth)}]-(other)
            WHERE any(label IN labels(other) WHERE label IN $labels)
              AND all(x IN tail(nodes(path)) WHERE any(label IN labels(x) WHERE label IN $labels OR label IN $join_labels))
              AND all(r IN relationships(path) WHERE type(r) IN $edge_types)
              AND size(relationships(path))
                  - size([x IN nodes(path) WHERE any(label IN labels(x) WHERE label IN $join_labels)]) <= $depth
            WITH path
            LIMIT $max_paths
            RETURN [x IN nodes(path) | {NODE_MAP}] AS nodes,
                   [r IN relationships(path) | {EDGE_MAP}] AS edges
            """,
            {
                "start_id": start_id,
                "labels": labels,
                "join_labels": join_labels,
                "edge_types": edge_types,
                "depth": depth,
                "max_paths": MAX_PATHS,
            },
        )
        for path in paths:
            nodes.extend(path["nodes"])
            edges.extend(path["edges"])
        return nodes, edges

    def _sample(
        self, tx: Transaction, labels: list[str], edge_types: list[str], join_labels: list[str], limit: int
    ) -> tuple[list[Record], list[Record]]:
        rows = tx.run(
            f"""
            MATCH (x)
            WHERE any(label IN labels(x) WHERE label IN $labels)
            WITH x
            LIMIT $limit
            RETURN {NODE_MAP} AS node
            """,
            {"labels": labels, "limit": limit},
        )
        nodes = [row["node"] for row in rows]
        if not nodes:
            return [], []
        ids = [node["element_id"] for node in nodes]
        edge_rows = tx.run(
            f"""
            MATCH (a)-[r]->(b)
            WHERE elementId(a) IN $ids AND elementId(b) IN $ids AND type(r) IN $edge_types
            RETURN {EDGE_MAP} AS edge
            """,
            {"ids": ids, "edge_types": edge_types},
        )
        edges = [row["edge"] for row in edge_rows]
        if join_labels:
            joined = tx.run(
                f"""
                MATCH (a)-[owner]->(x)-[detail]->(b)
                WHERE elementId(a) IN $ids AND elementId(b) IN $ids
                  AND any(label IN labels(x) WHERE label IN $join_labels)
                  AND type(owner) IN $edge_types AND type(detail) IN $edge_types
                RETURN {NODE_MAP} AS join_node,
                       [r IN [owner, detail] | {EDGE_MAP}] AS join_edges
                """,
                {"ids": ids, "join_labels": join_labels, "edge_types": edge_types},
            )
            for row in joined:
                nodes.append(row["join_node"])
                edges.extend(row["join_edges"])
        return nodes, edges

    # ---------------------------- Hierarchy ----------------------------

    def get_hierarchy(
        self,
        world_id: str | None = None,
        campaign_id: str | None = None,
        depth: int = 3,
        include_images: bool = True,
    ) -> GraphData:
        """World -> Campaign -> Session -> Character as a strict tree.

        ``depth`` counts levels below the root: 1 stops at campaigns, 3 reaches
        characters. Starting from a campaign drops the world level. Without an
        id every world is a root.
        """
        if not 1 <= depth <= len(HIERARCHY_LEVELS):
            raise ValueError(f"depth must be between 1 and {len(HIERARCHY_LEVELS)}")

        if campaign_id is not None:
            root_type, root_filter, root_id = NodeType.CAMPAIGN, "root.campaign_id = $root_id", campaign_id
            levels = HIERARCHY_LEVELS[1 : 1 + depth]
        else:
            root_filter = "$root_id IS NULL OR root.world_id = $root_id"
            root_type, root_id = NodeType.WORLD, world_id
            levels = HIERARCHY_LEVELS[:depth]

        lines = [f"MATCH (root:{root_type.label})", f"WHERE {root_filter}"]
        returns = ["properties(root) AS level0"]
        parent = "root"
        for index, (node_type, pattern, _, _) in enumerate(levels, start=1):
            child = f"l{index}"
            lines.append(
                "OPTIONAL MATCH "
                + pattern.replace("(c)", f"({child}:{node_type.label})").replace("(p)", f"({parent})")
            )
            returns.append(f"properties({child}) AS level{index}")
            parent = child
        cypher = "\n".join(lines) + "\nRETURN " + ", ".join(returns)

        rows = self._read("get_hierarchy", lambda tx: tx.run(cypher, {"root_id": root_id}))

        kinds = [root_type, *(node_type for node_type, _, _, _ in levels)]
        prefixes = [prefix for _, _, prefix, _ in levels]
        drawn = [edge_type for _, _, _, edge_type in levels]
        nodes: dict[str, GraphNode] = {}
        edges: dict[str, GraphEdge] = {}
        for row in rows:
            for level, node_type in enumerate(kinds):
                props = row[f"level{level}"]
                if props is None:
                    break
                node = _graph_node(node_type, props, include_images)
                nodes.setdefault(node.id, node)
                if level == 0:
                    continue
                source = kinds[level - 1]
                source_id = row[f"level{level - 1}"][source.id_field]
                edge_id = f"{prefixes[level - 1]}_{source_id}_{node.id}"
                edge_type = drawn[level - 1]
                edges.setdefault(
                    edge_id,
                    GraphEdge(id=edge_id, source=source_id, target=node.id, type=edge_type, label=edge_type),
                )

        graph = GraphData(nodes=list(nodes.values()), edges=list(edges.values()))
        logger.debug("graph.hierarchy", root=root_type.value, nodes=len(graph.nodes), edges=len(graph.edges))
        return graph


def _graph_node(node_type: NodeType, props: dict[str, Any], include_images: bool) -> GraphNode:
    return GraphNode(
        id=props[node_type.id_field],
        label=props.get("name") or props.get("title") or "",
        type=node_type,
        image_url=props.get("image_url") if include_images else None,
        properties=props,
    )


def _assemble(nodes: list[Record], edges: list[Record], include_images: bool) -> GraphData:
    """Deduplicate raw node/edge maps and key them by entity id.

    Join nodes are not drawn. Each one whose owner and target were both
    reached becomes a single edge of the owner's relationship type, keyed by
    the join's own id.
    """
    by_element: dict[str, GraphNode] = {}
    joins: dict[str, tuple[JoinSpec, Record]] = {}
    for record in nodes:
        element_id = record["element_id"]
        if element_id in by_element or element_id in joins:
            continue
        join = next((JOINS_BY_LABEL[label] for label in record["labels"] if label in JOINS_BY_LABEL), None)
        if join is not None:
            joins[element_id] = (join, record["properties"])
            continue
        node_type = next((LABEL_TO_NODE_TYPE[label] for label in record["labels"] if label in LABEL_TO_NODE_TYPE), None)
        if node_type is None or node_type.id_field not in record["properties"]:
            continue
        by_element[element_id] = _graph_node(node_type, record["properties"], include_images)

    graph_edges: dict[str, GraphEdge] = {}
    owners: dict[str, str] = {}
    targets: dict[str, str] = {}
    for record in edges:
        if record["target"] in joins and record["type"] == joins[record["target"]][0].owner_rel:
            owners[record["target"]] = record["source"]
            continue
        if record["source"] in joins and record["type"] == joins[record["source"]][0].target_rel:
            targets[record["source"]] = record["target"]
            continue
        source = by_element.get(record["source"])
        target = by_element.get(record["target"])
        if source is None or target is None or record["element_id"] in graph_edges:
            continue
        graph_edges[record["element_id"]] = GraphEdge(
            id=record["element_id"],
            source=source.id,
            target=target.id,
            type=record["type"],
            label=record["type"],
            properties=record["properties"] or {},
        )

    join_edges: dict[str, GraphEdge] = {}
    for element_id, (join, props) in joins.items():
        source = by_element.get(owners.get(element_id, ""))
        target = by_element.get(targets.get(element_id, ""))
        if source is None or target is None:
            continue
        edge_id = props.get(join.key, element_id)
        join_edges.setdefault(
            edge_id,
            GraphEdge(
                id=edge_id,
                source=source.id,
                target=target.id,
                type=join.owner_rel,
                label=join.owner_rel,
                properties=props,
            ),
        )

    unique = {node.id: node for node in by_element.values()}
    return GraphData(nodes=list(unique.values()), edges=[*graph_edges.values(), *join_edges.values()])
