"""Tests for the mind map and hierarchy views."""
from __future__ import annotations

import pytest
from pydantic import ValidationError

from campaign_graph.models.graph import EdgeType, GraphData, GraphNode, GraphQuery, NodeType
from campaign_graph.repositories.graph import MAX_PATHS, GraphRepository


def node(element_id, label, **props):
    return {"element_id": element_id, "labels": [label], "properties": props}


def edge(element_id, rel_type, source, target):
    return {"element_id": element_id, "type": rel_type, "source": source, "target": target, "properties": {}}


DRIZZT = node("e1", "Character", character_id="ch1", name="Drizzt", image_url="drizzt.png")
THAW = node("e2", "Session", session_id="s1", name="The Thaw")
WULFGAR = node("e3", "Character", character_id="ch2", name="Wulfgar")
SCIMITAR_JOIN = node("e4", "CharacterItem", character_item_id="ci1", quantity=1, is_equipped=True)
ICINGDEATH = node("e5", "Item", item_id="i1", name="Icingdeath")
TWINKLE = node("e6", "Power", power_id="pw1", name="Twinkle Strike")
POWER_JOIN = node("e7", "CharacterPower", character_power_id="cp1", proficiency_level=3)


class TestMindMap:
    """Tests for get_mind_map."""

    def test_paths_are_deduplicated(self, executor):
        executor.on("AS node", [{"node": DRIZZT}])
        executor.on(
            "AS edges",
            [
                {"nodes": [DRIZZT, THAW], "edges": [edge("r1", "APPEARS_IN", "e1", "e2")]},
                {
                    "nodes": [DRIZZT, THAW, WULFGAR],
                    "edges": [edge("r1", "APPEARS_IN", "e1", "e2"), edge("r2", "APPEARS_IN", "e3", "e2")],
                },
            ],
        )

        graph = GraphRepository(executor).get_mind_map(GraphQuery(character_id="ch1", depth=2))

        assert [n.id for n in graph.nodes] == ["ch1", "s1", "ch2"]
        assert [(e.source, e.target) for e in graph.edges] == [("ch1", "s1"), ("ch2", "s1")]
        assert graph.nodes[0].image_url == "drizzt.png"

        paths = executor.queries("AS edges")[0]
        assert "-[*1..4]-(other)" in paths.query
        assert paths.params["depth"] == 2
        assert paths.params["max_paths"] == MAX_PATHS
        assert {edge_type.value for edge_type in EdgeType} < set(paths.params["edge_types"])
        assert {"POWER_DETAILS", "ITEM_DETAILS", "EVENT_DETAILS"} < set(paths.params["edge_types"])
        assert set(paths.params["join_labels"]) == {
            "CharacterPower",
            "CharacterItem",
            "LocationItem",
            "EventCharacter",
            "EventItem",
        }
        assert executor.transactions == ["read"]

    def test_join_node_becomes_one_edge(self, executor):
        executor.on("AS node", [{"node": DRIZZT}])
        executor.on(
            "AS edges",
            [
                {
                    "nodes": [DRIZZT, SCIMITAR_JOIN, ICINGDEATH],
                    "edges": [edge("r8", "HAS_ITEM", "e1", "e4"), edge("r9", "ITEM_DETAILS", "e4", "e5")],
                }
            ],
        )

        graph = GraphRepository(executor).get_mind_map(GraphQuery(character_id="ch1", depth=1))

        assert [n.id for n in graph.nodes] == ["ch1", "i1"]
        assert len(graph.edges) == 1
        held = graph.edges[0]
        assert (held.id, held.source, held.target, held.type) == ("ci1", "ch1", "i1", "HAS_ITEM")
        assert held.properties["is_equipped"] is True

    def test_join_reached_twice_is_drawn_once(self, executor):
        executor.on("AS node", [{"node": DRIZZT}])
        path = {
            "nodes": [DRIZZT, SCIMITAR_JOIN, ICINGDEATH],
            "edges": [edge("r8", "HAS_ITEM", "e1", "e4"), edge("r9", "ITEM_DETAILS", "e4", "e5")],
        }
        executor.on("AS edges", [path, path])

        graph = GraphRepository(executor).get_mind_map(GraphQuery(character_id="ch1"))

        assert [e.id for e in graph.edges] == ["ci1"]

    def test_power_start_reaches_its_characters(self, executor):
        executor.on("AS node", [{"node": TWINKLE}])
        executor.on(
            "AS edges",
            [
                {
                    "nodes": [TWINKLE, POWER_JOIN, DRIZZT],
                    "edges": [edge("r6", "POWER_DETAILS", "e7", "e6"), edge("r7", "HAS_POWER", "e1", "e7")],
                }
            ],
        )

        graph = GraphRepository(executor).get_mind_map(GraphQuery(power_id="pw1", depth=1))

        assert [n.id for n in graph.nodes] == ["pw1", "ch1"]
        assert [(e.id, e.source, e.target, e.type) for e in graph.edges] == [("cp1", "ch1", "pw1", "HAS_POWER")]

    def test_incomplete_join_is_not_drawn(self, executor):
        executor.on("AS node", [{"node": DRIZZT}])
        executor.on(
            "AS edges",
            [{"nodes": [DRIZZT, SCIMITAR_JOIN], "edges": [edge("r8", "HAS_ITEM", "e1", "e4")]}],
        )

        graph = GraphRepository(executor).get_mind_map(GraphQuery(character_id="ch1"))

        assert [n.id for n in graph.nodes] == ["ch1"]
        assert graph.edges == []

    def test_join_edge_type_walks_its_join(self, executor):
        executor.on("AS node", [{"node": DRIZZT}])
        executor.on("AS edges", [])

        GraphRepository(executor).get_mind_map(GraphQuery(character_id="ch1", edge_types=[EdgeType.HAS_ITEM]))

        paths = executor.queries("AS edges")[0]
        assert paths.params["edge_types"] == ["HAS_ITEM", "ITEM_DETAILS"]
        assert paths.params["join_labels"] == ["CharacterItem"]
    def test_missing_start_gives_empty_graph(self, executor):
        graph = GraphRepository(executor).get_mind_map(GraphQuery(location_id="nowhere"))

        assert graph == GraphData()
        assert len(executor.calls) == 1

    def test_type_filters_are_passed_through(self, executor):
        executor.on("AS node", [{"node": DRIZZT}])
        executor.on("AS edges", [])

        GraphRepository(executor).get_mind_map(
            GraphQuery(
                character_id="ch1",
                node_types=[NodeType.SESSION],
                edge_types=[EdgeType.APPEARS_IN],
                include_images=False,
            )
        )

        paths = executor.queries("AS edges")[0]
        assert paths.params["labels"] == ["Session"]
        assert paths.params["edge_types"] == ["APPEARS_IN"]
        assert paths.params["join_labels"] == []

    def test_without_start_samples_graph(self, executor):
        executor.on("AS node", [{"node": DRIZZT}, {"node": THAW}])
        executor.on("AS edge", [{"edge": edge("r1", "APPEARS_IN", "e1", "e2")}])

        graph = GraphRepository(executor).get_mind_map(GraphQuery(limit=10))

        sample, edges, joins = executor.calls
        assert "WITH x LIMIT $limit" in sample.query
        assert sample.params["limit"] == 10
        assert edges.params["ids"] == ["e1", "e2"]
        assert joins.params["ids"] == ["e1", "e2"]
        assert [e.type for e in graph.edges] == ["APPEARS_IN"]

    def test_sample_collapses_joins_between_sampled_nodes(self, executor):
        executor.on("AS node", [{"node": DRIZZT}, {"node": ICINGDEATH}])
        executor.on(
            "AS join_node",
            [
                {
                    "join_node": SCIMITAR_JOIN,
                    "join_edges": [edge("r8", "HAS_ITEM", "e1", "e4"), edge("r9", "ITEM_DETAILS", "e4", "e5")],
                }
            ],
        )

        graph = GraphRepository(executor).get_mind_map(GraphQuery())

        assert [n.id for n in graph.nodes] == ["ch1", "i1"]
        assert [(e.id, e.source, e.target, e.type) for e in graph.edges] == [("ci1", "ch1", "i1", "HAS_ITEM")]

    def test_sample_without_join_types_skips_join_query(self, executor):
        executor.on("AS node", [{"node": DRIZZT}])

        GraphRepository(executor).get_mind_map(GraphQuery(edge_types=[EdgeType.RELATES_TO]))

        assert len(executor.calls) == 2
        assert not executor.queries("AS join_node")

    def test_images_can_be_left_out(self, executor):
        executor.on("AS node", [{"node": DRIZZT}])

        graph = GraphRepository(executor).get_mind_map(GraphQuery(include_images=False))

        assert graph.nodes[0].image_url is None


class TestGraphQuery:
    """Tests for GraphQuery validation."""

    def test_single_start_only(self):
        with pytest.raises(ValidationError, match="at most one"):
            GraphQuery(world_id="w1", character_id="ch1")

    @pytest.mark.parametrize("depth", [0, 6])
    def test_depth_bounds(self, depth):
        with pytest.raises(ValidationError):
            GraphQuery(character_id="ch1", depth=depth)

    def test_start(self):
        assert GraphQuery(event_id="ev1").start == (NodeType.EVENT, "ev1")
        assert GraphQuery().start is None


def hierarchy_row(world, campaign=None, session=None, character=None):
    def props(key, value):
        return {key: value, "name": value.title()} if value else None

    return {
        "level0": props("world_id", world),
        "level1": props("campaign_id", campaign),
        "level2": props("session_id", session),
        "level3": props("character_id", character),
    }


class TestHierarchy:
    """Tests for get_hierarchy."""

    def test_tree_is_deduplicated(self, executor):
        executor.on(
            "AS level0",
            [
                hierarchy_row("w1", "c1", "s1", "ch1"),
                hierarchy_row("w1", "c1", "s1", "ch2"),
                hierarchy_row("w1", "c1", "s2", "ch1"),
                hierarchy_row("w1", "c2"),
            ],
        )

        graph = GraphRepository(executor).get_hierarchy(world_id="w1")

        assert [n.id for n in graph.nodes] == ["w1", "c1", "s1", "ch1", "ch2", "s2", "c2"]
        assert [e.id for e in graph.edges] == [
            "w2c_w1_c1",
            "c2s_c1_s1",
            "s2ch_s1_ch1",
            "s2ch_s1_ch2",
            "c2s_c1_s2",
            "s2ch_s2_ch1",
            "w2c_w1_c2",
        ]
        types = {e.id.split("_")[0]: e.type for e in graph.edges}
        assert types == {"w2c": "CONTAINS", "c2s": "CONTAINS", "s2ch": "HAS_PARTICIPANT"}
        assert executor.calls[0].params == {"root_id": "w1"}

    def test_depth_one_stops_at_campaigns(self, executor):
        GraphRepository(executor).get_hierarchy(depth=1)

        query = executor.calls[0].query
        assert "(l1:Campaign)-[:PART_OF]->(root)" in query
        assert "Session" not in query
        assert executor.calls[0].params == {"root_id": None}

    def test_campaign_root(self, executor):
        executor.on(
            "AS level0",
            [{"level0": {"campaign_id": "c1", "name": "Icewind Dale"}, "level1": {"session_id": "s1"}, "level2": None}],
        )

        graph = GraphRepository(executor).get_hierarchy(campaign_id="c1", depth=2)

        query = executor.calls[0].query
        assert "MATCH (root:Campaign) WHERE root.campaign_id = $root_id" in query
        assert "(l2:Character)-[:APPEARS_IN]->(l1)" in query
        assert [n.type for n in graph.nodes] == [NodeType.CAMPAIGN, NodeType.SESSION]
        assert [e.id for e in graph.edges] == ["c2s_c1_s1"]

    @pytest.mark.parametrize("depth", [0, 4])
    def test_depth_out_of_range(self, executor, depth):
        with pytest.raises(ValueError):
            GraphRepository(executor).get_hierarchy(depth=depth)
        assert executor.calls == []


def test_json_uses_image_url_alias():
    data = GraphData(nodes=[GraphNode(id="ch1", label="Drizzt", type=NodeType.CHARACTER, image_url="d.png")])

    payload = data.to_json_dict()

    assert payload["nodes"][0]["imageUrl"] == "d.png"
    assert payload["nodes"][0]["type"] == "character"
    assert "image_url" not in payload["nodes"][0]
