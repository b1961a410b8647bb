"""Campaign Graph - graph persistence for tabletop RPG campaigns.

Repositories map worlds, campaigns, sessions, characters, locations, items,
powers, events, audio transcriptions and session analyses onto a Neo4j
property graph, keeping relationships and hierarchy invariants consistent.
"""

__version__ = "0.1.0"
