"""Memory for coding agents: drawer store, knowledge graph and the AAAK notation."""

__version__ = "0.3.1"