"""mint-relay: encrypted wallet custody and mint transaction dispatch."""

__version__ = "0.1.0"
