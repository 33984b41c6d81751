"""AquaScore: groundwater heavy-metal pollution indices and sample store."""

__version__ = "0.1.0"
