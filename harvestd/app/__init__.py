"""Application layer: ports and their concrete adapters."""
