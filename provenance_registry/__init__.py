"""
Provenance Registry

Certificates of authenticity for artworks: posted by artists, collectors and
galleries, claimed by artists and verified by the poster.
"""

import importlib.metadata

__version__ = importlib.metadata.version("provenance-registry")
