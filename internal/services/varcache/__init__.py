"""
VarCache service package

Process-wide wiring of the lib.varcache facade to the configured storage backend.
"""

from .service import VarCacheService

__all__ = ["VarCacheService"]
