"""
=============================================================================
HANDLERS MODULE
=============================================================================

What happens to a request once its line has been parsed:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   PathResolver.resolve(path)                                        │
    │        │                                                             │
    │        ├── None ───────────────────────► ErrorResponder (404)       │
    │        │                                                             │
    │        ├── executable OR query ────────► CGIHandler                 │
    │        │                                   ├── 200 + program stdout  │
    │        │                                   ├── 400 bad POST length   │
    │        │                                   └── 500 spawn/exit fail   │
    │        │                                                             │
    │        └── anything else ──────────────► StaticFileHandler (200)    │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .resolver import PathResolver, ResolvedTarget, is_executable
from .static import StaticFileHandler
from .cgi import CGIHandler, cgi_environment
from .errors import ErrorResponder

__all__ = [
    "PathResolver",
    "ResolvedTarget",
    "is_executable",
    "StaticFileHandler",
    "CGIHandler",
    "cgi_environment",
    "ErrorResponder",
]
