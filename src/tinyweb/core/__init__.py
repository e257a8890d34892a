"""
=============================================================================
CORE SERVER COMPONENTS
=============================================================================

The networking and concurrency plumbing:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                         SOCKET SERVER                                │
    │  • Binds the listening socket and runs the accept() loop            │
    │  • Never performs request I/O itself                                 │
    └─────────────────────────────────────────────────────────────────────┘
                                    │
                                    │ one Task per connection
                                    ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │                          THREAD POOL                                 │
    │  • Fixed number of worker threads, one shared unbounded queue       │
    │  • Each task runs exactly once, on exactly one worker               │
    └─────────────────────────────────────────────────────────────────────┘
                                    │
                                    │ worker owns the connection
                                    ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │                          CONNECTION                                  │
    │  • Buffered reader/writer over the client socket                    │
    │  • Closed when the task ends, success or failure                    │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .socket_server import SocketServer
from .connection import Connection, ConnectionState
from .thread_pool import ThreadPool, Task

__all__ = [
    "SocketServer",     # Accept loop
    "Connection",       # Client socket wrapper
    "ConnectionState",  # Connection lifecycle states
    "ThreadPool",       # Fixed-size worker pool
    "Task",             # One deferred unit of work
]
