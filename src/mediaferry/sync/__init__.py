"""Pull, push and stream orchestration.

Architecture:
    DeviceBackend -> Puller -> StateStore -> Pusher -> RemoteBackend

Components:
- **Puller**: Copies new or changed source files into the local root
- **Pusher**: Uploads pulled files each destination has not received yet
- **Streamer**: Runs pull and push per file, optionally without keeping
  local copies

All decisions about what to transfer are made through the StateStore,
so any run can be interrupted and resumed.
"""

from mediaferry.sync.paths import (
    destination_path,
    preserve_mtime,
    relative_destination,
    staging_path,
)
from mediaferry.sync.puller import Puller, fetch_file
from mediaferry.sync.pusher import Pusher
from mediaferry.sync.streamer import Streamer
from mediaferry.sync.types import (
    NO_REACHABLE_DESTINATIONS_ERROR,
    UNREACHABLE_ERROR,
    PullResult,
    PushResult,
    StreamResult,
)

__all__ = [
    # Paths
    "destination_path",
    "preserve_mtime",
    "relative_destination",
    "staging_path",
    # Components
    "Puller",
    "Pusher",
    "Streamer",
    "fetch_file",
    # Results
    "NO_REACHABLE_DESTINATIONS_ERROR",
    "UNREACHABLE_ERROR",
    "PullResult",
    "PushResult",
    "StreamResult",
]
