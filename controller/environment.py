"""Environment signals for remotepad.

Adapter presence/power and permission state are owned by platform
collaborators. The state machine only reads them and asks for
permissions through permission_requester.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass
class EnvironmentSignals:
    """Flags that gate controller transitions from outside."""

    adapter_present: bool = True
    adapter_enabled: bool = True
    permissions_granted: bool = True
    permission_requester: Callable[[], None] | None = None
    permission_requests: int = 0

    def request_permissions(self) -> None:
        """Ask the permission collaborator to prompt the user."""
        self.permission_requests += 1
        logger.info("Requesting permissions")
        if self.permission_requester is not None:
            self.permission_requester()
