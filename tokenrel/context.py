"""
Process-lifetime context owning the single live SystemState.

Handlers receive the context by reference. Load, import and reset
assign a new SystemState to `state`; every other instruction mutates
the object in place.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from .dialogs import DialogPresenter, SilentDialogPresenter
from .domain import ErrorKind, SystemState, ValidationError
from .storage.collaborators import (
    FileStore,
    KeyValueStore,
    MemoryFileStore,
    MemoryKeyValueStore,
)


@dataclass
class SystemContext:
    """The engine's state plus the collaborators it may reach."""
    kv_store: KeyValueStore = field(default_factory=MemoryKeyValueStore)
    file_store: FileStore = field(default_factory=MemoryFileStore)
    dialogs: DialogPresenter = field(default_factory=SilentDialogPresenter)
    state: Optional[SystemState] = None

    def require_state(self) -> SystemState:
        """
        Return the live state.

        Raises:
            ValidationError: If no state has been initialized (NoState)
        """
        if self.state is None:
            raise ValidationError(ErrorKind.NO_STATE, "System not initialized")
        return self.state

    def replace_state(self, state: SystemState) -> None:
        """Swap in a whole new state object."""
        self.state = state
