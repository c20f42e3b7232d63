# -*- coding: utf-8 -*-

import logging
from abc import ABC, abstractmethod
from dataclasses import asdict
from typing import Any, Dict, List, Optional

from domain.models import GroupMember, GroupSyncConfig

logger = logging.getLogger(__name__)

# timer updates closer than this to the local clock are ignored to avoid jitter
SOFT_SYNC_DRIFT = 1.5


class GroupTransport(ABC):
    """
    Network side of a group session. Implementations raise OSError
    (ConnectionError etc.) when the peer cannot be reached.
    """

    @abstractmethod
    def create(self, name: str) -> str:
        """Open a session and return its id."""

    @abstractmethod
    def join(self, session_id: str, name: str) -> None:
        ...

    @abstractmethod
    def send(self, payload: Dict[str, Any]) -> None:
        ...

    @abstractmethod
    def close(self) -> None:
        ...


class GroupService:
    """
    Group study session metadata. The role (host/member) is advisory: the
    service mirrors state but never resolves conflicts between peers.
    Transport failures land in `peer_error`; local state is left alone.
    """

    def __init__(self, transport: Optional[GroupTransport] = None):
        self.transport = transport
        self.session_id: Optional[str] = None
        self.user_name: str = ""
        self.is_host: bool = False
        self.members: List[GroupMember] = []
        self.peer_error: Optional[str] = None
        self.host_sync_config = GroupSyncConfig()
        self.client_sync_config = GroupSyncConfig()

    @property
    def active(self) -> bool:
        return self.session_id is not None

    def create_session(self, name: str, config: GroupSyncConfig) -> Optional[str]:
        if self.transport is None:
            self.peer_error = "Group sync is not available."
            return None
        try:
            session_id = self.transport.create(name)
        except OSError as e:
            logger.warning("Creating group session failed: %s", e)
            self.peer_error = "Could not create session."
            return None
        self.session_id = session_id
        self.user_name = name
        self.is_host = True
        self.host_sync_config = config
        self.members = [GroupMember(id=session_id, name=name, is_host=True)]
        self.peer_error = None
        logger.info("Hosting group session %s", session_id)
        return session_id

    def join_session(self, session_id: str, name: str, config: GroupSyncConfig) -> bool:
        if self.transport is None:
            self.peer_error = "Group sync is not available."
            return False
        try:
            self.transport.join(session_id, name)
        except OSError as e:
            logger.warning("Joining group session %s failed: %s", session_id, e)
            self.peer_error = "Connection Failed. Check ID."
            self.session_id = None
            return False
        self.session_id = session_id
        self.user_name = name
        self.is_host = False
        self.client_sync_config = config
        self.peer_error = None
        logger.info("Joined group session %s", session_id)
        return True

    def leave_session(self) -> None:
        if self.transport is not None and self.active:
            try:
                self.transport.close()
            except OSError as e:
                logger.warning("Closing group session failed: %s", e)
        self.session_id = None
        self.is_host = False
        self.members = []
        self.peer_error = None

    def disconnected(self) -> None:
        self.leave_session()
        self.peer_error = "Disconnected from Host"

    def set_members(self, members: List[GroupMember]) -> None:
        self.members = list(members)

    def update_host_sync_config(self, config: GroupSyncConfig) -> None:
        self.host_sync_config = config

    # ---- mirroring ----
    def outgoing_state(self, snapshot: Dict[str, Any]) -> Dict[str, Any]:
        return {**snapshot, "host_config": asdict(self.host_sync_config)}

    def publish(self, snapshot: Dict[str, Any]) -> None:
        if not self.active or self.transport is None:
            return
        try:
            self.transport.send({"type": "STATE_UPDATE", "state": self.outgoing_state(snapshot)})
        except OSError as e:
            logger.warning("Publishing group state failed: %s", e)
            self.peer_error = "Sync failed."

    def filter_remote_state(
        self,
        remote: Dict[str, Any],
        local_work_time: float,
        local_mode: str,
        local_started: bool,
    ) -> Dict[str, Any]:
        """
        Keep the parts of a peer's snapshot this member accepts. Timer values
        within SOFT_SYNC_DRIFT of the local clock in the same mode are dropped.
        """
        config = GroupSyncConfig() if self.is_host else self.client_sync_config
        out: Dict[str, Any] = {}

        if config.sync_settings and remote.get("settings") is not None:
            settings = dict(remote["settings"])
            settings.pop("disable_blur", None)
            out["settings"] = settings
        if config.sync_tasks and remote.get("tasks") is not None:
            out["tasks"] = remote["tasks"]
            out["categories"] = remote.get("categories") or []
        if config.sync_history and remote.get("logs") is not None:
            out["logs"] = remote["logs"]
        if config.sync_schedule:
            for key in ("schedule_breaks", "schedule_start_time"):
                if remote.get(key) is not None:
                    out[key] = remote[key]
        if config.sync_timers and "work_time" in remote:
            drift = abs(float(remote.get("work_time", 0)) - local_work_time)
            if remote.get("active_mode") != local_mode or drift > SOFT_SYNC_DRIFT or not local_started:
                out["timer"] = {
                    k: remote[k]
                    for k in ("work_time", "break_time", "active_mode", "timer_started")
                    if k in remote
                }
            if "pomodoro_count" in remote:
                out["pomodoro_count"] = remote["pomodoro_count"]

        if not self.is_host and remote.get("host_config"):
            try:
                self.host_sync_config = GroupSyncConfig(**remote["host_config"])
            except TypeError:
                logger.warning("Ignoring malformed host sync config")
        return out
