from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Literal, Mapping, Union

from fedsign.common.errors import UnsupportedRoomVersion

EventIdFormat = Literal["server_assigned", "base64", "urlsafe_base64"]


@dataclass(frozen=True)
class RoomVersion:
    identifier: str
    event_id_format: EventIdFormat
    # m.room.aliases keeps its "aliases" key through redaction
    keeps_aliases: bool = False
    # restricted joins: join_rules "allow" and the authorising server's signature
    restricted_join_rule: bool = False
    # m.room.member keeps "join_authorised_via_users_server"
    keeps_authorising_user: bool = False
    updated_redaction_rules: bool = False

    @property
    def server_assigned_event_ids(self) -> bool:
        return self.event_id_format == "server_assigned"


V1 = RoomVersion("1", "server_assigned", keeps_aliases=True)
V2 = RoomVersion("2", "server_assigned", keeps_aliases=True)
V3 = RoomVersion("3", "base64", keeps_aliases=True)
V4 = RoomVersion("4", "urlsafe_base64", keeps_aliases=True)
V5 = RoomVersion("5", "urlsafe_base64", keeps_aliases=True)
V6 = RoomVersion("6", "urlsafe_base64")
V7 = RoomVersion("7", "urlsafe_base64")
V8 = RoomVersion("8", "urlsafe_base64", restricted_join_rule=True)
V9 = RoomVersion("9", "urlsafe_base64", restricted_join_rule=True, keeps_authorising_user=True)
V10 = RoomVersion("10", "urlsafe_base64", restricted_join_rule=True, keeps_authorising_user=True)
V11 = RoomVersion(
    "11",
    "urlsafe_base64",
    restricted_join_rule=True,
    keeps_authorising_user=True,
    updated_redaction_rules=True,
)

ROOM_VERSIONS: Mapping[str, RoomVersion] = MappingProxyType(
    {v.identifier: v for v in (V1, V2, V3, V4, V5, V6, V7, V8, V9, V10, V11)}
)


def get_room_version(room_version: Union[RoomVersion, str]) -> RoomVersion:
    if isinstance(room_version, RoomVersion):
        return room_version
    try:
        return ROOM_VERSIONS[room_version]
    except (KeyError, TypeError) as exc:
        raise UnsupportedRoomVersion(
            "unsupported_room_version", details={"room_version": repr(room_version)}
        ) from exc


__all__ = ["EventIdFormat", "ROOM_VERSIONS", "RoomVersion", "get_room_version"]
