"""
Data models for the history store.

Network, Channel and Client stand in for the chat application's own domain
objects; the store only reads the attributes declared here.
"""

import itertools
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from .utils.time_utils import from_epoch_ms, now_utc

# Keys that never go into the stored payload: id is re-minted on retrieval,
# previews are transient, type and time have their own columns.
EXCLUDED_PAYLOAD_KEYS = frozenset({"id", "previews", "type", "time"})


@dataclass
class Network:
    """A chat network, identified by a stable uuid."""
    uuid: str
    name: str = ""


@dataclass
class Channel:
    """A channel; the display name is case-folded by the store, not here."""
    name: str


class Client:
    """
    The owner of a message store.

    Attributes:
        name: Display name, used to derive the database file name
    """

    def __init__(self, name: str, first_message_id: int = 0):
        self.name = name
        self._ids = itertools.count(first_message_id)

    def next_message_id(self) -> int:
        """Allocate the next per-client message id."""
        return next(self._ids)


@dataclass
class Message:
    """
    A chat message with an open map for every field the store does not model.

    Attributes:
        type: Message kind ("message", "action", "notice", ...)
        time: When the message was sent
        text: Message text (searched by the sqlite backend)
        id: Per-client id, assigned on delivery and never stored
        previews: Link previews, never stored
        fields: All remaining attributes ("from", "self", "highlight", ...)
        network_uuid: Originating network (search results only)
        channel_name: Originating channel (search results only)
    """
    type: str = "message"
    time: datetime = field(default_factory=now_utc)
    text: str = ""
    id: Optional[int] = None
    previews: List[Dict[str, Any]] = field(default_factory=list)
    fields: Dict[str, Any] = field(default_factory=dict)
    network_uuid: Optional[str] = None
    channel_name: Optional[str] = None

    def to_payload(self) -> Dict[str, Any]:
        """Serializable payload: text plus the open map, without excluded keys."""
        payload = {k: v for k, v in self.fields.items() if k not in EXCLUDED_PAYLOAD_KEYS}
        payload["text"] = self.text
        return payload

    @classmethod
    def from_payload(cls, payload: Dict[str, Any], time_ms: int, type: str, **extra) -> "Message":
        """
        Rebuild a message from a stored payload and its column values.

        Column values always win over anything found in the payload.
        """
        fields = {k: v for k, v in payload.items() if k not in EXCLUDED_PAYLOAD_KEYS and k != "text"}
        return cls(
            type=type,
            time=from_epoch_ms(time_ms),
            text=payload.get("text", ""),
            fields=fields,
            **extra
        )


@dataclass
class SearchQuery:
    """
    Parameters of one search page.

    last_time/last_id are the cursor returned by the previous page; leave
    them unset for the first page.
    """
    search_term: str
    network_uuid: Optional[str] = None
    channel_name: Optional[str] = None
    last_time: Optional[int] = None
    last_id: Optional[int] = None


@dataclass
class SearchResponse:
    """
    One page of search results, in chronological order.

    last_time/last_id is the cursor for the next page, or -1/-1 when the
    page was empty.
    """
    search_term: str
    target: Optional[str] = None
    network_uuid: Optional[str] = None
    last_time: int = -1
    last_id: int = -1
    results: List[Message] = field(default_factory=list)

    @classmethod
    def empty(cls, query: SearchQuery) -> "SearchResponse":
        return cls(
            search_term=query.search_term,
            target=query.channel_name,
            network_uuid=query.network_uuid
        )
