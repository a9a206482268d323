"""AT Protocol record models.

Typed decodes of the record payloads SkyTools reads from a personal data
server. Only the shapes the resolver and URL builders need are modelled;
unknown fields are kept so that callers can still reach them.
"""

import base64
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

PROFILE_COLLECTION = "app.bsky.actor.profile"
POST_COLLECTION = "app.bsky.feed.post"
PROFILE_RKEY = "self"


class CidLink(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    link: str = Field(alias="$link")


class BlobRef(BaseModel):
    """Content-addressed pointer to binary data.

    Accepts both the current ``{"$type": "blob", "ref": {"$link": ...}}`` shape
    and the legacy ``{"cid": ...}`` shape.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    type: Optional[Literal["blob"]] = Field(default=None, alias="$type")
    ref: Optional[CidLink] = None
    legacy_cid: Optional[str] = Field(default=None, alias="cid")
    mime_type: Optional[str] = Field(default=None, alias="mimeType")
    size: Optional[int] = None

    @property
    def cid(self) -> Optional[str]:
        if self.ref is not None:
            return self.ref.link
        return self.legacy_cid


class ProfileRecord(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    type: Literal["app.bsky.actor.profile"] = Field(alias="$type")
    display_name: Optional[str] = Field(default=None, alias="displayName")
    description: Optional[str] = None
    avatar: Optional[BlobRef] = None
    banner: Optional[BlobRef] = None
    created_at: Optional[str] = Field(default=None, alias="createdAt")


class PostRecord(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    type: Literal["app.bsky.feed.post"] = Field(alias="$type")
    text: str
    created_at: str = Field(alias="createdAt")
    langs: Optional[List[str]] = None
    reply: Optional[Dict[str, Any]] = None
    embed: Optional[Dict[str, Any]] = None


class RecordResponse(BaseModel):
    """Output of com.atproto.repo.getRecord and each listRecords entry."""

    model_config = ConfigDict(extra="allow")

    uri: str
    cid: Optional[str] = None
    value: Dict[str, Any]


class ListRecordsResponse(BaseModel):
    model_config = ConfigDict(extra="allow")

    records: List[RecordResponse] = Field(default_factory=list)
    cursor: Optional[str] = None


class BlobContent(BaseModel):
    """Bytes fetched with com.atproto.sync.getBlob."""

    did: str
    cid: str
    content_type: str
    data: bytes

    @property
    def data_url(self) -> str:
        """A data: URL addressing the fetched bytes locally."""
        encoded = base64.b64encode(self.data).decode("ascii")
        return f"data:{self.content_type};base64,{encoded}"
