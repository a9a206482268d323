"""AT Protocol identity models.

DID documents as served by the PLC directory or a did:web host, and the
result of resolving a subject.
"""

from typing import List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

PDS_SERVICE_TYPE = "AtprotoPersonalDataServer"


class Service(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: Optional[str] = None
    type: Optional[str] = None
    service_endpoint: Optional[str] = Field(default=None, alias="serviceEndpoint")


class DidDocument(BaseModel):
    """DID document with the fields SkyTools reads.

    The document id is read from the W3C ``id`` key, or from ``did`` for
    directories that still answer with it.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: Optional[str] = Field(default=None, validation_alias=AliasChoices("id", "did"))
    also_known_as: List[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("alsoKnownAs", "also_known_as"),
    )
    service: List[Service] = Field(default_factory=list)


class ResolutionResult(BaseModel):
    """Resolved AT Protocol subject.

    Built fresh for each resolution call.
    """

    did: str
    handle: Optional[str] = None
    pds: Optional[str] = None
