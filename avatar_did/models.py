from enum import Enum
from typing import Dict, List, Optional, Tuple

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from .config import NetworkNamespace


class PublicKeyPurpose(str, Enum):
    GENERAL = "general"
    AUTH = "auth"
    AGREEMENT = "agreement"
    ASSERTION = "assertion"
    DELEGATION = "delegation"
    INVOCATION = "invocation"

    @classmethod
    def _missing_(cls, value):
        # Long-form names used by DID Core documents.
        aliases = {
            "authentication": cls.AUTH,
            "keyagreement": cls.AGREEMENT,
            "assertionmethod": cls.ASSERTION,
            "capabilitydelegation": cls.DELEGATION,
            "capabilityinvocation": cls.INVOCATION,
        }
        if isinstance(value, str):
            return aliases.get(value.lower())
        return None


class OperationType(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    RECOVER = "recover"
    DEACTIVATE = "deactivate"


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)


class VerificationMethodModel(_Frozen):
    id: str = Field(min_length=1)
    type: str
    public_key_base58: str = Field(alias="publicKeyBase58")


class PublicKeyModel(VerificationMethodModel):
    purpose: Tuple[PublicKeyPurpose, ...] = Field(min_length=1)


class Operation(VerificationMethodModel):
    """Key material allowed to update the DID document."""


class Recovery(VerificationMethodModel):
    """Key material allowed to recover the DID document."""


class ServiceEndpointModel(_Frozen):
    id: str = Field(min_length=1)
    type: str
    endpoint: str = Field(min_length=1)


def _unique_key_ids(keys):
    ids = [key.id for key in keys]
    if len(ids) != len(set(ids)):
        raise ValueError("public key ids must be unique within a DID document")
    return keys


class DidStateModel(BaseModel):
    """Shape of a DID state document as it is persisted and exchanged."""

    model_config = ConfigDict(populate_by_name=True)

    did: str = Field(min_length=1, validation_alias=AliasChoices("did", "did_tyronZIL"))
    public_keys: List[PublicKeyModel] = Field(
        default_factory=list,
        validation_alias=AliasChoices("publicKeys", "publicKey", "public_keys"),
        serialization_alias="publicKeys",
    )
    operation: Optional[Operation] = None
    recovery: Optional[Recovery] = None
    service: Optional[List[ServiceEndpointModel]] = None
    last_transaction: Optional[int] = Field(
        default=None,
        ge=0,
        validation_alias=AliasChoices("lastTransaction", "last_transaction"),
        serialization_alias="lastTransaction",
    )

    @field_validator("public_keys")
    @classmethod
    def keys_unique(cls, value):
        return _unique_key_ids(value)


class DidOperation(BaseModel):
    """A confirmed on-chain operation to fold into the current DID state."""

    model_config = ConfigDict(populate_by_name=True)

    type: OperationType
    transaction: int = Field(ge=0)
    public_keys: Optional[List[PublicKeyModel]] = Field(default=None, alias="publicKeys")
    operation: Optional[Operation] = None
    recovery: Optional[Recovery] = None
    service: Optional[List[ServiceEndpointModel]] = None

    @field_validator("public_keys")
    @classmethod
    def keys_unique(cls, value):
        if value is None:
            return value
        return _unique_key_ids(value)


class PublicKeyInput(BaseModel):
    id: str
    purpose: List[PublicKeyPurpose]


class ServiceEndpointInput(BaseModel):
    id: str
    type: str = "website"
    endpoint: str


class PrivateKeys(BaseModel):
    private_keys: Optional[List[str]] = Field(default=None, alias="privateKeys")
    update_private_key: Optional[str] = Field(default=None, alias="updatePrivateKey")
    recovery_private_key: Optional[str] = Field(default=None, alias="recoveryPrivateKey")

    model_config = ConfigDict(populate_by_name=True)


class CliInputModel(BaseModel):
    network: NetworkNamespace
    public_key_input: List[PublicKeyInput]
    service: List[ServiceEndpointInput]


class ResolveResponse(BaseModel):
    domain: str
    network: NetworkNamespace
    address: str


class AppInfo(BaseModel):
    zil_mode: str
    default_network: NetworkNamespace
    dns_field: str
    init_addresses: Dict[str, str]
