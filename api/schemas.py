"""Pydantic schemas for certificate records and API request/response validation."""

import json
from collections.abc import Mapping
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from core.errors import DecodeError


class _WireModel(BaseModel):
    """Base for camelCase wire models; unknown keys are ignored."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class Proof(_WireModel):
    type: str = ""
    created: datetime | None = None
    verification_method: str = Field("", alias="verificationMethod")
    proof_purpose: str = Field("", alias="proofPurpose")
    jws: str = ""


class Pledge(_WireModel):
    cause_name: str = Field("", alias="causeName")
    type: str = ""


class CredentialSubject(_WireModel):
    type: str = ""
    name: str = Field("", alias="donorName")
    id: str = ""
    pledge: Pledge = Field(default_factory=Pledge)


class Evidence(_WireModel):
    evidence_document: str = Field("", alias="evidenceDocument")
    ref_id: str = Field("", alias="refId")
    subject_presence: str = Field("", alias="subjectPresence")
    type: list[str] = Field(default_factory=list)
    verifier: str = ""


class CredentialRecord(_WireModel):
    """A decoded certificate credential.

    Built once per request from the request's certificate JSON. Everything
    but ``qr_code`` is treated as read-only afterwards; ``qr_code`` holds
    the rendered QR PNG and is set by the render pipeline, never by input.
    """

    context: list[str] = Field(default_factory=list, alias="@context")
    type: list[str] = Field(default_factory=list)
    issuance_date: str = Field("", alias="issuanceDate")
    non_transferable: str | None = Field(None, alias="nonTransferable")
    issuer: str = ""
    id: str | None = None
    proof: Proof = Field(default_factory=Proof)
    credential_subject: CredentialSubject = Field(
        default_factory=CredentialSubject, alias="credentialSubject"
    )
    evidence: list[Evidence] = Field(default_factory=list)

    qr_code: bytes | None = Field(None, exclude=True)

    @field_validator("qr_code", mode="before")
    @classmethod
    def _ignore_wire_qr_code(cls, value: Any) -> None:
        return None

    @classmethod
    def from_json(cls, text: str) -> "CredentialRecord":
        """Decode certificate JSON.

        Raises:
            DecodeError: If the text is not JSON or does not match the
                credential shape.
        """
        try:
            return cls.model_validate_json(text)
        except ValidationError as e:
            raise DecodeError(f"Invalid certificate data: {e}") from e

    def template_fields(self) -> dict[str, Any]:
        """Attribute namespace used by placement templates."""
        return {name: getattr(self, name) for name in type(self).model_fields}


def decode_certificate_mapping(text: str) -> dict[str, Any]:
    """Decode certificate JSON into a plain mapping (markup rendering path)."""
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise DecodeError(f"Invalid certificate JSON: {e}") from e
    if not isinstance(data, dict):
        raise DecodeError(
            f"Certificate JSON must be an object, got {type(data).__name__}"
        )
    return data


class EntityFields:
    """Typed read access to the free-form entity mapping of a request.

    Lookups raise ``DecodeError`` naming the full key path instead of
    failing on a missing key or a value of the wrong type.
    """

    def __init__(self, data: Mapping[str, Any], path: str = "entity"):
        self._data = data
        self._path = path

    def _lookup(self, key: str) -> Any:
        try:
            return self._data[key]
        except KeyError:
            raise DecodeError(f"Missing key {self._path}.{key}") from None

    def get_map(self, key: str) -> "EntityFields":
        value = self._lookup(key)
        if not isinstance(value, Mapping):
            raise DecodeError(
                f"Expected object at {self._path}.{key}, got {type(value).__name__}"
            )
        return EntityFields(value, f"{self._path}.{key}")

    def get_value(self, key: str) -> str:
        value = self._lookup(key)
        if not isinstance(value, str):
            raise DecodeError(
                f"Expected string at {self._path}.{key}, got {type(value).__name__}"
            )
        return value

    def to_dict(self) -> dict[str, Any]:
        return dict(self._data)


class PledgeEntity(_WireModel):
    """Entity payload of a ``Pledge`` certificate."""

    osid: str = ""
    pledge: Pledge = Field(default_factory=Pledge)


# Known entity schemas, keyed by the request's entityName
ENTITY_SCHEMAS: dict[str, type[_WireModel]] = {"Pledge": PledgeEntity}


class CertificateRequest(BaseModel):
    """Request to render one certificate."""

    model_config = ConfigDict(populate_by_name=True)

    certificate: str = Field(min_length=1)
    entity: dict[str, Any] = Field(default_factory=dict)
    entity_id: str = Field(alias="entityId")
    entity_name: str = Field(alias="entityName")
    template_url: str = Field("", alias="templateUrl")

    @property
    def entity_fields(self) -> EntityFields:
        return EntityFields(self.entity)

    def entity_mapping(self) -> dict[str, Any]:
        """Entity data checked against the schema registered for ``entity_name``.

        Entity names without a registered schema pass through unchanged.

        Raises:
            DecodeError: If the entity does not match its registered schema.
        """
        schema = ENTITY_SCHEMAS.get(self.entity_name)
        if schema is None:
            return self.entity_fields.to_dict()
        try:
            entity = schema.model_validate(self.entity)
        except ValidationError as e:
            raise DecodeError(f"Invalid {self.entity_name} entity: {e}") from e
        return entity.model_dump(by_alias=True)


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    service: str


class ErrorResponse(BaseModel):
    """Error body returned for failed renders."""

    detail: str
    error: str
