from dataclasses import dataclass
from typing import Any, Optional

from lambdaform.domain.errors import ConfigurationError
from lambdaform.domain.value_objects.field_policy import FieldMutability, FieldPolicy

SSH_KEY_FIELDS: dict[str, FieldPolicy] = {
    "id": FieldPolicy("id", FieldMutability.IMMUTABLE_AFTER_CREATE),
    "name": FieldPolicy(
        "name",
        FieldMutability.REPLACE_ON_CHANGE,
        required=True,
        description="SSH key name, unique within the account.",
    ),
    "public_key": FieldPolicy(
        "public_key",
        FieldMutability.REPLACE_ON_CHANGE,
        required=True,
    ),
}


@dataclass(frozen=True)
class SSHKey:
    """
    Value Object representing an SSH key registered with the provider.
    """
    id: str
    name: str
    public_key: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "public_key": self.public_key}

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "SSHKey":
        return SSHKey(
            id=data["id"],
            name=data["name"],
            public_key=data.get("public_key") or "",
        )


@dataclass(frozen=True)
class SSHKeySpec:
    """Desired SSH key: a name and the public half of the key pair."""
    name: str
    public_key: str

    def __post_init__(self) -> None:
        if not self.name:
            raise ConfigurationError("SSH key name is required", operation="validate")
        if not self.public_key or not self.public_key.strip():
            raise ConfigurationError("SSH public key is required", operation="validate")


@dataclass(frozen=True)
class SSHKeyState:
    """Tracked snapshot of a declared SSH key."""
    id: str
    name: str
    public_key: str

    @staticmethod
    def from_key(key: SSHKey) -> "SSHKeyState":
        return SSHKeyState(id=key.id, name=key.name, public_key=key.public_key)

    def declared_fields(self) -> dict[str, Optional[str]]:
        return {"name": self.name, "public_key": self.public_key}

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "public_key": self.public_key}

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "SSHKeyState":
        return SSHKeyState(
            id=data["id"], name=data["name"], public_key=data.get("public_key") or ""
        )
