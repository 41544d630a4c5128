from enum import Enum
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ArchitectureClass(str, Enum):
    """CPU architecture reported for a machine image."""

    X86_64 = "x86_64"
    ARM64 = "arm64"
    UNSUPPORTED = "unsupported"

    @classmethod
    def from_reported(cls, value: Optional[str]) -> "ArchitectureClass":
        """Classify an architecture string as reported by EC2."""
        try:
            architecture = cls(value)
        except ValueError:
            return cls.UNSUPPORTED
        return architecture


class Cluster(BaseModel):
    """Cluster (shoot) descriptor the bastion joins."""

    name: str = Field(..., min_length=1, description="Technical cluster name")
    region: str = Field(..., min_length=1, description="AWS region of the cluster")
    provider_config: Optional[Union[str, bytes, dict[str, Any]]] = Field(
        default=None,
        description="Raw CloudProfile provider config (YAML/JSON text or decoded mapping)",
    )


class BastionRequest(BaseModel):
    """Bastion resource requested for a cluster."""

    name: str = Field(..., min_length=1, description="Bastion resource name")


class ResolvedOptions(BaseModel):
    """Provider-related information required to set up a bastion instance.

    Combines precomputed values like the instance name with the IDs of
    pre-existing resources. No IaaS resources are created to produce it.
    """

    model_config = ConfigDict(frozen=True)

    cluster_name: str
    subnet_id: str
    vpc_id: str
    bastion_security_group_name: str
    worker_security_group_name: str
    worker_security_group_id: str
    instance_name: str
    instance_type: str
    image_id: str

    # set by the reconciler once the group exists
    bastion_security_group_id: Optional[str] = None


class RegionAMIMapping(BaseModel):
    """AMI published for one region."""

    model_config = ConfigDict(populate_by_name=True)

    name: str
    ami: str
    architecture: Optional[str] = None


class MachineImageVersion(BaseModel):
    # unquoted YAML versions such as 22.04 load as numbers
    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)

    version: str
    regions: list[RegionAMIMapping] = Field(default_factory=list)


class MachineImages(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    versions: list[MachineImageVersion] = Field(default_factory=list)


class CloudProfileConfig(BaseModel):
    """AWS provider section of a CloudProfile.

    Field order of ``machine_images`` and nested lists is preserved as given.
    """

    model_config = ConfigDict(populate_by_name=True)

    api_version: Optional[str] = Field(default=None, alias="apiVersion")
    kind: str
    machine_images: list[MachineImages] = Field(
        default_factory=list, alias="machineImages"
    )

    @field_validator("kind")
    @classmethod
    def validate_kind(cls, v: str) -> str:
        if v != "CloudProfileConfig":
            raise ValueError(f"unexpected kind {v!r}, expected 'CloudProfileConfig'")
        return v


class Subnet(BaseModel):
    subnet_id: str
    vpc_id: str
    availability_zone: Optional[str] = None


class SecurityGroup(BaseModel):
    group_id: str
    group_name: str
    vpc_id: Optional[str] = None


class MachineImage(BaseModel):
    image_id: str
    architecture: Optional[str] = None
    name: Optional[str] = None


class InstanceTypeOffering(BaseModel):
    """Availability of an instance type at a location."""

    instance_type: str
    location: Optional[str] = None


class BastionOptionsRequest(BaseModel):
    """Request body for resolving bastion options."""

    cluster: Cluster
    bastion: BastionRequest
