import os
from typing import Callable, Iterable

import pytest

# Keep boto3 away from real credentials and regions during tests
os.environ.setdefault("AWS_ACCESS_KEY_ID", "testing")
os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "testing")
os.environ.setdefault("AWS_DEFAULT_REGION", "eu-1")

from bastion.models import InstanceTypeOffering, MachineImage, SecurityGroup, Subnet
from bastion.services.ec2_query import Ec2Query


class FakeEc2Query(Ec2Query):
    """In-memory EC2 lookups that record every call."""

    def __init__(
        self,
        subnets: dict[str, list[Subnet]] | None = None,
        security_groups: dict[tuple[str, str], list[SecurityGroup]] | None = None,
        images: dict[str, list[MachineImage]] | None = None,
        offerings: dict[str, list[str]] | None = None,
        instance_types: dict[str, list[str]] | None = None,
        errors: dict[str, Exception] | None = None,
    ):
        self.subnets = subnets or {}
        self.security_groups = security_groups or {}
        self.images = images or {}
        self.offerings = offerings or {}
        # architecture -> types in provider response order
        self.instance_types = instance_types or {}
        self.errors = errors or {}
        # operation -> callable run while the call is in flight
        self.hooks: dict[str, Callable[[], None]] = {}
        self.calls: list[tuple] = []

    def _record(self, operation: str, *args) -> None:
        self.calls.append((operation, *args))
        if operation in self.hooks:
            self.hooks[operation]()
        if operation in self.errors:
            raise self.errors[operation]

    def operations(self) -> list[str]:
        return [call[0] for call in self.calls]

    def find_subnets_by_name(self, name: str) -> list[Subnet]:
        self._record("find_subnets_by_name", name)
        return self.subnets.get(name, [])

    def find_security_groups(self, vpc_id: str, group_name: str) -> list[SecurityGroup]:
        self._record("find_security_groups", vpc_id, group_name)
        return self.security_groups.get((vpc_id, group_name), [])

    def describe_images(self, image_id: str) -> list[MachineImage]:
        self._record("describe_images", image_id)
        return self.images.get(image_id, [])

    def list_instance_type_offerings(self, type_filter: str) -> list[InstanceTypeOffering]:
        self._record("list_instance_type_offerings", type_filter)
        return [
            InstanceTypeOffering(instance_type=t, location="eu-1")
            for t in self.offerings.get(type_filter, [])
        ]

    def describe_instance_types(
        self, instance_types: Iterable[str], architecture: str
    ) -> list[str]:
        requested = set(instance_types)
        self._record("describe_instance_types", frozenset(requested), architecture)
        return [t for t in self.instance_types.get(architecture, []) if t in requested]


CLOUD_PROFILE_CONFIG = """\
apiVersion: aws.provider.extensions.gardener.cloud/v1alpha1
kind: CloudProfileConfig
machineImages:
- name: gardenlinux
  versions:
  - version: 1312.3.0
    regions:
    - name: eu-1
      ami: ami-123
      architecture: amd64
"""


@pytest.fixture
def fake_ec2_query_factory():
    return FakeEc2Query


@pytest.fixture
def cloud_profile_config_yaml() -> str:
    return CLOUD_PROFILE_CONFIG


@pytest.fixture
def shoot_ec2_query() -> FakeEc2Query:
    """Provider state for cluster ``shoot-x`` in region ``eu-1``."""
    return FakeEc2Query(
        subnets={
            "shoot-x-public-utility-z0": [
                Subnet(subnet_id="subnet-1", vpc_id="vpc-1", availability_zone="eu-1a")
            ]
        },
        security_groups={
            ("vpc-1", "shoot-x-nodes"): [
                SecurityGroup(group_id="sg-1", group_name="shoot-x-nodes", vpc_id="vpc-1")
            ]
        },
        images={"ami-123": [MachineImage(image_id="ami-123", architecture="x86_64")]},
        offerings={"t2.nano": ["t2.nano"]},
    )
