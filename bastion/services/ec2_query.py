import logging
import threading
from abc import ABC, abstractmethod
from typing import Iterable, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from bastion.errors import ProviderQueryFailedError, ResolutionCancelledError
from bastion.models import InstanceTypeOffering, MachineImage, SecurityGroup, Subnet

logger = logging.getLogger(__name__)


def check_cancelled(cancelled: Optional[threading.Event], operation: str) -> None:
    """Refuse to start ``operation`` once the caller has cancelled."""
    if cancelled is not None and cancelled.is_set():
        raise ResolutionCancelledError(operation)


class Ec2Query(ABC):
    """Read-only EC2 lookups needed to resolve bastion options."""

    @abstractmethod
    def find_subnets_by_name(self, name: str) -> list[Subnet]:
        """List subnets whose ``Name`` tag equals ``name``."""
        pass

    @abstractmethod
    def find_security_groups(self, vpc_id: str, group_name: str) -> list[SecurityGroup]:
        """List security groups named ``group_name`` inside ``vpc_id``."""
        pass

    @abstractmethod
    def describe_images(self, image_id: str) -> list[MachineImage]:
        """Describe the image with the given ID."""
        pass

    @abstractmethod
    def list_instance_type_offerings(self, type_filter: str) -> list[InstanceTypeOffering]:
        """List regional offerings whose type matches ``type_filter`` (wildcards allowed)."""
        pass

    @abstractmethod
    def describe_instance_types(
        self, instance_types: Iterable[str], architecture: str
    ) -> list[str]:
        """Return the given types that support ``architecture``, in provider order."""
        pass


class Boto3Ec2Query(Ec2Query):
    """EC2 lookups backed by a boto3 client (default credential chain)."""

    def __init__(
        self,
        region: str,
        endpoint_url: Optional[str] = None,
        client=None,
    ):
        self.region = region
        self._client = client
        self._endpoint_url = endpoint_url

    @property
    def client(self):
        if self._client is None:
            self._client = boto3.client(
                "ec2", region_name=self.region, endpoint_url=self._endpoint_url
            )
        return self._client

    def _error(self, operation: str, target: str, e: Exception) -> ProviderQueryFailedError:
        return ProviderQueryFailedError(operation, str(e), target=target, region=self.region)

    def _call(self, operation: str, method: str, target: str, **kwargs) -> dict:
        try:
            return getattr(self.client, method)(**kwargs)
        except (ClientError, BotoCoreError) as e:
            raise self._error(operation, target, e) from e

    def find_subnets_by_name(self, name: str) -> list[Subnet]:
        response = self._call(
            "DescribeSubnets",
            "describe_subnets",
            f"subnet {name!r}",
            Filters=[{"Name": "tag:Name", "Values": [name]}],
        )
        return [
            Subnet(
                subnet_id=s["SubnetId"],
                vpc_id=s["VpcId"],
                availability_zone=s.get("AvailabilityZone"),
            )
            for s in response.get("Subnets", [])
        ]

    def find_security_groups(self, vpc_id: str, group_name: str) -> list[SecurityGroup]:
        response = self._call(
            "DescribeSecurityGroups",
            "describe_security_groups",
            f"security group {group_name!r} in vpc {vpc_id}",
            Filters=[
                {"Name": "group-name", "Values": [group_name]},
                {"Name": "vpc-id", "Values": [vpc_id]},
            ],
        )
        return [
            SecurityGroup(
                group_id=sg["GroupId"],
                group_name=sg["GroupName"],
                vpc_id=sg.get("VpcId"),
            )
            for sg in response.get("SecurityGroups", [])
        ]

    def describe_images(self, image_id: str) -> list[MachineImage]:
        response = self._call(
            "DescribeImages",
            "describe_images",
            f"image {image_id!r}",
            ImageIds=[image_id],
        )
        return [
            MachineImage(
                image_id=image["ImageId"],
                architecture=image.get("Architecture"),
                name=image.get("Name"),
            )
            for image in response.get("Images", [])
        ]

    def list_instance_type_offerings(self, type_filter: str) -> list[InstanceTypeOffering]:
        paginator = self.client.get_paginator("describe_instance_type_offerings")
        offerings: list[InstanceTypeOffering] = []
        try:
            for page in paginator.paginate(
                Filters=[{"Name": "instance-type", "Values": [type_filter]}]
            ):
                offerings.extend(
                    InstanceTypeOffering(
                        instance_type=o["InstanceType"],
                        location=o.get("Location"),
                    )
                    for o in page.get("InstanceTypeOfferings", [])
                )
        except (ClientError, BotoCoreError) as e:
            raise self._error(
                "DescribeInstanceTypeOfferings", f"instance-type {type_filter}", e
            ) from e

        logger.debug(
            "Found %d offerings for %s in %s", len(offerings), type_filter, self.region
        )
        return offerings

    def describe_instance_types(
        self, instance_types: Iterable[str], architecture: str
    ) -> list[str]:
        instance_types = list(instance_types)
        response = self._call(
            "DescribeInstanceTypes",
            "describe_instance_types",
            f"architecture {architecture} among {sorted(instance_types)}",
            InstanceTypes=instance_types,
            Filters=[
                {
                    "Name": "processor-info.supported-architecture",
                    "Values": [architecture],
                }
            ],
        )
        return [t["InstanceType"] for t in response.get("InstanceTypes", [])]
