"""Errors raised while resolving bastion options.

Every failure is terminal for a single resolution attempt; callers decide
whether to retry.
"""

from typing import Iterable


class BastionOptionsError(Exception):
    """Base class for all bastion option resolution failures."""


class NotFoundError(BastionOptionsError):
    """A resource that must already exist could not be found."""

    def __init__(self, resource: str, name: str, detail: str = ""):
        self.resource = resource
        self.name = name
        message = f"{resource} {name!r} not found"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class SubnetNotFoundError(NotFoundError):
    def __init__(self, name: str):
        super().__init__("subnet", name)


class SecurityGroupNotFoundError(NotFoundError):
    def __init__(self, name: str, vpc_id: str):
        self.vpc_id = vpc_id
        super().__init__("security group", name, f"vpc {vpc_id}")


class ConfigMissingError(BastionOptionsError):
    """No cloud provider config set in the cluster's CloudProfile."""


class ConfigMalformedError(BastionOptionsError):
    """The CloudProfile provider config could not be decoded."""


class NoSuitableImageError(BastionOptionsError):
    def __init__(self, region: str):
        self.region = region
        super().__init__(f"found no suitable AMI for machines in region {region!r}")


class ImageNotFoundError(BastionOptionsError):
    def __init__(self, image_id: str):
        self.image_id = image_id
        super().__init__(f"image {image_id!r} not found")


class ProviderQueryFailedError(BastionOptionsError):
    """Wraps a transport, auth or API error returned by the provider."""

    def __init__(self, operation: str, message: str, target: str = "", region: str = ""):
        self.operation = operation
        self.detail = message
        self.target = target
        self.region = region
        context = " ".join(part for part in (target, f"in {region}" if region else "") if part)
        prefix = f"{operation} ({context})" if context else operation
        super().__init__(f"{prefix} failed: {message}")


class ImageLookupFailedError(ProviderQueryFailedError):
    def __init__(self, image_id: str, message: str, region: str = ""):
        self.image_id = image_id
        super().__init__("DescribeImages", message, target=f"image {image_id!r}", region=region)


class UnsupportedArchitectureError(BastionOptionsError):
    def __init__(self, architecture: str, image_id: str):
        self.architecture = architecture
        self.image_id = image_id
        super().__init__(
            f"image architecture {architecture!r} of image {image_id!r} not supported"
        )


class NoOfferingsError(BastionOptionsError):
    def __init__(self, type_filter: str):
        self.type_filter = type_filter
        super().__init__(f"no {type_filter} instance type offerings available")


class NoArchitectureMatchError(BastionOptionsError):
    def __init__(self, architecture: str, candidates: Iterable[str]):
        self.architecture = architecture
        self.candidates = sorted(candidates)
        super().__init__(
            f"no instance types returned for architecture {architecture} "
            f"and instance types list {self.candidates}"
        )


class ResolutionCancelledError(BastionOptionsError):
    """The caller cancelled resolution before the next provider query."""

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(f"resolution cancelled before {operation}")
