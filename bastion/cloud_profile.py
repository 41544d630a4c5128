"""Decoding of the AWS provider config carried by a cluster's CloudProfile."""

import logging
import re
from typing import Any, Union

import yaml
from pydantic import ValidationError

from bastion.errors import ConfigMalformedError, ConfigMissingError, NoSuitableImageError
from bastion.models import CloudProfileConfig, Cluster

logger = logging.getLogger(__name__)

# Only Garden Linux 1312.x.x images have SSH enabled by default.
# TODO: drop the version pin once the bastion image is declared in the CloudProfile.
RESTRICTED_IMAGE_FAMILY = "gardenlinux"
RESTRICTED_IMAGE_VERSION = re.compile(r"^1312\.\d+\.\d+$")


def _decode(raw: Union[str, bytes, dict[str, Any]]) -> Any:
    if isinstance(raw, dict):
        return raw
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8")
    # YAML is a superset of JSON, so this covers both encodings
    return yaml.safe_load(raw)


def get_cloud_profile_config(cluster: Cluster) -> CloudProfileConfig:
    """Extract the CloudProfileConfig from the cluster's provider config."""
    raw = cluster.provider_config
    if raw is None or (isinstance(raw, (str, bytes)) and not raw.strip()):
        raise ConfigMissingError("no cloud provider config set in cluster's CloudProfile")

    try:
        data = _decode(raw)
    except (yaml.YAMLError, UnicodeDecodeError) as e:
        raise ConfigMalformedError(f"failed to decode cloud provider config: {e}") from e

    if not isinstance(data, dict):
        raise ConfigMalformedError(
            f"cloud provider config must be a mapping, got {type(data).__name__}"
        )

    try:
        return CloudProfileConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigMalformedError(f"invalid cloud provider config: {e}") from e


def _version_allowed(image_name: str, version: str) -> bool:
    if image_name != RESTRICTED_IMAGE_FAMILY:
        return True
    return RESTRICTED_IMAGE_VERSION.match(version) is not None


def determine_image_id(region: str, config: CloudProfileConfig) -> str:
    """Find the first AMI configured for ``region``.

    Images, versions and regions are scanned in catalog order and the first
    match wins, so the order of the CloudProfile is significant.
    """
    for image in config.machine_images:
        for version in image.versions:
            if not _version_allowed(image.name, version.version):
                logger.debug("Skipping %s %s for bastion use", image.name, version.version)
                continue
            for mapping in version.regions:
                if mapping.name == region:
                    logger.debug(
                        "Selected %s %s (%s) for region %s",
                        image.name,
                        version.version,
                        mapping.ami,
                        region,
                    )
                    return mapping.ami

    raise NoSuitableImageError(region)

