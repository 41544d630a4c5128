"""Tests for CloudProfile decoding and AMI selection."""

import json

import pytest

from bastion.cloud_profile import determine_image_id, get_cloud_profile_config
from bastion.errors import ConfigMalformedError, ConfigMissingError, NoSuitableImageError
from bastion.models import CloudProfileConfig, Cluster


def _config(*images) -> CloudProfileConfig:
    return CloudProfileConfig.model_validate(
        {
            "kind": "CloudProfileConfig",
            "machineImages": [
                {
                    "name": name,
                    "versions": [
                        {"version": version, "regions": [{"name": region, "ami": ami}]}
                    ],
                }
                for name, version, region, ami in images
            ]
        }
    )


class TestGetCloudProfileConfig:
    def test_decodes_yaml(self, cloud_profile_config_yaml):
        cluster = Cluster(name="c", region="eu-1", provider_config=cloud_profile_config_yaml)

        config = get_cloud_profile_config(cluster)

        assert config.kind == "CloudProfileConfig"
        assert config.machine_images[0].name == "gardenlinux"
        assert config.machine_images[0].versions[0].regions[0].ami == "ami-123"

    def test_decodes_json_bytes(self):
        raw = json.dumps(
            {
                "kind": "CloudProfileConfig",
                "machineImages": [{"name": "ubuntu", "versions": []}],
            }
        ).encode()
        cluster = Cluster(name="c", region="eu-1", provider_config=raw)

        assert get_cloud_profile_config(cluster).machine_images[0].name == "ubuntu"

    def test_unquoted_numeric_version(self):
        raw = "kind: CloudProfileConfig\nmachineImages:\n- name: ubuntu\n  versions:\n  - version: 22.04\n"
        cluster = Cluster(name="c", region="eu-1", provider_config=raw)

        config = get_cloud_profile_config(cluster)

        assert config.machine_images[0].versions[0].version == "22.04"

    @pytest.mark.parametrize("raw", [None, "", "   "])
    def test_missing(self, raw):
        with pytest.raises(ConfigMissingError):
            get_cloud_profile_config(Cluster(name="c", region="eu-1", provider_config=raw))

    @pytest.mark.parametrize(
        "raw",
        [
            "machineImages: [",
            "- just\n- a list\n",
            "kind: WorkerConfig\n",
            "kind: CloudProfileConfig\nmachineImages:\n- versions: []\n",
            "machineImages: []\n",
            {},
        ],
    )
    def test_malformed(self, raw):
        with pytest.raises(ConfigMalformedError):
            get_cloud_profile_config(Cluster(name="c", region="eu-1", provider_config=raw))


class TestDetermineImageId:
    def test_first_match_wins_restricted_family_first(self):
        config = _config(
            ("gardenlinux", "1312.5.0", "eu-1", "ami-gl"),
            ("ubuntu", "9.9.9", "eu-1", "ami-ubuntu"),
        )

        assert determine_image_id("eu-1", config) == "ami-gl"

    def test_first_match_wins_other_family_first(self):
        config = _config(
            ("ubuntu", "9.9.9", "eu-1", "ami-ubuntu"),
            ("gardenlinux", "1312.5.0", "eu-1", "ami-gl"),
        )

        assert determine_image_id("eu-1", config) == "ami-ubuntu"

    def test_restricted_version_rejected(self):
        config = _config(("gardenlinux", "1300.1.0", "eu-1", "ami-old"))

        with pytest.raises(NoSuitableImageError) as exc_info:
            determine_image_id("eu-1", config)

        assert exc_info.value.region == "eu-1"
        assert "eu-1" in str(exc_info.value)

    def test_skips_rejected_versions_of_same_family(self):
        config = CloudProfileConfig.model_validate(
            {
                "kind": "CloudProfileConfig",
                "machineImages": [
                    {
                        "name": "gardenlinux",
                        "versions": [
                            {"version": "1443.2.0", "regions": [{"name": "eu-1", "ami": "ami-new"}]},
                            {"version": "1312.2.0", "regions": [{"name": "eu-1", "ami": "ami-ssh"}]},
                        ],
                    }
                ]
            }
        )

        assert determine_image_id("eu-1", config) == "ami-ssh"

    @pytest.mark.parametrize("version", ["1312.1", "1312.1.0-dev", "21312.1.0"])
    def test_restricted_version_pattern_is_exact(self, version):
        config = _config(("gardenlinux", version, "eu-1", "ami-x"))

        with pytest.raises(NoSuitableImageError):
            determine_image_id("eu-1", config)

    def test_other_region_only(self):
        config = _config(("ubuntu", "22.04", "us-1", "ami-us"))

        with pytest.raises(NoSuitableImageError):
            determine_image_id("eu-1", config)
