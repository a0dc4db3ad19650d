import pytest

from transfer_plan.plan.features import resolve


def test_public_s3_server(make_config):
    flags = resolve(make_config())
    assert flags.enabled
    assert not flags.is_vpc
    assert flags.is_s3_backend
    assert flags.endpoint_type == "PUBLIC"
    assert flags.home_directory_type == "LOGICAL"
    assert not flags.dns_enabled
    assert not flags.event_workflow_enabled


def test_vpc_mode_follows_vpc_id(make_config, mock_subnet_ids):
    flags = resolve(make_config(vpc_id="vpc-12345678", subnet_ids=mock_subnet_ids))
    assert flags.is_vpc
    assert flags.endpoint_type == "VPC"


def test_empty_vpc_id_is_public(make_config):
    flags = resolve(make_config(vpc_id=""))
    assert not flags.is_vpc
    assert flags.endpoint_type == "PUBLIC"


def test_elastic_ips_require_vpc(make_config, mock_subnet_ids):
    assert not resolve(make_config(eip_enabled=True)).eip_enabled
    flags = resolve(
        make_config(
            eip_enabled=True, vpc_id="vpc-12345678", subnet_ids=mock_subnet_ids
        )
    )
    assert flags.eip_enabled


@pytest.mark.parametrize(
    ("enabled", "requested", "managed"),
    [(True, True, True), (True, False, False), (False, True, False)],
)
def test_security_group_management(make_config, enabled, requested, managed):
    flags = resolve(make_config(enabled=enabled, security_group_enabled=requested))
    assert flags.security_group_managed is managed


def test_efs_backend(make_config, efs_arn):
    flags = resolve(make_config(domain="EFS", efs_file_system_arn=efs_arn))
    assert not flags.is_s3_backend


def test_dns_requires_domain_and_zone(make_config):
    assert not resolve(make_config(domain_name="sftp.example.com")).dns_enabled
    assert not resolve(make_config(zone_id="Z1234567890ABC")).dns_enabled
    flags = resolve(make_config(domain_name="sftp.example.com", zone_id="Z1234"))
    assert flags.dns_enabled


def test_unrestricted_home(make_config):
    assert resolve(make_config(restricted_home=False)).home_directory_type == "PATH"
