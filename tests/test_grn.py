"""
Tests for Global Resource Names.
"""

import pytest

from warden.authz.grn import Grn, MalformedGrnError, MalformedInputError, format_grn, parse_grn


class TestParseGrn:
    def test_parse_fields(self):
        grn = parse_grn("grn:global:iam:eu-west-1:tenant-1:accounts/42")

        assert grn.partition == "global"
        assert grn.system == "iam"
        assert grn.region == "eu-west-1"
        assert grn.tenant_id == "tenant-1"
        assert grn.resource_path == "accounts/42"

    def test_empty_region(self):
        grn = parse_grn("grn:global:iam::tenant-1:accounts")

        assert grn.region == ""
        assert grn.resource_path == "accounts"

    def test_resource_path_keeps_colons(self):
        grn = parse_grn("grn:global:iam::t1:files/report:2024:q1")

        assert grn.tenant_id == "t1"
        assert grn.resource_path == "files/report:2024:q1"

    def test_empty_resource_path(self):
        assert parse_grn("grn:global:iam::t1:").resource_path == ""

    @pytest.mark.parametrize("value", [
        "",
        "grn",
        "grn:global:iam::t1",
        "accounts/42",
    ])
    def test_too_few_tokens(self, value):
        with pytest.raises(MalformedGrnError):
            parse_grn(value)

    def test_requires_grn_prefix(self):
        with pytest.raises(MalformedGrnError):
            parse_grn("arn:global:iam::t1:accounts/42")

    def test_malformed_is_a_value_error(self):
        with pytest.raises(MalformedInputError):
            parse_grn("nope")
        assert issubclass(MalformedGrnError, ValueError)


class TestFormatGrn:
    def test_format(self):
        grn = Grn("global", "iam", "", "tenant-1", "accounts/*")

        assert format_grn(grn) == "grn:global:iam::tenant-1:accounts/*"
        assert str(grn) == "grn:global:iam::tenant-1:accounts/*"

    @pytest.mark.parametrize("grn", [
        Grn("global", "iam", "", "t1", "accounts/42"),
        Grn("china", "billing", "cn-north-1", "t-9", "invoices/2024:03/*"),
        Grn("*", "*", "*", "*", "*"),
        Grn("global", "iam", "", "t1", ""),
    ])
    def test_round_trip(self, grn):
        assert parse_grn(format_grn(grn)) == grn
