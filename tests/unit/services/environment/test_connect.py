"""
Unit tests for services.environment.connect module.
"""

import pytest

from ovncluster.core.exceptions import ProjectionError
from ovncluster.services.common.queries import fetch_service_view
from ovncluster.services.environment.connect import (
    build_connect_string,
    connect_string,
    initial_address,
)


@pytest.fixture
def cluster(membership):
    membership.add_member("node-a", "10.0.0.1:6443")
    membership.add_member("node-b", "[fd00::2]:6443")
    membership.add_member("node-c", "10.0.0.3:6443")
    membership.add_service("node-a", "central")
    membership.add_service("node-b", "central")
    membership.add_service("node-c", "chassis")
    return membership


class TestBuildConnectString:
    async def test_tcp(self, mock_store, cluster):
        view = await fetch_service_view(mock_store)
        assert build_connect_string(view, 6641) == "tcp:10.0.0.1:6641,tcp:[fd00::2]:6641"

    async def test_ssl_with_ca(self, mock_store, cluster):
        cluster.ca_cert = "cert"
        view = await fetch_service_view(mock_store)
        assert build_connect_string(view, 6642) == "ssl:10.0.0.1:6642,ssl:[fd00::2]:6642"

    async def test_unresolved_member_skipped(self, mock_store, cluster):
        cluster.add_service("node-z", "central")
        view = await fetch_service_view(mock_store)
        assert build_connect_string(view, 6641) == "tcp:10.0.0.1:6641,tcp:[fd00::2]:6641"

    async def test_empty(self, mock_store, membership):
        view = await fetch_service_view(mock_store)
        assert build_connect_string(view, 6641) == ""

    async def test_connect_string_for_other_service(self, mock_store, cluster):
        assert await connect_string(mock_store, 6642, "chassis") == "tcp:10.0.0.3:6642"


class TestInitialAddress:
    async def test_first_registered_member(self, mock_store, cluster):
        view = await fetch_service_view(mock_store)
        assert initial_address(view) == "10.0.0.1"

    async def test_ipv6_bracketed(self, mock_store, membership):
        membership.add_member("node-b", "[fd00::2]:6443")
        membership.add_service("node-b", "central")
        view = await fetch_service_view(mock_store)
        assert initial_address(view) == "[fd00::2]"

    async def test_no_central(self, mock_store, membership):
        view = await fetch_service_view(mock_store)
        with pytest.raises(ProjectionError, match="no central service"):
            initial_address(view)

    async def test_first_member_unresolved(self, mock_store, membership):
        membership.add_member("node-b", "10.0.0.2:6443")
        membership.add_service("node-a", "central")
        membership.add_service("node-b", "central")
        view = await fetch_service_view(mock_store)
        with pytest.raises(ProjectionError, match="node-a"):
            initial_address(view)


class TestRegistrationOrder:
    async def test_first_registered_wins_over_name_order(self, mock_store, membership):
        membership.add_member("node-a", "10.0.0.1:6443")
        membership.add_member("node-z", "10.0.0.26:6443")
        membership.add_service("node-z", "central")
        membership.add_service("node-a", "central")

        view = await fetch_service_view(mock_store)

        assert initial_address(view) == "10.0.0.26"
        assert build_connect_string(view, 6641) == "tcp:10.0.0.26:6641,tcp:10.0.0.1:6641"

    @pytest.mark.parametrize(("ca_cert", "expected"), [("cert", "ssl"), (None, "tcp")])
    async def test_ipv6_documentation_address(self, mock_store, membership, ca_cert, expected):
        membership.ca_cert = ca_cert
        membership.add_member("node-a", "[2001:db8::1]:6443")
        membership.add_service("node-a", "central")

        assert await connect_string(mock_store, 6641) == f"{expected}:[2001:db8::1]:6641"
