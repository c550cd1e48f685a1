"""
Tests for the static and gateway-backed configuration stores.
"""

import aiohttp
import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from filemover.catalog.http import TENANT_HEADER, HttpConfigStore
from filemover.catalog.static import StaticConfigStore
from filemover.core.types import TransferConfig
from filemover.exceptions import ConfigurationError

TRANSFERS = [
    {
        "config_id": 1,
        "tenant_id": "firm-abc",
        "source_location": "/data/in",
        "destination_location": "/data/out",
        "schedule_spec": "*/5 * * * *",
    },
    {
        "config_id": 2,
        "tenant_id": "firm-abc",
        "source_location": "/data/in2",
        "destination_type": "sftp",
        "destination_location": "sftp://partner/in",
        "enabled": False,
    },
    {"config_id": 3, "tenant_id": "firm-xyz", "source_location": "/xyz/in", "destination_location": "/xyz/out"},
]


class TestTransferConfig:
    def test_camel_case_keys(self):
        config = TransferConfig.from_dict(
            {
                "id": 12,
                "sourceType": "dfs",
                "sourceLocation": "/in",
                "destinationType": "Sftp",
                "destinationLocation": "sftp://host/out",
                "cronSchedule": "0 0/10 * * * ?",
                "isEnabled": True,
            },
            tenant_id="firm-abc",
        )
        assert config.config_id == 12
        assert config.tenant_id == "firm-abc"
        assert config.source_type == "DFS"
        assert config.destination_type == "SFTP"
        assert config.schedule_spec == "0 0/10 * * * ?"

    def test_defaults(self):
        config = TransferConfig.from_dict({"config_id": 1, "tenant_id": "firm-abc"})
        assert config.source_type == "DFS"
        assert config.destination_type == "DFS"
        assert config.schedule_spec is None
        assert config.enabled is True

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("false", False),
            ("False", False),
            ("0", False),
            ("no", False),
            ("off", False),
            ("True", True),
            ("yes", True),
            (0, False),
            (True, True),
        ],
    )
    def test_enabled_flag_strings(self, raw, expected):
        config = TransferConfig.from_dict({"config_id": 1, "tenant_id": "firm-abc", "enabled": raw})
        assert config.enabled is expected


class TestStaticConfigStore:
    @pytest.mark.asyncio
    async def test_lists_enabled_configs_per_tenant(self, directory):
        store = StaticConfigStore.from_config(directory, TRANSFERS)

        abc = await store.list_active_configs("firm-abc")
        assert [c.config_id for c in abc] == [1]
        assert [c.config_id for c in await store.list_active_configs("firm-xyz")] == [3]
        assert await store.list_active_configs("firm-def") == []

    @pytest.mark.asyncio
    async def test_get_transfer_config_includes_disabled(self, directory):
        store = StaticConfigStore.from_config(directory, TRANSFERS)
        config = await store.get_transfer_config("firm-abc", 2)
        assert config is not None
        assert config.enabled is False
        assert config.destination_type == "SFTP"
        # Scoped to the owning tenant
        assert await store.get_transfer_config("firm-xyz", 1) is None

    @pytest.mark.asyncio
    async def test_active_tenants_from_directory(self, directory):
        store = StaticConfigStore.from_config(directory, [])
        assert await store.list_active_tenants() == ["firm-abc", "firm-def", "firm-xyz"]
        tenant = await store.get_tenant_config("firm-xyz")
        assert tenant is not None
        assert tenant.schema == "firm_xyz"

    @pytest.mark.asyncio
    async def test_upsert_and_remove(self, directory):
        store = StaticConfigStore(directory)
        config = TransferConfig.from_dict(TRANSFERS[0])
        store.upsert(config)
        assert await store.list_active_configs("firm-abc") == [config]

        store.remove("firm-abc", 1)
        store.remove("firm-abc", 99)
        assert await store.list_active_configs("firm-abc") == []

    @pytest.mark.parametrize(
        "transfers, message",
        [
            (["not-a-mapping"], "must be a mapping"),
            ([{"tenant_id": "firm-abc"}], "is invalid"),
            ([{"config_id": "seven", "tenant_id": "firm-abc"}], "is invalid"),
            ([{"config_id": 1}], "has no tenant_id"),
        ],
    )
    def test_invalid_entries(self, directory, transfers, message):
        with pytest.raises(ConfigurationError, match=message):
            StaticConfigStore.from_config(directory, transfers)


class GatewayApi:
    """Minimal stand-in for the management API gateway."""

    def __init__(self):
        self.tenants = [{"id": "firm-abc", "isActive": True}, {"id": "firm-old", "isActive": False}]
        self.summaries = {
            "firm-abc": [
                {"id": 1, "isActive": True},
                {"id": 2, "isActive": False},
                {
                    "id": 3,
                    "sourceLocation": "/inline/in",
                    "destinationLocation": "/inline/out",
                    "isActive": True,
                },
                {"id": 4, "isActive": True},
            ]
        }
        self.configs = {
            1: {"id": 1, "sourceLocation": "/abc/in", "destinationLocation": "/abc/out", "cronSchedule": "*/5 * * * *"},
            4: {"id": 4, "sourceLocation": "/abc/in4", "destinationLocation": "/abc/out4", "isEnabled": False},
        }
        self.tenant_headers: list[str | None] = []
        self.fail = False

    def app(self) -> web.Application:
        app = web.Application()
        app.router.add_get("/api/tenants/active", self.active_tenants)
        app.router.add_get("/api/tenants/{tenant_id}/configurations/active", self.active_configs)
        app.router.add_get("/api/filetransfer/configurations/{config_id}", self.config)
        return app

    async def active_tenants(self, request: web.Request) -> web.Response:
        if self.fail:
            return web.json_response({"error": "boom"}, status=500)
        return web.json_response(self.tenants)

    async def active_configs(self, request: web.Request) -> web.Response:
        return web.json_response(self.summaries.get(request.match_info["tenant_id"], []))

    async def config(self, request: web.Request) -> web.Response:
        self.tenant_headers.append(request.headers.get(TENANT_HEADER))
        config = self.configs.get(int(request.match_info["config_id"]))
        if config is None:
            return web.json_response({"error": "not found"}, status=404)
        return web.json_response(config)


class TestHttpConfigStore:
    @pytest.mark.asyncio
    async def test_active_tenants(self, directory):
        api = GatewayApi()
        async with TestServer(api.app()) as server:
            store = HttpConfigStore(str(server.make_url("/")), directory)
            try:
                assert await store.list_active_tenants() == ["firm-abc"]
            finally:
                await store.close()

    @pytest.mark.asyncio
    async def test_summary_rows_fetch_full_config(self, directory):
        api = GatewayApi()
        async with TestServer(api.app()) as server:
            store = HttpConfigStore(str(server.make_url("/")), directory)
            try:
                configs = await store.list_active_configs("firm-abc")
            finally:
                await store.close()

        # 2 is inactive in the listing, 4 is disabled in its full config
        assert [c.config_id for c in configs] == [1, 3]
        assert configs[0].source_location == "/abc/in"
        assert configs[0].schedule_spec == "*/5 * * * *"
        assert all(c.tenant_id == "firm-abc" for c in configs)
        assert api.tenant_headers == ["firm-abc", "firm-abc"]

    @pytest.mark.asyncio
    async def test_missing_config_is_none(self, directory):
        api = GatewayApi()
        async with TestServer(api.app()) as server:
            store = HttpConfigStore(str(server.make_url("/")), directory)
            try:
                assert await store.get_transfer_config("firm-abc", 99) is None
                assert await store.list_active_configs("firm-unknown") == []
            finally:
                await store.close()

    @pytest.mark.asyncio
    async def test_tenant_config_from_directory(self, directory):
        store = HttpConfigStore("http://gateway.invalid/", directory)
        assert store.base_url == "http://gateway.invalid"
        tenant = await store.get_tenant_config("firm-def")
        assert tenant is not None
        assert tenant.routing_key == "def-routing"
        await store.close()

    @pytest.mark.asyncio
    async def test_server_errors_propagate(self, directory):
        api = GatewayApi()
        api.fail = True
        async with TestServer(api.app()) as server:
            store = HttpConfigStore(str(server.make_url("/")), directory)
            try:
                with pytest.raises(aiohttp.ClientResponseError):
                    await store.list_active_tenants()
            finally:
                await store.close()
