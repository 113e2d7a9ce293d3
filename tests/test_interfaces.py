import unittest
from unittest.mock import AsyncMock, patch

import httpx

from plugin_sdk import interfaces
from plugin_sdk.http import create_http_client
from plugin_sdk.interfaces import (
    PluginContext,
    PluginInterface,
    PluginState,
    PrivatePluginInterface,
    PublicPluginInterface,
)
from plugin_sdk.schemas import LicenseValidation

LICENSE_KEY = "EXAMPLE-AB12-CD34-EF56-GH78"


class RecordingPlugin(PublicPluginInterface):
    name = "recorder"
    version = "0.1.0"
    config_schema = {"properties": {"interval": {"type": "number"}}}

    def __init__(self, fail_on=None):
        super().__init__()
        self.calls = []
        self.fail_on = fail_on

    async def _hook(self, label):
        self.calls.append(label)
        if self.fail_on == label:
            raise RuntimeError(f"{label} exploded")

    async def initialize_plugin(self, context):
        await self._hook("initialize")

    async def start_plugin(self):
        await self._hook("start")

    async def stop_plugin(self):
        await self._hook("stop")


class PaidPlugin(PrivatePluginInterface):
    name = "paid"
    version = "2.0.0"
    price = 49
    tier = "professional"


class LifecycleTests(unittest.IsolatedAsyncioTestCase):
    async def test_defaults(self):
        plugin = PluginInterface()
        self.assertEqual(plugin.name, "")
        self.assertEqual(plugin.version, "")
        self.assertFalse(plugin.is_initialized)
        self.assertIs(plugin.state, PluginState.UNINITIALIZED)

    async def test_initialize_start_stop(self):
        plugin = RecordingPlugin()
        self.assertTrue(await plugin.initialize(PluginContext(config={})))
        self.assertIs(plugin.state, PluginState.INITIALIZED)
        self.assertEqual(plugin.config, {})

        self.assertTrue(await plugin.start())
        self.assertTrue(plugin.is_running())
        self.assertEqual(plugin.health_status()["status"], "running")

        self.assertTrue(await plugin.stop())
        self.assertIs(plugin.state, PluginState.STOPPED)
        self.assertEqual(plugin.get_uptime(), 0)
        self.assertEqual(plugin.calls, ["initialize", "start", "stop"])

    async def test_restart_after_stop(self):
        plugin = RecordingPlugin()
        await plugin.initialize(PluginContext())
        await plugin.start()
        await plugin.stop()
        self.assertTrue(await plugin.start())
        self.assertIs(plugin.state, PluginState.RUNNING)

    async def test_start_requires_initialize(self):
        plugin = RecordingPlugin()
        with self.assertLogs("plugin_sdk.interfaces", level="ERROR"):
            self.assertFalse(await plugin.start())
        self.assertEqual(plugin.last_error, "Plugin must be initialized before starting")
        self.assertEqual(plugin.calls, [])

    async def test_cannot_start_twice_or_reinitialize_while_running(self):
        plugin = RecordingPlugin()
        await plugin.initialize(PluginContext())
        await plugin.start()
        with self.assertLogs("plugin_sdk.interfaces", level="ERROR"):
            self.assertFalse(await plugin.start())
            self.assertFalse(await plugin.initialize(PluginContext()))
        self.assertIs(plugin.state, PluginState.RUNNING)

    async def test_hook_failure_keeps_state(self):
        plugin = RecordingPlugin(fail_on="start")
        await plugin.initialize(PluginContext())
        with self.assertLogs("plugin_sdk.interfaces", level="ERROR"):
            self.assertFalse(await plugin.start())
        self.assertIs(plugin.state, PluginState.INITIALIZED)
        self.assertEqual(plugin.health_status()["last_error"], "start exploded")

    async def test_invalid_config_rejected(self):
        plugin = RecordingPlugin()
        with self.assertLogs("plugin_sdk.interfaces", level="ERROR"):
            ok = await plugin.initialize(PluginContext(config={"interval": "soon"}))
        self.assertFalse(ok)
        self.assertIs(plugin.state, PluginState.UNINITIALIZED)
        self.assertEqual(plugin.last_error, "Field 'interval' must be of type number")

    async def test_stop_when_not_running_is_noop(self):
        plugin = RecordingPlugin()
        self.assertTrue(await plugin.stop())
        self.assertEqual(plugin.calls, [])

    async def test_cleanup_resets_everything(self):
        plugin = RecordingPlugin()
        await plugin.initialize(PluginContext(config={"interval": 5}))
        await plugin.start()
        self.assertTrue(await plugin.cleanup())
        self.assertIs(plugin.state, PluginState.UNINITIALIZED)
        self.assertIsNone(plugin.context)
        self.assertIsNone(plugin.config)
        self.assertIn("stop", plugin.calls)

    async def test_default_command_not_implemented(self):
        plugin = PluginInterface()
        result = await plugin.execute_command("doThing")
        self.assertEqual(result, {"success": False, "error": "Command doThing not implemented"})


class JobQueueTests(unittest.IsolatedAsyncioTestCase):
    async def test_schedule_without_queue(self):
        plugin = RecordingPlugin()
        await plugin.initialize(PluginContext())
        with self.assertLogs("plugin_sdk.interfaces", level="WARNING"):
            self.assertFalse(await plugin.schedule_job({"name": "sync"}))

    async def test_schedule_delegates_to_queue(self):
        queue = AsyncMock()
        queue.schedule_job.return_value = "job-1"
        plugin = RecordingPlugin()
        await plugin.initialize(PluginContext(job_queue=queue))
        self.assertEqual(await plugin.schedule_job({"name": "sync"}), "job-1")
        queue.schedule_job.assert_awaited_once_with({"name": "sync"})

    async def test_schedule_failure_returns_false(self):
        queue = AsyncMock()
        queue.schedule_job.side_effect = RuntimeError("queue down")
        plugin = RecordingPlugin()
        await plugin.initialize(PluginContext(job_queue=queue))
        with self.assertLogs("plugin_sdk.interfaces", level="ERROR"):
            self.assertFalse(await plugin.schedule_job({"name": "sync"}))


class ReportingTests(unittest.TestCase):
    def test_private_defaults(self):
        plugin = PrivatePluginInterface()
        self.assertEqual(plugin.author, "MyBitcoinFuture")
        self.assertEqual(plugin.license, "PROPRIETARY")
        self.assertEqual(plugin.price, 0)
        self.assertEqual(plugin.tier, "basic")
        info = plugin.get_info()
        self.assertEqual(info["license_status"], "unlicensed")
        self.assertEqual(plugin.health_status()["payment_status"], "unpaid")

    def test_public_defaults(self):
        plugin = PublicPluginInterface()
        self.assertEqual(plugin.license, "MIT")
        self.assertEqual(plugin.price, 0)
        self.assertEqual(plugin.tier, "community")
        self.assertTrue(plugin.community_features)
        self.assertFalse(plugin.get_info()["requires_approval"])
        self.assertIn("community_features", plugin.health_status())


class LicensingTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        patcher = patch.multiple(interfaces.settings, environment="production", plugin_dev_mode=False, license_server_url=None)
        patcher.start()
        self.addCleanup(patcher.stop)

    async def test_free_private_plugin_runs_without_key(self):
        plugin = PrivatePluginInterface()
        self.assertTrue(await plugin.initialize(PluginContext()))
        self.assertTrue(await plugin.start())
        self.assertEqual(plugin.license_status, "licensed")

    async def test_paid_plugin_without_key_fails(self):
        plugin = PaidPlugin()
        with self.assertLogs("plugin_sdk.interfaces", level="ERROR"):
            self.assertFalse(await plugin.initialize(PluginContext()))
        self.assertEqual(plugin.last_error, "Invalid license for paid")
        self.assertIs(plugin.state, PluginState.UNINITIALIZED)

    async def test_paid_plugin_with_well_formed_key(self):
        plugin = PaidPlugin()
        self.assertTrue(await plugin.initialize(PluginContext(license_key=LICENSE_KEY)))
        self.assertEqual(plugin.license_status, "licensed")
        self.assertTrue(await plugin.start())

    async def test_paid_plugin_with_malformed_key(self):
        plugin = PaidPlugin()
        with self.assertLogs("plugin_sdk.interfaces", level="ERROR"):
            self.assertFalse(await plugin.initialize(PluginContext(license_key="not-a-key")))

    async def test_start_requires_license_for_paid_plugin(self):
        plugin = PaidPlugin()
        plugin.state = PluginState.INITIALIZED
        with self.assertLogs("plugin_sdk.interfaces", level="ERROR"):
            self.assertFalse(await plugin.start())
        self.assertEqual(plugin.last_error, "License required for paid")

    async def test_dev_mode_skips_validation(self):
        plugin = PaidPlugin()
        with patch.object(interfaces.settings, "plugin_dev_mode", True):
            self.assertTrue(await plugin.validate_license(None))
        with patch.object(interfaces.settings, "environment", "development"):
            self.assertTrue(await plugin.validate_license("garbage"))

    async def test_validation_is_cached(self):
        plugin = PaidPlugin()
        server = AsyncMock(return_value=LicenseValidation(valid=True, valid_until=interfaces.now_ms() + 60_000))
        with patch.object(plugin, "validate_with_license_server", server):
            self.assertTrue(await plugin.validate_license(LICENSE_KEY))
            self.assertTrue(await plugin.validate_license(LICENSE_KEY))
        server.assert_awaited_once_with(LICENSE_KEY)
        self.assertTrue(plugin.check_local_license_cache(LICENSE_KEY).valid)

    async def test_failed_server_checks_are_not_cached(self):
        plugin = PaidPlugin()
        server = AsyncMock(return_value=LicenseValidation(valid=False, error="unreachable"))
        with patch.object(plugin, "validate_with_license_server", server):
            self.assertFalse(await plugin.validate_license(LICENSE_KEY))
            self.assertFalse(await plugin.validate_license(LICENSE_KEY))
        self.assertEqual(server.await_count, 2)

    async def test_license_server_round_trip(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"valid": True, "valid_until": 4_102_444_800_000})

        def client_factory(**kwargs):
            return create_http_client(transport=httpx.MockTransport(handler), **kwargs)

        plugin = PaidPlugin()
        with patch.object(interfaces.settings, "license_server_url", "https://licenses.example.com"), \
                patch.object(interfaces, "create_http_client", client_factory):
            result = await plugin.validate_with_license_server(LICENSE_KEY)

        self.assertTrue(result.valid)
        self.assertEqual(str(seen[0].url), "https://licenses.example.com/licenses/validate")

    async def test_license_server_rejection(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(403, json={"detail": "revoked"})

        def client_factory(**kwargs):
            return create_http_client(transport=httpx.MockTransport(handler), **kwargs)

        plugin = PaidPlugin()
        with patch.object(interfaces.settings, "license_server_url", "https://licenses.example.com"), \
                patch.object(interfaces, "create_http_client", client_factory):
            with self.assertLogs("plugin_sdk.interfaces", level="WARNING"):
                result = await plugin.validate_with_license_server(LICENSE_KEY)

        self.assertFalse(result.valid)
        self.assertIsNone(result.valid_until)


if __name__ == "__main__":
    unittest.main()
