"""
Example paid plugin built on the SDK.

Collects a sample every `interval_seconds` while running and exposes it
through three dashboard commands: getData, clearData and getStatus.
"""
import asyncio
import logging
import random
from datetime import datetime, timezone

from plugin_sdk import PluginContext, PrivatePluginInterface

logger = logging.getLogger(__name__)

MAX_SAMPLES = 100


class ExamplePlugin(PrivatePluginInterface):
    name = "example-plugin"
    display_name = "Example Plugin"
    version = "1.0.0"
    description = "An example plugin demonstrating SDK usage"
    price = 49
    tier = "professional"
    config_schema = {
        "properties": {
            "api_key": {"required": True, "type": "string"},
            "endpoint": {"type": "string", "pattern": r"^https?://"},
            "interval_seconds": {"type": "number"},
        }
    }

    def __init__(self):
        super().__init__()
        self.data: list[dict] = []
        self.api_key: str | None = None
        self.endpoint = "https://api.example.com"
        self.interval_seconds = 30.0
        self._task: asyncio.Task | None = None

    async def initialize_plugin(self, context: PluginContext) -> None:
        self.api_key = self.config["api_key"]
        self.endpoint = self.config.get("endpoint", self.endpoint)
        self.interval_seconds = float(self.config.get("interval_seconds", self.interval_seconds))
        logger.info("Example plugin configured for %s", self.endpoint)

    async def start_plugin(self) -> None:
        self._task = asyncio.create_task(self._run())

    async def stop_plugin(self) -> None:
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

    async def _run(self) -> None:
        while True:
            self.process_data()
            await asyncio.sleep(self.interval_seconds)

    def process_data(self) -> dict:
        sample = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "value": random.random() * 100,
        }
        self.data.append(sample)
        # keep only the newest samples
        del self.data[:-MAX_SAMPLES]
        return sample

    def get_data(self) -> dict:
        return {
            "is_running": self.is_running(),
            "data_count": len(self.data),
            "last_data": self.data[-1] if self.data else None,
        }

    async def execute_command(self, command_name: str, args: dict | None = None) -> dict:
        if command_name == "getData":
            return {"success": True, "data": self.get_data()}
        if command_name == "clearData":
            self.data = []
            return {"success": True, "message": "Data cleared"}
        if command_name == "getStatus":
            return {
                "success": True,
                "data": {
                    "is_running": self.is_running(),
                    "uptime": self.get_uptime(),
                    "data_count": len(self.data),
                },
            }
        return {"success": False, "error": f"Unknown command: {command_name}"}
