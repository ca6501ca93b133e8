"""
Storage Admin MCP Server

Provides administrative tools for the hybrid storage coordinator: storage mode,
synchronization, backups, export/import and inventory automation.
"""

import json
import logging
from typing import Dict, List, Optional

from mcp.server import Server
from mcp.types import TextContent, Tool

from hybrid_inventory.automation import AutomationEngine
from hybrid_inventory.storage import HybridCoordinator, StorageError, create_coordinator

logger = logging.getLogger(__name__)

app = Server("storage-admin")

_state: Dict[str, Optional[object]] = {"coordinator": None, "engine": None}


def configure(coordinator: HybridCoordinator, engine: Optional[AutomationEngine] = None) -> None:
    """Sunucunun kullanacağı koordinatörü ayarlar (testler ve gömülü kullanım)."""
    _state["coordinator"] = coordinator
    _state["engine"] = engine or AutomationEngine(coordinator)


def _coordinator() -> HybridCoordinator:
    if _state["coordinator"] is None:
        configure(create_coordinator())
    return _state["coordinator"]


def _engine() -> AutomationEngine:
    _coordinator()
    return _state["engine"]


def _result(data):
    return [TextContent(type="text", text=json.dumps(data, indent=2, ensure_ascii=False, default=str))]


async def _safe(operation) -> Dict:
    try:
        return {"success": True, "data": await operation}
    except (StorageError, ValueError) as e:
        logger.warning("Araç hatası: %s: %s", type(e).__name__, e)
        return {"success": False, "error": str(e), "errorType": type(e).__name__}


@app.list_tools()
async def list_tools() -> List[Tool]:
    empty = {"type": "object", "properties": {}}
    return [
        Tool(name="get_storage_info", description="Current storage mode, connectivity and provider pair",
             inputSchema=empty),
        Tool(name="switch_storage_mode", description="Switch storage mode (local, cloud, hybrid)",
             inputSchema={"type": "object", "properties": {"mode": {"type": "string", "enum": ["local", "cloud", "hybrid"]}}, "required": ["mode"]}),
        Tool(name="get_sync_status", description="Status of the last local-to-remote sync sweep",
             inputSchema=empty),
        Tool(name="sync_now", description="Push local collections to the remote store now",
             inputSchema=empty),
        Tool(name="create_backup", description="Create a point-in-time backup of all collections",
             inputSchema=empty),
        Tool(name="list_backups", description="List retained backups",
             inputSchema=empty),
        Tool(name="restore_backup", description="Restore every collection from a backup",
             inputSchema={"type": "object", "properties": {"backup_id": {"type": "string"}}, "required": ["backup_id"]}),
        Tool(name="export_data", description="Export all collections as a JSON document",
             inputSchema=empty),
        Tool(name="import_data", description="Import a previously exported JSON document",
             inputSchema={"type": "object", "properties": {"document": {"type": ["object", "string"]}}, "required": ["document"]}),
        Tool(name="get_storage_stats", description="Record counts and byte sizes per collection",
             inputSchema=empty),
        Tool(name="run_automation_rules", description="Evaluate all active automation rules",
             inputSchema=empty),
        Tool(name="auto_generate_purchase_orders", description="Create one purchase order per best supplier for low-stock products",
             inputSchema=empty),
        Tool(name="generate_demand_forecast", description="Generate a naive demand forecast for a product",
             inputSchema={"type": "object", "properties": {"product_id": {"type": "string"}}, "required": ["product_id"]}),
    ]


@app.call_tool()
async def call_tool(name: str, arguments: dict) -> List[TextContent]:
    handlers = {
        "get_storage_info": lambda a: get_storage_info(),
        "switch_storage_mode": lambda a: switch_storage_mode(a["mode"]),
        "get_sync_status": lambda a: get_sync_status(),
        "sync_now": lambda a: sync_now(),
        "create_backup": lambda a: create_backup(),
        "list_backups": lambda a: list_backups(),
        "restore_backup": lambda a: restore_backup(a["backup_id"]),
        "export_data": lambda a: export_data(),
        "import_data": lambda a: import_data(a["document"]),
        "get_storage_stats": lambda a: get_storage_stats(),
        "run_automation_rules": lambda a: run_automation_rules(),
        "auto_generate_purchase_orders": lambda a: auto_generate_purchase_orders(),
        "generate_demand_forecast": lambda a: generate_demand_forecast(a["product_id"]),
    }
    handler = handlers.get(name)
    if not handler:
        raise ValueError(f"Unknown tool: {name}")
    try:
        operation = handler(arguments or {})
    except KeyError as e:
        return _result({"success": False, "error": f"Missing argument: {e.args[0]}", "errorType": "ValidationError"})
    return _result(await operation)


# --- Implementation ---

async def _storage_info() -> Dict:
    return _coordinator().get_storage_info().to_dict()


async def _switch_mode(mode: str) -> Dict:
    return _coordinator().switch_storage_mode(mode).to_dict()


async def _sync_status() -> Dict:
    return _coordinator().get_sync_status().to_dict()


async def _sync_now() -> Dict:
    status = await _coordinator().sync_to_remote()
    return status.to_dict()


async def _backup_summaries() -> List[Dict]:
    backups = await _coordinator().list_backups()
    return [
        {
            "id": b["id"],
            "timestamp": b["timestamp"],
            "version": b["version"],
            "recordCounts": {
                name: len(records) for name, records in b.get("data", {}).items() if isinstance(records, list)
            },
        }
        for b in backups
    ]


async def _run_rules() -> Dict:
    report = await _engine().check_automation_rules()
    return report.summary()


def get_storage_info():
    return _safe(_storage_info())


def switch_storage_mode(mode: str):
    return _safe(_switch_mode(mode))


def get_sync_status():
    return _safe(_sync_status())


def sync_now():
    return _safe(_sync_now())


def create_backup():
    return _safe(_coordinator().create_backup())


def list_backups():
    return _safe(_backup_summaries())


def restore_backup(backup_id: str):
    return _safe(_coordinator().restore_backup(backup_id))


def export_data():
    return _safe(_coordinator().export_data())


def import_data(document):
    return _safe(_coordinator().import_data(document))


def get_storage_stats():
    return _safe(_coordinator().get_stats())


def run_automation_rules():
    return _safe(_run_rules())


def auto_generate_purchase_orders():
    return _safe(_engine().auto_generate_purchase_orders())


def generate_demand_forecast(product_id: str):
    return _safe(_engine().generate_demand_forecast(product_id))


if __name__ == "__main__":
    import asyncio
    from mcp.server.stdio import stdio_server

    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(name)s] %(levelname)s: %(message)s")

    async def run():
        async with stdio_server() as (read, write):
            await app.run(read, write, app.create_initialization_options())

    asyncio.run(run())
