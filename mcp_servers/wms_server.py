"""
WMS MCP Server

Exposes the tenant-scoped WarehouseService as MCP tools: storage locations,
the warehouse grid, articles and stock, transport orders, requests and the
dashboard. Every tool returns JSON text; domain errors come back as
{"success": false, "error": <code>, "family": ..., "message": ...}.

State is in memory and starts from the demo data set.
"""

import json
from typing import Dict, List

from mcp.server import Server
from mcp.types import TextContent, Tool

from wms_core.config import Settings, configure_logging
from wms_core.engine.coordinates import location_label, parse_location_label
from wms_core.engine.stock_ledger import classify, stock_percentage
from wms_core.errors import WmsError
from wms_core.models.warehouse import Article, ArticleType, Coordinate, to_dict
from wms_core.seed import build_demo_service

app = Server("wms-core")

settings = Settings.from_env()
configure_logging(settings)
service = build_demo_service(settings)


def _result(data):
    return [TextContent(type="text", text=json.dumps(data, indent=2, ensure_ascii=False))]


def _tenant_schema(**props):
    return {"type": "object", "properties": {"tenant_id": {"type": "string"}, **props},
            "required": ["tenant_id"]}


@app.list_tools()
async def list_tools() -> List[Tool]:
    return [
        Tool(name="list_locations", description="List storage locations of a tenant's warehouse with optional filters",
             inputSchema=_tenant_schema(search={"type": "string"}, status={"type": "string"},
                                        type={"type": "string"}, include_retired={"type": "boolean"})),
        Tool(name="locations_at", description="Stack of storage locations at one (x, y) footprint, ordered by z",
             inputSchema={"type": "object", "properties": {
                 "tenant_id": {"type": "string"}, "x": {"type": "integer", "minimum": 1},
                 "y": {"type": "integer", "minimum": 1}
             }, "required": ["tenant_id", "x", "y"]}),
        Tool(name="find_by_label", description="Resolve a shelf label such as A-01-02 to its storage location",
             inputSchema={"type": "object", "properties": {
                 "tenant_id": {"type": "string"}, "label": {"type": "string"}
             }, "required": ["tenant_id", "label"]}),
        Tool(name="get_grid", description="Dense maxX x maxY grid of the tenant's warehouse",
             inputSchema=_tenant_schema(orientation={"type": "string", "enum": ["top-down", "bottom-up"]})),
        Tool(name="set_location_status", description="Set a storage location to Free, Occupied or Blocked",
             inputSchema={"type": "object", "properties": {
                 "tenant_id": {"type": "string"}, "location_id": {"type": "string"},
                 "status": {"type": "string", "enum": ["Free", "Occupied", "Blocked"]}
             }, "required": ["tenant_id", "location_id", "status"]}),
        Tool(name="create_location", description="Add a storage location at a free (x, y, z) coordinate",
             inputSchema={"type": "object", "properties": {
                 "tenant_id": {"type": "string"}, "location_id": {"type": "string"},
                 "type": {"type": "string"}, "sequence_number": {"type": "integer"},
                 "x": {"type": "integer", "minimum": 1}, "y": {"type": "integer", "minimum": 1},
                 "z": {"type": "integer", "minimum": 1}, "status": {"type": "string"}
             }, "required": ["tenant_id", "location_id", "type", "sequence_number", "x", "y", "z"]}),
        Tool(name="retire_location", description="Retire a storage location; it leaves listings and the grid",
             inputSchema={"type": "object", "properties": {
                 "tenant_id": {"type": "string"}, "location_id": {"type": "string"}
             }, "required": ["tenant_id", "location_id"]}),
        Tool(name="list_articles", description="List articles with stock level, optionally filtered",
             inputSchema={"type": "object", "properties": {
                 "search": {"type": "string"}, "type": {"type": "string"},
                 "stock_level": {"type": "string", "enum": ["critical", "warning", "good", "all"]}
             }}),
        Tool(name="register_article", description="Register a new article with stock thresholds",
             inputSchema={"type": "object", "properties": {
                 "article_id": {"type": "string"}, "type": {"type": "string"}, "name": {"type": "string"},
                 "weight": {"type": "number"}, "unit": {"type": "string"},
                 "min_stock": {"type": "integer"}, "reorder_point": {"type": "integer"},
                 "max_stock": {"type": "integer"}, "current_stock": {"type": "integer"}
             }, "required": ["article_id", "type", "name", "min_stock", "reorder_point", "max_stock"]}),
        Tool(name="adjust_stock", description="Book a stock movement; rejected if stock would go negative",
             inputSchema={"type": "object", "properties": {
                 "article_id": {"type": "string"}, "delta": {"type": "integer"}, "reference": {"type": "string"}
             }, "required": ["article_id", "delta"]}),
        Tool(name="get_stock_movements", description="Stock movement journal, optionally for one article",
             inputSchema={"type": "object", "properties": {"article_id": {"type": "string"}}}),
        Tool(name="list_orders", description="List transport orders of a tenant's warehouse",
             inputSchema=_tenant_schema(search={"type": "string"}, status={"type": "string"},
                                        request_id={"type": "string"})),
        Tool(name="create_order", description="Create a transport order between two locations",
             inputSchema={"type": "object", "properties": {
                 "tenant_id": {"type": "string"}, "order_id": {"type": "string"},
                 "storage_unit_id": {"type": "string"}, "source": {"type": "string"},
                 "destination": {"type": "string"}, "priority": {"type": "integer", "default": 1},
                 "request_id": {"type": "string"}
             }, "required": ["tenant_id", "order_id", "storage_unit_id", "source", "destination"]}),
        Tool(name="advance_order", description="Move a transport order to InProgress, Completed or Failed",
             inputSchema={"type": "object", "properties": {
                 "tenant_id": {"type": "string"}, "order_id": {"type": "string"},
                 "status": {"type": "string", "enum": ["InProgress", "Completed", "Failed"]}
             }, "required": ["tenant_id", "order_id", "status"]}),
        Tool(name="list_requests", description="List requests of a tenant",
             inputSchema=_tenant_schema(search={"type": "string"}, status={"type": "string"},
                                        request_type={"type": "string"})),
        Tool(name="create_request", description="Create an inbound, outbound, picking or inventory request",
             inputSchema={"type": "object", "properties": {
                 "tenant_id": {"type": "string"}, "request_id": {"type": "string"},
                 "request_type": {"type": "string"}, "article_id": {"type": "string"},
                 "quantity": {"type": "integer", "minimum": 1},
                 "x": {"type": "integer"}, "y": {"type": "integer"}, "z": {"type": "integer"}
             }, "required": ["tenant_id", "request_id", "request_type", "article_id", "quantity", "x", "y", "z"]}),
        Tool(name="advance_request", description="Move a request along Created/Assigned/Processing/Completed or cancel it",
             inputSchema={"type": "object", "properties": {
                 "tenant_id": {"type": "string"}, "request_id": {"type": "string"},
                 "status": {"type": "string"}
             }, "required": ["tenant_id", "request_id", "status"]}),
        Tool(name="get_dashboard", description="Location, stock, order and request KPIs of a tenant",
             inputSchema=_tenant_schema()),
    ]


@app.call_tool()
async def call_tool(name: str, arguments: dict) -> List[TextContent]:
    handlers = {
        "list_locations": lambda a: list_locations(a["tenant_id"], a.get("search"), a.get("status"), a.get("type"), a.get("include_retired", False)),
        "locations_at": lambda a: locations_at(a["tenant_id"], a["x"], a["y"]),
        "find_by_label": lambda a: find_by_label(a["tenant_id"], a["label"]),
        "get_grid": lambda a: get_grid(a["tenant_id"], a.get("orientation")),
        "set_location_status": lambda a: _ok(location=service.set_location_status(a["tenant_id"], a["location_id"], a["status"])),
        "create_location": lambda a: _ok(location=service.create_location(a["tenant_id"], a["location_id"], a["type"], a["sequence_number"], a["x"], a["y"], a["z"], a.get("status", "Free"))),
        "retire_location": lambda a: _ok(location=service.retire_location(a["tenant_id"], a["location_id"])),
        "list_articles": lambda a: list_articles(a.get("search"), a.get("type"), a.get("stock_level")),
        "register_article": lambda a: register_article(a),
        "adjust_stock": lambda a: adjust_stock(a["article_id"], a["delta"], a.get("reference")),
        "get_stock_movements": lambda a: _ok(data=service.ledger.movements(a.get("article_id"))),
        "list_orders": lambda a: _ok(data=service.list_orders(a["tenant_id"], a.get("search"), a.get("status"), a.get("request_id"))),
        "create_order": lambda a: _ok(order=service.create_order(a["tenant_id"], a["order_id"], a["storage_unit_id"], a["source"], a["destination"], a.get("priority", 1), a.get("request_id"))),
        "advance_order": lambda a: _ok(order=service.advance_order(a["tenant_id"], a["order_id"], a["status"])),
        "list_requests": lambda a: _ok(data=service.list_requests(a["tenant_id"], a.get("search"), a.get("status"), a.get("request_type"))),
        "create_request": lambda a: _ok(request=service.create_request(a["tenant_id"], a["request_id"], a["request_type"], a["article_id"], a["quantity"], Coordinate(a["x"], a["y"], a["z"]))),
        "advance_request": lambda a: _ok(request=service.advance_request(a["tenant_id"], a["request_id"], a["status"])),
        "get_dashboard": lambda a: _ok(dashboard=service.dashboard(a["tenant_id"])),
    }
    handler = handlers.get(name)
    if not handler:
        raise ValueError(f"Unknown tool: {name}")
    try:
        return _result(handler(arguments))
    except WmsError as e:
        return _result({"success": False, **e.to_dict()})
    except ValueError as e:
        # enum values and coordinates arrive as raw JSON
        return _result({"success": False, "error": "InvalidArgument", "family": "Conflict", "message": str(e)})


# --- Implementation ---

def _ok(**payload) -> Dict:
    body = {"success": True}
    for key, value in payload.items():
        body[key] = to_dict(value)
        if isinstance(value, list):
            body["count"] = len(value)
    return body


def _article_row(article: Article) -> Dict:
    return {**to_dict(article), "stock_level": classify(article).value,
            "stock_percentage": stock_percentage(article)}


def list_locations(tenant_id: str, search: str = None, status: str = None, type: str = None,
                   include_retired: bool = False) -> Dict:
    locations = service.list_locations(tenant_id, search, status, type, include_retired)
    data = [{**to_dict(loc), "label": location_label(loc.coordinate)} for loc in locations]
    return {"success": True, "count": len(data), "data": data}


def locations_at(tenant_id: str, x: int, y: int) -> Dict:
    stack = service.locations_at(tenant_id, x, y)
    return {"success": True, "x": x, "y": y, "count": len(stack), "data": to_dict(stack)}


def find_by_label(tenant_id: str, label: str) -> Dict:
    coordinate = parse_location_label(label)
    stack = service.locations_at(tenant_id, coordinate.x, coordinate.y)
    matches = [loc for loc in stack if loc.coordinate == coordinate]
    if not matches:
        return {"success": False, "error": "LocationNotFound", "family": "NotFound",
                "message": f"No storage location at {location_label(coordinate)}"}
    return {"success": True, "label": location_label(coordinate), "location": to_dict(matches[0])}


def get_grid(tenant_id: str, orientation: str = None) -> Dict:
    grid = service.get_grid(tenant_id, orientation)
    return {"success": True, "grid": to_dict(grid)}


def list_articles(search: str = None, type: str = None, stock_level: str = None) -> Dict:
    data = [_article_row(a) for a in service.list_articles(search, type, stock_level)]
    return {"success": True, "count": len(data), "data": data}


def register_article(a: dict) -> Dict:
    article = service.register_article(Article(
        article_id=a["article_id"],
        type=ArticleType(a["type"]),
        name=a["name"],
        weight=a.get("weight", 0.0),
        unit=a.get("unit", "pcs"),
        min_stock=a["min_stock"],
        reorder_point=a["reorder_point"],
        max_stock=a["max_stock"],
        current_stock=a.get("current_stock", 0),
    ))
    return {"success": True, "article": _article_row(article)}


def adjust_stock(article_id: str, delta: int, reference: str = None) -> Dict:
    level = service.adjust_stock(article_id, delta, reference)
    article = service.get_article(article_id)
    return {"success": True, "article_id": article_id, "current_stock": article.current_stock,
            "stock_level": level.value}


if __name__ == "__main__":
    import asyncio
    from mcp.server.stdio import stdio_server

    async def main():
        async with stdio_server() as (read_stream, write_stream):
            await app.run(read_stream, write_stream, app.create_initialization_options())

    asyncio.run(main())
