"""Landing page listing the endpoints with example curl calls."""

from html import escape

from fastapi import APIRouter, Depends
from fastapi.responses import HTMLResponse

from inspector.api.deps import get_gateway
from inspector.core.config import settings
from inspector.services.inspection_gateway import InspectionGateway

router = APIRouter()

_TITLES = {
    "postgres": "PostgreSQL",
    "mysql": "MySQL",
    "sqlite": "SQLite",
    "mssql": "MSSQL",
    "mongodb": "MongoDB",
}

_PAGE = """<!DOCTYPE html>
<html>
<head>
    <title>{title} Inspector API</title>
    <style>
        body {{ font-family: Arial, sans-serif; margin: 40px; background: #f5f5f5; }}
        h1 {{ color: #333; }}
        .box {{ background: white; padding: 20px; border-radius: 6px; margin-top: 20px; }}
        code {{ background: #eee; padding: 4px 6px; border-radius: 4px; }}
        pre {{ background: #272822; color: #f8f8f2; padding: 15px; border-radius: 6px; }}
    </style>
</head>
<body>
    <h1>{title} Database Inspector</h1>
    <p>Read-only access to the structure and data of the allow-listed {noun}s.</p>
    <div class="box">
        <h2>Available Endpoints</h2>
        <p><strong>Database connection check</strong></p><code>GET /dbcheck</code>
        <p><strong>List all {noun}s</strong></p><code>GET /tables</code>
        <p><strong>Get {noun} columns</strong></p><code>GET /tables/:tableName/columns</code>
        <p><strong>Get {noun} rows</strong></p><code>GET /tables/:tableName/lines?limit=100&amp;offset=0</code>
    </div>
    <div class="box">
        <h2>Example curl</h2>
        <pre>curl {base}/dbcheck</pre>
        <pre>curl {base}/tables</pre>
        <pre>curl {base}/tables/{example}/columns</pre>
        <pre>curl "{base}/tables/{example}/lines?limit=10"</pre>
    </div>
</body>
</html>
"""


@router.get("/", response_class=HTMLResponse, include_in_schema=False)
async def index(gateway: InspectionGateway = Depends(get_gateway)):
    snapshot = gateway.catalog.snapshot
    example = snapshot.names[0] if snapshot is not None and len(snapshot) else "users"
    return _PAGE.format(
        title=_TITLES.get(gateway.backend, gateway.backend),
        noun=gateway.adapter.relation_kind.value,
        base=escape(settings.public_base_url.rstrip("/")),
        example=escape(example),
    )
