"""
verification.py - Check indexer and download-client access before a run
"""

import asyncio

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .client.protocols import DownloadClient
from .errors import CrossSeedError
from .indexer.endpoint import IndexerEndpoint


async def verify_indexer(endpoint: IndexerEndpoint):
    """Fetch capabilities once; an indexer that answers is reachable and accepts the key."""
    try:
        await endpoint.ensure_client()
    except CrossSeedError as e:
        return endpoint.name, False, str(e)
    except Exception as e:
        return endpoint.name, False, f"Unexpected error: {type(e).__name__}: {e}"
    capabilities = ", ".join(sorted(endpoint.capabilities)) or "no search capabilities reported"
    return endpoint.name, True, capabilities


async def verify_download_client(client: DownloadClient):
    try:
        await client.login()
    except CrossSeedError as e:
        return client.name, False, str(e)
    except Exception as e:
        return client.name, False, f"Unexpected error: {type(e).__name__}: {e}"
    return client.name, True, "Logged in"


async def verify_access(endpoints, client, console: Console) -> bool:
    """Verify every enabled indexer and the download client"""
    console.print("[cyan][INFO][/cyan] Verifying indexers and download client...")

    tasks = [verify_indexer(endpoint) for endpoint in endpoints]
    if client is not None:
        tasks.append(verify_download_client(client))
    results = await asyncio.gather(*tasks)

    table = Table(title="Access Verification Results")
    table.add_column("Service", style="cyan", no_wrap=True)
    table.add_column("Status", style="bold", no_wrap=True)
    table.add_column("Details", style="yellow")

    for service, status, details in results:
        status_str = "[green]✓ Valid[/green]" if status else "[red]✗ Invalid[/red]"
        if details:
            details = escape(str(details).strip()[:100])
        table.add_row(service, status_str, details or "")

    if not results:
        table.add_row("Nothing", "[yellow]⚠ Warning[/yellow]", "No indexers or download client configured")

    console.print(table)

    if results:
        return all(status for _, status, _ in results)
    return False
