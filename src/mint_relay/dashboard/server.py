"""FastAPI health and status endpoint for mint-relay."""

from __future__ import annotations

import logging

import uvicorn
from fastapi import FastAPI, HTTPException, Query
from fastapi.responses import PlainTextResponse

from mint_relay.service import CommandResult, MintRelay

logger = logging.getLogger("mint_relay.dashboard")


def _unwrap(result: CommandResult) -> dict:
    if not result.ok:
        raise HTTPException(status_code=400, detail=result.error)
    return result.data


def create_app(relay: MintRelay) -> FastAPI:
    """Build the read-only API around an already wired :class:`MintRelay`."""
    app = FastAPI(title="Mint Relay")

    @app.on_event("shutdown")
    async def shutdown():
        await relay.shutdown()

    # ------------------------------------------------------------------
    # API routes
    # ------------------------------------------------------------------

    @app.get("/", response_class=PlainTextResponse)
    async def index():
        return "Mint Relay 🚀"

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    @app.get("/api/status")
    async def api_status():
        return {
            "wallets": len(relay.wallets),
            "active_wallets": len(relay.wallets.list_active()),
            "history_records": len(relay.ledger),
            "chain_id": relay.config.chain.chain_id,
            "contract": relay.chain.contract_address,
        }

    @app.get("/api/wallets")
    async def api_wallets():
        return _unwrap(relay.list_wallets())

    @app.get("/api/history")
    async def api_history(
        limit: int = Query(10),
        address: str | None = Query(None),
    ):
        if address:
            return _unwrap(relay.wallet_history(address, limit))
        return _unwrap(relay.history(limit))

    @app.get("/api/supply")
    async def api_supply():
        result = await relay.supply_status()
        if not result.ok:
            raise HTTPException(status_code=502, detail=result.error)
        return result.data

    return app


# ------------------------------------------------------------------
# Runner
# ------------------------------------------------------------------


def run_dashboard(relay: MintRelay, host: str = "127.0.0.1", port: int = 3000) -> None:
    logger.info(f"Dashboard listening on {host}:{port}")
    uvicorn.run(create_app(relay), host=host, port=port, log_level="info")
