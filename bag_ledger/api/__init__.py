"""
Bag Ledger API Application Factory
"""

import uvicorn
from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .. import __version__
from .deps import get_exchange
from ..exchange import BagExchange
from .bags import router as bags_router
from .accounts import router as accounts_router
from .admin import router as admin_router


def create_app() -> FastAPI:
    """Create and configure the FastAPI application"""
    app = FastAPI(
        title="Bag Ledger API",
        description="Asset-ownership ledger with a rising-price auction",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc"
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure appropriately for production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(bags_router, prefix="/bags", tags=["Bags"])
    app.include_router(accounts_router, prefix="/accounts", tags=["Accounts"])
    app.include_router(admin_router, prefix="/admin", tags=["Admin"])

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {
            "status": "healthy",
            "service": "bag_ledger_api",
            "version": __version__
        }

    @app.get("/")
    async def get_api_info(exchange: BagExchange = Depends(get_exchange)):
        """Collection metadata and endpoint index"""
        return {
            "name": exchange.name,
            "symbol": exchange.symbol,
            "total_supply": exchange.total_supply(),
            "version": __version__,
            "endpoints": {
                "docs": "/docs",
                "health": "/health",
                "bags": "/bags",
                "accounts": "/accounts",
                "admin": "/admin"
            }
        }

    return app


app = create_app()


def run_server(host: str = "0.0.0.0", port: int = 8090, debug: bool = False):
    """Run the FastAPI server"""
    uvicorn.run(
        "bag_ledger.api:app",
        host=host,
        port=port,
        reload=debug,
        log_level="info"
    )
