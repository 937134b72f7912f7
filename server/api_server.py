"""FastAPI application entry point for the search gateway."""

import os
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from shared.logging.logging_setup import setup_logging
from shared.helper.HelperConfig import HelperConfig
from shared.clients.index.IndexClientInterface import IndexClientInterface
from shared.clients.store.StoreClientInterface import StoreClientInterface
from shared.clients.index.IndexClientManager import IndexClientManager
from shared.clients.store.StoreClientManager import StoreClientManager
from services.store_index_sync.SyncService import SyncService
from services.store_index_sync.SyncScheduler import SyncScheduler
from server.core.SearchService import SearchService
from server.core.DocumentService import DocumentService
from server.errors import register_exception_handlers
from server.routers.SearchRouter import router as search_router
from server.routers.IndexingRouter import router as indexing_router
from server.routers.DocumentRouter import router as document_router

logging = setup_logging()
app_version = os.getenv("APP_VERSION", "unknown")


def init_services(
    app: FastAPI,
    helper_config: HelperConfig,
    store_client: StoreClientInterface,
    index_client: IndexClientInterface,
) -> None:
    """Wire the services onto app.state around already constructed clients."""
    app.state.helper_config = helper_config
    app.state.store_client = store_client
    app.state.index_client = index_client
    app.state.sync_service = SyncService(
        helper_config=helper_config,
        store_client=store_client,
        index_client=index_client,
    )
    app.state.search_service = SearchService(helper_config=helper_config, index_client=index_client)
    app.state.document_service = DocumentService(
        helper_config=helper_config,
        store_client=store_client,
        sync_service=app.state.sync_service,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # when the app starts
    app.state.logging = logging
    helper_config = HelperConfig(logger=logging)

    store_client = StoreClientManager(helper_config=helper_config).get_client()
    index_client = IndexClientManager(helper_config=helper_config).get_client()

    logging.info("Booting all clients...")
    await store_client.boot()
    await index_client.boot()
    logging.info("All clients booted successfully.")

    await check_connections(store_client, index_client)
    await index_client.do_create_index()

    init_services(app, helper_config, store_client, index_client)
    app.state.sync_scheduler = SyncScheduler(helper_config=helper_config, sync_service=app.state.sync_service)
    app.state.sync_scheduler.start()

    # while the app is running...
    yield

    # when the app shuts down, stop the scheduler and close all client connections
    logging.info("Shutting down, closing all clients...")
    try:
        await app.state.sync_scheduler.stop()
    finally:
        try:
            await index_client.close()
        finally:
            await store_client.close()
    logging.info("All clients closed.")


async def check_connections(store_client: StoreClientInterface, index_client: IndexClientInterface) -> None:
    """Check connectivity to both backends on startup.

    Raises:
        Exception: If the store or the index is not reachable.
    """
    if not await store_client.do_healthcheck():
        raise Exception(f"Store client '{store_client.get_engine_name()}' is not reachable. Cannot serve documents.")
    if not await index_client.do_healthcheck():
        raise Exception(f"Index client '{index_client.get_engine_name()}' is not reachable. Cannot serve searches.")


def create_app(with_lifespan: bool = True) -> FastAPI:
    """Build the FastAPI application.

    Args:
        with_lifespan (bool): Boot the configured backends on startup. Tests
            pass False and wire their own clients via init_services().
    """
    app = FastAPI(
        title="search_gateway",
        description=(
            "Search and indexing gateway in front of a ScyllaDB document store and an "
            "Elasticsearch index. Documents are managed via /api/documents, searched via "
            "/api/search and resynchronised via /api/indexing."
        ),
        version=app_version,
        lifespan=lifespan if with_lifespan else None,
    )
    app.state.logging = logging

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)
    app.include_router(search_router)
    app.include_router(indexing_router)
    app.include_router(document_router)

    @app.get("/health", tags=["health"])
    async def health(request: Request) -> JSONResponse:
        store_ok = await request.app.state.store_client.do_healthcheck()
        index_ok = await request.app.state.index_client.do_healthcheck()
        healthy = store_ok and index_ok
        return JSONResponse(
            status_code=200 if healthy else 503,
            content={
                "status": "success" if healthy else "error",
                "version": app_version,
                "store": store_ok,
                "index": index_ok,
            },
        )

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    logging.info(
        "Starting search_gateway API Server v%s from root dir: %s on port 8000...",
        app_version,
        os.environ.get("ROOT_DIR", "unknown"),
    )
    uvicorn.run(app, host="0.0.0.0", port=8000)
