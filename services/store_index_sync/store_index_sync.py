"""Sync runner entry point.

Mirrors the document store into the search index once and exits.

Usage:
    python -m services.store_index_sync.store_index_sync            # full sweep
    python -m services.store_index_sync.store_index_sync --rebuild  # drop + recreate index first
    python -m services.store_index_sync.store_index_sync --category news
"""

import argparse
import asyncio

from shared.clients.index.IndexClientManager import IndexClientManager
from shared.clients.store.StoreClientManager import StoreClientManager
from services.store_index_sync.SyncService import SyncService
from shared.helper.HelperConfig import HelperConfig
from shared.logging.logging_setup import setup_logging
from shared.models.errors import GatewayError


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Sync the document store into the search index.")
    group = parser.add_mutually_exclusive_group()
    group.add_argument("--rebuild", action="store_true", help="drop and recreate the index before syncing")
    group.add_argument("--category", help="only sync documents of this category")
    return parser.parse_args(argv)


async def main(argv: list[str] | None = None) -> int:
    """Run one synchronisation sweep.

    Returns:
        int: Process exit code; 0 when every document was synced.
    """
    args = parse_args(argv)
    logger = setup_logging()
    config = HelperConfig(logger=logger)
    store_client = StoreClientManager(helper_config=config).get_client()
    index_client = IndexClientManager(helper_config=config).get_client()

    try:
        # both backends are required, there is nothing to sync without either of them
        try:
            await store_client.boot()
            await index_client.boot()
        except GatewayError as e:
            logger.error(f"Error booting clients: {e}. Aborting.")
            return 2
        if not await index_client.do_healthcheck():
            logger.error(f"Index client {index_client.get_engine_name()} is not reachable. Aborting.")
            return 2

        sync_service = SyncService(helper_config=config, store_client=store_client, index_client=index_client)
        try:
            if args.rebuild:
                report = await sync_service.do_rebuild_all()
            else:
                await index_client.do_create_index()
                if args.category:
                    report = await sync_service.do_sync_category(args.category)
                else:
                    report = await sync_service.do_sync_all()
        except GatewayError as e:
            logger.error(f"Sync aborted: {e}")
            return 1

        logger.info(f"Sync finished: {report.succeeded}/{report.total} synced, {report.failed} failed.")
        return 0 if report.failed == 0 else 1
    finally:
        await index_client.close()
        await store_client.close()


if __name__ == "__main__":
    raise SystemExit(asyncio.run(main()))
