"""Orphaned-blob sweep entry point.

Removes blobs left behind by uploads whose metadata write failed, for every
organization in SWEEP_ORGANIZATION_IDS. Dry run unless SWEEP_DRY_RUN=false.

Usage:
    python -m services.orphan_sweep.orphan_sweep
"""

import asyncio

from shared.clients.ClientManager import ClientManager
from shared.clients.blob.BlobClientInterface import BlobClientInterface
from shared.clients.store.StoreClientInterface import StoreClientInterface
from shared.errors.exceptions import ConsistencyError, RemoteIOError
from shared.helper.HelperConfig import HelperConfig
from shared.logging.logging_setup import setup_logging
from services.orphan_sweep.OrphanSweepService import OrphanSweepService
from services.sop_library.SOPRepository import SOPRepository


async def main() -> None:
    """Run the sweep for all configured organizations."""
    logger = setup_logging()
    config = HelperConfig(logger=logger)
    organization_ids = config.get_list_val("SWEEP_ORGANIZATION_IDS")
    dry_run = config.get_bool_val("SWEEP_DRY_RUN", default=True)
    min_age_minutes = int(config.get_number_val("SWEEP_MIN_AGE_MINUTES", default=60))

    store_client: StoreClientInterface = ClientManager(helper_config=config, client_type="store").get_client()
    blob_client: BlobClientInterface = ClientManager(helper_config=config, client_type="blob").get_client()

    try:
        # both clients are required, there is nothing to sweep without either
        for client in (store_client, blob_client):
            try:
                await client.boot()
                await client.do_healthcheck()
            except RemoteIOError as e:
                logger.error(f"Error booting {client.get_client_type()} client {client.get_engine_name()}: {e.message}. Aborting.")
                return

        service = OrphanSweepService(
            helper_config=config,
            repository=SOPRepository(helper_config=config, store_client=store_client),
            blob_client=blob_client,
        )
        for organization_id in organization_ids:
            try:
                report = await service.do_sweep(organization_id, dry_run=dry_run, min_age_minutes=min_age_minutes)
            except (RemoteIOError, ConsistencyError) as e:
                logger.error(f"Sweep of organization {organization_id} failed: {e.message}. Skipping.")
                continue
            if report.dry_run:
                for path in report.orphaned:
                    logger.info(f"[dry run] would delete {path}")
    finally:
        await store_client.close()
        await blob_client.close()


if __name__ == "__main__":
    asyncio.run(main())
