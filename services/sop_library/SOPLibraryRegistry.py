from shared.clients.blob.BlobClientInterface import BlobClientInterface
from shared.errors.exceptions import LoadFailedError
from shared.helper.HelperConfig import HelperConfig
from services.sop_library.SOPLibraryViewModel import SOPLibraryViewModel
from services.sop_library.SOPRepository import SOPRepository


class SOPLibraryRegistry:
    """Keeps exactly one view-model per organization for the lifetime of the process."""

    def __init__(self, helper_config: HelperConfig, repository: SOPRepository, blob_client: BlobClientInterface) -> None:
        self._helper_config = helper_config
        self._repository = repository
        self._blob = blob_client
        self._view_models: dict[str, SOPLibraryViewModel] = {}

    def get_view_model(self, organization_id: str) -> SOPLibraryViewModel:
        view_model = self._view_models.get(organization_id)
        if view_model is None:
            view_model = SOPLibraryViewModel(
                helper_config=self._helper_config,
                repository=self._repository,
                blob_client=self._blob,
                organization_id=organization_id,
            )
            self._view_models[organization_id] = view_model
        return view_model

    async def do_get_loaded(self, organization_id: str) -> SOPLibraryViewModel:
        """
        Returns the organization's view-model, loading it on first use and
        reloading it once it was marked stale.

        A failed reload keeps the previous snapshot and records the failure in the
        view-model's error; the view-model stays stale so the next call retries.

        Raises:
            LoadFailedError: If the first load fails.
        """
        view_model = self.get_view_model(organization_id)
        if view_model.is_loaded and not view_model.is_stale:
            return view_model
        try:
            await view_model.do_refresh()
        except LoadFailedError:
            if not view_model.is_loaded:
                raise
        return view_model

    def mark_stale(self, organization_id: str) -> None:
        """Marks the organization's snapshot for reload after a write outside the view-model."""
        view_model = self._view_models.get(organization_id)
        if view_model is not None:
            view_model.is_stale = True
