import hashlib

from shared.errors.exceptions import ConflictError, DuplicateNameError, MissingInformationError, NotReadyError
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import FolderNamePolicy
from services.sop_library.SOPRepository import SOPRepository


class FolderService:
    """Creates folders, keeping folder names unique within an organization."""

    def __init__(
        self,
        helper_config: HelperConfig,
        repository: SOPRepository,
        organization_id: str | None,
        user_id: str | None = None,
        policy: FolderNamePolicy | None = None,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._repository = repository
        self._organization_id = organization_id
        self._user_id = user_id
        self._policy = policy or self.get_policy_from_config(helper_config)

    @staticmethod
    def get_policy_from_config(helper_config: HelperConfig) -> FolderNamePolicy:
        return FolderNamePolicy(
            case_sensitive=helper_config.get_bool_val("FOLDERS_NAME_CASE_SENSITIVE", default=True),
            trim_whitespace=helper_config.get_bool_val("FOLDERS_NAME_TRIM", default=True),
            conditional_create=helper_config.get_bool_val("FOLDERS_CONDITIONAL_CREATE", default=True),
        )

    def get_policy(self) -> FolderNamePolicy:
        return self._policy

    def get_folder_document_id(self, organization_id: str, name: str) -> str:
        """
        Returns the deterministic record id claimed by a folder name. Two names that
        normalise to the same key under the policy map to the same id.
        """
        key = f"{organization_id}\x00{self._policy.normalize(name)}"
        return hashlib.sha256(key.encode("utf-8")).hexdigest()[:32]

    async def do_create_folder(self, name: str) -> str:
        """
        Creates a folder in the current organization.

        The name is checked against every existing folder of the organization.
        With conditional creates enabled, the record is additionally written under
        an id derived from the normalised name and only if that id is still free,
        so a concurrent creator of the same name loses with a duplicate error.

        Returns:
            str: The id of the new folder.

        Raises:
            MissingInformationError: If the name is empty.
            NotReadyError: If no organization id is available.
            DuplicateNameError: If a folder with that name already exists.
            RemoteIOError: If reading the folders or writing the record fails.
        """
        if not (name or "").strip():
            raise MissingInformationError(["folder name"])
        if not self._organization_id:
            raise NotReadyError()

        stored_name = name.strip() if self._policy.trim_whitespace else name
        key = self._policy.normalize(name)

        existing = await self._repository.do_fetch_folders(self._organization_id)
        if any(self._policy.normalize(folder.name) == key for folder in existing):
            self.logging.info("Folder '%s' already exists.", stored_name, extra={"organization": self._organization_id})
            raise DuplicateNameError(stored_name)

        fields = {"name": stored_name}
        if self._user_id:
            fields["createdBy"] = self._user_id

        try:
            if self._policy.conditional_create:
                folder_id = await self._repository.do_create_folder(
                    self._organization_id,
                    fields,
                    document_id=self.get_folder_document_id(self._organization_id, name),
                    must_not_exist=True,
                )
            else:
                folder_id = await self._repository.do_create_folder(self._organization_id, fields)
        except ConflictError:
            self.logging.info("Folder '%s' was created concurrently.", stored_name, extra={"organization": self._organization_id})
            raise DuplicateNameError(stored_name)

        self.logging.info("Created folder '%s' (%s).", stored_name, folder_id, extra={"organization": self._organization_id})
        return folder_id
