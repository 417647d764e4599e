"""
Persistence of the last-seen version state in a blob store.
"""

import json
from typing import Optional

import structlog
from pydantic import ValidationError

from checker.errors import PersistError
from checker.models import VersionState
from checker.storage import BlobStore

logger = structlog.get_logger(__name__)


class VersionStateStore:
    """Reads and overwrites the single version state object."""

    def __init__(self, blob_store: BlobStore, blob_name: str):
        """
        Initialize state store.

        Args:
            blob_store: Backend holding the state object
            blob_name: Name of the state object in the container
        """
        self.blob_store = blob_store
        self.blob_name = blob_name
        self.logger = logger.bind(component="state_store", blob=blob_name)

    async def load(self) -> Optional[VersionState]:
        """
        Load the stored state.

        Returns:
            The stored VersionState, or None if nothing has been stored yet

        Raises:
            PersistError: if the store fails or the object cannot be decoded
        """
        try:
            if not await self.blob_store.exists(self.blob_name):
                self.logger.info("No stored version state found")
                return None
            raw = await self.blob_store.read(self.blob_name)
        except Exception as e:
            raise PersistError(f"Failed to read version state: {e}") from e

        try:
            return VersionState.model_validate(json.loads(raw))
        except (ValueError, ValidationError) as e:
            raise PersistError(f"Stored version state is not valid: {e}") from e

    async def save(self, state: VersionState) -> None:
        """
        Overwrite the stored state.

        Raises:
            PersistError: if the write fails
        """
        try:
            await self.blob_store.write(self.blob_name, state.to_json_bytes())
        except Exception as e:
            raise PersistError(f"Failed to write version state: {e}") from e

        self.logger.info(
            "Updated version state",
            last_production_id=state.last_production_id,
            last_staging_id=state.last_staging_id
        )
