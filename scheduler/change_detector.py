"""
Change detection engine for release channel metadata.

This module provides:
- Extraction of channel versions from the decoded metadata payload
- Comparison against the last stored version state
"""

import json
from typing import Any, Dict, Optional

import structlog

from checker.errors import SchemaError
from checker.models import VersionMetadata, VersionState
from scheduler.models import ChangeDetectionResult, ChangeSet
from scheduler.state_store import VersionStateStore

logger = structlog.get_logger(__name__)


def _get_object(container: Dict[str, Any], key: str, path: str) -> Dict[str, Any]:
    value = container.get(key)
    if not isinstance(value, dict):
        raise SchemaError(f"Metadata field '{path}' is missing or not an object")
    return value


def _get_string(container: Dict[str, Any], key: str, path: str) -> str:
    value = container.get(key)
    if not isinstance(value, str):
        raise SchemaError(f"Metadata field '{path}' is missing or not a string")
    return value


def extract_versions(payload_text: str) -> VersionMetadata:
    """
    Pull channel identifiers and versions out of the metadata JSON.

    Expected shape::

        {"environments": {
            "production": {"id": ..., "version": ...},
            "production-last": {"version": ...},
            "staging": {"id": ..., "version": ...}}}

    Raises:
        SchemaError: if the text is not JSON or a required field is missing
            or has the wrong type
    """
    try:
        document = json.loads(payload_text)
    except ValueError as e:
        raise SchemaError(f"Metadata payload is not valid JSON: {e}") from e

    if not isinstance(document, dict):
        raise SchemaError("Metadata payload is not a JSON object")

    environments = _get_object(document, "environments", "environments")
    production = _get_object(environments, "production", "environments.production")
    production_last = _get_object(environments, "production-last", "environments.production-last")
    staging = _get_object(environments, "staging", "environments.staging")

    return VersionMetadata(
        production_id=_get_string(production, "id", "environments.production.id"),
        production_version=_get_string(production, "version", "environments.production.version"),
        production_previous_version=_get_string(
            production_last, "version", "environments.production-last.version"
        ),
        staging_id=_get_string(staging, "id", "environments.staging.id"),
        staging_version=_get_string(staging, "version", "environments.staging.version"),
    )


def compare_versions(metadata: VersionMetadata, previous: Optional[VersionState]) -> ChangeSet:
    """Every channel counts as changed when there is no previous state."""
    if previous is None:
        return ChangeSet(production_changed=True, staging_changed=True)

    return ChangeSet(
        production_changed=previous.last_production_id != metadata.production_id,
        staging_changed=previous.last_staging_id != metadata.staging_id,
    )


class ChangeDetector:
    """Compares fetched metadata with the stored version state."""

    def __init__(self, state_store: VersionStateStore):
        """
        Initialize change detector.

        Args:
            state_store: Store holding the last seen version state
        """
        self.state_store = state_store
        self.logger = logger.bind(component="change_detector")

    async def detect_changes(self, payload_text: str) -> ChangeDetectionResult:
        """
        Detect channel changes for a decoded metadata payload.

        Args:
            payload_text: Decoded token payload

        Returns:
            ChangeDetectionResult with the new state always populated

        Raises:
            SchemaError: if the payload lacks required fields
            PersistError: if the stored state cannot be loaded
        """
        metadata = extract_versions(payload_text)
        previous_state = await self.state_store.load()
        changes = compare_versions(metadata, previous_state)

        self.logger.info(
            "Compared channel versions",
            first_run=previous_state is None,
            production_id=metadata.production_id,
            production_version=metadata.production_version,
            staging_id=metadata.staging_id,
            staging_version=metadata.staging_version,
            production_changed=changes.production_changed,
            staging_changed=changes.staging_changed
        )

        return ChangeDetectionResult(
            metadata=metadata,
            previous_state=previous_state,
            new_state=VersionState.from_metadata(metadata),
            changes=changes,
        )
