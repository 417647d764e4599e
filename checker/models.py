"""
Pydantic models for release metadata and the persisted version state.
"""

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class VersionMetadata(BaseModel):
    """
    Channel identifiers and versions extracted from one metadata token.
    Rebuilt on every check; never persisted.
    """
    production_id: str = Field(..., description="Identifier of the live production build")
    production_version: str = Field(..., description="Version of the live production build")
    production_previous_version: str = Field(..., description="Version production replaced")
    staging_id: str = Field(..., description="Identifier of the current staging build")
    staging_version: str = Field(..., description="Version of the current staging build")


class VersionState(BaseModel):
    """
    Last channel identifiers seen by the checker.

    Written as ``{"lastProductionId": ..., "lastStagingId": ...}``. The
    PascalCase keys of older state objects are accepted on read.
    """
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    last_production_id: str = Field(
        ...,
        validation_alias=AliasChoices("lastProductionId", "LastProductionId", "last_production_id"),
        serialization_alias="lastProductionId",
    )
    last_staging_id: str = Field(
        ...,
        validation_alias=AliasChoices("lastStagingId", "LastStagingId", "last_staging_id"),
        serialization_alias="lastStagingId",
    )

    @classmethod
    def from_metadata(cls, metadata: VersionMetadata) -> "VersionState":
        return cls(
            last_production_id=metadata.production_id,
            last_staging_id=metadata.staging_id,
        )

    def to_json_bytes(self) -> bytes:
        return self.model_dump_json(by_alias=True).encode("utf-8")
