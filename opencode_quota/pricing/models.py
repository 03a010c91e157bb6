from typing import Any, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictFloat,
    StrictInt,
    StrictStr,
    ValidationError,
    field_validator,
)

UNITS = "USD per 1M tokens"
UNKNOWN_SOURCE = "(unknown)"


class CostBuckets(BaseModel):
    """USD per million tokens, by token category. Any bucket may be missing."""

    model_config = ConfigDict(extra="ignore")

    input: Optional[float] = None
    output: Optional[float] = None
    cache_read: Optional[float] = None
    cache_write: Optional[float] = None
    reasoning: Optional[float] = None


class SnapshotMeta(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    source: StrictStr
    generated_at: Union[StrictInt, StrictFloat] = Field(alias="generatedAt")
    providers: list[Any]
    units: StrictStr


class PricingSnapshot(BaseModel):
    """Pricing table. Replaced wholesale on refresh, never edited in place."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    meta: SnapshotMeta = Field(alias="_meta")
    providers: dict[str, dict[str, CostBuckets]]

    @field_validator("providers", mode="before")
    @classmethod
    def _drop_unparseable_models(cls, value: Any) -> Any:
        # Only the outer shape is required; bad entries are skipped, not fatal
        if not isinstance(value, dict):
            return value
        kept: dict[str, dict[str, CostBuckets]] = {}
        for provider_id, models in value.items():
            if not isinstance(models, dict):
                continue
            kept[provider_id] = {}
            for model_id, buckets in models.items():
                try:
                    kept[provider_id][model_id] = CostBuckets.model_validate(buckets)
                except ValidationError:
                    continue
        return kept

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True)


class SnapshotCheck(BaseModel):
    """Result of validating a raw value: a snapshot, or the reason it was rejected."""

    snapshot: Optional[PricingSnapshot] = None
    reason: Optional[str] = None

    @property
    def valid(self) -> bool:
        return self.snapshot is not None


def empty_snapshot() -> PricingSnapshot:
    return PricingSnapshot(
        meta=SnapshotMeta(source=UNKNOWN_SOURCE, generated_at=0, providers=[], units=UNITS),
        providers={},
    )


def validate_snapshot(raw: Any) -> SnapshotCheck:
    if not isinstance(raw, dict):
        return SnapshotCheck(reason=f"expected object, got {type(raw).__name__}")
    try:
        return SnapshotCheck(snapshot=PricingSnapshot.model_validate(raw))
    except ValidationError as e:
        first = e.errors()[0]
        where = ".".join(str(part) for part in first["loc"])
        return SnapshotCheck(reason=f"{where}: {first['msg']}")
