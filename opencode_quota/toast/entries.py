"""
Normalized quota output model.

Providers map their own quota shapes into these types so that formatting and
toast display stay the same across providers. Wire payloads use camelCase;
attributes are snake_case and either spelling is accepted on input.
"""
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, protected_namespaces=())


class QuotaToastEntry(_WireModel):
    # Display label, already human friendly, e.g. "Copilot" or "Claude (abc..gmail)"
    name: str
    # Remaining quota as a percentage; clamped to 0..100 at render time
    percent_remaining: float
    # Only shown when percent_remaining is 0
    reset_time_iso: Optional[str] = None


class GroupedToastEntry(QuotaToastEntry):
    group: Optional[str] = None
    label: Optional[str] = None


class QuotaToastError(_WireModel):
    label: str
    message: str


class SessionTokenModel(_WireModel):
    model_id: str = Field(alias="modelID")
    input: int = 0
    output: int = 0


class SessionTokensData(_WireModel):
    models: list[SessionTokenModel] = []
    total_input: int = 0
    total_output: int = 0


class LayoutConfig(_WireModel):
    max_width: int = 50
    narrow_at: int = 42
    tiny_at: int = 32


class QuotaProviderResult(_WireModel):
    # True when the provider had enough configuration to attempt a query
    attempted: bool = False
    entries: list[QuotaToastEntry] = []
    errors: list[QuotaToastError] = []
