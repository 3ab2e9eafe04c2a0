from pydantic import BaseModel, Field

HHMM_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


class ServiceCreateRequest(BaseModel):
    name: str = Field(min_length=1)
    description: str = Field(min_length=1)
    duration_minutes: int = Field(gt=0)
    price_usd: int = Field(default=0, ge=0)
    price_eur: int = Field(default=0, ge=0)
    price_ars: int = Field(default=0, ge=0)
    price_mxn: int = Field(default=0, ge=0)


class ServiceUpdateRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1)
    description: str | None = Field(default=None, min_length=1)
    duration_minutes: int | None = Field(default=None, gt=0)
    price_usd: int | None = Field(default=None, ge=0)
    price_eur: int | None = Field(default=None, ge=0)
    price_ars: int | None = Field(default=None, ge=0)
    price_mxn: int | None = Field(default=None, ge=0)
    is_active: bool | None = None


class SlotTemplateCreateRequest(BaseModel):
    day_of_week: int = Field(ge=0, le=6)  # 0 = Sunday
    start_time: str = Field(pattern=HHMM_PATTERN)
    end_time: str = Field(pattern=HHMM_PATTERN)
    is_active: bool = True


class SlotTemplateUpdateRequest(BaseModel):
    day_of_week: int | None = Field(default=None, ge=0, le=6)
    start_time: str | None = Field(default=None, pattern=HHMM_PATTERN)
    end_time: str | None = Field(default=None, pattern=HHMM_PATTERN)
    is_active: bool | None = None
