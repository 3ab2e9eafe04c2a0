from sqlmodel import Field, SQLModel


class SlotTemplate(SQLModel, table=True):
    """Standing weekly opening window. day_of_week: 0 = Sunday ... 6 = Saturday."""

    __tablename__ = "slot_templates"
    id: int | None = Field(default=None, primary_key=True)
    day_of_week: int = Field(index=True)
    start_time: str  # HH:MM
    end_time: str  # HH:MM, exclusive
    is_active: bool = True


class SlotTemplatePublic(SQLModel):
    id: int
    day_of_week: int
    start_time: str
    end_time: str
    is_active: bool
