from pydantic import BaseModel


class RuntimeStatus(BaseModel):
    state: str = "UNINITIALIZED"
    started_at: int | None = None
    ready_at: int | None = None
    last_error: str | None = None
