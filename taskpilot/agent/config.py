"""Settings for the task runner."""

from pydantic import BaseModel, Field


class TaskRunnerSettings(BaseModel):
    """Settings for TaskRunner."""

    model: str = Field(..., description="Model identifier passed to the transport")
    max_history: int = Field(default=50, ge=1, description="Stop the run once the transcript holds this many entries")
    settle_delay_s: float = Field(default=2.0, ge=0.0, description="Pause after a dispatched action before the next snapshot")
    max_query_attempts: int = Field(default=3, ge=1, description="Transport attempts per turn before the run fails")
    include_history: bool = Field(default=True, description="Replay previous valid turns to the model as conversation")
