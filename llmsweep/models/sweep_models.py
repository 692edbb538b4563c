"""Pydantic models for sweep configuration files."""

from typing import Literal

from pydantic import BaseModel, Field


class PromptConfig(BaseModel):
    """An inline prompt definition."""

    id: str = Field(..., min_length=1, description="Prompt/test identifier")
    text: str = Field(..., description="Prompt text sent to the engine")


class EngineConfig(BaseModel):
    """How to invoke the inference engine."""

    command: str = Field("ollama", description="Engine executable")
    extra_args: list[str] = Field(
        default_factory=list,
        description="Additional arguments appended to every invocation",
    )


class SweepConfig(BaseModel):
    """Root configuration for a benchmark sweep.

    Empty ``models`` or an empty prompt set are accepted here and rejected
    by the matrix builder, so CLI options can fill them in after loading.
    """

    models: list[str] = Field(default_factory=list, description="Model identifiers")
    prompts: list[PromptConfig] = Field(
        default_factory=list, description="Inline prompts"
    )
    prompt_dir: str | None = Field(
        None, description="Directory of *.txt / *.md prompt files (id = file stem)"
    )
    context_file: str | None = Field(
        None, description="Document prepended to every prompt"
    )
    repeats: int = Field(3, ge=1, description="Measured repeats per cell")
    warmup_runs: int = Field(1, ge=0, description="Unrecorded warmup runs per model")
    mode: Literal["steady", "fresh"] = Field(
        "steady", description="Keep the model resident (steady) or reload per repeat"
    )
    resume: bool = Field(False, description="Skip cells with a complete artifact")
    output_dir: str = Field("llmsweep_results", description="Session output directory")
    sample_interval_s: float = Field(
        1.0, gt=0, description="Telemetry sampling interval in seconds"
    )
    gpu_index: int = Field(0, ge=0, description="GPU to sample")
    invocation_timeout_s: float | None = Field(
        None, gt=0, description="Kill an engine invocation after this many seconds"
    )
    unload_between_models: bool = Field(
        True, description="Unload each model after its last repeat"
    )
    engine: EngineConfig = Field(default_factory=EngineConfig)
