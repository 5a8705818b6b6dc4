"""Default model presets for the bundled engines."""

from agentproxy.models.engine import ModelPreset


DEFAULT_MODEL_PRESETS: tuple[ModelPreset, ...] = (
    ModelPreset(
        id="gpt-5",
        display_name="GPT-5",
        description="General purpose model for chat and coding",
        context_window=272_000,
        max_output_tokens=128_000,
        reasoning_efforts=("minimal", "low", "medium", "high"),
        default_reasoning_effort="medium",
    ),
    ModelPreset(
        id="gpt-5-codex",
        display_name="GPT-5 Codex",
        description="GPT-5 tuned for agentic coding",
        context_window=272_000,
        max_output_tokens=128_000,
        reasoning_efforts=("low", "medium", "high"),
        default_reasoning_effort="medium",
    ),
    ModelPreset(
        id="gpt-5-mini",
        display_name="GPT-5 mini",
        description="Faster, cheaper GPT-5 variant",
        context_window=272_000,
        max_output_tokens=128_000,
        reasoning_efforts=("low", "medium", "high"),
        default_reasoning_effort="medium",
    ),
    ModelPreset(
        id="o3",
        display_name="o3",
        description="Reasoning model for hard multi-step problems",
        context_window=200_000,
        max_output_tokens=100_000,
        reasoning_efforts=("low", "medium", "high"),
        default_reasoning_effort="medium",
        reasoning_tier=True,
        created=1_744_761_600,
    ),
    ModelPreset(
        id="o4-mini",
        display_name="o4-mini",
        description="Small reasoning model",
        context_window=200_000,
        max_output_tokens=100_000,
        reasoning_efforts=("low", "medium", "high"),
        default_reasoning_effort="medium",
        reasoning_tier=True,
        created=1_744_761_600,
    ),
)


__all__ = ["DEFAULT_MODEL_PRESETS"]
