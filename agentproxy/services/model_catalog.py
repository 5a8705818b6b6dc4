"""Model catalog derived from the engine's static presets."""

from collections.abc import Iterable
from dataclasses import dataclass

from agentproxy.core.errors import UnknownModelError
from agentproxy.models.engine import ModelPreset
from agentproxy.models.openai import OpenAIModelInfo, OpenAIModelsResponse
from agentproxy.models.types import ReasoningEffort


# Efforts that never get their own advertised variant.
_UNLISTED_VARIANT_EFFORTS: frozenset[str] = frozenset({"none", "minimal"})


@dataclass(frozen=True)
class ModelDescriptor:
    """One externally advertised model identifier."""

    id: str
    base_model: str
    preset: ModelPreset
    reasoning_effort: ReasoningEffort | None = None

    @property
    def is_variant(self) -> bool:
        return self.reasoning_effort is not None

    def to_model_info(self) -> OpenAIModelInfo:
        return OpenAIModelInfo(
            id=self.id,
            created=self.preset.created,
            owned_by=self.preset.owned_by,
        )


@dataclass(frozen=True)
class ResolvedModel:
    """A requested model id resolved to its base model and effort."""

    model: str
    reasoning_effort: ReasoningEffort | None
    preset: ModelPreset


class ModelCatalog:
    """Pure filter over a static preset list.

    Listing is sorted by identifier and deduplicated. Reasoning-tier presets
    and ``{model}-{effort}`` variants are only advertised, and only resolvable,
    when reasoning model exposure is on.
    """

    def __init__(self, presets: Iterable[ModelPreset]) -> None:
        self._presets: dict[str, ModelPreset] = {}
        for preset in presets:
            self._presets.setdefault(preset.id, preset)

    def get_preset(self, model_id: str) -> ModelPreset | None:
        return self._presets.get(model_id)

    def list_models(self, expose_reasoning_models: bool) -> list[ModelDescriptor]:
        descriptors: dict[str, ModelDescriptor] = {}
        for preset in self._presets.values():
            if preset.reasoning_tier and not expose_reasoning_models:
                continue
            descriptors.setdefault(
                preset.id,
                ModelDescriptor(id=preset.id, base_model=preset.id, preset=preset),
            )
            if not expose_reasoning_models:
                continue
            for effort in preset.reasoning_efforts:
                if effort in _UNLISTED_VARIANT_EFFORTS:
                    continue
                variant_id = f"{preset.id}-{effort}"
                descriptors.setdefault(
                    variant_id,
                    ModelDescriptor(
                        id=variant_id,
                        base_model=preset.id,
                        preset=preset,
                        reasoning_effort=effort,
                    ),
                )
        return sorted(descriptors.values(), key=lambda d: d.id)

    def model_ids(self, expose_reasoning_models: bool) -> list[str]:
        return [d.id for d in self.list_models(expose_reasoning_models)]

    def resolve(self, model_id: str, expose_reasoning_models: bool) -> ResolvedModel:
        """Resolve a requested model id, or raise ``UnknownModelError``.

        The effort suffix of a variant id matches case-insensitively.
        """
        candidates = {model_id, model_id.strip()}
        base, sep, suffix = model_id.strip().rpartition("-")
        if sep:
            candidates.add(f"{base}-{suffix.lower()}")
        for descriptor in self.list_models(expose_reasoning_models):
            if descriptor.id in candidates:
                return ResolvedModel(
                    model=descriptor.base_model,
                    reasoning_effort=descriptor.reasoning_effort,
                    preset=descriptor.preset,
                )
        raise UnknownModelError(model_id)

    def to_openai(self, expose_reasoning_models: bool) -> OpenAIModelsResponse:
        return OpenAIModelsResponse(
            data=[d.to_model_info() for d in self.list_models(expose_reasoning_models)]
        )


__all__ = ["ModelCatalog", "ModelDescriptor", "ResolvedModel"]
