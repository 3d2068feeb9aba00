"""
Shared plumbing for the three prompt agents.

Each agent builds a prompt, calls the model, checks that an output object came
back and validates it into its pydantic model. Failures are logged with full
detail and re-raised as a generic `AnalysisError` the user can see.
"""
from __future__ import annotations

import logging
import re
from typing import Annotated, Any, List, Optional, Sequence, Type, TypeVar

from pydantic import BaseModel, BeforeValidator

from backend.errors import AnalysisError, ModelOutputError
from backend.services.gemini import GeminiClient, get_gemini_client
from backend.services.imaging import InlineImage

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

_LIST_MARKER = re.compile(r"^[ \t]*[*\-•][ \t]+", re.MULTILINE)


def _blank_if_none(value: Any) -> Any:
    return "" if value is None else value


def _clamp_unit(value: Any) -> float:
    try:
        value = float(value)
    except (TypeError, ValueError):
        return 0.0
    return min(max(value, 0.0), 1.0)


def strip_list_markers(value: Any) -> Any:
    """Remove leading markdown bullets from each line of model text."""
    if value is None:
        return ""
    if not isinstance(value, str):
        return value
    return _LIST_MARKER.sub("", value).strip()


def _empty_list_if_none(value: Any) -> Any:
    return [] if value is None else value


# Model outputs often carry null for optional text; treat it as empty.
Text = Annotated[str, BeforeValidator(_blank_if_none)]
ListText = Annotated[str, BeforeValidator(strip_list_markers)]
Confidence = Annotated[float, BeforeValidator(_clamp_unit)]


def optional_list(item_type: Type[Any]) -> Any:
    return Annotated[List[item_type], BeforeValidator(_empty_list_if_none)]


def optional_object(model: Type[BaseModel]) -> Any:
    return Annotated[model, BeforeValidator(lambda v: {} if v is None else v)]


class PromptAgent:
    """Base class: subclasses set `stage` and call `_generate`."""

    stage: str = "analysis"
    failure_message: str = "Server-side analysis failed. Please check server logs for details."

    def __init__(self, client: Optional[GeminiClient] = None):
        self.client = client or get_gemini_client()

    def _generate(self, prompt: str, output_model: Type[ModelT], images: Sequence[InlineImage] = ()) -> ModelT:
        data = self.client.generate_json(prompt, images=images)
        if not data:
            raise ModelOutputError(f"AI model did not return an output for {self.stage}.")
        return output_model.model_validate(data)

    def _failure(self, exc: Exception, detail: str) -> AnalysisError:
        logger.exception("[Flow CRITICAL ERROR] %s: Execution failed. %s. Error: %s", self.stage, detail, exc)
        return AnalysisError(self.failure_message, stage=self.stage)
