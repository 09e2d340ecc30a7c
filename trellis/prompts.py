"""Prompt/completion capability backed by pydantic-ai."""

from __future__ import annotations

import logging
from typing import (
    TYPE_CHECKING,
    Any,
    Callable,
    Optional,
    Protocol,
    Type,
    TypeVar,
    runtime_checkable,
)

from pydantic import BaseModel
from pydantic_ai import Agent

from .constants import DEFAULT_MODEL
from .contracts import Context
from .exceptions import ConfigurationError

if TYPE_CHECKING:
    from pydantic_ai.models import Model

    from .runtime import StepRuntime

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


@runtime_checkable
class PromptClient(Protocol):
    """Generate a structured response for a prompt."""

    async def execute(self, prompt: str, response_model: Type[ModelT]) -> ModelT:
        """Return ``response_model`` populated from the backend's answer."""


class PydanticAIPromptClient:
    """Prompt client running a pydantic-ai agent with a structured output type."""

    def __init__(
        self,
        model: "str | Model" = DEFAULT_MODEL,
        system_prompt: str = "",
        **agent_kwargs: Any,
    ) -> None:
        self.model = model
        self.system_prompt = system_prompt
        self._agent_kwargs = agent_kwargs

    def _agent(self, response_model: Type[ModelT]) -> Agent:
        return Agent(
            self.model,
            output_type=response_model,
            system_prompt=self.system_prompt or (),
            **self._agent_kwargs,
        )

    async def execute(self, prompt: str, response_model: Type[ModelT]) -> ModelT:
        logger.debug(f"Executing prompt for {response_model.__name__} with {self.model}")
        result = await self._agent(response_model).run(prompt)
        return result.output


def prompt(
    template: Callable[[Context], str],
    response_model: Type[ModelT],
    client: Optional[PromptClient] = None,
) -> Callable[[Context, "StepRuntime"], Any]:
    """Build an action that renders ``template`` and asks a prompt client.

    The client is ``client`` when given, otherwise the workflow's configured
    ``prompt_client``. The response is validated against ``response_model``
    before it reaches the reducer.
    """

    async def _prompt_action(context: Context, runtime: "StepRuntime") -> ModelT:
        active_client = client or runtime.prompt_client
        if active_client is None:
            raise ConfigurationError(
                f"No prompt client configured for {response_model.__name__} prompt"
            )
        rendered = template(context)
        response = await active_client.execute(rendered, response_model)
        if isinstance(response, BaseModel):
            response = response.model_dump()
        return response_model.model_validate(response)

    _prompt_action.__name__ = f"prompt_{response_model.__name__}"
    return _prompt_action
