"""The Judge: the AI collaborator that adjudicates and narrates.

This module defines the ``Judge`` protocol the engine depends on and an
OpenAI-compatible implementation (OpenRouter by default).

Failure handling follows two separate policies:

- Transport errors (connection, timeout, rate limit) are retried with
  exponential backoff via tenacity. Once retries are exhausted they are
  raised as ``JudgeConnectionError`` so the round scheduler can pause.
- Malformed or partial JSON is retried a bounded number of times and then
  replaced by the call's safe default. It never reaches the engine.

Example:
    >>> judge = OpenAIJudge()
    >>> results = await judge.check_conditions(requests, context)
"""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import TYPE_CHECKING, Any, Protocol, TypeVar, runtime_checkable

from openai import (
    APIConnectionError,
    APIStatusError,
    APITimeoutError,
    AsyncOpenAI,
    RateLimitError,
)
from pydantic import ValidationError as PydanticValidationError
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from taleweaver.core.config import JudgeSettings, get_settings
from taleweaver.core.exceptions import (
    JudgeConnectionError,
    JudgeRateLimitError,
    JudgeResponseError,
)
from taleweaver.core.logging import get_logger
from taleweaver.dm.prompts import (
    ACTION_PROMPT,
    CONDITION_CHECK_PROMPT,
    JUDGE_SYSTEM_PROMPT,
    REACTION_PROMPT,
    SETTLEMENT_PROMPT,
    to_json,
)
from taleweaver.models.judge import (
    ConditionRequest,
    ConditionResult,
    JudgeContext,
    ReactionResult,
    SettlementResult,
    TurnAction,
)


if TYPE_CHECKING:
    from tenacity.wait import WaitBaseT

    from taleweaver.models.character import Character, Conflict, Drive

logger = get_logger(__name__)

T = TypeVar("T")


# =============================================================================
# Protocol
# =============================================================================


@runtime_checkable
class Judge(Protocol):
    """The external reasoning service the engine depends on.

    Implementations must never raise on malformed output; they return the
    documented safe default instead. Transport failures raise
    ``JudgeConnectionError``.
    """

    async def check_conditions(
        self,
        requests: list[ConditionRequest],
        context: JudgeContext,
    ) -> dict[str, ConditionResult]:
        """Judge a batch of effect conditions (default: empty mapping)."""
        ...

    async def determine_action(
        self,
        character: Character,
        context: JudgeContext,
    ) -> TurnAction:
        """Decide an AI character's turn (default: empty action)."""
        ...

    async def determine_reaction(
        self,
        character: Character,
        prompt: str,
        context: JudgeContext,
    ) -> ReactionResult:
        """Synthesize a character's reaction (default: no speech)."""
        ...

    async def resolve_settlement(
        self,
        conflicts: list[Conflict],
        drives: list[Drive],
        context: JudgeContext,
    ) -> SettlementResult:
        """Decide solved conflicts and fulfilled drives (default: none)."""
        ...


# =============================================================================
# Response Parsing
# =============================================================================


def parse_json_response(response: str) -> Any:
    """Parse JSON from a model response, handling markdown code fences.

    Args:
        response: Raw response text.

    Returns:
        The decoded JSON value.

    Raises:
        JudgeResponseError: If the text is not valid JSON.
    """
    text = response.strip()
    if text.startswith("```"):
        lines = text.split("\n")
        if lines[0].startswith("```"):
            lines = lines[1:]
        if lines and lines[-1].strip() == "```":
            lines = lines[:-1]
        text = "\n".join(lines).strip()

    if not text:
        raise JudgeResponseError("Empty response from judge")

    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise JudgeResponseError(
            f"Failed to parse JSON from judge response: {exc}",
            details={"response_preview": text[:200]},
        ) from exc


def _require_object(data: Any) -> dict[str, Any]:
    if not isinstance(data, dict):
        raise JudgeResponseError(
            "Judge response is not a JSON object",
            details={"type": type(data).__name__},
        )
    return data


def parse_condition_results(data: Any) -> dict[str, ConditionResult]:
    """Validate a condition-check response.

    Args:
        data: Decoded JSON, ``{"results": {id: result}}``.

    Returns:
        Results by request id; entries that fail validation are omitted.

    Raises:
        JudgeResponseError: If the envelope itself is malformed.
    """
    results = _require_object(data).get("results")
    if not isinstance(results, dict):
        raise JudgeResponseError("Condition response has no 'results' object")

    parsed: dict[str, ConditionResult] = {}
    for request_id, raw in results.items():
        if not isinstance(raw, dict):
            continue
        try:
            parsed[str(request_id)] = ConditionResult.model_validate(raw)
        except PydanticValidationError as exc:
            logger.warning(
                "Dropping invalid condition result",
                request_id=request_id,
                errors=exc.error_count(),
            )
    return parsed


def parse_turn_action(data: Any) -> TurnAction:
    """Validate an action response."""
    return TurnAction.model_validate(_require_object(data))


def parse_reaction(data: Any) -> ReactionResult:
    """Validate a reaction response (a bare string is accepted as speech)."""
    if isinstance(data, str):
        return ReactionResult(speech=data)
    return ReactionResult.model_validate(_require_object(data))


def parse_settlement(data: Any) -> SettlementResult:
    """Validate a settlement response."""
    return SettlementResult.model_validate(_require_object(data))


# =============================================================================
# OpenAI-compatible Judge
# =============================================================================


class OpenAIJudge:
    """Judge backed by an OpenAI-compatible chat completions endpoint.

    Attributes:
        settings: Judge connection and retry settings.
    """

    def __init__(
        self,
        settings: JudgeSettings | None = None,
        *,
        client: AsyncOpenAI | None = None,
        wait: WaitBaseT | None = None,
    ) -> None:
        """Initialize the judge.

        Args:
            settings: Judge settings (defaults to the application settings).
            client: Pre-built client, mainly for tests.
            wait: Backoff strategy between transport retries.
        """
        self.settings = settings or get_settings().judge
        self._client = client
        self._wait = wait or wait_exponential(multiplier=1, min=1, max=10)

        logger.info(
            "OpenAIJudge initialized",
            model=self.settings.model,
            base_url=self.settings.base_url,
        )

    def _get_client(self) -> AsyncOpenAI:
        """Get or create the async OpenAI client."""
        if self._client is None:
            api_key = self.settings.api_key
            self._client = AsyncOpenAI(
                api_key=api_key.get_secret_value() if api_key else None,
                base_url=self.settings.base_url,
                timeout=self.settings.timeout_seconds,
                max_retries=0,
                default_headers={"X-Title": "Taleweaver"},
            )
        return self._client

    async def _complete(
        self,
        user_prompt: str,
        *,
        operation: str,
        model: str,
        temperature: float,
    ) -> str:
        """Call the provider once, retrying transport errors.

        Raises:
            JudgeRateLimitError: If rate limiting persists after all retries.
            JudgeConnectionError: If the provider cannot be reached.
        """
        client = self._get_client()
        try:
            async for attempt in AsyncRetrying(
                retry=retry_if_exception_type(
                    (APIConnectionError, APITimeoutError, RateLimitError)
                ),
                stop=stop_after_attempt(self.settings.transport_retries),
                wait=self._wait,
                reraise=True,
            ):
                with attempt:
                    response = await client.chat.completions.create(
                        model=model,
                        messages=[
                            {"role": "system", "content": JUDGE_SYSTEM_PROMPT},
                            {"role": "user", "content": user_prompt},
                        ],
                        temperature=temperature,
                        max_tokens=self.settings.max_tokens,
                        response_format={"type": "json_object"},
                    )
        except RateLimitError as exc:
            raise JudgeRateLimitError(
                f"Judge rate limit exceeded: {exc}",
                model=model,
                operation=operation,
            ) from exc
        except (APIConnectionError, APITimeoutError) as exc:
            raise JudgeConnectionError(
                f"Failed to connect to judge: {exc}",
                model=model,
                operation=operation,
            ) from exc
        except APIStatusError as exc:
            raise JudgeConnectionError(
                f"Judge API error: {exc}",
                model=model,
                operation=operation,
                details={"status_code": exc.status_code},
            ) from exc

        content = response.choices[0].message.content if response.choices else None
        return content or ""

    async def _generate(
        self,
        user_prompt: str,
        parse: Callable[[Any], T],
        default: T,
        *,
        operation: str,
        retries: int,
        model: str | None = None,
        temperature: float | None = None,
    ) -> T:
        """Call the provider until the response validates, else return the default."""
        model = model or self.settings.model
        temperature = self.settings.temperature if temperature is None else temperature

        for attempt in range(1, retries + 1):
            text = await self._complete(
                user_prompt,
                operation=operation,
                model=model,
                temperature=temperature,
            )
            try:
                return parse(parse_json_response(text))
            except (JudgeResponseError, PydanticValidationError) as exc:
                logger.warning(
                    "Judge response invalid, will retry",
                    operation=operation,
                    attempt=attempt,
                    error=str(exc)[:200],
                )

        logger.warning(
            "Judge response invalid after retries, using safe default",
            operation=operation,
            retries=retries,
        )
        return default

    async def check_conditions(
        self,
        requests: list[ConditionRequest],
        context: JudgeContext,
    ) -> dict[str, ConditionResult]:
        """Judge a batch of effect conditions.

        Args:
            requests: One request per effect.
            context: Story context.

        Returns:
            Results by request id; empty if the judge never answered validly.
        """
        if not requests:
            return {}
        prompt = CONDITION_CHECK_PROMPT.format(
            history=context.history or "(none)",
            entities=to_json(context.entities),
            world=to_json(context.world),
            items=to_json([r.model_dump(by_alias=True) for r in requests]),
            prompt_suffix=context.prompt_suffix,
        )
        return await self._generate(
            prompt,
            parse_condition_results,
            {},
            operation="check_conditions",
            retries=self.settings.validation_retries,
        )

    async def determine_action(
        self,
        character: Character,
        context: JudgeContext,
    ) -> TurnAction:
        """Decide an AI character's turn.

        Args:
            character: The acting character.
            context: Story context.

        Returns:
            The decided action; empty if the judge never answered validly.
        """
        persona = f"{character.name} (id: {character.id})\n{character.description}"
        if character.ai_config.persona:
            persona += f"\n{character.ai_config.persona}"
        prompt = ACTION_PROMPT.format(
            name=character.name,
            persona=persona,
            guidance=context.guidance or "(none)",
            location=context.location or "Unknown",
            destinations=to_json(context.destinations),
            characters=to_json(context.characters),
            cards=to_json(context.cards),
            prize_pools=to_json(context.prize_pools),
            world=to_json(context.world),
            history=context.history or "(none)",
            prompt_suffix=context.prompt_suffix,
        )
        return await self._generate(
            prompt,
            parse_turn_action,
            TurnAction(),
            operation="determine_action",
            retries=self.settings.validation_retries,
            model=character.ai_config.model,
            temperature=character.ai_config.temperature,
        )

    async def determine_reaction(
        self,
        character: Character,
        prompt: str,
        context: JudgeContext,
    ) -> ReactionResult:
        """Synthesize a character's reaction.

        Args:
            character: The reacting character.
            prompt: Description of what the character reacts to.
            context: Story context (``history`` holds the character's memory).

        Returns:
            The reaction; empty speech if the judge never answered validly.
        """
        user_prompt = REACTION_PROMPT.format(
            name=character.name,
            persona=f"{character.description}\n{character.ai_config.persona}".strip(),
            memory=context.history or "(nothing yet)",
            characters=to_json(context.characters),
            world=to_json(context.world),
            situation=prompt,
            prompt_suffix=context.prompt_suffix,
        )
        return await self._generate(
            user_prompt,
            parse_reaction,
            ReactionResult(),
            operation="determine_reaction",
            retries=self.settings.reaction_validation_retries,
            model=character.ai_config.model,
            temperature=character.ai_config.temperature,
        )

    async def resolve_settlement(
        self,
        conflicts: list[Conflict],
        drives: list[Drive],
        context: JudgeContext,
    ) -> SettlementResult:
        """Decide which conflicts were solved and which drives were fulfilled.

        Args:
            conflicts: Open conflicts of participants.
            drives: Drives of participants.
            context: Story context.

        Returns:
            The verdict; empty if the judge never answered validly.
        """
        prompt = SETTLEMENT_PROMPT.format(
            history=context.history or "(none)",
            conflicts=to_json([c.model_dump() for c in conflicts]),
            drives=to_json([d.model_dump() for d in drives]),
            world=to_json(context.world),
            prompt_suffix=context.prompt_suffix,
        )
        return await self._generate(
            prompt,
            parse_settlement,
            SettlementResult(),
            operation="resolve_settlement",
            retries=self.settings.validation_retries,
        )


__all__ = [
    "Judge",
    "OpenAIJudge",
    "parse_json_response",
    "parse_condition_results",
    "parse_turn_action",
    "parse_reaction",
    "parse_settlement",
]
