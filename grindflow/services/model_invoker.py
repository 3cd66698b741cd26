"""Model invocation with transport fallback, retry and model rotation."""

import asyncio
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, List, Optional, Sequence

from grindflow.core.exceptions import ConfigurationError, ModelOverloadedError
from grindflow.core.llm_client import BaseModelTransport
from grindflow.utils.logging import get_logger

LOGGER = get_logger(__name__)

TRANSIENT_ERROR_PATTERN = re.compile(
    r"overloaded|resource.*exhausted|rate|429|unavailable|503",
    re.IGNORECASE,
)


def is_transient_error(error: BaseException) -> bool:
    """Whether an upstream failure is worth retrying after a pause."""
    return bool(TRANSIENT_ERROR_PATTERN.search(str(error)))


class AttemptOutcome(str, Enum):
    SUCCESS = "success"
    EMPTY = "empty"
    TRANSIENT_FAILURE = "transient_failure"
    FATAL_FAILURE = "fatal_failure"
    TIMEOUT = "timeout"


@dataclass
class ModelAttempt:
    """Bookkeeping for one transport call."""

    model: str
    transport: str
    attempt: int
    outcome: AttemptOutcome
    error: Optional[str] = None


@dataclass
class InvocationResult:
    """Text produced by the model plus where it came from.

    ``model`` and ``transport`` are None when no call produced text.
    """

    text: str
    model: Optional[str] = None
    transport: Optional[str] = None
    attempts: List[ModelAttempt] = field(default_factory=list)

    @property
    def provenance(self) -> str:
        if not self.model:
            return "none"
        return f"{self.model}/{self.transport}"


@dataclass
class InvocationConfig:
    """Candidate models and backoff schedule (seconds) for ``invoke``."""

    candidate_models: Sequence[str]
    backoff_schedule: Sequence[float] = (0.5, 1.0, 2.0, 4.0)

    def __post_init__(self):
        models: List[str] = []
        for model in self.candidate_models:
            if model and model not in models:
                models.append(model)
        if not models:
            raise ConfigurationError("At least one candidate model is required")
        if not self.backoff_schedule:
            raise ConfigurationError("Backoff schedule must have at least one slot")
        self.candidate_models = tuple(models)
        self.backoff_schedule = tuple(self.backoff_schedule)


class ModelInvoker:
    """Calls Gemini through a primary and a fallback transport.

    Two policies are offered. ``invoke`` is for requests that can afford
    to wait: it rotates through candidate models and backs off on
    transient failures. ``invoke_with_deadline`` is for interactive
    requests: one primary call raced against a deadline and one smaller
    fallback call, never raising.
    """

    def __init__(
        self,
        primary: BaseModelTransport,
        fallback: BaseModelTransport,
        config: InvocationConfig,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """Initialize the invoker.

        Args:
            primary: Transport tried first in every slot
            fallback: Transport tried with the same model when the primary fails
            config: Candidate models and backoff schedule
            sleep: Coroutine used for backoff pauses, injectable for tests
        """
        self.primary = primary
        self.fallback = fallback
        self.config = config
        self._sleep = sleep

    @property
    def is_configured(self) -> bool:
        return self.primary.is_configured or self.fallback.is_configured

    @property
    def default_model(self) -> str:
        return self.config.candidate_models[0]

    async def _call(
        self,
        transport: BaseModelTransport,
        model: str,
        system_instruction: str,
        prompt: str,
        slot: int,
        attempts: List[ModelAttempt],
    ) -> tuple:
        """Run one transport call and record it.

        Returns:
            ``(text, error)``; exactly one of them is meaningful
        """
        try:
            text = await transport.generate(model, system_instruction, prompt)
        except ConfigurationError:
            raise
        except Exception as e:
            outcome = AttemptOutcome.TRANSIENT_FAILURE if is_transient_error(e) else AttemptOutcome.FATAL_FAILURE
            attempts.append(ModelAttempt(model, transport.name, slot + 1, outcome, str(e)))
            LOGGER.warning(
                f"Model call failed ({model} via {transport.name}, attempt {slot + 1}): {e}",
                extra={"model": model, "transport": transport.name, "outcome": outcome.value},
            )
            return "", e

        if text and text.strip():
            attempts.append(ModelAttempt(model, transport.name, slot + 1, AttemptOutcome.SUCCESS))
            return text, None

        attempts.append(ModelAttempt(model, transport.name, slot + 1, AttemptOutcome.EMPTY))
        return "", None

    async def invoke(self, system_instruction: str, prompt: str) -> InvocationResult:
        """Generate text, retrying across transports, backoff slots and models.

        For each candidate model and each backoff slot the primary transport
        is tried. On failure the slot's delay is slept when the failure is
        transient and later slots remain, then the fallback transport is
        tried with the same model. A model is abandoned as soon as a slot
        fails with non-transient errors only.

        Args:
            system_instruction: Task system instruction
            prompt: User prompt

        Returns:
            InvocationResult with the first non-empty text

        Raises:
            ModelOverloadedError: If every model and slot is exhausted
            ConfigurationError: If no API key is configured
        """
        attempts: List[ModelAttempt] = []
        slots = self.config.backoff_schedule
        last_error: Optional[Exception] = None

        for model in self.config.candidate_models:
            for slot, delay in enumerate(slots):
                has_more_slots = slot < len(slots) - 1

                text, primary_error = await self._call(
                    self.primary, model, system_instruction, prompt, slot, attempts
                )
                if text:
                    return InvocationResult(text, model, self.primary.name, attempts)

                if primary_error is not None and is_transient_error(primary_error) and has_more_slots:
                    LOGGER.info(f"Transient failure on {model}, backing off {delay}s")
                    await self._sleep(delay)

                text, fallback_error = await self._call(
                    self.fallback, model, system_instruction, prompt, slot, attempts
                )
                if text:
                    return InvocationResult(text, model, self.fallback.name, attempts)

                errors = [error for error in (primary_error, fallback_error) if error is not None]
                if errors:
                    last_error = errors[-1]
                if errors and not any(is_transient_error(error) for error in errors):
                    LOGGER.warning(f"Non-transient failure on {model}, trying next model")
                    break

        LOGGER.error(
            "All candidate models exhausted",
            extra={
                "models": list(self.config.candidate_models),
                "attempts": len(attempts),
                "last_error": str(last_error) if last_error else None,
            },
        )
        raise ModelOverloadedError(original_error=last_error)

    async def invoke_with_deadline(
        self,
        system_instruction: str,
        prompt: str,
        fallback_prompt: str,
        deadline: float,
        model: Optional[str] = None,
    ) -> InvocationResult:
        """Generate text within a deadline, degrading to empty text.

        The primary call is cancelled when the deadline passes. On timeout,
        error or empty text the fallback transport gets one try with the
        smaller ``fallback_prompt`` under the same deadline.

        Args:
            system_instruction: Task system instruction
            prompt: Full user prompt for the primary transport
            fallback_prompt: Smaller user prompt for the fallback transport
            deadline: Seconds allowed for each of the two calls
            model: Model to use, defaults to the first candidate

        Returns:
            InvocationResult, with empty text when both calls failed
        """
        model = model or self.default_model
        attempts: List[ModelAttempt] = []

        for transport, user_prompt in ((self.primary, prompt), (self.fallback, fallback_prompt)):
            try:
                text = await asyncio.wait_for(
                    transport.generate(model, system_instruction, user_prompt),
                    timeout=deadline,
                )
            except asyncio.TimeoutError:
                attempts.append(ModelAttempt(model, transport.name, 1, AttemptOutcome.TIMEOUT))
                LOGGER.warning(f"Model call timed out after {deadline}s ({model} via {transport.name})")
                continue
            except Exception as e:
                outcome = AttemptOutcome.TRANSIENT_FAILURE if is_transient_error(e) else AttemptOutcome.FATAL_FAILURE
                attempts.append(ModelAttempt(model, transport.name, 1, outcome, str(e)))
                LOGGER.warning(f"Model call failed ({model} via {transport.name}): {e}")
                continue

            if text and text.strip():
                attempts.append(ModelAttempt(model, transport.name, 1, AttemptOutcome.SUCCESS))
                return InvocationResult(text, model, transport.name, attempts)
            attempts.append(ModelAttempt(model, transport.name, 1, AttemptOutcome.EMPTY))

        LOGGER.warning(f"No model output within deadline ({model})")
        return InvocationResult("", None, None, attempts)
