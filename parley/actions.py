"""Actions and evaluators, run after a reply is delivered.

An action is selected by the tag on the final outbound record. Evaluators
run after actions and look at the whole cycle (e.g. to extract facts).
"""

import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional

from .memory.evaluator import evaluate_message, quick_skip
from .models import ConversationState, MemoryRecord, ResponseContent
from .recorder import CONTINUE_ACTION

logger = logging.getLogger("parley.actions")

# callback(content) -> records created for follow-up messages
HandlerCallback = Callable[[ResponseContent], Awaitable[list[MemoryRecord]]]


@dataclass
class Action:
    name: str
    description: str
    handler: Callable[..., Awaitable[None]]
    similes: list[str] = field(default_factory=list)
    examples: list[str] = field(default_factory=list)

    def matches(self, tag: str) -> bool:
        wanted = _normalize(tag)
        return any(_normalize(n) == wanted for n in [self.name, *self.similes])


@dataclass
class Evaluator:
    name: str
    description: str
    handler: Callable[..., Awaitable[None]]
    validate: Callable[..., Awaitable[bool]]
    always_run: bool = False


def _normalize(tag: str) -> str:
    return tag.strip().upper().replace("_", "")


class ActionRegistry:
    """Holds actions and evaluators for one runtime."""

    def __init__(self):
        self._actions: dict[str, Action] = {}
        self._evaluators: dict[str, Evaluator] = {}

    def register_action(self, action: Action):
        self._actions[action.name] = action

    def register_evaluator(self, evaluator: Evaluator):
        self._evaluators[evaluator.name] = evaluator

    @property
    def evaluators(self) -> list[Evaluator]:
        return list(self._evaluators.values())

    def find(self, tag: str) -> Optional[Action]:
        for action in self._actions.values():
            if action.matches(tag):
                return action
        return None

    def names_text(self) -> str:
        return ", ".join(self._actions)

    def examples_text(self) -> str:
        lines = []
        for action in self._actions.values():
            lines.append(f"{action.name}: {action.description}")
            lines.extend(f"  {example}" for example in action.examples)
        return "\n".join(lines)

    async def process(
        self,
        runtime,
        inbound: MemoryRecord,
        responses: list[MemoryRecord],
        state: ConversationState,
        callback: HandlerCallback,
    ) -> Optional[str]:
        """Run the action named by the final response record, if any.

        Returns the action name that ran.
        """
        if not responses:
            return None
        tag = responses[-1].content.action
        if not tag or _normalize(tag) == _normalize(CONTINUE_ACTION):
            return None

        action = self.find(tag)
        if action is None:
            logger.warning(f"No action registered for tag {tag!r}")
            return None

        try:
            await action.handler(runtime, inbound, state, callback)
        except Exception as e:
            logger.error(f"Action {action.name} failed: {e}", exc_info=True)
            return None
        logger.debug(f"Processed action {action.name}")
        return action.name

    async def evaluate(
        self,
        runtime,
        inbound: MemoryRecord,
        state: ConversationState,
        did_respond: bool,
    ) -> list[str]:
        """Run every evaluator that applies. Returns the names that ran."""
        ran = []
        for evaluator in self._evaluators.values():
            if not (evaluator.always_run or did_respond):
                continue
            try:
                if not await evaluator.validate(runtime, inbound, state):
                    continue
                await evaluator.handler(runtime, inbound, state)
            except Exception as e:
                logger.error(f"Evaluator {evaluator.name} failed: {e}", exc_info=True)
                continue
            ran.append(evaluator.name)
        return ran


# ============================================================
# BUILT-IN ACTIONS
# ============================================================

async def _no_follow_up(runtime, record, state, callback):
    return None


NONE_ACTION = Action(
    name="NONE",
    description="Respond but perform no additional action. This is the default.",
    handler=_no_follow_up,
    similes=["NO_ACTION", "RESPOND"],
    examples=['user: hey whats up -> agent: oh hey (NONE)'],
)

IGNORE_ACTION = Action(
    name="IGNORE",
    description="Say nothing further; the conversation is over or the user is being rude.",
    handler=_no_follow_up,
    similes=["STOP_TALKING", "END_CONVERSATION"],
    examples=['user: bye -> agent: cya (IGNORE)'],
)


# ============================================================
# BUILT-IN EVALUATORS
# ============================================================

async def _validate_fact(runtime, record: MemoryRecord, state: ConversationState) -> bool:
    if record.participant_id == runtime.agent_id:
        return False
    return not quick_skip(record.content.text)


async def _extract_fact(runtime, record: MemoryRecord, state: ConversationState):
    result = await evaluate_message(runtime.provider, record.content.text)
    if not result:
        return
    fact_id = await runtime.store.store_fact_if_new(
        content=result["content"],
        category=result["category"],
        importance=result["importance"],
        conversation_id=record.conversation_id,
        participant_id=record.participant_id,
        agent_id=runtime.agent_id,
    )
    if fact_id:
        logger.info(f"Stored fact #{fact_id}: [{result['category']}] {result['content'][:80]}")


FACT_EVALUATOR = Evaluator(
    name="FACT",
    description="Extract long-term facts about participants from their messages.",
    handler=_extract_fact,
    validate=_validate_fact,
)


def register_builtins(registry: ActionRegistry):
    registry.register_action(NONE_ACTION)
    registry.register_action(IGNORE_ACTION)
    registry.register_evaluator(FACT_EVALUATOR)
