"""Prompt text for the turn protocol."""

from __future__ import annotations

from dataclasses import dataclass

from taskpilot.agent.schema import Attempt
from taskpilot.agent.views import AttemptError


@dataclass(frozen=True)
class AvailableAction:
    name: str
    description: str
    args: tuple[tuple[str, str], ...] = ()

    def signature(self) -> str:
        args = ', '.join(f"{name}: {type_}" for name, type_ in self.args)
        return f"{self.name}({args})"


AVAILABLE_ACTIONS: tuple[AvailableAction, ...] = (
    AvailableAction('click', 'Clicks on an element', (('elementId', 'number'),)),
    AvailableAction(
        'setValue',
        'Focuses on and sets the value of an input element',
        (('elementId', 'number'), ('value', 'string')),
    ),
    AvailableAction('finish', 'Indicates the task is finished'),
    AvailableAction('fail', 'Indicates that you are unable to complete the task'),
)

_formatted_actions = '\n'.join(
    f"{i + 1}. {action.signature()}: {action.description}" for i, action in enumerate(AVAILABLE_ACTIONS)
)

SYSTEM_MESSAGE = f"""You are a browser automation assistant.

You can use the following tools:

{_formatted_actions}

You will be given a task to perform and the current state of the DOM. You will also be given previous actions that you have taken.

Reply with exactly one JSON object describing your next action, for example:

{{"kind": "click", "rationale": "Since I found the shoes I'm looking for, I will click the button labeled \\"Add to Cart\\"", "elementId": 223}}

Only use elementId values that appear as id attributes in the current page contents."""

ATTEMPT_TYPE = """type Attempt =
  | {
      kind: "fail" | "finish"; // Indicates the task is finished or impossible.
      rationale: string;
    }
  | {
      kind: "click"; // Clicks on an element
      rationale: string;
      elementId: number;
    }
  | {
      kind: "setValue"; // Focuses on and sets the value of an input element
      rationale: string;
      elementId: number;
      value: string;
    };"""


def format_prompt(instructions: str, markup: str) -> str:
    """User message for one turn: the snapshot, the task and the reply type."""
    return f"""# Current view of the world:
{markup}

# Here is what you are supposed to do:
> {instructions}

# Now, reveal your `rationale` as you select the `kind` of your next action, shaped as the following type:

```
{ATTEMPT_TYPE}
```
"""


def render_action(action: Attempt | AttemptError) -> str:
    """Assistant message replaying a previous turn's action."""
    return action.model_dump_json(by_alias=True)
