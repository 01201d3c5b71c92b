"""
Response schema for model replies.

An `Attempt` is the model's proposal for the next action, a union tagged by
`kind`. The schema used to validate a reply is rebuilt for every turn from that
turn's snapshot, so `elementId` can only name an element present in it.
"""

from __future__ import annotations

import logging
from typing import Annotated, Any, Literal, Sequence, Union

from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    Field,
    StrictInt,
    TypeAdapter,
    WithJsonSchema,
    create_model,
)
from pydantic_core import PydanticCustomError

from taskpilot.agent.ids import extract_ids

logger = logging.getLogger(__name__)

ATTEMPT_KINDS: tuple[str, ...] = ('fail', 'finish', 'click', 'setValue')
"""Accepted values of the `kind` discriminator, in the order they are reported."""


class _AttemptBase(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: str
    rationale: str


class FailAttempt(_AttemptBase):
    """The model judges the task impossible."""

    kind: Literal['fail']


class FinishAttempt(_AttemptBase):
    """The model judges the task done."""

    kind: Literal['finish']


class ClickAttempt(_AttemptBase):
    """Click on an element of the snapshot."""

    kind: Literal['click']
    element_id: int = Field(alias='elementId')

    def args(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude={'kind', 'rationale'})


class SetValueAttempt(_AttemptBase):
    """Focus an input element of the snapshot and set its value."""

    kind: Literal['setValue']
    element_id: int = Field(alias='elementId')
    value: str

    def args(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude={'kind', 'rationale'})


Attempt = Union[FailAttempt, FinishAttempt, ClickAttempt, SetValueAttempt]


def _no_addressable_elements(value: int) -> int:
    raise PydanticCustomError(
        'element_id_unavailable',
        'No element with id {element_id}: the snapshot has no addressable elements',
        {'element_id': value},
    )


def _one_of(element_ids: tuple[int, ...]):
    def check(value: int) -> int:
        if value not in element_ids:
            raise PydanticCustomError(
                'literal_error',
                'Input should be {expected}',
                {'expected': ' or '.join(str(i) for i in element_ids)},
            )
        return value

    return check


def _element_id_type(element_ids: tuple[int, ...]) -> Any:
    # StrictInt: JSON booleans and floats are not element ids.
    check = _one_of(element_ids) if element_ids else _no_addressable_elements
    return Annotated[
        StrictInt,
        AfterValidator(check),
        WithJsonSchema({'type': 'integer', 'enum': list(element_ids)}),
    ]


class ResponseSchema:
    """
    Validator and JSON schema for one turn's model reply.

    The allowed `elementId` values are fixed when the schema is built and never
    follow later snapshots.
    """

    def __init__(self, element_ids: Sequence[int]):
        self.element_ids: tuple[int, ...] = tuple(dict.fromkeys(element_ids))
        element_id = _element_id_type(self.element_ids)

        self.click_model = create_model(
            'ClickAttempt',
            __base__=ClickAttempt,
            element_id=(element_id, Field(alias='elementId')),
        )
        self.set_value_model = create_model(
            'SetValueAttempt',
            __base__=SetValueAttempt,
            element_id=(element_id, Field(alias='elementId')),
        )
        self._adapter: TypeAdapter[Attempt] = TypeAdapter(
            Annotated[
                Union[FailAttempt, FinishAttempt, self.click_model, self.set_value_model],
                Field(discriminator='kind'),
            ]
        )

    @classmethod
    def build(cls, markup: str) -> ResponseSchema:
        """Build the schema for the elements addressable in `markup`."""
        element_ids = extract_ids(markup)
        logger.debug(f"Response schema built for {len(element_ids)} element ids")
        return cls(element_ids)

    def validate_python(self, value: Any) -> Attempt:
        """
        Raises:
            pydantic.ValidationError: the value is not a valid attempt for this snapshot
        """
        return self._adapter.validate_python(value)

    def validate_json(self, text: str | bytes) -> Attempt:
        """
        Raises:
            pydantic.ValidationError: the text is not JSON or not a valid attempt for this snapshot
        """
        return self._adapter.validate_json(text)

    def json_schema(self) -> dict[str, Any]:
        """The reply contract sent to the model backend."""
        return self._adapter.json_schema()
