"""Unit tests for TurnExecutor."""

import json

import pytest
from unittest.mock import AsyncMock, MagicMock

from taskpilot.agent.executor import TurnExecutor
from taskpilot.agent.prompts import SYSTEM_MESSAGE, format_prompt
from taskpilot.agent.schema import ClickAttempt, ResponseSchema
from taskpilot.agent.views import AttemptError, HistoryEntry, TurnFailure, TurnSuccess, TurnUsage
from taskpilot.llm.exceptions import ModelProviderError

SNAPSHOT = '<div id="1"></div><div id="2"></div>'


def ollama_body(content, prompt_eval_count=10, eval_count=20) -> str:
    if not isinstance(content, str):
        content = json.dumps(content)
    return json.dumps({
        'model': 'test-model',
        'message': {'role': 'assistant', 'content': content},
        'done': True,
        'prompt_eval_count': prompt_eval_count,
        'eval_count': eval_count,
    })


@pytest.fixture
def mock_llm():
    """Create a mock transport."""
    llm = MagicMock()
    llm.complete = AsyncMock()
    llm.provider = "test-provider"
    return llm


@pytest.fixture
def notify_error():
    return MagicMock()


@pytest.fixture
def executor(mock_llm, notify_error):
    return TurnExecutor(mock_llm, 'Click the second box', max_attempts=3, notify_error=notify_error)


class TestTurnExecutorSuccess:
    """Test accepted replies."""

    @pytest.mark.asyncio
    async def test_returns_attempt_and_usage(self, executor, mock_llm, notify_error):
        """Test a valid click produces a TurnSuccess."""
        reply = {'kind': 'click', 'rationale': 'Clicking the button', 'elementId': 2}
        mock_llm.complete.return_value = ollama_body(reply)

        outcome = await executor.execute('test-model', [], SNAPSHOT)

        assert isinstance(outcome, TurnSuccess)
        assert isinstance(outcome.attempt, ClickAttempt)
        assert outcome.attempt.element_id == 2
        assert outcome.usage == TurnUsage(prompt_tokens=10, completion_tokens=20)
        assert outcome.usage.total_tokens == 30
        assert outcome.prompt == format_prompt('Click the second box', SNAPSHOT)
        assert json.loads(outcome.response) == reply
        notify_error.assert_not_called()

    @pytest.mark.asyncio
    async def test_sends_schema_for_snapshot(self, executor, mock_llm):
        """Test the transport receives the model, messages and this snapshot's schema."""
        mock_llm.complete.return_value = ollama_body({'kind': 'finish', 'rationale': 'done'})

        await executor.execute('test-model', [], SNAPSHOT)

        args, kwargs = mock_llm.complete.await_args
        assert args[0] == 'test-model'
        assert kwargs['output_format'] == ResponseSchema.build(SNAPSHOT).json_schema()

    @pytest.mark.asyncio
    async def test_missing_usage_counters(self, executor, mock_llm):
        """Test absent counters default to zero."""
        mock_llm.complete.return_value = json.dumps(
            {'message': {'role': 'assistant', 'content': '{"kind": "fail", "rationale": "blocked"}'}}
        )
        outcome = await executor.execute('test-model', [], SNAPSHOT)
        assert outcome.usage.total_tokens == 0


class TestTurnExecutorMessages:
    """Test conversation composition."""

    def test_without_prior_turns(self, executor):
        """Test system message first and the prompt last."""
        messages = executor.build_messages([], 'the prompt')
        assert [m.role for m in messages] == ['system', 'user']
        assert messages[0].content == SYSTEM_MESSAGE
        assert messages[-1].content == 'the prompt'

    def test_prior_turns_as_pairs(self, executor):
        """Test each prior turn becomes a user/assistant pair."""
        schema = ResponseSchema.build(SNAPSHOT)
        entry = HistoryEntry(
            prompt='earlier prompt',
            response='{"kind": "click", "rationale": "r", "elementId": 1}',
            action=schema.validate_python({'kind': 'click', 'rationale': 'r', 'elementId': 1}),
            usage=TurnUsage(),
        )
        messages = executor.build_messages([entry], 'the prompt')

        assert [m.role for m in messages] == ['system', 'user', 'assistant', 'user']
        assert messages[1].content == 'earlier prompt'
        assert json.loads(messages[2].content) == {'kind': 'click', 'rationale': 'r', 'elementId': 1}


class TestTurnExecutorRejection:
    """Test replies that fail validation."""

    @pytest.mark.asyncio
    async def test_out_of_set_element_id(self, executor, mock_llm, notify_error):
        """Test a click on a missing element becomes a TurnFailure."""
        mock_llm.complete.return_value = ollama_body(
            {'kind': 'click', 'rationale': 'Clicking', 'elementId': 5}
        )

        outcome = await executor.execute('test-model', [], SNAPSHOT)

        assert isinstance(outcome, TurnFailure)
        assert 'not among' not in outcome.error
        assert outcome.usage.prompt_tokens == 10
        notify_error.assert_called_once_with(outcome.error)
        mock_llm.complete.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_boolean_element_id(self, executor, mock_llm, notify_error):
        """Test `true` is not read as element 1."""
        mock_llm.complete.return_value = ollama_body(
            '{"kind": "click", "rationale": "Clicking", "elementId": true}'
        )

        outcome = await executor.execute('test-model', [], SNAPSHOT)

        assert isinstance(outcome, TurnFailure)
        notify_error.assert_called_once_with(outcome.error)

    @pytest.mark.asyncio
    async def test_unknown_kind(self, executor, mock_llm, notify_error):
        """Test an unknown kind is reported with the accepted kinds."""
        mock_llm.complete.return_value = ollama_body({'kind': 'teleport', 'rationale': 'beam me up'})

        outcome = await executor.execute('test-model', [], SNAPSHOT)

        assert isinstance(outcome, TurnFailure)
        assert outcome.error == '"teleport" not among fail | finish | click | setValue'
        notify_error.assert_called_once_with(outcome.error)

    @pytest.mark.asyncio
    async def test_reply_not_json(self, executor, mock_llm):
        """Test free text instead of JSON is a validation failure, not a transport failure."""
        mock_llm.complete.return_value = ollama_body('<Action>click(2)</Action>')

        outcome = await executor.execute('test-model', [], SNAPSHOT)

        assert isinstance(outcome, TurnFailure)
        assert outcome.response == '<Action>click(2)</Action>'
        assert HistoryEntry.from_outcome(outcome).action == AttemptError(error=outcome.error)


class TestTurnExecutorTransportErrors:
    """Test transport failures and retries."""

    @pytest.mark.asyncio
    async def test_error_body_retried(self, executor, mock_llm, notify_error):
        """Test an error field in the body is retried."""
        mock_llm.complete.side_effect = [
            json.dumps({'error': 'model "test-model" not found'}),
            ollama_body({'kind': 'finish', 'rationale': 'done'}),
        ]

        outcome = await executor.execute('test-model', [], SNAPSHOT)

        assert isinstance(outcome, TurnSuccess)
        assert mock_llm.complete.await_count == 2
        notify_error.assert_called_once_with('model "test-model" not found')

    @pytest.mark.asyncio
    async def test_malformed_body_retried(self, executor, mock_llm, notify_error):
        """Test a body that is not JSON is a transport failure."""
        mock_llm.complete.side_effect = [
            'Internal Server Error',
            ollama_body({'kind': 'finish', 'rationale': 'done'}),
        ]

        outcome = await executor.execute('test-model', [], SNAPSHOT)

        assert isinstance(outcome, TurnSuccess)
        assert notify_error.call_count == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "body",
        [
            {'message': 'x'},
            {'message': {'role': 'assistant', 'content': ['not', 'text']}},
            {'message': {'role': 'assistant', 'content': '{}'}, 'prompt_eval_count': 'many'},
        ],
    )
    async def test_wrong_body_shape_retried(self, executor, mock_llm, notify_error, body):
        """Test a JSON body of the wrong shape is a transport failure."""
        mock_llm.complete.side_effect = [
            json.dumps(body),
            ollama_body({'kind': 'finish', 'rationale': 'done'}),
        ]

        outcome = await executor.execute('test-model', [], SNAPSHOT)

        assert isinstance(outcome, TurnSuccess)
        assert mock_llm.complete.await_count == 2
        assert notify_error.call_count == 1
        assert 'Malformed' in notify_error.call_args.args[0]

    @pytest.mark.asyncio
    async def test_attempts_exhausted(self, executor, mock_llm, notify_error):
        """Test None is returned once every attempt failed."""
        mock_llm.complete.side_effect = ModelProviderError(message='server error', model='test-model')

        outcome = await executor.execute('test-model', [], SNAPSHOT)

        assert outcome is None
        assert mock_llm.complete.await_count == 3
        assert notify_error.call_count == 3
        notify_error.assert_called_with('server error')

    @pytest.mark.asyncio
    async def test_unexpected_exception_propagates(self, executor, mock_llm):
        """Test errors other than transport failures are not retried."""
        mock_llm.complete.side_effect = RuntimeError('boom')

        with pytest.raises(RuntimeError, match='boom'):
            await executor.execute('test-model', [], SNAPSHOT)
        mock_llm.complete.assert_awaited_once()
